"""
通用配置加载器

功能：
- 支持加载JSON/YAML配置文件
- 支持环境变量覆盖（前缀 + 双下划线分隔嵌套键）
- 支持配置验证（schema验证）
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from .json_utils import JsonFileError, load_json


class ConfigLoadError(Exception):
    """配置加载错误"""
    pass


class ConfigValidationError(Exception):
    """配置验证错误"""
    pass


class ConfigLoader:
    """
    通用配置加载器

    支持多种格式的配置文件加载和验证
    """

    FORMAT_MAP = {
        ".json": "json",
        ".yaml": "yaml",
        ".yml": "yaml",
    }

    def __init__(self):
        self._loaded_config: Optional[Dict[str, Any]] = None
        self._file_path: Optional[str] = None

    def load(self, path: str, format: str = "auto") -> Dict[str, Any]:
        """
        加载配置文件

        Args:
            path: 配置文件路径
            format: 文件格式 ("auto", "json", "yaml")

        Returns:
            Dict[str, Any]: 配置字典（空文件返回空字典）

        Raises:
            ConfigLoadError: 加载失败时抛出
        """
        if not os.path.exists(path):
            raise ConfigLoadError(f"配置文件不存在: {path}")

        if format == "auto":
            format = self._detect_format(path)

        if format == "json":
            config = self._load_json(path)
        elif format == "yaml":
            config = self._load_yaml(path)
        else:
            raise ConfigLoadError(f"不支持的配置格式: {format}")

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ConfigLoadError(f"配置文件顶层必须是字典: {path}")

        self._loaded_config = config
        self._file_path = str(path)
        return config

    def _detect_format(self, path: str) -> str:
        """根据文件扩展名检测格式"""
        ext = Path(path).suffix.lower()
        if ext in self.FORMAT_MAP:
            return self.FORMAT_MAP[ext]
        raise ConfigLoadError(f"无法自动检测文件格式: {ext}")

    def _load_json(self, path: str) -> Any:
        """加载JSON文件"""
        try:
            return load_json(path)
        except JsonFileError as e:
            raise ConfigLoadError(f"JSON解析错误: {e}") from e
        except OSError as e:
            raise ConfigLoadError(f"读取配置文件失败: {e}") from e

    def _load_yaml(self, path: str) -> Any:
        """加载YAML文件"""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"YAML解析错误: {e}") from e
        except OSError as e:
            raise ConfigLoadError(f"读取配置文件失败: {e}") from e

    def load_from_env(self, prefix: str, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        从环境变量加载配置

        PREFIX_SECTION__KEY=value 映射为 {"section": {"key": value}}，
        值按YAML标量解析（"60" -> 60, "true" -> True）。

        Args:
            prefix: 环境变量前缀
            environ: 环境变量字典，默认 os.environ

        Returns:
            Dict[str, Any]: 嵌套配置字典
        """
        environ = os.environ if environ is None else environ
        result: Dict[str, Any] = {}
        prefix_lower = prefix.lower()

        for key, value in environ.items():
            key_lower = key.lower()
            if not key_lower.startswith(prefix_lower):
                continue

            path = [p for p in key_lower[len(prefix_lower):].split("__") if p]
            if not path:
                continue

            node = result
            for part in path[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child
            node[path[-1]] = self._parse_scalar(value)

        return result

    @staticmethod
    def _parse_scalar(value: str) -> Any:
        try:
            parsed = yaml.safe_load(value)
        except yaml.YAMLError:
            return value
        if isinstance(parsed, (dict, list)):
            return value
        return parsed

    def validate(self, config: Dict[str, Any], schema: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """
        验证配置

        Args:
            config: 配置字典
            schema: 验证schema（type / required / properties / minimum / exclusiveMinimum / enum），
                type 可以是类型名列表

        Returns:
            Tuple[bool, List[str]]: (是否有效, 错误列表)
        """
        if not schema:
            return True, []
        errors = self._validate_node(config, schema, "root")
        return len(errors) == 0, errors

    def _validate_node(self, value: Any, schema: Dict[str, Any], path: str) -> List[str]:
        errors: List[str] = []

        if "type" in schema and not self._check_type(value, schema["type"]):
            errors.append(
                f"字段 '{path}' 类型错误: 期望 {schema['type']}, 实际 {type(value).__name__}"
            )
            return errors

        is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
        if "minimum" in schema and is_number and value < schema["minimum"]:
            errors.append(f"字段 '{path}' 不能小于 {schema['minimum']}: {value}")
        if "exclusiveMinimum" in schema and is_number and value <= schema["exclusiveMinimum"]:
            errors.append(f"字段 '{path}' 必须大于 {schema['exclusiveMinimum']}: {value}")

        if "enum" in schema and value not in schema["enum"]:
            errors.append(f"字段 '{path}' 取值无效: {value!r}, 可选 {schema['enum']}")

        if isinstance(value, dict):
            for field in schema.get("required", []):
                if field not in value:
                    errors.append(f"缺少必需字段: {path}.{field}")
            for prop, prop_schema in schema.get("properties", {}).items():
                if prop in value:
                    errors.extend(self._validate_node(value[prop], prop_schema, f"{path}.{prop}"))

        return errors

    @classmethod
    def _check_type(cls, value: Any, expected_type: Union[str, List[str]]) -> bool:
        if isinstance(expected_type, list):
            return any(cls._check_type(value, t) for t in expected_type)

        type_map = {
            "string": str,
            "integer": int,
            "number": (int, float),
            "boolean": bool,
            "object": dict,
            "null": type(None),
        }
        if expected_type not in type_map:
            return True
        # bool 是 int 的子类
        if expected_type in ("integer", "number") and isinstance(value, bool):
            return False
        return isinstance(value, type_map[expected_type])

    def get_loaded_config(self) -> Optional[Dict[str, Any]]:
        """获取最后加载的配置"""
        return self._loaded_config

    def get_file_path(self) -> Optional[str]:
        """获取最后加载的文件路径"""
        return self._file_path
