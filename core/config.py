"""
轨迹跟踪配置

管理采样、刷新、仿真时钟和日志参数。
加载顺序：默认配置 <- 配置文件 <- 环境变量(SATTRACK_ 前缀)
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from core.trajectory.clock import BoundaryPolicy
from utils.config_loader import ConfigLoader, ConfigValidationError

ENV_PREFIX = "SATTRACK_"

# 默认配置
DEFAULT_TRACKER_CONFIG: Dict[str, Any] = {
    'sampling': {
        'sample_count': 61,
        'sample_spacing': 60.0,  # s
        'lookbehind': 60.0,  # s
        'refresh_margin': 300.0,  # s
        'max_workers': 1,
    },
    'refresh': {
        'period': 3600.0,  # s
        'build_timeout': 30.0,  # s
        'check_interval': 1.0,  # s
        'retry_interval': 30.0,  # s
    },
    'clock': {
        'epoch': None,  # None表示当前UTC时间
        'multiplier': 1.0,
        'policy': 'unbounded',
        'stop': None,
    },
    'logging': {
        'level': 'INFO',
        'format': 'text',
        'file': None,
        'rotation': 'none',
    },
}

TRACKER_CONFIG_SCHEMA: Dict[str, Any] = {
    'type': 'object',
    'required': ['sampling', 'refresh', 'clock', 'logging'],
    'properties': {
        'sampling': {
            'type': 'object',
            'properties': {
                'sample_count': {'type': 'integer', 'minimum': 1},
                'sample_spacing': {'type': 'number', 'exclusiveMinimum': 0},
                'lookbehind': {'type': 'number', 'minimum': 0},
                'refresh_margin': {'type': 'number', 'minimum': 0},
                'max_workers': {'type': 'integer', 'minimum': 1},
            },
        },
        'refresh': {
            'type': 'object',
            'properties': {
                'period': {'type': 'number', 'exclusiveMinimum': 0},
                'build_timeout': {'type': ['number', 'null'], 'exclusiveMinimum': 0},
                'check_interval': {'type': 'number', 'exclusiveMinimum': 0},
                'retry_interval': {'type': 'number', 'minimum': 0},
            },
        },
        'clock': {
            'type': 'object',
            'properties': {
                'multiplier': {'type': 'number', 'minimum': 0},
                'epoch': {'type': ['number', 'null']},
                'stop': {'type': ['number', 'null']},
                'policy': {'enum': [p.value for p in BoundaryPolicy]},
            },
        },
        'logging': {
            'type': 'object',
            'properties': {
                'level': {'enum': ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']},
                'format': {'enum': ['text', 'json']},
                'rotation': {'enum': ['none', 'daily', 'hourly']},
            },
        },
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    深度合并两个字典

    Args:
        base: 基础字典
        override: 覆盖字典

    Returns:
        Dict[str, Any]: 合并后的新字典
    """
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


@dataclass
class TrackerConfig:
    """
    轨迹跟踪配置

    各字段为对应配置段的字典，使用 from_dict / load 创建以保证合并默认值与校验。
    """
    sampling: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_TRACKER_CONFIG['sampling']))
    refresh: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_TRACKER_CONFIG['refresh']))
    clock: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_TRACKER_CONFIG['clock']))
    logging: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_TRACKER_CONFIG['logging']))

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]] = None) -> 'TrackerConfig':
        """
        从字典创建配置（与默认配置深度合并）

        Raises:
            ConfigValidationError: 配置无效
        """
        merged = _deep_merge(DEFAULT_TRACKER_CONFIG, config or {})

        valid, errors = ConfigLoader().validate(merged, TRACKER_CONFIG_SCHEMA)
        if not valid:
            raise ConfigValidationError("; ".join(errors))

        return cls(
            sampling=merged['sampling'],
            refresh=merged['refresh'],
            clock=merged['clock'],
            logging=merged['logging'],
        )

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> 'TrackerConfig':
        """
        加载配置：默认值 <- 配置文件 <- 环境变量

        Args:
            path: 配置文件路径（YAML或JSON），None表示只用默认值与环境变量
            environ: 环境变量字典，默认 os.environ

        Raises:
            ConfigLoadError: 配置文件加载失败
            ConfigValidationError: 配置无效
        """
        loader = ConfigLoader()
        file_config = loader.load(path) if path else {}
        env_config = loader.load_from_env(ENV_PREFIX, environ)
        return cls.from_dict(_deep_merge(file_config, env_config))

    @property
    def boundary_policy(self) -> BoundaryPolicy:
        return BoundaryPolicy(self.clock['policy'])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sampling': dict(self.sampling),
            'refresh': dict(self.refresh),
            'clock': dict(self.clock),
            'logging': dict(self.logging),
        }
