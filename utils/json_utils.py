"""
JSON文件读写

- 根数文件：{name, line1, line2} 记录组成的列表
- 配置文件：顶层为字典
- 位置快照：原子写入，读取方不会看到写了一半的文件

内容错误统一抛出 JsonFileError，文件系统错误(OSError)原样抛出，
由调用方决定映射为哪种领域错误。
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Union

PathLike = Union[str, Path]


class JsonFileError(ValueError):
    """JSON文件内容错误（为空、格式错误、编码错误或结构不符）"""

    def __init__(self, path: PathLike, message: str):
        self.path = str(path)
        super().__init__(f"{path}: {message}")


def load_json(file_path: PathLike) -> Any:
    """
    读取JSON文件

    Raises:
        OSError: 文件不可读
        JsonFileError: 文件为空、编码错误或JSON格式错误
    """
    path = Path(file_path)
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise JsonFileError(path, f"编码错误: {e}") from e

    if not content.strip():
        raise JsonFileError(path, "文件为空")
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise JsonFileError(path, f"JSON格式错误: {e}") from e


def load_record_list(file_path: PathLike) -> List[Dict[str, Any]]:
    """
    读取记录列表（如根数文件）

    只检查顶层结构，单条记录的字段由调用方校验。

    Raises:
        OSError: 文件不可读
        JsonFileError: 内容错误或顶层不是列表
    """
    data = load_json(file_path)
    if not isinstance(data, list):
        raise JsonFileError(file_path, f"期望记录列表，实际为 {type(data).__name__}")
    return data


def save_json(data: Any, file_path: PathLike, indent: int = 2) -> None:
    """
    原子写入JSON文件（先写同目录临时文件再替换）

    Raises:
        TypeError: 数据无法序列化
        OSError: 无法写入
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    # 先序列化，失败时不留下临时文件
    content = json.dumps(data, indent=indent, ensure_ascii=False)

    fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
