"""
轨道根数模型 - 单个目标的两行根数(TLE)

根数集合由外部数据源提供，接收后不可变，
直到被同名的新根数替换或整体刷新。
"""

import hashlib
from dataclasses import dataclass
from typing import Any, Dict


class ElementRecordError(ValueError):
    """根数记录格式错误"""
    pass


@dataclass(frozen=True)
class OrbitalElementSet:
    """
    两行平均根数

    Attributes:
        name: 目标标识
        line1: TLE第一行
        line2: TLE第二行
    """
    name: str
    line1: str
    line2: str

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'OrbitalElementSet':
        """
        从 {name, line1, line2} 记录创建

        Raises:
            ElementRecordError: 缺少字段或字段为空
        """
        try:
            name = str(record['name']).strip()
            line1 = str(record['line1']).rstrip()
            line2 = str(record['line2']).rstrip()
        except (KeyError, TypeError) as e:
            raise ElementRecordError(f"根数记录缺少字段: {e}") from e

        if not name or not line1 or not line2:
            raise ElementRecordError(f"根数记录字段为空: {record!r}")

        return cls(name=name, line1=line1, line2=line2)

    def to_record(self) -> Dict[str, str]:
        """转换为 {name, line1, line2} 记录"""
        return {'name': self.name, 'line1': self.line1, 'line2': self.line2}

    def fingerprint(self) -> str:
        """根数内容摘要，用于判断数据是否更新"""
        digest = hashlib.sha1()
        digest.update(self.name.encode('utf-8'))
        digest.update(b'\n')
        digest.update(self.line1.encode('utf-8'))
        digest.update(b'\n')
        digest.update(self.line2.encode('utf-8'))
        return digest.hexdigest()
