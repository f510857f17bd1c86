"""
根数数据源

数据源负责提供 目标标识 -> 根数 的集合。网络、解析等失败统一表现为
UpstreamUnavailable，由刷新协调器按“无新数据”处理。
"""

import hashlib
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Union

from core.exceptions import UpstreamUnavailable
from core.models.element_set import ElementRecordError, OrbitalElementSet
from utils.json_utils import JsonFileError, load_record_list

logger = logging.getLogger(__name__)


def index_element_sets(element_sets: Iterable[OrbitalElementSet]) -> Dict[str, OrbitalElementSet]:
    """按名称建立索引，同名根数后者覆盖前者"""
    result: Dict[str, OrbitalElementSet] = {}
    for element_set in element_sets:
        if element_set.name in result:
            logger.debug(f"重复的目标标识 {element_set.name}，使用后出现的根数")
        result[element_set.name] = element_set
    return result


def collection_fingerprint(element_sets: Dict[str, OrbitalElementSet]) -> str:
    """根数集合摘要（与顺序无关）"""
    digest = hashlib.sha1()
    for name in sorted(element_sets):
        digest.update(element_sets[name].fingerprint().encode('ascii'))
    return digest.hexdigest()


class ElementSetSource(ABC):
    """根数数据源接口"""

    @abstractmethod
    def fetch(self) -> Dict[str, OrbitalElementSet]:
        """
        获取当前根数集合

        Returns:
            Dict[str, OrbitalElementSet]: 目标标识 -> 根数

        Raises:
            UpstreamUnavailable: 数据源不可用
        """
        pass


class StaticElementSetSource(ElementSetSource):
    """内存数据源，可通过 update() 替换内容"""

    def __init__(self, element_sets: Iterable[OrbitalElementSet] = ()):
        self._lock = threading.Lock()
        self._element_sets = index_element_sets(element_sets)

    def update(self, element_sets: Iterable[OrbitalElementSet]) -> None:
        """替换全部根数"""
        indexed = index_element_sets(element_sets)
        with self._lock:
            self._element_sets = indexed

    def fetch(self) -> Dict[str, OrbitalElementSet]:
        with self._lock:
            return dict(self._element_sets)


class JsonFileElementSetSource(ElementSetSource):
    """
    JSON文件数据源

    文件内容为 {name, line1, line2} 记录列表。格式错误的单条记录被跳过，
    文件不可读或不是列表时抛出 UpstreamUnavailable。
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def fetch(self) -> Dict[str, OrbitalElementSet]:
        try:
            records = load_record_list(self.path)
        except (OSError, JsonFileError) as e:
            raise UpstreamUnavailable(f"无法读取根数文件 {self.path}: {e}") from e

        element_sets = []
        for i, record in enumerate(records):
            try:
                element_sets.append(OrbitalElementSet.from_record(record))
            except ElementRecordError as e:
                logger.warning(f"跳过第 {i} 条根数记录: {e}")

        logger.debug(f"从 {self.path} 读取 {len(element_sets)}/{len(records)} 条根数")
        return index_element_sets(element_sets)
