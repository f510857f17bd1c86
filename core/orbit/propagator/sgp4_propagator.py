"""
SGP4轨道传播器

基于sgp4库实现两行根数的轨道传播，输出TEME惯性系位置（千米）。
"""

import logging
import threading
from typing import Dict, Optional, Protocol, Tuple

from sgp4.api import Satrec

from core.exceptions import PropagationError
from core.models.element_set import OrbitalElementSet
from core.orbit.utils import is_finite_vector, seconds_to_julian

logger = logging.getLogger(__name__)

Vector3 = Tuple[float, float, float]


class Propagator(Protocol):
    """传播能力接口：根数 + UTC秒 -> 惯性系位置（千米）"""

    def propagate(self, element_set: OrbitalElementSet, time: float) -> Vector3:
        ...


class SGP4Propagator:
    """
    SGP4轨道传播器

    按根数缓存Satrec记录，根数不可变，因此缓存无需失效；
    刷新后不再出现的根数通过 prune() 清理。
    """

    def __init__(self):
        self._records: Dict[OrbitalElementSet, Optional[Satrec]] = {}
        self._lock = threading.Lock()

    def _get_satrec(self, element_set: OrbitalElementSet) -> Optional[Satrec]:
        """获取（或创建）根数对应的Satrec记录，无法解析时返回None"""
        with self._lock:
            if element_set in self._records:
                return self._records[element_set]

        try:
            satrec = Satrec.twoline2rv(element_set.line1, element_set.line2)
        except (ValueError, IndexError) as e:
            logger.warning(f"无法从根数创建SGP4记录 {element_set.name}: {e}")
            satrec = None

        with self._lock:
            self._records[element_set] = satrec
        return satrec

    def propagate(self, element_set: OrbitalElementSet, time: float) -> Vector3:
        """
        传播到指定时间

        Args:
            element_set: 两行根数
            time: UTC秒

        Returns:
            TEME位置（千米）

        Raises:
            PropagationError: 根数无效或SGP4返回错误码
        """
        satrec = self._get_satrec(element_set)
        if satrec is None:
            raise PropagationError(element_set.name, time, message=f"{element_set.name} 根数无效")

        jd, fr = seconds_to_julian(time)
        error, position, _velocity = satrec.sgp4(jd, fr)

        if error != 0:
            raise PropagationError(element_set.name, time, code=error)
        if not is_finite_vector(position):
            raise PropagationError(element_set.name, time, message=f"{element_set.name} 传播结果非有限值")

        return position

    def prune(self, keep) -> int:
        """
        清理不在 keep 中的缓存记录

        Returns:
            int: 清理的记录数
        """
        keep = set(keep)
        with self._lock:
            stale = [key for key in self._records if key not in keep]
            for key in stale:
                del self._records[key]
        return len(stale)

    def cache_size(self) -> int:
        """缓存记录数"""
        with self._lock:
            return len(self._records)
