"""
轨迹模型

- SampleEpoch: 单个 (时间, 位置) 采样点
- Trajectory: 单个目标按时间严格递增的采样点序列，提供连续位置查询
- TrajectorySet: 某一时刻天空的完整快照（目标标识 -> 轨迹），发布后不可变
- SamplingWindow: 采样时间窗
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, List, Optional, Sequence

import numpy as np

from core.exceptions import EmptyTrajectory
from core.orbit.frame_converter import RenderCoordinate


@dataclass(frozen=True)
class SampleEpoch:
    """采样点"""
    time: float  # UTC秒
    position: RenderCoordinate


@dataclass(frozen=True)
class SamplingWindow:
    """
    采样时间窗

    Attributes:
        start: 起始时间（UTC秒）
        sample_count: 采样点数量
        sample_spacing: 采样间隔（秒）
    """
    start: float
    sample_count: int
    sample_spacing: float

    def __post_init__(self):
        if self.sample_count < 1:
            raise ValueError(f"sample_count 必须 >= 1，实际 {self.sample_count}")
        if not self.sample_spacing > 0:
            raise ValueError(f"sample_spacing 必须 > 0，实际 {self.sample_spacing}")

    @property
    def end(self) -> float:
        """最后一个采样时刻"""
        return self.start + (self.sample_count - 1) * self.sample_spacing

    def times(self) -> List[float]:
        """全部采样时刻"""
        return [self.start + i * self.sample_spacing for i in range(self.sample_count)]

    def contains(self, t: float) -> bool:
        return self.start <= t <= self.end


def _interpolate_longitude(lon1: float, lon2: float, ratio: float) -> float:
    """经度插值，跨越±180°时取短弧"""
    delta = (lon2 - lon1 + 180.0) % 360.0 - 180.0
    lon = lon1 + ratio * delta
    return (lon + 180.0) % 360.0 - 180.0


def _interpolate(p1: RenderCoordinate, p2: RenderCoordinate, ratio: float) -> RenderCoordinate:
    """两个渲染坐标之间的笛卡尔线性插值"""
    return RenderCoordinate(
        x=p1.x + ratio * (p2.x - p1.x),
        y=p1.y + ratio * (p2.y - p1.y),
        z=p1.z + ratio * (p2.z - p1.z),
        longitude=_interpolate_longitude(p1.longitude, p2.longitude, ratio),
        latitude=p1.latitude + ratio * (p2.latitude - p1.latitude),
        height=p1.height + ratio * (p2.height - p1.height),
    )


class Trajectory:
    """
    单个目标的采样轨迹

    采样点时间严格递增且非空。时间窗外的查询夹取到最近的边界采样点。
    """

    def __init__(self, name: str, epochs: Sequence[SampleEpoch], window_start: Optional[float] = None):
        """
        Args:
            name: 目标标识
            epochs: 采样点（按时间严格递增）
            window_start: 构建时使用的时间窗起点，默认为第一个采样时刻

        Raises:
            EmptyTrajectory: 没有采样点
            ValueError: 采样时间不是严格递增
        """
        if not epochs:
            raise EmptyTrajectory(name)

        self.name = name
        self._epochs = tuple(epochs)
        self._times = np.array([e.time for e in self._epochs], dtype=float)

        if len(self._times) > 1 and not np.all(np.diff(self._times) > 0):
            raise ValueError(f"{name} 的采样时间必须严格递增")

        self.window_start = self._times[0] if window_start is None else float(window_start)

    @property
    def epochs(self) -> tuple:
        return self._epochs

    @property
    def start_time(self) -> float:
        """t0"""
        return float(self._times[0])

    @property
    def end_time(self) -> float:
        """tN"""
        return float(self._times[-1])

    @property
    def times(self) -> np.ndarray:
        return self._times.copy()

    @property
    def positions(self) -> np.ndarray:
        """(N, 3) 笛卡尔坐标数组（米）"""
        return np.array([e.position.as_array() for e in self._epochs])

    def covers(self, t: float) -> bool:
        return self.start_time <= t <= self.end_time

    def position_at(self, t: float) -> RenderCoordinate:
        """
        连续位置查询

        - t 与采样时刻重合：返回该采样点位置
        - t 位于两个采样点之间：笛卡尔线性插值
        - t 超出 [t0, tN]：夹取到最近的边界采样点

        Raises:
            ValueError: t 不是有限值
        """
        if not math.isfinite(t):
            raise ValueError(f"查询时间必须为有限值: {t}")

        if t <= self._times[0]:
            return self._epochs[0].position
        if t >= self._times[-1]:
            return self._epochs[-1].position

        # times[i] <= t < times[i+1]
        i = int(np.searchsorted(self._times, t, side='right')) - 1
        t1 = self._times[i]
        if t == t1:
            return self._epochs[i].position

        t2 = self._times[i + 1]
        ratio = (t - t1) / (t2 - t1)
        return _interpolate(self._epochs[i].position, self._epochs[i + 1].position, ratio)

    def __len__(self) -> int:
        return len(self._epochs)

    def __repr__(self) -> str:
        return f"Trajectory(name={self.name!r}, epochs={len(self._epochs)}, t0={self.start_time}, tN={self.end_time})"


def position_at(trajectory: Trajectory, t: float) -> RenderCoordinate:
    """轨迹连续位置查询，见 Trajectory.position_at"""
    return trajectory.position_at(t)


class TrajectorySet(Mapping):
    """
    轨迹集合快照

    目标标识 -> Trajectory 的只读映射。由刷新协调器整体替换，发布后从不修改。
    """

    def __init__(
        self,
        trajectories: Dict[str, Trajectory],
        generation: int = 0,
        window: Optional[SamplingWindow] = None,
        omitted: Optional[Dict[str, str]] = None,
        source_fingerprint: str = "",
        built_at: Optional[float] = None,
    ):
        self._trajectories = MappingProxyType(dict(trajectories))
        self.generation = generation
        self.window = window
        self.omitted = MappingProxyType(dict(omitted or {}))
        self.source_fingerprint = source_fingerprint
        self.built_at = built_at

    def __getitem__(self, name: str) -> Trajectory:
        return self._trajectories[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._trajectories)

    def __len__(self) -> int:
        return len(self._trajectories)

    @property
    def names(self) -> List[str]:
        return sorted(self._trajectories)

    @property
    def end_time(self) -> Optional[float]:
        """所有轨迹中最早结束的时刻；集合为空时返回None"""
        if not self._trajectories:
            return None
        return min(t.end_time for t in self._trajectories.values())

    def position_at(self, name: str, t: float) -> RenderCoordinate:
        """
        查询单个目标位置

        Raises:
            KeyError: 目标不存在
        """
        return self._trajectories[name].position_at(t)

    def positions_at(self, t: float) -> Dict[str, RenderCoordinate]:
        """查询全部目标在 t 时刻的位置（渲染端每帧调用）"""
        return {name: traj.position_at(t) for name, traj in self._trajectories.items()}

    def __repr__(self) -> str:
        return (f"TrajectorySet(generation={self.generation}, objects={len(self)}, "
                f"omitted={len(self.omitted)})")
