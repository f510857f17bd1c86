"""
仿真时钟

维护墙钟时间到仿真时间的映射：
    sim = anchor_sim + (wall - anchor_wall) * multiplier

时间源默认为 time.monotonic，不依赖渲染回调，界面不可见时仍持续推进。
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class BoundaryPolicy(Enum):
    """时间边界策略"""
    UNBOUNDED = "unbounded"  # 无限向前
    CLAMPED = "clamped"  # 夹取到 [start, stop]
    LOOP = "loop"  # 到达 stop 后回绕到 start


@dataclass(frozen=True)
class ClockSnapshot:
    """时钟状态快照"""
    now: float
    epoch: float
    multiplier: float
    policy: BoundaryPolicy
    start: Optional[float]
    stop: Optional[float]
    paused: bool


class SimulationClock:
    """
    仿真时钟

    Example:
        >>> clock = SimulationClock(epoch=0.0, multiplier=60.0)
        >>> clock.set_bounds(0.0, 3600.0)
        >>> clock.set_boundary_policy(BoundaryPolicy.LOOP)
        >>> t = clock.now()
    """

    def __init__(
        self,
        epoch: Optional[float] = None,
        multiplier: float = 1.0,
        policy: BoundaryPolicy = BoundaryPolicy.UNBOUNDED,
        start: Optional[float] = None,
        stop: Optional[float] = None,
        time_source: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            epoch: 仿真时间原点（UTC秒），默认为当前UTC时间
            multiplier: 播放倍率（>= 0）
            policy: 边界策略
            start: 时间下界，默认等于 epoch
            stop: 时间上界，None表示无上界
            time_source: 墙钟时间源（秒）
        """
        self._validate_multiplier(multiplier)
        self._lock = threading.Lock()
        self._time_source = time_source

        self._epoch = time.time() if epoch is None else float(epoch)
        self._multiplier = float(multiplier)
        self._resume_multiplier = self._multiplier
        self._paused = False
        self._policy = policy
        self._start = self._epoch if start is None else float(start)
        self._stop = None if stop is None else float(stop)
        self._validate_bounds(self._start, self._stop)

        self._anchor_wall = self._time_source()
        self._anchor_sim = self._epoch

    @staticmethod
    def _validate_multiplier(multiplier: float) -> None:
        if multiplier < 0:
            raise ValueError(f"播放倍率不能为负: {multiplier}")

    @staticmethod
    def _validate_bounds(start: Optional[float], stop: Optional[float]) -> None:
        if start is not None and stop is not None and stop <= start:
            raise ValueError(f"时间上界必须大于下界: start={start}, stop={stop}")

    def _raw_now(self) -> float:
        """未应用边界策略的仿真时间（调用方需持有锁）"""
        elapsed = self._time_source() - self._anchor_wall
        return self._anchor_sim + elapsed * self._multiplier

    def _apply_policy(self, t: float) -> float:
        """应用边界策略（调用方需持有锁）"""
        if self._policy is BoundaryPolicy.UNBOUNDED or self._stop is None:
            return t
        if self._policy is BoundaryPolicy.CLAMPED:
            return max(self._start, min(self._stop, t))
        # LOOP
        if t < self._start:
            return self._start
        span = self._stop - self._start
        return self._start + (t - self._start) % span

    def _reanchor(self) -> None:
        """以当前仿真时间重新锚定（调用方需持有锁）"""
        current = self._apply_policy(self._raw_now())
        self._anchor_wall = self._time_source()
        self._anchor_sim = current

    def now(self) -> float:
        """当前仿真时间（UTC秒）"""
        with self._lock:
            return self._apply_policy(self._raw_now())

    def set_epoch(self, t0: float) -> None:
        """将仿真时间重置为 t0，下界随之更新"""
        with self._lock:
            self._epoch = float(t0)
            self._start = self._epoch
            if self._stop is not None and self._stop <= self._start:
                logger.warning(f"新历元 {t0} 不早于时间上界 {self._stop}，已移除上界")
                self._stop = None
            self._anchor_wall = self._time_source()
            self._anchor_sim = self._epoch

    def set_multiplier(self, m: float) -> None:
        """设置播放倍率，当前仿真时间保持连续"""
        self._validate_multiplier(m)
        with self._lock:
            self._reanchor()
            self._multiplier = float(m)
            if m > 0:
                self._resume_multiplier = float(m)
                self._paused = False

    def set_boundary_policy(self, policy: BoundaryPolicy) -> None:
        """设置边界策略"""
        if not isinstance(policy, BoundaryPolicy):
            policy = BoundaryPolicy(policy)
        with self._lock:
            self._reanchor()
            self._policy = policy

    def set_bounds(self, start: Optional[float], stop: Optional[float]) -> None:
        """设置时间边界，start为None时保持原下界"""
        new_start = self._start if start is None else float(start)
        new_stop = None if stop is None else float(stop)
        self._validate_bounds(new_start, new_stop)
        with self._lock:
            self._reanchor()
            self._start = new_start
            self._stop = new_stop
            self._anchor_sim = self._apply_policy(self._anchor_sim)

    def pause(self) -> None:
        """暂停（倍率置0，保留原倍率）"""
        with self._lock:
            if self._paused:
                return
            self._reanchor()
            if self._multiplier > 0:
                self._resume_multiplier = self._multiplier
            self._multiplier = 0.0
            self._paused = True

    def resume(self) -> None:
        """恢复暂停前的倍率"""
        with self._lock:
            if not self._paused:
                return
            self._reanchor()
            self._multiplier = self._resume_multiplier
            self._paused = False

    @property
    def multiplier(self) -> float:
        with self._lock:
            return self._multiplier

    @property
    def policy(self) -> BoundaryPolicy:
        with self._lock:
            return self._policy

    @property
    def epoch(self) -> float:
        with self._lock:
            return self._epoch

    def snapshot(self) -> ClockSnapshot:
        """获取时钟状态快照"""
        with self._lock:
            return ClockSnapshot(
                now=self._apply_policy(self._raw_now()),
                epoch=self._epoch,
                multiplier=self._multiplier,
                policy=self._policy,
                start=self._start,
                stop=self._stop,
                paused=self._paused,
            )
