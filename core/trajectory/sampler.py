"""
轨迹采样器

对每个根数在时间窗内稀疏采样（传播 + 坐标转换），
渲染端再通过插值得到连续位置。传播代价较高，而视觉平滑只需亚秒级精度，
插值把传播开销摊薄到多帧渲染上。

使用示例:
    sampler = TrajectorySampler(SGP4Propagator())
    window = SamplingWindow(start=now, sample_count=61, sample_spacing=60.0)
    trajectory_set = sampler.build_trajectory_set(element_sets, window)
    position = trajectory_set.position_at("ISS (ZARYA)", now + 90.0)
"""

import logging
import time as _time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, Optional, Tuple

from core.exceptions import EmptyTrajectory, InvalidVector, PropagationError
from core.models.element_set import OrbitalElementSet
from core.models.trajectory import SampleEpoch, SamplingWindow, Trajectory, TrajectorySet
from core.orbit.frame_converter import RenderCoordinate, to_render_frame
from core.orbit.propagator.sgp4_propagator import Propagator

logger = logging.getLogger(__name__)

FrameConverter = Callable[[Tuple[float, float, float], float], RenderCoordinate]


class TrajectorySampler:
    """
    轨迹采样器

    Attributes:
        propagator: 传播能力，propagate(element_set, time) -> ECI位置(km)
        converter: 坐标转换函数，默认 to_render_frame
        max_workers: 构建轨迹集合时的线程数，1表示串行
    """

    def __init__(
        self,
        propagator: Propagator,
        converter: FrameConverter = to_render_frame,
        max_workers: int = 1,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers 必须 >= 1，实际 {max_workers}")
        self.propagator = propagator
        self.converter = converter
        self.max_workers = max_workers

    def build_trajectory(
        self,
        element_set: OrbitalElementSet,
        window_start: float,
        sample_count: int,
        sample_spacing: float,
    ) -> Trajectory:
        """
        构建单个目标的采样轨迹

        第 i 个采样时刻为 window_start + i * sample_spacing (i = 0..sample_count-1)。
        单个采样点传播或转换失败时跳过该点，不中断构建。

        Args:
            element_set: 两行根数
            window_start: 时间窗起点（UTC秒）
            sample_count: 采样点数量
            sample_spacing: 采样间隔（秒）

        Returns:
            Trajectory

        Raises:
            ValueError: 采样参数无效
            EmptyTrajectory: 所有采样点均失败
        """
        window = SamplingWindow(window_start, sample_count, sample_spacing)

        epochs = []
        skipped = 0
        for t in window.times():
            try:
                inertial = self.propagator.propagate(element_set, t)
                position = self.converter(inertial, t)
            except (PropagationError, InvalidVector) as e:
                skipped += 1
                logger.debug(f"跳过采样点 {element_set.name} t={t}: {e}")
                continue
            epochs.append(SampleEpoch(time=t, position=position))

        if not epochs:
            raise EmptyTrajectory(element_set.name, attempted=sample_count)

        if skipped:
            logger.debug(f"{element_set.name}: {len(epochs)}/{sample_count} 个采样点有效")

        return Trajectory(element_set.name, epochs, window_start=window_start)

    def _build_one(self, element_set: OrbitalElementSet, window: SamplingWindow) -> Trajectory:
        return self.build_trajectory(
            element_set, window.start, window.sample_count, window.sample_spacing
        )

    def build_trajectory_set(
        self,
        element_sets: Iterable[OrbitalElementSet],
        window: SamplingWindow,
        generation: int = 0,
        source_fingerprint: str = "",
        should_abort: Optional[Callable[[], bool]] = None,
    ) -> TrajectorySet:
        """
        为一组根数构建轨迹集合

        全部采样失败的目标被剔除并记录警告，不影响其他目标。
        返回的集合可能为空，是否视为失败由调用方决定。

        Args:
            element_sets: 根数列表
            window: 采样时间窗
            generation: 轨迹集合版本号
            source_fingerprint: 数据源摘要
            should_abort: 返回True时停止提交剩余目标（用于超时后放弃构建）

        Returns:
            TrajectorySet
        """
        element_sets = list(element_sets)
        trajectories: Dict[str, Trajectory] = {}
        omitted: Dict[str, str] = {}

        def collect(element_set, outcome):
            if isinstance(outcome, Trajectory):
                trajectories[element_set.name] = outcome
            else:
                omitted[element_set.name] = str(outcome)
                logger.warning(f"目标 {element_set.name} 已从轨迹集合中剔除: {outcome}")

        if self.max_workers == 1:
            for element_set in element_sets:
                if should_abort is not None and should_abort():
                    logger.info(f"轨迹集合构建已放弃 (generation={generation})")
                    break
                collect(element_set, self._try_build(element_set, window))
        else:
            with ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="traj_sample"
            ) as executor:
                futures = [
                    (element_set, executor.submit(self._try_build, element_set, window))
                    for element_set in element_sets
                ]
                for element_set, future in futures:
                    if should_abort is not None and should_abort():
                        for _, pending in futures:
                            pending.cancel()
                        logger.info(f"轨迹集合构建已放弃 (generation={generation})")
                        break
                    collect(element_set, future.result())

        logger.debug(
            f"轨迹集合构建完成 generation={generation}: "
            f"{len(trajectories)} 个目标, 剔除 {len(omitted)} 个"
        )

        return TrajectorySet(
            trajectories,
            generation=generation,
            window=window,
            omitted=omitted,
            source_fingerprint=source_fingerprint,
            built_at=_time.time(),
        )

    def _try_build(self, element_set: OrbitalElementSet, window: SamplingWindow):
        """构建单个轨迹，EmptyTrajectory 作为结果返回而非抛出"""
        try:
            return self._build_one(element_set, window)
        except EmptyTrajectory as e:
            return e


class SamplingWindowPolicy:
    """
    采样时间窗选择策略

    根据仿真时钟当前时间决定下一次采样的时间窗：
    起点为 now - lookbehind，覆盖 (sample_count - 1) * sample_spacing 秒。
    """

    def __init__(
        self,
        sample_count: int = 61,
        sample_spacing: float = 60.0,
        lookbehind: float = 60.0,
        refresh_margin: float = 300.0,
    ):
        """
        Args:
            sample_count: 采样点数量
            sample_spacing: 采样间隔（秒）
            lookbehind: 时间窗起点相对当前时间的提前量（秒）
            refresh_margin: 距离时间窗结束不足该值时需要重建（秒）
        """
        if lookbehind < 0:
            raise ValueError("lookbehind 不能为负")
        if refresh_margin < 0:
            raise ValueError("refresh_margin 不能为负")
        # 校验采样参数
        SamplingWindow(0.0, sample_count, sample_spacing)

        self.sample_count = sample_count
        self.sample_spacing = sample_spacing
        self.lookbehind = lookbehind
        self.refresh_margin = refresh_margin

    def select_window(self, now: float) -> SamplingWindow:
        """选择覆盖当前时间的采样时间窗"""
        return SamplingWindow(now - self.lookbehind, self.sample_count, self.sample_spacing)

    def needs_rebuild(self, trajectory_set: Optional[TrajectorySet], now: float) -> bool:
        """
        判断已发布的轨迹集合是否需要重建

        没有集合、当前时间不在时间窗内、或距时间窗结束不足 refresh_margin 时返回True。
        """
        if trajectory_set is None or trajectory_set.window is None:
            return True
        window = trajectory_set.window
        if now < window.start or now > window.end:
            return True
        return window.end - now < self.refresh_margin
