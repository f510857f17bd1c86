"""
轨迹刷新协调器

状态机：IDLE -> BUILDING -> PUBLISHED -> BUILDING -> ...

- 启动、收到新根数、刷新周期到达或已发布时间窗即将耗尽时进入BUILDING
- 构建完成后以单次引用替换发布新的TrajectorySet，读者不会看到半成品
- 构建期间旧集合继续可读，渲染路径从不阻塞
- 每次刷新领取递增的版本号，旧版本永远不会覆盖新版本
- 数据源失败、结果为空或获取与构建超时：保留上次发布的集合并标记为过期(stale)
- 已被更新版本取代的失败不会把当前集合标记为过期

使用示例:
    coordinator = RefreshCoordinator(source, sampler, clock, window_policy)
    coordinator.start()
    ...
    trajectory_set = coordinator.current
    if trajectory_set is not None:
        positions = trajectory_set.positions_at(clock.now())
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Set, Tuple

from core.exceptions import EmptyRefresh, RefreshError, RefreshTimeout, UpstreamUnavailable
from core.models.trajectory import TrajectorySet
from core.sources.element_source import ElementSetSource, collection_fingerprint
from core.trajectory.clock import SimulationClock
from core.trajectory.sampler import SamplingWindowPolicy, TrajectorySampler

logger = logging.getLogger(__name__)

PublishListener = Callable[[TrajectorySet], None]


class RefreshState(Enum):
    """刷新状态"""
    IDLE = "idle"
    BUILDING = "building"
    PUBLISHED = "published"


@dataclass(frozen=True)
class RefreshStatus:
    """
    刷新状态快照

    Attributes:
        state: 当前状态
        is_stale: 最近一次刷新失败，正在使用旧数据
        generation: 已发布集合的版本号（未发布时为0）
        object_count: 已发布集合中的目标数
        omitted: 已发布集合中被剔除的目标
        last_error: 最近一次失败的描述
        last_reason: 最近一次刷新的触发原因
        source_changed: 最近一次发布时根数内容是否有变化
    """
    state: RefreshState
    is_stale: bool
    generation: int
    object_count: int
    omitted: Tuple[str, ...]
    last_error: Optional[str]
    last_reason: Optional[str]
    source_changed: bool


class RefreshCoordinator:
    """
    轨迹刷新协调器

    唯一写者：只有协调器替换“当前轨迹集合”，渲染端与时钟只读。
    """

    def __init__(
        self,
        source: ElementSetSource,
        sampler: TrajectorySampler,
        clock: SimulationClock,
        window_policy: Optional[SamplingWindowPolicy] = None,
        refresh_period: float = 3600.0,
        build_timeout: Optional[float] = 30.0,
        check_interval: float = 1.0,
        retry_interval: float = 30.0,
    ):
        """
        Args:
            source: 根数数据源
            sampler: 轨迹采样器
            clock: 仿真时钟
            window_policy: 采样时间窗策略
            refresh_period: 定时刷新周期（墙钟秒）
            build_timeout: 获取根数与构建的总超时（秒），None表示不限时
            check_interval: 后台任务检查间隔（秒）
            retry_interval: 刷新失败后再次自动重试的最小间隔（秒）
        """
        if refresh_period <= 0:
            raise ValueError("refresh_period 必须为正")
        if build_timeout is not None and build_timeout <= 0:
            raise ValueError("build_timeout 必须为正或None")
        if check_interval <= 0:
            raise ValueError("check_interval 必须为正")

        self.source = source
        self.sampler = sampler
        self.clock = clock
        self.window_policy = window_policy or SamplingWindowPolicy()
        self.refresh_period = refresh_period
        self.build_timeout = build_timeout
        self.check_interval = check_interval
        self.retry_interval = retry_interval

        # 已发布集合，只通过 _publish 整体替换
        self._published: Optional[TrajectorySet] = None
        self._publish_lock = threading.Lock()

        self._state_lock = threading.Lock()
        self._next_generation = 1
        self._in_flight = 0
        self._abandoned: Set[int] = set()
        self._stale = False
        self._last_error: Optional[str] = None
        self._last_reason: Optional[str] = None
        self._source_changed = False
        self._last_fingerprint: Optional[str] = None
        self._last_failure: Optional[float] = None
        self._last_success: Optional[float] = None

        self._listeners: List[PublishListener] = []

        self._wake = threading.Event()
        self._stop_event = threading.Event()
        self._pending_reason: Optional[str] = None
        self._thread: Optional[threading.Thread] = None
        self._executor: Optional[ThreadPoolExecutor] = None

    # ==================== 读者接口 ====================

    @property
    def current(self) -> Optional[TrajectorySet]:
        """当前发布的轨迹集合（可能为None），读取不加锁"""
        return self._published

    @property
    def state(self) -> RefreshState:
        with self._state_lock:
            if self._in_flight > 0:
                return RefreshState.BUILDING
        if self._published is not None:
            return RefreshState.PUBLISHED
        return RefreshState.IDLE

    @property
    def is_stale(self) -> bool:
        with self._state_lock:
            return self._stale

    def status(self) -> RefreshStatus:
        """获取状态快照"""
        published = self._published
        state = self.state
        with self._state_lock:
            return RefreshStatus(
                state=state,
                is_stale=self._stale,
                generation=published.generation if published else 0,
                object_count=len(published) if published else 0,
                omitted=tuple(sorted(published.omitted)) if published else (),
                last_error=self._last_error,
                last_reason=self._last_reason,
                source_changed=self._source_changed,
            )

    def add_listener(self, listener: PublishListener) -> None:
        """注册发布回调，回调参数为新发布的轨迹集合"""
        self._listeners.append(listener)

    # ==================== 刷新 ====================

    def _begin(self, reason: str) -> int:
        with self._state_lock:
            generation = self._next_generation
            self._next_generation += 1
            self._in_flight += 1
            self._last_reason = reason
        logger.debug(f"开始构建轨迹集合 generation={generation} reason={reason}")
        return generation

    def _end(self) -> None:
        with self._state_lock:
            self._in_flight -= 1

    def _mark_stale(self, error: Exception, generation: int) -> None:
        """记录刷新失败；已被更新版本取代的失败不影响当前状态"""
        published = self._published
        if published is not None and published.generation > generation:
            logger.info(
                f"generation={generation} 失败但已被 generation={published.generation} 取代: {error}"
            )
            return

        with self._state_lock:
            self._stale = True
            self._last_error = f"{type(error).__name__}: {error}"
            self._last_failure = time.monotonic()
        if published is not None:
            logger.warning(
                f"刷新失败，继续使用 generation={published.generation} 的轨迹集合: {error}"
            )
        else:
            logger.error(f"刷新失败，尚无可用轨迹集合: {error}")

    def _is_abandoned(self, generation: int) -> bool:
        with self._state_lock:
            return generation in self._abandoned

    def _forget(self, generation: int) -> None:
        with self._state_lock:
            self._abandoned.discard(generation)

    def _fetch(self):
        """获取根数，任何数据源错误都视为无新数据"""
        try:
            element_sets = self.source.fetch()
        except UpstreamUnavailable:
            raise
        except Exception as e:
            raise UpstreamUnavailable(f"根数数据源错误: {e}") from e

        if not element_sets:
            raise UpstreamUnavailable("根数数据源返回空集合")
        return element_sets

    def _cycle(self, generation: int) -> Tuple[dict, Optional[TrajectorySet]]:
        """获取根数并构建轨迹集合；已放弃的版本不再构建"""
        element_sets = self._fetch()
        if self._is_abandoned(generation):
            return element_sets, None

        window = self.window_policy.select_window(self.clock.now())
        trajectory_set = self.sampler.build_trajectory_set(
            element_sets.values(),
            window,
            generation=generation,
            source_fingerprint=collection_fingerprint(element_sets),
            should_abort=lambda: self._is_abandoned(generation),
        )
        return element_sets, trajectory_set

    def _run_cycle(self, generation: int) -> Tuple[dict, TrajectorySet]:
        """在 build_timeout 内完成获取与构建，超时则放弃该版本"""
        if self.build_timeout is None:
            return self._cycle(generation)

        future = self._get_executor().submit(self._cycle, generation)
        try:
            return future.result(timeout=self.build_timeout)
        except FuturesTimeoutError:
            with self._state_lock:
                self._abandoned.add(generation)
            future.cancel()
            future.add_done_callback(lambda _: self._forget(generation))
            raise RefreshTimeout(
                f"获取与构建超过 {self.build_timeout}s，已放弃 generation={generation}"
            )

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._state_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="traj_build")
            return self._executor

    def _publish(self, trajectory_set: TrajectorySet) -> bool:
        """
        原子替换已发布集合

        Returns:
            bool: 是否发布（版本号不比已发布的新时不发布）
        """
        with self._publish_lock:
            current = self._published
            if current is not None and trajectory_set.generation <= current.generation:
                return False
            self._published = trajectory_set

        with self._state_lock:
            self._stale = False
            self._last_error = None
            self._last_failure = None
            self._source_changed = trajectory_set.source_fingerprint != self._last_fingerprint
            self._last_fingerprint = trajectory_set.source_fingerprint
            self._last_success = time.monotonic()

        logger.info(
            f"发布轨迹集合 generation={trajectory_set.generation}: "
            f"{len(trajectory_set)} 个目标, 剔除 {len(trajectory_set.omitted)} 个"
        )

        for listener in list(self._listeners):
            try:
                listener(trajectory_set)
            except Exception:
                logger.exception("发布回调执行失败")
        return True

    def refresh(self, reason: str = "manual") -> TrajectorySet:
        """
        执行一次完整刷新

        Args:
            reason: 触发原因（仅用于日志与状态）

        Returns:
            TrajectorySet: 刷新后当前发布的集合。若本次结果已被更新的版本取代，
            返回那个更新的版本

        Raises:
            UpstreamUnavailable: 数据源不可用或返回空集合
            EmptyRefresh: 所有目标均构建失败
            RefreshTimeout: 获取与构建超时
        """
        generation = self._begin(reason)
        try:
            element_sets, trajectory_set = self._run_cycle(generation)

            if len(trajectory_set) == 0:
                raise EmptyRefresh(
                    f"generation={generation} 的 {len(element_sets)} 个目标全部构建失败"
                )

            if not self._publish(trajectory_set):
                logger.info(f"generation={generation} 已被更新的版本取代，丢弃")

            prune = getattr(self.sampler.propagator, 'prune', None)
            if prune is not None:
                prune(element_sets.values())

            return self._published
        except Exception as e:
            self._mark_stale(e, generation)
            raise
        finally:
            self._end()

    # ==================== 后台任务 ====================

    def notify_new_data(self, reason: str = "new_data") -> None:
        """通知有新根数，后台任务立即重建"""
        self._pending_reason = reason
        self._wake.set()

    def _due_reason(self, woke: bool) -> Optional[str]:
        """判断是否需要刷新，返回触发原因"""
        if woke:
            reason = self._pending_reason or "notify"
            self._pending_reason = None
            return reason

        now = time.monotonic()
        with self._state_lock:
            if self._in_flight > 0:
                return None
            last_failure = self._last_failure
            last_success = self._last_success

        # 只有上次刷新失败时才按 retry_interval 限流
        if last_failure is not None and now - last_failure < self.retry_interval:
            return None

        if last_success is None or now - last_success >= self.refresh_period:
            return "schedule"
        if self.window_policy.needs_rebuild(self._published, self.clock.now()):
            return "window"
        return None

    def _run(self) -> None:
        logger.info("轨迹刷新任务启动")
        while not self._stop_event.is_set():
            woke = self._wake.wait(timeout=self.check_interval)
            if self._stop_event.is_set():
                break
            if woke:
                self._wake.clear()

            reason = self._due_reason(woke)
            if reason is None:
                continue

            try:
                self.refresh(reason)
            except RefreshError as e:
                logger.warning(f"刷新周期失败 ({reason}): {e}")
            except Exception:
                logger.exception(f"刷新周期异常 ({reason})")
        logger.info("轨迹刷新任务停止")

    def start(self) -> None:
        """启动后台刷新任务（启动时立即刷新一次）"""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self.notify_new_data("startup")
        self._thread = threading.Thread(target=self._run, name="trajectory_refresh", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """停止后台刷新任务"""
        self._stop_event.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        with self._state_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
