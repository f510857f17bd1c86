"""
轨迹模块 - 采样、仿真时钟与刷新协调

包含:
- sampler: 轨迹采样与时间窗选择
- clock: 仿真时钟
- refresh_coordinator: 轨迹集合的周期性重建与原子发布
"""

from .sampler import TrajectorySampler, SamplingWindowPolicy
from .clock import SimulationClock, BoundaryPolicy, ClockSnapshot
from .refresh_coordinator import RefreshCoordinator, RefreshState, RefreshStatus

__all__ = [
    'TrajectorySampler',
    'SamplingWindowPolicy',
    'SimulationClock',
    'BoundaryPolicy',
    'ClockSnapshot',
    'RefreshCoordinator',
    'RefreshState',
    'RefreshStatus',
]
