"""
核心模块 - 卫星实时位置轨迹计算

包含根数模型、坐标转换、轨迹采样、仿真时钟与刷新协调
"""

from .exceptions import (
    TrackingError,
    InvalidVector,
    PropagationError,
    EmptyTrajectory,
    RefreshError,
    EmptyRefresh,
    UpstreamUnavailable,
    RefreshTimeout,
)
from .models.element_set import OrbitalElementSet
from .models.trajectory import SampleEpoch, SamplingWindow, Trajectory, TrajectorySet

__all__ = [
    'TrackingError', 'InvalidVector', 'PropagationError', 'EmptyTrajectory',
    'RefreshError', 'EmptyRefresh', 'UpstreamUnavailable', 'RefreshTimeout',
    'OrbitalElementSet',
    'SampleEpoch', 'SamplingWindow', 'Trajectory', 'TrajectorySet',
]
