"""核心数据模型"""

from .element_set import OrbitalElementSet, ElementRecordError
from .trajectory import SampleEpoch, SamplingWindow, Trajectory, TrajectorySet, position_at

__all__ = [
    'OrbitalElementSet', 'ElementRecordError',
    'SampleEpoch', 'SamplingWindow', 'Trajectory', 'TrajectorySet', 'position_at',
]
