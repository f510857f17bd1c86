"""轨道传播器"""

from .sgp4_propagator import Propagator, SGP4Propagator

__all__ = ['Propagator', 'SGP4Propagator']
