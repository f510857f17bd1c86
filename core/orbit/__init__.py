"""轨道计算模块 - 包含轨道传播器和坐标转换"""

from .frame_converter import RenderCoordinate, to_render_frame, eci_to_geodetic, geodetic_to_cartesian
from .propagator.sgp4_propagator import Propagator, SGP4Propagator

__all__ = [
    'RenderCoordinate',
    'to_render_frame',
    'eci_to_geodetic',
    'geodetic_to_cartesian',
    'Propagator',
    'SGP4Propagator',
]
