"""
坐标系转换

惯性系(TEME/ECI, km) -> 大地坐标(经纬高) -> 渲染坐标系(地固系笛卡尔坐标, m)

高度单位从千米转换为米是对外约定：渲染引擎的基本长度单位为米。
"""

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from core.exceptions import InvalidVector
from core.orbit.utils import (
    KM_TO_M,
    WGS84_A_KM,
    WGS84_A_M,
    WGS84_E2,
    gmst,
    is_finite_vector,
)

# 纬度迭代次数
_LATITUDE_ITERATIONS = 20


@dataclass(frozen=True)
class RenderCoordinate:
    """
    渲染坐标

    Attributes:
        x, y, z: 地固系笛卡尔坐标（米）
        longitude: 经度（度，[-180, 180)）
        latitude: 纬度（度）
        height: 椭球高（米）
    """
    x: float
    y: float
    z: float
    longitude: float
    latitude: float
    height: float

    def as_array(self) -> np.ndarray:
        """笛卡尔坐标数组"""
        return np.array([self.x, self.y, self.z], dtype=float)

    def as_geodetic(self) -> Tuple[float, float, float]:
        """(longitude, latitude, height)"""
        return self.longitude, self.latitude, self.height


def eci_to_geodetic(position: Sequence[float], theta: float) -> Tuple[float, float, float]:
    """
    将ECI坐标转换为大地坐标

    Args:
        position: ECI坐标（千米）
        theta: 格林尼治恒星时（弧度）

    Returns:
        (longitude, latitude, height): 弧度、弧度、千米
    """
    x, y, z = (float(c) for c in position)

    longitude = math.atan2(y, x) - theta
    while longitude < -math.pi:
        longitude += 2 * math.pi
    while longitude >= math.pi:
        longitude -= 2 * math.pi

    r = math.sqrt(x * x + y * y)
    latitude = math.atan2(z, r)
    c = 1.0
    for _ in range(_LATITUDE_ITERATIONS):
        sin_lat = math.sin(latitude)
        c = 1.0 / math.sqrt(1.0 - WGS84_E2 * sin_lat * sin_lat)
        latitude = math.atan2(z + WGS84_A_KM * c * WGS84_E2 * sin_lat, r)

    cos_lat = math.cos(latitude)
    if abs(cos_lat) > 1e-10:
        height = r / cos_lat - WGS84_A_KM * c
    else:
        # 极点附近
        sin_lat = math.sin(latitude)
        height = abs(z) / abs(sin_lat) - WGS84_A_KM * c * (1.0 - WGS84_E2)

    return longitude, latitude, height


def geodetic_to_cartesian(longitude_deg: float, latitude_deg: float, height_m: float) -> Tuple[float, float, float]:
    """
    大地坐标转地固系笛卡尔坐标（WGS84）

    Args:
        longitude_deg: 经度（度）
        latitude_deg: 纬度（度）
        height_m: 椭球高（米）

    Returns:
        (x, y, z): 米
    """
    lon = math.radians(longitude_deg)
    lat = math.radians(latitude_deg)
    sin_lat = math.sin(lat)
    n = WGS84_A_M / math.sqrt(1.0 - WGS84_E2 * sin_lat * sin_lat)

    x = (n + height_m) * math.cos(lat) * math.cos(lon)
    y = (n + height_m) * math.cos(lat) * math.sin(lon)
    z = (n * (1.0 - WGS84_E2) + height_m) * sin_lat
    return x, y, z


def to_render_frame(inertial_position: Sequence[float], time: float) -> RenderCoordinate:
    """
    惯性系位置转换为渲染坐标

    Args:
        inertial_position: ECI位置（千米）
        time: 该位置对应的UTC秒（用于确定地球自转角）

    Returns:
        RenderCoordinate

    Raises:
        InvalidVector: 输入不是有限三维向量
    """
    if not is_finite_vector(inertial_position):
        raise InvalidVector(inertial_position)

    lon, lat, height_km = eci_to_geodetic(inertial_position, gmst(time))
    longitude = math.degrees(lon)
    latitude = math.degrees(lat)
    height = height_km * KM_TO_M

    x, y, z = geodetic_to_cartesian(longitude, latitude, height)
    return RenderCoordinate(
        x=x, y=y, z=z,
        longitude=longitude,
        latitude=latitude,
        height=height,
    )
