"""
轨道工具函数

提供轨道计算相关的共享工具函数和常量：
- WGS84椭球参数
- 时间尺度转换（UTC秒 <-> datetime <-> 儒略日）
- 格林尼治平恒星时
"""

import math
from datetime import datetime, timezone
from typing import Tuple

# =============================================================================
# 轨道常数
# =============================================================================

# WGS84椭球长半轴（千米）
WGS84_A_KM = 6378.137

# WGS84椭球短半轴（千米）
WGS84_B_KM = 6356.7523142

# WGS84扁率
WGS84_F = (WGS84_A_KM - WGS84_B_KM) / WGS84_A_KM

# WGS84第一偏心率平方
WGS84_E2 = 2 * WGS84_F - WGS84_F ** 2

# WGS84椭球长半轴（米）
WGS84_A_M = WGS84_A_KM * 1000.0

# 千米 -> 米
KM_TO_M = 1000.0

# =============================================================================
# 时间常数
# =============================================================================

SECONDS_PER_DAY = 86400.0

# UNIX纪元(1970-01-01T00:00:00Z)对应的儒略日
JD_UNIX_EPOCH = 2440587.5

# J2000.0对应的儒略日
JD_J2000 = 2451545.0


# =============================================================================
# 通用工具函数
# =============================================================================

def clamp(value: float, min_val: float, max_val: float) -> float:
    """
    将值限制在指定范围内

    Args:
        value: 输入值
        min_val: 最小值
        max_val: 最大值

    Returns:
        限制在[min_val, max_val]范围内的值
    """
    return max(min_val, min(max_val, value))


def is_finite_vector(vector) -> bool:
    """检查是否为有限值三维向量"""
    try:
        if len(vector) != 3:
            return False
        return all(math.isfinite(float(c)) for c in vector)
    except (TypeError, ValueError):
        return False


# =============================================================================
# 时间转换
# =============================================================================

def datetime_to_seconds(dt: datetime) -> float:
    """
    将datetime转换为UTC秒（UNIX时间）

    naive datetime按UTC处理。
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def seconds_to_datetime(seconds: float) -> datetime:
    """将UTC秒转换为timezone-aware datetime"""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def seconds_to_julian(seconds: float) -> Tuple[float, float]:
    """
    将UTC秒转换为儒略日（整数部分与小数部分分开，供sgp4使用）

    Args:
        seconds: UTC秒

    Returns:
        (jd, fr): 儒略日的整数部分(以.5结尾)与日内小数
    """
    days = seconds / SECONDS_PER_DAY
    whole = math.floor(days)
    return JD_UNIX_EPOCH + whole, days - whole


def gmst(seconds: float) -> float:
    """
    计算格林尼治平恒星时（IAU-82）

    Args:
        seconds: UTC秒（UT1近似）

    Returns:
        GMST（弧度，[0, 2π)）
    """
    jd, fr = seconds_to_julian(seconds)
    tut1 = (jd - JD_J2000 + fr) / 36525.0
    temp = (
        -6.2e-6 * tut1 ** 3
        + 0.093104 * tut1 ** 2
        + (876600.0 * 3600.0 + 8640184.812866) * tut1
        + 67310.54841
    )
    # 1秒恒星时 = 1/240 度
    theta = math.radians(temp / 240.0) % (2 * math.pi)
    if theta < 0.0:
        theta += 2 * math.pi
    return theta
