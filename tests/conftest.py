"""
Pytest 配置文件

定义自定义命令行选项和共享 fixtures
"""

import math
import os
import threading
from datetime import datetime, timezone

import pytest

from core.exceptions import InvalidVector, PropagationError
from core.models.element_set import OrbitalElementSet
from core.orbit.frame_converter import RenderCoordinate
from core.orbit.utils import datetime_to_seconds

ISS_LINE1 = "1 25544U 98067A   19343.69339541  .00001764  00000-0  38792-4 0  9991"
ISS_LINE2 = "2 25544  51.6439 211.2001 0007417  17.6667  85.6398 15.50103472202482"

# ISS根数历元 2019-12-09T16:38:29Z
ISS_EPOCH = datetime_to_seconds(datetime(2019, 12, 9, 16, 38, 29, tzinfo=timezone.utc))


def pytest_addoption(parser):
    """添加自定义命令行选项"""
    parser.addoption(
        "--stress",
        action="store_true",
        default=False,
        help="以更多轮次运行并发发布压力测试"
    )


def pytest_configure(config):
    """使用环境变量传递状态给测试文件"""
    os.environ['_PYTEST_STRESS_ENABLED'] = '1' if config.getoption("--stress") else '0'


def stress_rounds(default: int, stress: int) -> int:
    """压力测试轮次"""
    return stress if os.environ.get('_PYTEST_STRESS_ENABLED') == '1' else default


class ManualTimeSource:
    """可手动推进的墙钟时间源"""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class LinearPropagator:
    """
    线性运动的假传播器

    position(t) = base + velocity * t，可指定失败的目标或时刻
    """

    def __init__(self, base=(7000.0, 0.0, 0.0), velocity=(0.001, 0.002, 0.003),
                 fail_names=(), fail_times=(), delay: float = 0.0):
        self.base = base
        self.velocity = velocity
        self.fail_names = set(fail_names)
        self.fail_times = set(fail_times)
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def propagate(self, element_set, time):
        with self._lock:
            self.calls += 1
        if self.delay:
            threading.Event().wait(self.delay)
        if element_set.name in self.fail_names or time in self.fail_times:
            raise PropagationError(element_set.name, time)
        return tuple(b + v * time for b, v in zip(self.base, self.velocity))


def identity_converter(position, time):
    """不做坐标转换，直接把输入当作渲染坐标"""
    x, y, z = position
    if not all(math.isfinite(c) for c in (x, y, z)):
        raise InvalidVector(position)
    return RenderCoordinate(x=x, y=y, z=z, longitude=0.0, latitude=0.0, height=0.0)


def make_element_set(name: str) -> OrbitalElementSet:
    return OrbitalElementSet(name=name, line1=ISS_LINE1, line2=ISS_LINE2)


@pytest.fixture
def iss_element_set() -> OrbitalElementSet:
    return OrbitalElementSet(name="ISS (ZARYA)", line1=ISS_LINE1, line2=ISS_LINE2)


@pytest.fixture
def time_source() -> ManualTimeSource:
    return ManualTimeSource()


@pytest.fixture
def linear_propagator() -> LinearPropagator:
    return LinearPropagator()
