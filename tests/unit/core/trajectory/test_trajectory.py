"""
轨迹模型测试

测试插值规律、边界夹取和轨迹集合的不可变性
"""

import numpy as np
import pytest

from core.exceptions import EmptyTrajectory
from core.models.trajectory import (
    SampleEpoch,
    SamplingWindow,
    Trajectory,
    TrajectorySet,
    position_at,
)
from core.orbit.frame_converter import RenderCoordinate


def coord(x, y, z, lon=0.0, lat=0.0, height=0.0):
    return RenderCoordinate(x=x, y=y, z=z, longitude=lon, latitude=lat, height=height)


@pytest.fixture
def trajectory():
    epochs = [
        SampleEpoch(0.0, coord(0.0, 0.0, 0.0, lon=10.0, lat=0.0, height=400e3)),
        SampleEpoch(3600.0, coord(100.0, -50.0, 20.0, lon=20.0, lat=10.0, height=410e3)),
        SampleEpoch(7200.0, coord(300.0, -150.0, 60.0, lon=30.0, lat=20.0, height=420e3)),
        SampleEpoch(10800.0, coord(600.0, -300.0, 120.0, lon=40.0, lat=30.0, height=430e3)),
    ]
    return Trajectory("SAT-1", epochs, window_start=0.0)


class TestSamplingWindow:
    """测试采样时间窗"""

    def test_times_and_end(self):
        window = SamplingWindow(100.0, 4, 60.0)
        assert window.times() == [100.0, 160.0, 220.0, 280.0]
        assert window.end == 280.0

    def test_single_sample_window(self):
        window = SamplingWindow(5.0, 1, 60.0)
        assert window.end == 5.0
        assert window.contains(5.0)

    @pytest.mark.parametrize("count,spacing", [(0, 60.0), (-1, 60.0), (4, 0.0), (4, -1.0)])
    def test_invalid_window(self, count, spacing):
        with pytest.raises(ValueError):
            SamplingWindow(0.0, count, spacing)


class TestTrajectoryConstruction:
    """测试轨迹构造约束"""

    def test_empty_epochs_raise(self):
        with pytest.raises(EmptyTrajectory):
            Trajectory("SAT-1", [])

    def test_non_increasing_times_raise(self):
        epochs = [SampleEpoch(0.0, coord(0, 0, 0)), SampleEpoch(0.0, coord(1, 1, 1))]
        with pytest.raises(ValueError):
            Trajectory("SAT-1", epochs)

    def test_decreasing_times_raise(self):
        epochs = [SampleEpoch(60.0, coord(0, 0, 0)), SampleEpoch(0.0, coord(1, 1, 1))]
        with pytest.raises(ValueError):
            Trajectory("SAT-1", epochs)

    def test_bounds(self, trajectory):
        assert trajectory.start_time == 0.0
        assert trajectory.end_time == 10800.0
        assert trajectory.window_start == 0.0
        assert len(trajectory) == 4
        assert trajectory.positions.shape == (4, 3)
        np.testing.assert_array_equal(trajectory.times, [0.0, 3600.0, 7200.0, 10800.0])

    def test_window_start_defaults_to_first_epoch(self):
        trajectory = Trajectory("SAT-1", [SampleEpoch(42.0, coord(1, 2, 3))])
        assert trajectory.window_start == 42.0


class TestInterpolation:
    """测试线性插值规律"""

    @pytest.mark.parametrize("index", [0, 1, 2, 3])
    def test_exact_epoch_returns_epoch_position(self, trajectory, index):
        epoch = trajectory.epochs[index]
        assert trajectory.position_at(epoch.time) == epoch.position

    def test_midpoint(self, trajectory):
        """t=1800 返回第0、1个采样点的中点"""
        p = position_at(trajectory, 1800.0)
        assert (p.x, p.y, p.z) == pytest.approx((50.0, -25.0, 10.0))
        assert p.height == pytest.approx(405e3)
        assert p.latitude == pytest.approx(5.0)
        assert p.longitude == pytest.approx(15.0)

    def test_strictly_between_bracketing_epochs(self, trajectory):
        p1 = trajectory.epochs[1].position
        p2 = trajectory.epochs[2].position
        for t in (3601.0, 5000.0, 7199.0):
            p = trajectory.position_at(t)
            assert min(p1.x, p2.x) < p.x < max(p1.x, p2.x)
            assert min(p1.y, p2.y) < p.y < max(p1.y, p2.y)
            assert min(p1.z, p2.z) < p.z < max(p1.z, p2.z)

    def test_linear_ratio(self, trajectory):
        p = trajectory.position_at(7200.0 + 900.0)
        # 1/4 处
        assert p.x == pytest.approx(300.0 + 0.25 * 300.0)

    def test_longitude_across_antimeridian(self):
        epochs = [
            SampleEpoch(0.0, coord(0, 0, 0, lon=179.0)),
            SampleEpoch(60.0, coord(1, 1, 1, lon=-179.0)),
        ]
        p = Trajectory("SAT-1", epochs).position_at(30.0)
        assert abs(p.longitude) == pytest.approx(180.0)

    def test_nan_time_raises(self, trajectory):
        with pytest.raises(ValueError):
            trajectory.position_at(float('nan'))


class TestClamping:
    """测试边界夹取"""

    @pytest.mark.parametrize("t", [-1.0, -3600.0, -1e9])
    def test_before_start_clamps_to_first(self, trajectory, t):
        assert trajectory.position_at(t) == trajectory.position_at(trajectory.start_time)

    @pytest.mark.parametrize("t", [10800.5, 20000.0, 1e12])
    def test_after_end_clamps_to_last(self, trajectory, t):
        assert trajectory.position_at(t) == trajectory.position_at(trajectory.end_time)

    def test_single_epoch_trajectory(self):
        only = coord(1.0, 2.0, 3.0)
        trajectory = Trajectory("SAT-1", [SampleEpoch(100.0, only)])
        for t in (0.0, 100.0, 200.0):
            assert trajectory.position_at(t) == only

    def test_covers(self, trajectory):
        assert trajectory.covers(0.0)
        assert trajectory.covers(10800.0)
        assert not trajectory.covers(10800.1)


class TestTrajectorySet:
    """测试轨迹集合"""

    def test_mapping_interface(self, trajectory):
        trajectory_set = TrajectorySet({"SAT-1": trajectory}, generation=3)
        assert len(trajectory_set) == 1
        assert "SAT-1" in trajectory_set
        assert trajectory_set["SAT-1"] is trajectory
        assert trajectory_set.names == ["SAT-1"]
        assert trajectory_set.generation == 3

    def test_immutable(self, trajectory):
        trajectory_set = TrajectorySet({"SAT-1": trajectory}, omitted={"SAT-2": "failed"})
        with pytest.raises(TypeError):
            trajectory_set["SAT-3"] = trajectory
        with pytest.raises(TypeError):
            trajectory_set.omitted["SAT-4"] = "x"

    def test_source_dict_changes_do_not_leak(self, trajectory):
        source = {"SAT-1": trajectory}
        trajectory_set = TrajectorySet(source)
        source["SAT-2"] = trajectory
        assert len(trajectory_set) == 1

    def test_positions_at(self, trajectory):
        other = Trajectory("SAT-2", [SampleEpoch(0.0, coord(9.0, 9.0, 9.0))])
        trajectory_set = TrajectorySet({"SAT-1": trajectory, "SAT-2": other})

        positions = trajectory_set.positions_at(1800.0)

        assert set(positions) == {"SAT-1", "SAT-2"}
        assert positions["SAT-1"].x == pytest.approx(50.0)
        assert positions["SAT-2"].x == 9.0
        assert trajectory_set.position_at("SAT-2", 1800.0).x == 9.0

    def test_unknown_name_raises_key_error(self, trajectory):
        with pytest.raises(KeyError):
            TrajectorySet({"SAT-1": trajectory}).position_at("NOPE", 0.0)

    def test_end_time(self, trajectory):
        short = Trajectory("SAT-2", [SampleEpoch(0.0, coord(0, 0, 0)), SampleEpoch(60.0, coord(1, 1, 1))])
        assert TrajectorySet({"SAT-1": trajectory, "SAT-2": short}).end_time == 60.0
        assert TrajectorySet({}).end_time is None
