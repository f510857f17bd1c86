"""
仿真时钟测试

使用手动时间源验证倍率、边界策略与重新锚定
"""

import threading

import pytest

from core.trajectory.clock import BoundaryPolicy, SimulationClock


@pytest.fixture
def clock(time_source):
    return SimulationClock(epoch=0.0, time_source=time_source)


class TestSimulationClock:
    """测试仿真时钟基本行为"""

    def test_starts_at_epoch(self, clock):
        assert clock.now() == 0.0

    def test_default_epoch_is_current_utc(self, time_source):
        import time
        before = time.time()
        clock = SimulationClock(time_source=time_source)
        after = time.time()
        assert before <= clock.now() <= after

    def test_advances_with_wall_clock(self, clock, time_source):
        time_source.advance(10.0)
        assert clock.now() == pytest.approx(10.0)

    def test_multiplier(self, time_source):
        clock = SimulationClock(epoch=100.0, multiplier=60.0, time_source=time_source)
        time_source.advance(2.0)
        assert clock.now() == pytest.approx(220.0)

    def test_set_multiplier_keeps_time_continuous(self, clock, time_source):
        time_source.advance(10.0)
        clock.set_multiplier(10.0)
        assert clock.now() == pytest.approx(10.0)

        time_source.advance(1.0)
        assert clock.now() == pytest.approx(20.0)
        assert clock.multiplier == 10.0

    def test_negative_multiplier_rejected(self, clock):
        with pytest.raises(ValueError):
            clock.set_multiplier(-1.0)
        with pytest.raises(ValueError):
            SimulationClock(epoch=0.0, multiplier=-2.0)

    def test_monotonic(self, clock, time_source):
        values = []
        for _ in range(20):
            time_source.advance(0.5)
            values.append(clock.now())
        assert values == sorted(values)

    def test_set_epoch(self, clock, time_source):
        time_source.advance(50.0)
        clock.set_epoch(1000.0)
        assert clock.now() == 1000.0
        assert clock.epoch == 1000.0

        time_source.advance(5.0)
        assert clock.now() == pytest.approx(1005.0)

    def test_pause_and_resume(self, time_source):
        clock = SimulationClock(epoch=0.0, multiplier=5.0, time_source=time_source)
        time_source.advance(1.0)
        clock.pause()
        time_source.advance(100.0)
        assert clock.now() == pytest.approx(5.0)
        assert clock.snapshot().paused

        clock.resume()
        time_source.advance(1.0)
        assert clock.now() == pytest.approx(10.0)
        assert clock.multiplier == 5.0

    def test_independent_of_render_callbacks(self, time_source):
        """没有任何查询时时间仍然推进"""
        clock = SimulationClock(epoch=0.0, time_source=time_source)
        time_source.advance(3600.0)
        assert clock.now() == pytest.approx(3600.0)

    def test_thread_safe_reads(self, clock, time_source):
        errors = []

        def reader():
            try:
                for _ in range(1000):
                    clock.now()
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for m in (1.0, 2.0, 3.0):
            clock.set_multiplier(m)
        for t in threads:
            t.join()
        assert not errors


class TestBoundaryPolicy:
    """测试边界策略"""

    def test_unbounded_runs_past_stop(self, time_source):
        clock = SimulationClock(epoch=0.0, stop=100.0, time_source=time_source)
        time_source.advance(500.0)
        assert clock.now() == pytest.approx(500.0)

    def test_clamped(self, time_source):
        clock = SimulationClock(epoch=0.0, stop=100.0, policy=BoundaryPolicy.CLAMPED,
                                time_source=time_source)
        time_source.advance(500.0)
        assert clock.now() == 100.0

    def test_loop_wraps_to_start(self, time_source):
        clock = SimulationClock(epoch=0.0, stop=100.0, policy=BoundaryPolicy.LOOP,
                                time_source=time_source)
        time_source.advance(250.0)
        assert clock.now() == pytest.approx(50.0)

    def test_policy_without_stop_is_unbounded(self, time_source):
        clock = SimulationClock(epoch=0.0, policy=BoundaryPolicy.CLAMPED, time_source=time_source)
        time_source.advance(1e6)
        assert clock.now() == pytest.approx(1e6)

    def test_set_boundary_policy(self, time_source):
        clock = SimulationClock(epoch=0.0, stop=100.0, time_source=time_source)
        time_source.advance(50.0)
        clock.set_boundary_policy(BoundaryPolicy.CLAMPED)
        time_source.advance(500.0)
        assert clock.now() == 100.0
        assert clock.policy is BoundaryPolicy.CLAMPED

    def test_set_boundary_policy_from_string(self, clock):
        clock.set_boundary_policy("loop")
        assert clock.policy is BoundaryPolicy.LOOP

    def test_set_bounds(self, clock, time_source):
        clock.set_bounds(None, 10.0)
        clock.set_boundary_policy(BoundaryPolicy.CLAMPED)
        time_source.advance(60.0)
        assert clock.now() == 10.0

    def test_invalid_bounds(self, clock):
        with pytest.raises(ValueError):
            clock.set_bounds(100.0, 50.0)

    def test_snapshot(self, time_source):
        clock = SimulationClock(epoch=10.0, multiplier=2.0, stop=20.0,
                                policy=BoundaryPolicy.LOOP, time_source=time_source)
        snapshot = clock.snapshot()
        assert snapshot.now == 10.0
        assert snapshot.epoch == 10.0
        assert snapshot.start == 10.0
        assert snapshot.stop == 20.0
        assert snapshot.policy is BoundaryPolicy.LOOP
        assert not snapshot.paused
