#!/usr/bin/env python3
"""
卫星实时位置跟踪主入口

后台按周期重建轨迹集合，前台按固定间隔查询当前仿真时刻的全部目标位置，
作为渲染端的替身输出到日志。

Usage:
    python -m tracker.main --elements data/elements.json
    python -m tracker.main --elements data/elements.json --config config/tracker.yaml --cycles 30
"""

import argparse
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from core.config import TrackerConfig
from core.orbit.frame_converter import RenderCoordinate
from core.orbit.propagator.sgp4_propagator import Propagator, SGP4Propagator
from core.orbit.utils import datetime_to_seconds
from core.sources.element_source import ElementSetSource, JsonFileElementSetSource
from core.trajectory.clock import SimulationClock
from core.trajectory.refresh_coordinator import RefreshCoordinator
from core.trajectory.sampler import SamplingWindowPolicy, TrajectorySampler
from utils.config_loader import ConfigLoadError, ConfigValidationError
from utils.json_utils import save_json
from utils.logger import setup_logging

logger = logging.getLogger("tracker.main")

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "tracker.yaml"


def create_clock(config: TrackerConfig) -> SimulationClock:
    """根据配置创建仿真时钟"""
    clock_config = config.clock
    return SimulationClock(
        epoch=clock_config.get('epoch'),
        multiplier=clock_config['multiplier'],
        policy=config.boundary_policy,
        stop=clock_config.get('stop'),
    )


def create_coordinator(
    config: TrackerConfig,
    source: ElementSetSource,
    clock: SimulationClock,
    propagator: Optional[Propagator] = None,
) -> RefreshCoordinator:
    """根据配置组装采样器、时间窗策略与刷新协调器"""
    sampling = config.sampling
    refresh = config.refresh

    sampler = TrajectorySampler(
        propagator or SGP4Propagator(),
        max_workers=sampling['max_workers'],
    )
    window_policy = SamplingWindowPolicy(
        sample_count=sampling['sample_count'],
        sample_spacing=sampling['sample_spacing'],
        lookbehind=sampling['lookbehind'],
        refresh_margin=sampling['refresh_margin'],
    )
    return RefreshCoordinator(
        source,
        sampler,
        clock,
        window_policy=window_policy,
        refresh_period=refresh['period'],
        build_timeout=refresh.get('build_timeout'),
        check_interval=refresh['check_interval'],
        retry_interval=refresh['retry_interval'],
    )


def format_position(name: str, position: RenderCoordinate) -> str:
    return (f"{name}: lon={position.longitude:9.4f}° lat={position.latitude:8.4f}° "
            f"alt={position.height / 1000.0:9.2f} km")


def snapshot_to_records(sim_time: float, positions: Dict[str, RenderCoordinate]) -> List[dict]:
    """位置快照转换为可序列化记录"""
    return [
        {
            'name': name,
            'time': sim_time,
            'longitude': p.longitude,
            'latitude': p.latitude,
            'height': p.height,
            'cartesian': [p.x, p.y, p.z],
        }
        for name, p in sorted(positions.items())
    ]


def resolve_config_path(path: Optional[str]) -> Optional[str]:
    """未指定配置文件时使用仓库自带的 config/tracker.yaml（存在时）"""
    if path:
        return path
    if DEFAULT_CONFIG_PATH.exists():
        return str(DEFAULT_CONFIG_PATH)
    return None


def track(args, config: TrackerConfig) -> int:
    """运行跟踪循环，返回退出码"""
    clock = create_clock(config)
    source = JsonFileElementSetSource(args.elements)
    coordinator = create_coordinator(config, source, clock)

    last_records: List[dict] = []
    with coordinator:
        for cycle in range(args.cycles):
            time.sleep(args.interval)
            trajectory_set = coordinator.current
            if trajectory_set is None:
                logger.warning(f"[{cycle + 1}/{args.cycles}] 等待轨迹集合发布...")
                continue

            now = clock.now()
            positions = trajectory_set.positions_at(now)
            stale = " (数据已过期)" if coordinator.is_stale else ""
            logger.info(
                f"[{cycle + 1}/{args.cycles}] generation={trajectory_set.generation} "
                f"目标数={len(positions)}{stale}"
            )
            for name, position in sorted(positions.items()):
                logger.info("  " + format_position(name, position))
            last_records = snapshot_to_records(now, positions)

    if args.output and last_records:
        save_json(last_records, args.output)
        logger.info(f"位置快照已保存: {args.output}")

    if coordinator.current is None:
        logger.error("未能发布任何轨迹集合")
        return 1
    return 0


def run_tracker(args) -> int:
    """加载配置、配置日志并运行跟踪循环"""
    config = TrackerConfig.load(resolve_config_path(args.config))
    if args.epoch:
        config.clock['epoch'] = datetime_to_seconds(datetime.fromisoformat(args.epoch))
    if args.multiplier is not None:
        config.clock['multiplier'] = args.multiplier
    if args.log_level:
        config.logging['level'] = args.log_level

    managers = setup_logging(config.logging)
    try:
        return track(args, config)
    finally:
        for manager in managers:
            manager.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='卫星实时位置轨迹跟踪',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  # 使用默认配置跟踪根数文件中的目标
  python -m tracker.main --elements data/elements.json

  # 60倍速回放并保存最后一帧位置
  python -m tracker.main --elements data/elements.json --multiplier 60 --output positions.json
        """
    )
    parser.add_argument('--elements', required=True,
                        help='根数文件路径（{name, line1, line2} 记录的JSON列表）')
    parser.add_argument('--config', default=None,
                        help='配置文件路径（YAML或JSON），默认 config/tracker.yaml')
    parser.add_argument('--cycles', type=int, default=10, help='查询次数')
    parser.add_argument('--interval', type=float, default=1.0, help='查询间隔（秒）')
    parser.add_argument('--epoch', default=None,
                        help='仿真起始时刻（ISO 8601，无时区按UTC），默认当前时间')
    parser.add_argument('--multiplier', type=float, default=None, help='仿真时钟播放倍率')
    parser.add_argument('--log-level', default=None, help='日志级别')
    parser.add_argument('--output', default=None, help='最后一帧位置快照输出路径')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """主入口"""
    args = build_parser().parse_args(argv)
    try:
        return run_tracker(args)
    except (ConfigLoadError, ConfigValidationError, ValueError) as e:
        logger.error(f"配置错误: {e}")
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == '__main__':
    sys.exit(main())
