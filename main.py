"""
局部规划器主程序
在仿真场景中闭环运行DWA局部规划器

运行方式：
  python main.py                          # 默认场景（config.SIM_SCENARIO）
  python main.py --scenario turn          # 指定场景
  python main.py --record --log-level DEBUG
"""

import sys
import signal
import logging
import argparse

import config
from local_planner.costmap import CostGridConfig
from local_planner.navigation import LocalPlannerController, load_planner_config
from local_planner.simulation import SCENARIOS, build_scenario, run_closed_loop
from local_planner.utils.logger import setup_logger
from local_planner.utils.planning_recorder import PlanningRecorder


# 中断标志（用于信号处理）
stop_requested = False


def signal_handler(sig, frame):
    """处理Ctrl+C信号：当前周期结束后安全退出"""
    global stop_requested
    print("\n\n[系统] 接收到中断信号，正在安全退出...")
    stop_requested = True


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='DWA局部规划器仿真')
    parser.add_argument('--scenario', choices=SCENARIOS, default=config.SIM_SCENARIO,
                        help=f'仿真场景（默认{config.SIM_SCENARIO}）')
    parser.add_argument('--cycles', type=int, default=config.SIM_MAX_CYCLES,
                        help='最大控制周期数')
    parser.add_argument('--record', action='store_true', default=config.ENABLE_DATA_RECORDING,
                        help='记录每个规划周期的结果')
    parser.add_argument('--format', choices=['json', 'pickle'], default=config.RECORDING_FORMAT,
                        help='记录文件格式')
    parser.add_argument('--log-level', default=config.LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='日志级别')
    return parser.parse_args(argv)


def main(argv=None):
    """主函数

    Returns:
        退出码：到达终点返回0，否则返回1
    """
    args = parse_args(argv)

    level = getattr(logging, args.log_level)
    log_file = f"{config.LOG_DIR}/local_planner.log" if config.ENABLE_FILE_LOG else None
    logger = setup_logger('local_planner', log_file, level, console=config.ENABLE_CONSOLE_LOG)

    print("=" * 70)
    print(" DWA局部规划器 - 闭环仿真")
    print("=" * 70)
    print(config.get_config_summary())

    ok, errors, warnings = config.validate_config()
    for warn in warnings:
        logger.warning(f"[配置] {warn}")
    if not ok:
        for err in errors:
            logger.error(f"[配置] {err}")
        return 1

    signal.signal(signal.SIGINT, signal_handler)

    # 1. 构造场景
    grid_config = CostGridConfig(
        width=config.COSTMAP_WIDTH,
        height=config.COSTMAP_HEIGHT,
        resolution=config.COSTMAP_RESOLUTION,
        origin_x=config.COSTMAP_ORIGIN_X,
        origin_y=config.COSTMAP_ORIGIN_Y,
    )
    scenario = build_scenario(
        args.scenario,
        grid_config=grid_config,
        footprint=config.ROBOT_FOOTPRINT,
        inscribed_radius=config.ROBOT_INSCRIBED_RADIUS,
        inflation_radius=config.COSTMAP_INFLATION_RADIUS,
        cost_scaling_factor=config.COSTMAP_COST_SCALING,
    )
    print(f"[1/3] 场景: {scenario.name} - {scenario.description}")

    # 2. 创建控制器
    recorder = None
    if args.record:
        recorder = PlanningRecorder(config.RECORDING_DIR, keep_explored=config.RECORD_EXPLORED)
        recorder.start_recording(scenario.name, format=args.format)

    controller = LocalPlannerController(scenario.costmap, load_planner_config(config),
                                        recorder=recorder)
    controller.perf.report_interval = config.PERF_REPORT_INTERVAL
    controller.set_plan(scenario.plan)
    print(f"[2/3] 控制器就绪，路径{len(scenario.plan)}个点")

    # 3. 运行
    print(f"[3/3] 开始仿真（最多{args.cycles}个周期，Ctrl+C停止）\n")
    result = run_closed_loop(controller, scenario, max_cycles=args.cycles,
                             should_stop=lambda: stop_requested)

    if recorder is not None:
        recorder.stop_recording()

    final = result.final_pose
    stats = controller.get_statistics()
    print("\n" + "=" * 70)
    print(f" 结果: {'✅ 到达终点' if result.reached else '⚠️ 未到达终点'}")
    print(f"  周期数: {result.cycles}")
    print(f"  终点位姿: ({final.x:.2f}, {final.y:.2f}, {final.theta:.2f})")
    if stats:
        print(f"  规划耗时: 平均{stats['avg']*1000:.1f}ms, 最大{stats['max']*1000:.1f}ms")
    print("=" * 70)

    return 0 if result.reached else 1


if __name__ == '__main__':
    sys.exit(main())
