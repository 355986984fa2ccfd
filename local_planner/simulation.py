"""
闭环仿真
在代价地图上构造典型场景，用理想运动学模型执行规划器输出的速度指令
"""

import math
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from .costmap import CostGrid, CostGridConfig
from .navigation.controller import CommandResult, LocalPlannerController, PlanningStatus
from .navigation.generator import TrajectoryGenerator
from .navigation.goal_functions import fill_plan_headings
from .navigation.trajectory import Pose2D, Velocity2D


logger = logging.getLogger(__name__)

SCENARIOS = ('open', 'corridor', 'turn', 'blocked')

DEFAULT_FOOTPRINT = [(0.15, 0.12), (0.15, -0.12), (-0.15, -0.12), (-0.15, 0.12)]


@dataclass
class Scenario:
    """仿真场景"""
    name: str
    costmap: CostGrid
    plan: List[Pose2D]
    start: Pose2D
    footprint: List[Tuple[float, float]]
    description: str = ''


@dataclass
class SimulationResult:
    """闭环仿真结果"""
    reached: bool
    cycles: int
    poses: List[Pose2D] = field(default_factory=list)
    results: List[CommandResult] = field(default_factory=list)

    @property
    def statuses(self) -> List[PlanningStatus]:
        return [r.status for r in self.results]

    @property
    def states(self) -> list:
        return [r.state for r in self.results]

    @property
    def final_pose(self) -> Optional[Pose2D]:
        return self.poses[-1] if self.poses else None


def straight_plan(start: Tuple[float, float],
                  end: Tuple[float, float],
                  spacing: float = 0.05) -> List[Pose2D]:
    """两点之间等间距的直线路径（航向沿路径方向）"""
    length = math.hypot(end[0] - start[0], end[1] - start[1])
    n = max(1, int(math.ceil(length / spacing)))
    points = [(start[0] + (end[0] - start[0]) * i / n,
               start[1] + (end[1] - start[1]) * i / n) for i in range(n + 1)]
    return fill_plan_headings(points)


def build_scenario(name: str,
                   grid_config: CostGridConfig = None,
                   footprint: Sequence[Tuple[float, float]] = None,
                   inscribed_radius: float = 0.12,
                   inflation_radius: float = 0.35,
                   cost_scaling_factor: float = 10.0) -> Scenario:
    """构造仿真场景

    - open: 空旷环境，直行2米
    - corridor: 宽0.9米的走廊，直行3米
    - turn: 初始朝向与路径垂直，需要先原地对准
    - blocked: 路径被贯穿整张地图的墙截断，规划器应输出零速度

    Args:
        name: 场景名称（见SCENARIOS）
        grid_config: 地图配置，None则使用10m x 10m、0.05m/格
        footprint: 机器人轮廓，None则使用DEFAULT_FOOTPRINT

    Raises:
        ValueError: 未知场景名
    """
    if name not in SCENARIOS:
        raise ValueError(f"未知场景: {name} (可选: {', '.join(SCENARIOS)})")

    if grid_config is None:
        grid_config = CostGridConfig(width=200, height=200, resolution=0.05,
                                     origin_x=100, origin_y=100)
    grid = CostGrid(grid_config)
    footprint = list(footprint) if footprint else list(DEFAULT_FOOTPRINT)
    half_height = grid_config.height * grid_config.resolution / 2.0

    start = Pose2D(0.0, 0.0, 0.0)
    if name == 'open':
        plan = straight_plan((0.0, 0.0), (2.0, 0.0))
        description = '空旷环境直行'
    elif name == 'corridor':
        grid.add_obstacle_rect(-0.5, 0.45, 3.8, 0.55)
        grid.add_obstacle_rect(-0.5, -0.55, 3.8, -0.45)
        plan = straight_plan((0.0, 0.0), (3.0, 0.0))
        description = '走廊直行'
    elif name == 'turn':
        start = Pose2D(0.0, 0.0, math.pi / 2)
        plan = straight_plan((0.0, 0.0), (1.5, 0.0))
        description = '先对准路径方向再前进'
    else:
        grid.add_obstacle_rect(1.0, -half_height, 1.1, half_height)
        plan = straight_plan((0.0, 0.0), (2.0, 0.0))
        description = '路径被墙截断'

    grid.inflate(inscribed_radius, inflation_radius, cost_scaling_factor)

    return Scenario(name=name, costmap=grid, plan=plan, start=start,
                    footprint=footprint, description=description)


def run_closed_loop(controller: LocalPlannerController,
                    scenario: Scenario,
                    max_cycles: int = 400,
                    stuck_cycles: int = 20,
                    on_cycle: Optional[Callable[[int, Pose2D, CommandResult], None]] = None,
                    should_stop: Optional[Callable[[], bool]] = None) -> SimulationResult:
    """闭环仿真：规划 -> 执行速度指令 -> 更新位姿

    假设底盘能在一个控制周期内精确执行速度指令。
    连续stuck_cycles个周期没有可行轨迹时提前结束。

    Args:
        controller: 已设置路径的控制器（未设置时使用场景路径）
        scenario: 仿真场景
        max_cycles: 最大周期数
        stuck_cycles: 判定卡住的连续失败周期数
        on_cycle: 每周期回调 (cycle, pose, result)
        should_stop: 返回True时提前结束（如收到中断信号）

    Returns:
        SimulationResult
    """
    if not controller.global_plan:
        controller.set_plan(scenario.plan)

    dt = controller.config.sim_period
    pose = scenario.start
    velocity = Velocity2D.zero()
    sim = SimulationResult(reached=False, cycles=0, poses=[pose])
    failures = 0

    for cycle in range(max_cycles):
        if should_stop is not None and should_stop():
            logger.info(f"[仿真] 第{cycle}周期收到停止请求")
            break

        result = controller.compute_velocity_commands(pose, velocity, scenario.footprint)
        sim.results.append(result)
        sim.cycles = cycle + 1

        if on_cycle is not None:
            on_cycle(cycle, pose, result)

        if result.status == PlanningStatus.GOAL_REACHED:
            sim.reached = True
            logger.info(f"[仿真] {scenario.name}: 第{cycle}周期到达终点 "
                        f"({pose.x:.2f}, {pose.y:.2f}, {pose.theta:.2f})")
            break

        if result.status == PlanningStatus.OK:
            failures = 0
        else:
            failures += 1
            if failures >= stuck_cycles:
                logger.warning(f"[仿真] {scenario.name}: 连续{failures}个周期无法规划，停止")
                break

        velocity = result.velocity
        pose = TrajectoryGenerator.compute_new_positions(pose, velocity, dt)
        sim.poses.append(pose)

    return sim
