"""
规划器状态机
根据航向误差与目标距离在 Default / Align / Arrive 之间切换，决定代价函数权重
"""

from enum import Enum
from typing import Optional, Tuple
from dataclasses import dataclass


class PlannerState(Enum):
    """规划器状态枚举"""
    DEFAULT = 0   # 正常跟踪路径
    ALIGN = 1     # 航向误差过大，优先对齐
    ARRIVE = 2    # 接近终点

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass
class StateSwitches:
    """状态切换阈值"""
    switch_yaw_error: float = 0.5      # 航向误差阈值 (rad)
    switch_goal_distance: float = 0.5  # 距终点阈值 (m)
    switch_plan_distance: float = 1.0  # 距路径阈值 (m)，仅用于日志


@dataclass
class StateProfile:
    """某一状态下代价函数的配置"""
    align_scale: float = 1.0
    plan_scale: float = 1.0
    goal_scale: float = 1.0
    cmd_scale: float = 1.0
    obstacle_scale: float = 1.0

    # CommandVelocityShapingCost 系数 (+x, -x, +y, -y, +theta, -theta)
    cmd_coefficients: Tuple[float, float, float, float, float, float] = (0.0,) * 6

    # True: 期望朝向取路径终点朝向；False: 取最近路径点朝向
    use_goal_orientation: bool = False


def determine_state(yaw_error: float,
                    plan_distance: float,
                    goal_distance: float,
                    switches: StateSwitches,
                    previous_state: Optional[PlannerState] = None) -> PlannerState:
    """计算本周期的规划器状态

    1. 距终点 < switch_goal_distance -> ARRIVE
    2. |航向误差| > switch_yaw_error，或上一周期为ALIGN且 |航向误差| > switch_yaw_error/2 -> ALIGN
    3. 其余 -> DEFAULT

    第2条的一半阈值构成滞回区间，避免在阈值附近来回切换。

    Args:
        yaw_error: 机器人航向与最近路径点朝向的误差 (rad)
        plan_distance: 机器人到最近路径点的距离 (m)
        goal_distance: 机器人到路径终点的距离 (m)
        switches: 切换阈值
        previous_state: 上一周期的状态

    Returns:
        本周期状态
    """
    if goal_distance < switches.switch_goal_distance:
        return PlannerState.ARRIVE

    if (abs(yaw_error) > switches.switch_yaw_error or
            (previous_state == PlannerState.ALIGN and
             abs(yaw_error) > switches.switch_yaw_error / 2)):
        return PlannerState.ALIGN

    return PlannerState.DEFAULT
