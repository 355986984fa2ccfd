"""
轨迹代价函数
每个代价函数独立为轨迹打分：非负值为代价，负值表示拒绝该轨迹
"""

import math
import logging
from typing import List, Sequence, Tuple

from ..costmap.cost_values import LETHAL_COST, UNKNOWN_COST, ObstacleQueryError
from ..costmap.map_grid import MapGrid
from .goal_functions import shortest_angular_distance
from .trajectory import Pose2D, Trajectory


logger = logging.getLogger(__name__)

# 拒绝哨兵值
OBSTACLE_COST_LETHAL = LETHAL_COST      # -1: footprint碰到致命障碍物
OBSTACLE_COST_UNKNOWN = UNKNOWN_COST    # -2: footprint进入未知区域
MAP_COST_OFF_GRID = -3.0                # 轨迹终点在地图外
MAP_COST_UNREACHABLE = -4.0             # 轨迹终点无法到达目标


class TrajectoryCostFunction:
    """代价函数基类

    子类实现score_trajectory()；prepare()在每个规划周期开始前调用一次，
    返回False表示本周期无法打分。
    """

    def __init__(self, scale: float = 1.0):
        self.scale = scale

    def set_scale(self, scale: float):
        self.scale = scale

    def get_scale(self) -> float:
        return self.scale

    def prepare(self) -> bool:
        return True

    def score_trajectory(self, traj: Trajectory) -> float:
        raise NotImplementedError

    @property
    def name(self) -> str:
        return type(self).__name__


def _supports_grid(costmap) -> bool:
    return all(hasattr(costmap, attr) for attr in
               ('grid', 'world_to_grid', 'is_valid_grid', 'resolution'))


class MapGridCost(TrajectoryCostFunction):
    """基于波前距离的代价（轨迹终点到目标栅格的距离，米）

    地图不提供栅格访问时退化为欧氏距离。
    """

    def __init__(self, costmap, scale: float = 1.0, is_local_goal: bool = False):
        super().__init__(scale)
        self.costmap = costmap
        self.is_local_goal = is_local_goal
        self.map_grid = MapGrid(costmap) if _supports_grid(costmap) else None
        self.target_poses: List[Pose2D] = []

    def set_target_poses(self, target_poses: Sequence[Pose2D]):
        self.target_poses = list(target_poses)

    def set_unknown_policy(self, allow_unknown: bool):
        if self.map_grid is not None:
            self.map_grid.unknown_is_obstacle = not allow_unknown

    def prepare(self) -> bool:
        if not self.target_poses:
            logger.warning(f"[{self.name}] 没有目标路径点")
            return False

        if self.map_grid is None:
            return True

        if self.is_local_goal:
            ok = self.map_grid.set_local_goal(self.target_poses)
        else:
            ok = self.map_grid.set_target_cells(self.target_poses)
        if not ok:
            logger.warning(f"[{self.name}] 目标路径完全在地图之外")
        return ok

    def score_trajectory(self, traj: Trajectory) -> float:
        if len(traj) == 0:
            return 0.0
        end = traj.end_pose

        if self.map_grid is None:
            return self._euclidean_distance(end)

        dist = self.map_grid.distance_at(end.x, end.y)
        if dist is None:
            return MAP_COST_OFF_GRID
        if math.isinf(dist):
            return MAP_COST_UNREACHABLE
        return dist

    def _euclidean_distance(self, pose: Pose2D) -> float:
        if self.is_local_goal:
            return pose.distance_to(self.target_poses[-1])
        return min(pose.distance_to(p) for p in self.target_poses)


class GoalDistanceCost(MapGridCost):
    """到局部目标（前视截断后路径的终点）的距离"""

    def __init__(self, costmap, scale: float = 1.0):
        super().__init__(costmap, scale, is_local_goal=True)


class PathAlignmentCost(MapGridCost):
    """到整条局部路径的距离，惩罚偏离路径"""

    def __init__(self, costmap, scale: float = 1.0):
        super().__init__(costmap, scale, is_local_goal=False)


class ObstacleProximityCost(TrajectoryCostFunction):
    """障碍物代价

    对轨迹上每个位姿查询footprint代价：
    - 碰到致命障碍物 -> 拒绝
    - 进入未知区域 -> allow_unknown为False时拒绝，否则按空闲处理
    - 其余取最大值（sum_scores=True时取总和）

    速度相关的安全处理：
    - 平移速度超过scaling_speed时按比例放大footprint（最高放大max_scaling_factor）
    - 在轨迹终点沿运动方向前推刹车距离 v²/(2a) 再检查一次，刹不住则拒绝
    """

    def __init__(self, costmap, scale: float = 1.0):
        super().__init__(scale)
        self.costmap = costmap
        self.footprint: List[Tuple[float, float]] = []

        self.allow_unknown = False
        self.sum_scores = False

        self.acc_lim_x = 2.5
        self.acc_lim_y = 2.5
        self.acc_lim_theta = 3.2
        self.max_trans_vel = 0.55
        self.max_scaling_factor = 0.2
        self.scaling_speed = 0.25

    def set_params(self,
                   acc_lim_x: float,
                   acc_lim_y: float,
                   acc_lim_theta: float,
                   max_trans_vel: float,
                   max_scaling_factor: float = 0.2,
                   scaling_speed: float = 0.25):
        self.acc_lim_x = acc_lim_x
        self.acc_lim_y = acc_lim_y
        self.acc_lim_theta = acc_lim_theta
        self.max_trans_vel = max_trans_vel
        self.max_scaling_factor = max_scaling_factor
        self.scaling_speed = scaling_speed

    def set_footprint(self, footprint: Sequence[Tuple[float, float]]) -> bool:
        """更新footprint

        Returns:
            footprint是否发生变化
        """
        new_footprint = [(float(x), float(y)) for x, y in footprint]
        if new_footprint == self.footprint:
            return False
        self.footprint = new_footprint
        logger.info(f"[障碍物代价] footprint已更新 ({len(new_footprint)}个顶点)")
        return True

    def get_scaling_factor(self, traj: Trajectory) -> float:
        vmag = math.hypot(traj.xv, traj.yv)
        if self.max_trans_vel > self.scaling_speed and vmag > self.scaling_speed:
            ratio = (vmag - self.scaling_speed) / (self.max_trans_vel - self.scaling_speed)
            return self.max_scaling_factor * min(ratio, 1.0) + 1.0
        return 1.0

    def braking_pose(self, pose: Pose2D, traj: Trajectory) -> Pose2D:
        """按各轴减速度从pose刹停后的位姿"""
        def stopping(v: float, acc: float) -> float:
            if acc <= 0:
                return 0.0
            return math.copysign(v * v / (2.0 * acc), v)

        dx = stopping(traj.xv, self.acc_lim_x)
        dy = stopping(traj.yv, self.acc_lim_y)
        dth = stopping(traj.thetav, self.acc_lim_theta)

        cos_th, sin_th = math.cos(pose.theta), math.sin(pose.theta)
        return Pose2D(pose.x + dx * cos_th - dy * sin_th,
                      pose.y + dx * sin_th + dy * cos_th,
                      pose.theta + dth)

    def footprint_cost(self, pose: Pose2D, footprint: Sequence[Tuple[float, float]]) -> float:
        try:
            cost = self.costmap.footprint_cost(pose.x, pose.y, pose.theta, footprint)
        except ObstacleQueryError as e:
            logger.debug(f"[障碍物代价] 查询失败，按未知处理: {e}")
            cost = UNKNOWN_COST

        if cost == UNKNOWN_COST and self.allow_unknown:
            return 0.0
        return cost

    def score_trajectory(self, traj: Trajectory) -> float:
        if len(traj) == 0:
            return 0.0

        factor = self.get_scaling_factor(traj)
        footprint = [(x * factor, y * factor) for x, y in self.footprint]

        cost = 0.0
        for pose in traj.poses:
            f_cost = self.footprint_cost(pose, footprint)
            if f_cost < 0:
                return f_cost
            cost = cost + f_cost if self.sum_scores else max(cost, f_cost)

        stop_cost = self.footprint_cost(self.braking_pose(traj.end_pose, traj), footprint)
        # 刹停位姿碰撞或落在不允许的未知区域
        if stop_cost < 0:
            return stop_cost
        if stop_cost > 0 and not self.sum_scores:
            cost = max(cost, stop_cost)

        return cost


class HeadingAlignmentCost(TrajectoryCostFunction):
    """轨迹终点航向与期望朝向的角度差 (rad)"""

    def __init__(self, scale: float = 1.0):
        super().__init__(scale)
        self.desired_orientation = 0.0

    def set_desired_orientation(self, theta: float):
        self.desired_orientation = theta

    def get_desired_orientation(self) -> float:
        return self.desired_orientation

    def score_trajectory(self, traj: Trajectory) -> float:
        if len(traj) == 0:
            return 0.0
        return abs(shortest_angular_distance(traj.end_pose.theta, self.desired_orientation))


class CommandVelocityShapingCost(TrajectoryCostFunction):
    """按方向惩罚采样速度

    六个系数分别作用于 +x / -x / +y / -y / +theta / -theta 分量，
    例如把nx设大可以让机器人尽量不倒车。
    """

    def __init__(self, scale: float = 1.0):
        super().__init__(scale)
        self.coefficients = (0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    def set_coefficients(self, px: float, nx: float, py: float,
                         ny: float, pth: float, nth: float):
        self.coefficients = (px, nx, py, ny, pth, nth)

    def score_trajectory(self, traj: Trajectory) -> float:
        px, nx, py, ny, pth, nth = self.coefficients
        return (px * max(traj.xv, 0.0) + nx * max(-traj.xv, 0.0) +
                py * max(traj.yv, 0.0) + ny * max(-traj.yv, 0.0) +
                pth * max(traj.thetav, 0.0) + nth * max(-traj.thetav, 0.0))
