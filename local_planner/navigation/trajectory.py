"""
轨迹数据结构
位姿、速度与前向仿真得到的轨迹
"""

import math
from typing import List, Tuple
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Pose2D:
    """规划坐标系下的位姿"""
    x: float
    y: float
    theta: float = 0.0  # 航向角 (rad)

    def distance_to(self, other: 'Pose2D') -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def as_tuple(self) -> Tuple[float, float, float]:
        return self.x, self.y, self.theta


@dataclass(frozen=True)
class Velocity2D:
    """速度指令 / 实测速度（与Pose2D同一坐标约定，vx/vy为机体系）"""
    vx: float = 0.0  # m/s
    vy: float = 0.0  # m/s
    vtheta: float = 0.0  # rad/s

    @classmethod
    def zero(cls) -> 'Velocity2D':
        return cls(0.0, 0.0, 0.0)

    @property
    def magnitude(self) -> float:
        """平移速度大小"""
        return math.hypot(self.vx, self.vy)

    def is_zero(self) -> bool:
        return self.vx == 0.0 and self.vy == 0.0 and self.vtheta == 0.0

    def as_tuple(self) -> Tuple[float, float, float]:
        return self.vx, self.vy, self.vtheta


@dataclass
class Trajectory:
    """一条仿真轨迹

    cost < 0 表示被某个代价函数拒绝；cost >= 0 表示可行，越小越好。

    Attributes:
        xv, yv, thetav: 生成该轨迹的采样速度
        time_delta: 相邻两个轨迹点之间的时间间隔 (s)
        poses: 轨迹点序列，第一个点为起始位姿
        cost: 轨迹代价
    """
    xv: float = 0.0
    yv: float = 0.0
    thetav: float = 0.0
    time_delta: float = 0.0
    poses: List[Pose2D] = field(default_factory=list)
    cost: float = -1.0

    def add_point(self, pose: Pose2D):
        self.poses.append(pose)

    def get_point(self, index: int) -> Pose2D:
        return self.poses[index]

    def reset_points(self):
        self.poses = []

    def __len__(self) -> int:
        return len(self.poses)

    @property
    def end_pose(self) -> Pose2D:
        return self.poses[-1]

    @property
    def velocity(self) -> Velocity2D:
        return Velocity2D(self.xv, self.yv, self.thetav)

    @property
    def times(self) -> List[float]:
        """每个轨迹点相对起点的时间偏移"""
        return [i * self.time_delta for i in range(len(self.poses))]

    @property
    def is_admissible(self) -> bool:
        return self.cost >= 0
