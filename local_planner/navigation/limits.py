"""
运动学限制
速度/加速度上下限与动态窗口计算
"""

from typing import Tuple
from dataclasses import dataclass

from .trajectory import Velocity2D


Range = Tuple[float, float]


@dataclass
class VelocityLimits:
    """局部规划器速度限制（每个控制周期由配置重新生成）"""
    # 平移速度（vx, vy合成）
    max_trans_vel: float = 0.55  # m/s
    min_trans_vel: float = 0.1   # m/s

    # 各轴速度
    max_vel_x: float = 0.55
    min_vel_x: float = 0.0
    max_vel_y: float = 0.1
    min_vel_y: float = -0.1

    # 旋转速度（绝对值）
    max_rot_vel: float = 1.0   # rad/s
    min_rot_vel: float = 0.4   # rad/s

    # 加速度
    acc_lim_x: float = 2.5      # m/s²
    acc_lim_y: float = 2.5      # m/s²
    acc_lim_theta: float = 3.2  # rad/s²
    acc_limit_trans: float = 0.1  # 合成平移加速度上限 (m/s²)，<=0表示不限制

    # 到达判定
    xy_goal_tolerance: float = 0.1    # m
    yaw_goal_tolerance: float = 0.1   # rad
    trans_stopped_vel: float = 0.1    # m/s
    rot_stopped_vel: float = 0.1      # rad/s

    # 路径裁剪
    prune_plan: bool = True
    lookahead_distance: float = 0.0   # max_trans_vel * sim_time

    @classmethod
    def from_config(cls, config) -> 'VelocityLimits':
        """由DWAPlannerConfig生成限制

        Args:
            config: DWAPlannerConfig对象
        """
        return cls(
            max_trans_vel=config.max_trans_vel,
            min_trans_vel=config.min_trans_vel,
            max_vel_x=config.max_vel_x,
            min_vel_x=config.min_vel_x,
            max_vel_y=config.max_vel_y,
            min_vel_y=config.min_vel_y,
            max_rot_vel=config.max_rot_vel,
            min_rot_vel=config.min_rot_vel,
            acc_lim_x=config.acc_lim_x,
            acc_lim_y=config.acc_lim_y,
            acc_lim_theta=config.acc_lim_theta,
            acc_limit_trans=config.acc_limit_trans,
            xy_goal_tolerance=config.xy_goal_tolerance,
            yaw_goal_tolerance=config.yaw_goal_tolerance,
            trans_stopped_vel=config.trans_stopped_vel,
            rot_stopped_vel=config.rot_stopped_vel,
            prune_plan=config.prune_plan,
            lookahead_distance=config.max_trans_vel * config.sim_time,
        )

    def acc_limits(self) -> Tuple[float, float, float]:
        return self.acc_lim_x, self.acc_lim_y, self.acc_lim_theta

    def full_range(self) -> Tuple[Range, Range, Range]:
        """配置允许的全部速度范围 (x, y, theta)"""
        return ((self.min_vel_x, self.max_vel_x),
                (self.min_vel_y, self.max_vel_y),
                (-self.max_rot_vel, self.max_rot_vel))

    def dynamic_window(self,
                       current_vel: Velocity2D,
                       period: float) -> Tuple[Range, Range, Range]:
        """计算动态窗口

        一个控制周期内在加速度限制下可达的速度范围，与配置范围取交集。
        当前速度超出配置范围时窗口可能为空（min > max）。

        Args:
            current_vel: 当前速度
            period: 控制周期 (s)

        Returns:
            ((min_x, max_x), (min_y, max_y), (min_theta, max_theta))
        """
        windows = []
        current = current_vel.as_tuple()
        for (v_min, v_max), v, acc in zip(self.full_range(), current, self.acc_limits()):
            windows.append((max(v_min, v - acc * period),
                            min(v_max, v + acc * period)))
        return tuple(windows)
