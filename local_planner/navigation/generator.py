"""
轨迹生成器
在动态窗口（或全速度范围）内离散采样速度，并对每个采样做前向仿真
"""

import math
import logging
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .limits import VelocityLimits
from .trajectory import Pose2D, Velocity2D, Trajectory


logger = logging.getLogger(__name__)


def velocity_samples(v_min: float,
                     v_max: float,
                     num_samples: int,
                     current: float = 0.0,
                     collapse_to_zero: bool = True) -> List[float]:
    """单轴速度离散化

    Args:
        v_min, v_max: 采样区间
        num_samples: 采样数（>=1）
        current: 当前速度（单采样时使用）
        collapse_to_zero: 单采样时区间包含0则取0，否则取当前速度

    Returns:
        升序的采样值列表；区间为空时返回空列表
    """
    if v_min > v_max:
        return []

    if num_samples <= 1:
        if collapse_to_zero and v_min <= 0.0 <= v_max:
            return [0.0]
        return [min(max(current, v_min), v_max)]

    if math.isclose(v_min, v_max):
        return [float(v_min)]

    samples = [float(v) for v in np.linspace(v_min, v_max, num_samples)]

    # 区间跨过0时补一个0，保证停车/原地旋转总能被采样到
    if v_min < 0.0 < v_max and 0.0 not in samples:
        samples.append(0.0)
        samples.sort()

    return samples


class TrajectoryGenerator:
    """速度采样 + 前向仿真

    采样顺序固定为 vx(外层) -> vy -> vtheta(内层)，每轴升序，
    因此相同输入下候选轨迹的枚举顺序是确定的。

    迭代器是惰性的，每次iter()都会从头重新仿真，可提前终止。

    Example:
        >>> generator = TrajectoryGenerator()
        >>> generator.set_parameters(sim_time=1.7, sim_granularity=0.025)
        >>> generator.initialise(pose, velocity, limits, (3, 1, 10))
        >>> for sample, traj in generator:
        ...     print(sample, traj.end_pose)
    """

    def __init__(self):
        self.sim_time = 1.7
        self.sim_granularity = 0.025
        self.angular_sim_granularity = 0.1
        self.use_dwa = True
        self.sim_period = 0.1
        self.single_sample_to_zero = True

        self.pos: Optional[Pose2D] = None
        self.vel: Optional[Velocity2D] = None
        self.limits: Optional[VelocityLimits] = None
        self.sample_params: List[Velocity2D] = []

    def set_parameters(self,
                       sim_time: float,
                       sim_granularity: float,
                       angular_sim_granularity: float = 0.1,
                       use_dwa: bool = True,
                       sim_period: float = 0.1,
                       single_sample_to_zero: bool = True):
        """设置仿真参数

        Args:
            sim_time: 仿真时长 (s)
            sim_granularity: 平移仿真步长 (m)
            angular_sim_granularity: 旋转仿真步长 (rad)
            use_dwa: True=动态窗口采样，False=全速度范围采样
            sim_period: 控制周期 (s)，用于计算动态窗口
            single_sample_to_zero: 某轴只有1个采样时是否优先取0
        """
        self.sim_time = sim_time
        self.sim_granularity = sim_granularity
        self.angular_sim_granularity = angular_sim_granularity
        self.use_dwa = use_dwa
        self.sim_period = sim_period
        self.single_sample_to_zero = single_sample_to_zero

    def sampling_ranges(self, vel: Velocity2D, limits: VelocityLimits):
        """各轴采样区间"""
        if self.use_dwa:
            return limits.dynamic_window(vel, self.sim_period)
        return limits.full_range()

    def initialise(self,
                   pos: Pose2D,
                   vel: Velocity2D,
                   limits: VelocityLimits,
                   vsamples: Sequence[int]):
        """准备本周期的速度采样

        Args:
            pos: 当前位姿
            vel: 当前速度
            limits: 速度限制
            vsamples: 各轴采样数 (vx, vy, vtheta)
        """
        self.pos = pos
        self.vel = vel
        self.limits = limits

        (x_rng, y_rng, th_rng) = self.sampling_ranges(vel, limits)
        x_samples = velocity_samples(*x_rng, vsamples[0], vel.vx, self.single_sample_to_zero)
        y_samples = velocity_samples(*y_rng, vsamples[1], vel.vy, self.single_sample_to_zero)
        th_samples = velocity_samples(*th_rng, vsamples[2], vel.vtheta, self.single_sample_to_zero)

        self.sample_params = [
            Velocity2D(vx, vy, vth)
            for vx in x_samples
            for vy in y_samples
            for vth in th_samples
        ]

        logger.debug(f"采样区间 x={x_rng} y={y_rng} th={th_rng}, "
                     f"采样数 {len(self.sample_params)}")

    def __iter__(self) -> Iterator[Tuple[Velocity2D, Trajectory]]:
        if self.pos is None:
            return
        for sample in self.sample_params:
            traj = Trajectory()
            if self.generate_trajectory(self.pos, self.vel, sample, traj):
                yield sample, traj

    def generate_trajectory(self,
                            pos: Pose2D,
                            vel: Velocity2D,
                            sample_target_vel: Velocity2D,
                            traj: Trajectory) -> bool:
        """前向仿真一条轨迹

        速度在加速度限制下从当前速度逐步逼近采样速度，达到后保持不变直至仿真结束。

        Args:
            pos: 起始位姿
            vel: 当前速度
            sample_target_vel: 采样速度
            traj: 输出轨迹（会被清空重写）

        Returns:
            采样是否有效（不满足最小/最大速度约束时返回False）
        """
        limits = self.limits
        vmag = sample_target_vel.magnitude
        eps = 1e-4

        # 既不够快地平移，也不够快地旋转：视为不动
        if ((limits.min_trans_vel >= 0 and vmag + eps < limits.min_trans_vel) and
                (limits.min_rot_vel >= 0 and abs(sample_target_vel.vtheta) + eps < limits.min_rot_vel)):
            return False

        # 超过合成平移速度上限
        if limits.max_trans_vel >= 0 and vmag - eps > limits.max_trans_vel:
            return False

        # 步数按距离/角度分辨率确定，加减速阶段按较大的速度计算
        trans_speed = max(vmag, vel.magnitude)
        rot_speed = max(abs(sample_target_vel.vtheta), abs(vel.vtheta))
        num_steps = math.ceil(max(trans_speed * self.sim_time / self.sim_granularity,
                                  rot_speed * self.sim_time / self.angular_sim_granularity))
        num_steps = max(num_steps, 1)
        dt = self.sim_time / num_steps

        traj.reset_points()
        traj.xv, traj.yv, traj.thetav = sample_target_vel.as_tuple()
        traj.time_delta = dt
        traj.cost = -1.0

        loop_vel = vel
        acc_lim = limits.acc_limits()
        traj.add_point(pos)
        for _ in range(num_steps):
            loop_vel = self.compute_new_velocities(
                sample_target_vel, loop_vel, acc_lim, dt, limits.acc_limit_trans)
            pos = self.compute_new_positions(pos, loop_vel, dt)
            traj.add_point(pos)

        return True

    @staticmethod
    def compute_new_positions(pos: Pose2D, vel: Velocity2D, dt: float) -> Pose2D:
        """全向运动学模型（vx, vy为机体系速度）"""
        cos_th, sin_th = math.cos(pos.theta), math.sin(pos.theta)
        x = pos.x + (vel.vx * cos_th - vel.vy * sin_th) * dt
        y = pos.y + (vel.vx * sin_th + vel.vy * cos_th) * dt
        theta = pos.theta + vel.vtheta * dt
        return Pose2D(x, y, math.atan2(math.sin(theta), math.cos(theta)))

    @staticmethod
    def compute_new_velocities(sample_target_vel: Velocity2D,
                               vel: Velocity2D,
                               acc_lim: Sequence[float],
                               dt: float,
                               acc_limit_trans: float = 0.0) -> Velocity2D:
        """加速度限制下的一步速度更新

        各轴分别受acc_lim限制；acc_limit_trans > 0 时平移加速度的合成值也受限。
        """
        new = []
        for target, current, acc in zip(sample_target_vel.as_tuple(), vel.as_tuple(), acc_lim):
            if target < current:
                new.append(max(target, current - acc * dt))
            else:
                new.append(min(target, current + acc * dt))

        if acc_limit_trans > 0:
            dvx, dvy = new[0] - vel.vx, new[1] - vel.vy
            dv = math.hypot(dvx, dvy)
            if dv > acc_limit_trans * dt:
                ratio = acc_limit_trans * dt / dv
                new[0] = vel.vx + dvx * ratio
                new[1] = vel.vy + dvy * ratio

        return Velocity2D(*new)
