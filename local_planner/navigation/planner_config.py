"""
DWA规划器配置
运行时可重配置的全部参数，以及从config.py加载的辅助函数
"""

import math
import dataclasses
from dataclasses import dataclass
from typing import List

from .state_machine import PlannerState, StateProfile, StateSwitches


@dataclass
class DWAPlannerConfig:
    """DWA局部规划器配置参数"""
    # 恢复首次配置
    restore_defaults: bool = False

    # 速度限制
    max_trans_vel: float = 0.55   # 合成平移速度上限 (m/s)
    min_trans_vel: float = 0.1    # 合成平移速度下限 (m/s)
    max_vel_x: float = 0.55
    min_vel_x: float = 0.0
    max_vel_y: float = 0.0        # 差速底盘为0
    min_vel_y: float = 0.0
    max_rot_vel: float = 1.0      # 旋转速度上限 (rad/s)
    min_rot_vel: float = 0.4      # 旋转速度下限 (rad/s)

    # 加速度限制
    acc_lim_x: float = 2.5        # m/s²
    acc_lim_y: float = 2.5        # m/s²
    acc_lim_theta: float = 3.2    # rad/s²
    acc_limit_trans: float = 3.0  # 合成平移加速度上限，0表示不限制

    # 到达判定
    xy_goal_tolerance: float = 0.1
    yaw_goal_tolerance: float = 0.1
    trans_stopped_vel: float = 0.1
    rot_stopped_vel: float = 0.1
    latch_xy_goal_tolerance: bool = False  # 到达位置后锁定，只原地旋转

    # 轨迹仿真
    sim_time: float = 1.7                 # 仿真时长 (s)
    sim_period: float = 0.1               # 控制周期 (s)
    sim_granularity: float = 0.05         # 平移步长 (m)
    angular_sim_granularity: float = 0.1  # 旋转步长 (rad)
    use_dwa: bool = True                  # 动态窗口采样
    vx_samples: int = 6
    vy_samples: int = 1
    vth_samples: int = 11
    single_sample_to_zero: bool = True

    # 状态切换
    switch_yaw_error: float = 0.5       # rad
    switch_goal_distance: float = 0.5   # m
    switch_plan_distance: float = 1.0   # m

    # Align状态
    align_align_scale: float = 2.0
    align_plan_scale: float = 0.0
    align_goal_scale: float = 0.0
    align_cmd_scale: float = 1.0
    align_occ_scale: float = 0.01
    align_cmd_px: float = 1.0
    align_cmd_nx: float = 1.0
    align_cmd_py: float = 1.0
    align_cmd_ny: float = 1.0
    align_cmd_pth: float = 0.0
    align_cmd_nth: float = 0.0

    # Default状态
    default_align_scale: float = 0.5
    default_plan_scale: float = 1.0
    default_goal_scale: float = 1.5
    default_cmd_scale: float = 1.0
    default_occ_scale: float = 0.01
    default_cmd_px: float = 0.0
    default_cmd_nx: float = 1.0
    default_cmd_py: float = 0.5
    default_cmd_ny: float = 0.5
    default_cmd_pth: float = 0.05
    default_cmd_nth: float = 0.05

    # Arrive状态
    arrive_align_scale: float = 1.0
    arrive_plan_scale: float = 0.5
    arrive_goal_scale: float = 2.0
    arrive_cmd_scale: float = 1.0
    arrive_occ_scale: float = 0.01
    arrive_cmd_px: float = 0.0
    arrive_cmd_nx: float = 1.0
    arrive_cmd_py: float = 0.5
    arrive_cmd_ny: float = 0.5
    arrive_cmd_pth: float = 0.0
    arrive_cmd_nth: float = 0.0

    # 障碍物代价
    allow_unknown: bool = False
    obstacle_sum_scores: bool = False
    max_scaling_factor: float = 0.2
    scaling_speed: float = 0.25

    # 路径处理
    prune_plan: bool = True
    prune_search_distance: float = 1.0  # 寻找最近路径点的弧长范围 (m)
    local_plan_length: float = 3.0      # 局部路径最大长度 (m)，0表示不截取
    max_plan_gap: float = 0.5           # 相邻路径点最大间距 (m)，0表示不检查

    def vsamples(self):
        return self.vx_samples, self.vy_samples, self.vth_samples

    def switches(self) -> StateSwitches:
        return StateSwitches(
            switch_yaw_error=self.switch_yaw_error,
            switch_goal_distance=self.switch_goal_distance,
            switch_plan_distance=self.switch_plan_distance,
        )

    def profile(self, state: PlannerState) -> StateProfile:
        """某一状态下的代价函数权重与指令系数"""
        prefix = {
            PlannerState.ALIGN: 'align',
            PlannerState.DEFAULT: 'default',
            PlannerState.ARRIVE: 'arrive',
        }[state]

        def value(name):
            return getattr(self, f"{prefix}_{name}")

        return StateProfile(
            align_scale=value('align_scale'),
            plan_scale=value('plan_scale'),
            goal_scale=value('goal_scale'),
            cmd_scale=value('cmd_scale'),
            obstacle_scale=value('occ_scale'),
            cmd_coefficients=tuple(value(f'cmd_{axis}')
                                   for axis in ('px', 'nx', 'py', 'ny', 'pth', 'nth')),
            use_goal_orientation=(state == PlannerState.ARRIVE),
        )

    def copy(self, **changes) -> 'DWAPlannerConfig':
        return dataclasses.replace(self, **changes)

    def validate(self) -> List[str]:
        """检查参数合理性

        Returns:
            错误信息列表，为空表示配置可用
        """
        errors = []

        # NaN参与的比较全部为False，必须先单独排除
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool):
                continue
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                errors.append(f"{f.name} 必须是有限数值 (当前 {value!r})")
        if errors:
            return errors

        for name in ('vx_samples', 'vy_samples', 'vth_samples'):
            if getattr(self, name) < 1:
                errors.append(f"{name} 必须 >= 1 (当前 {getattr(self, name)})")

        for name in ('sim_time', 'sim_period', 'sim_granularity', 'angular_sim_granularity'):
            if getattr(self, name) <= 0:
                errors.append(f"{name} 必须大于0")

        for low, high in (('min_vel_x', 'max_vel_x'),
                          ('min_vel_y', 'max_vel_y'),
                          ('min_trans_vel', 'max_trans_vel'),
                          ('min_rot_vel', 'max_rot_vel')):
            if getattr(self, low) > getattr(self, high):
                errors.append(f"{low}={getattr(self, low)} 大于 {high}={getattr(self, high)}")

        if self.max_rot_vel < 0:
            errors.append("max_rot_vel 不能为负")

        for name in ('acc_lim_x', 'acc_lim_y', 'acc_lim_theta'):
            if getattr(self, name) <= 0:
                errors.append(f"{name} 必须大于0")
        if self.acc_limit_trans < 0:
            errors.append("acc_limit_trans 不能为负")

        for name in ('xy_goal_tolerance', 'yaw_goal_tolerance',
                     'trans_stopped_vel', 'rot_stopped_vel',
                     'switch_yaw_error', 'switch_goal_distance', 'switch_plan_distance',
                     'max_scaling_factor', 'scaling_speed',
                     'prune_search_distance', 'local_plan_length', 'max_plan_gap'):
            if getattr(self, name) < 0:
                errors.append(f"{name} 不能为负")

        for prefix in ('align', 'default', 'arrive'):
            for suffix in ('align_scale', 'plan_scale', 'goal_scale', 'cmd_scale', 'occ_scale',
                           'cmd_px', 'cmd_nx', 'cmd_py', 'cmd_ny', 'cmd_pth', 'cmd_nth'):
                name = f"{prefix}_{suffix}"
                if getattr(self, name) < 0:
                    errors.append(f"{name} 不能为负")

        return errors


def load_planner_config(module=None) -> DWAPlannerConfig:
    """从配置模块读取 DWA_<参数名大写> 常量生成配置

    Args:
        module: 配置模块，None则导入项目根目录的config.py

    Returns:
        DWAPlannerConfig，模块中未定义的参数使用默认值
    """
    if module is None:
        import config as module

    values = {}
    for f in dataclasses.fields(DWAPlannerConfig):
        key = f"DWA_{f.name.upper()}"
        if hasattr(module, key):
            values[f.name] = getattr(module, key)
    return DWAPlannerConfig(**values)
