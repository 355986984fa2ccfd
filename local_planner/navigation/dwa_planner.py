"""
DWA局部规划器
每个控制周期：判定状态 -> 调整代价函数 -> 采样仿真 -> 评分选优
"""

import logging
import threading
from typing import Callable, List, Optional, Sequence, Tuple

from .cost_functions import (
    GoalDistanceCost, PathAlignmentCost, ObstacleProximityCost,
    HeadingAlignmentCost, CommandVelocityShapingCost
)
from .generator import TrajectoryGenerator
from .goal_functions import (
    get_goal_orientation_angle_difference, get_goal_position_distance,
    plan_from_lookahead, validate_plan
)
from .limits import VelocityLimits
from .planner_config import DWAPlannerConfig
from .scored_search import ScoredSamplingPlanner
from .state_machine import PlannerState, determine_state
from .trajectory import Pose2D, Velocity2D, Trajectory


logger = logging.getLogger(__name__)


class DWAPlanner:
    """动态窗口局部规划器

    持有轨迹生成器与全部代价函数。所有可重配置参数由一把互斥锁保护：
    reconfigure()与一次搜索互斥，搜索过程中看到的始终是同一份配置。

    Attributes:
        costmap: 障碍物查询接口（footprint_cost / point_cost）
        config: 当前生效的DWAPlannerConfig
        state: 上一周期的规划器状态（首周期前为None）
        last_trajectory: 上一周期选中的轨迹

    Example:
        >>> planner = DWAPlanner(cost_grid)
        >>> state, traj = planner.compute(pose, velocity, local_plan, footprint)
        >>> if traj is not None:
        ...     print(traj.velocity)
    """

    def __init__(self,
                 costmap,
                 config: DWAPlannerConfig = None,
                 on_state_change: Optional[Callable[[Optional[PlannerState], PlannerState], None]] = None):
        """初始化规划器

        Args:
            costmap: 障碍物查询接口
            config: 规划器配置，None则使用默认配置
            on_state_change: 状态切换回调 (旧状态, 新状态)

        Raises:
            ValueError: 初始配置不合法
        """
        self.costmap = costmap
        self.on_state_change = on_state_change

        self._lock = threading.Lock()

        self.generator = TrajectoryGenerator()

        self.goal_costs = GoalDistanceCost(costmap)
        self.obstacle_costs = ObstacleProximityCost(costmap)
        self.plan_costs = PathAlignmentCost(costmap)
        self.alignment_costs = HeadingAlignmentCost()
        self.cmd_vel_costs = CommandVelocityShapingCost()

        critics = [
            self.goal_costs,
            self.obstacle_costs,
            self.plan_costs,
            self.alignment_costs,
            self.cmd_vel_costs,
        ]
        self.scored_sampling_planner = ScoredSamplingPlanner([self.generator], critics)

        self.config: Optional[DWAPlannerConfig] = None
        self.state: Optional[PlannerState] = None
        self.last_trajectory: Optional[Trajectory] = None

        config = config if config else DWAPlannerConfig()
        if not self.reconfigure(config):
            raise ValueError("DWA规划器初始配置不合法")

    @property
    def sim_period(self) -> float:
        return self.config.sim_period

    @property
    def sim_time(self) -> float:
        return self.config.sim_time

    def reconfigure(self, config: DWAPlannerConfig) -> bool:
        """应用新配置

        配置不合法时整体拒绝，原配置继续生效。

        Returns:
            是否应用成功
        """
        errors = config.validate()
        if errors:
            for err in errors:
                logger.error(f"[DWA] 配置错误: {err}")
            logger.error("[DWA] 拒绝本次重配置，保持原配置")
            return False

        with self._lock:
            self._apply_config(config.copy())

        logger.info(
            f"[DWA] 轨迹生成器: samples=[{config.vx_samples},{config.vy_samples},{config.vth_samples}] "
            f"sim_time={config.sim_time}s sim_period={config.sim_period}s use_dwa={config.use_dwa} "
            f"granularity={config.sim_granularity}m/{config.angular_sim_granularity}rad")
        logger.info(
            f"[DWA] 切换阈值: yaw={config.switch_yaw_error}rad "
            f"goal={config.switch_goal_distance}m plan={config.switch_plan_distance}m")
        return True

    def _apply_config(self, config: DWAPlannerConfig):
        self.generator.set_parameters(
            sim_time=config.sim_time,
            sim_granularity=config.sim_granularity,
            angular_sim_granularity=config.angular_sim_granularity,
            use_dwa=config.use_dwa,
            sim_period=config.sim_period,
            single_sample_to_zero=config.single_sample_to_zero,
        )

        self.obstacle_costs.set_params(
            config.acc_lim_x, config.acc_lim_y, config.acc_lim_theta, config.max_trans_vel,
            config.max_scaling_factor, config.scaling_speed)
        self.obstacle_costs.allow_unknown = config.allow_unknown
        self.obstacle_costs.sum_scores = config.obstacle_sum_scores
        self.goal_costs.set_unknown_policy(config.allow_unknown)
        self.plan_costs.set_unknown_policy(config.allow_unknown)

        self.config = config

        # 若已有状态，立即按新参数刷新当前状态的权重
        if self.state is not None:
            self._apply_profile(self.state)

    def _apply_profile(self, state: PlannerState):
        profile = self.config.profile(state)
        self.alignment_costs.set_scale(profile.align_scale)
        self.plan_costs.set_scale(profile.plan_scale)
        self.goal_costs.set_scale(profile.goal_scale)
        self.cmd_vel_costs.set_scale(profile.cmd_scale)
        self.obstacle_costs.set_scale(profile.obstacle_scale)
        self.cmd_vel_costs.set_coefficients(*profile.cmd_coefficients)

    def update_plan_and_local_costs(self,
                                    robot_pose: Pose2D,
                                    local_plan: Sequence[Pose2D],
                                    footprint: Sequence[Tuple[float, float]],
                                    extend_lookahead: bool = False) -> PlannerState:
        """根据局部路径更新状态和代价函数

        Raises:
            InvalidPlanError: 局部路径不可用
        """
        with self._lock:
            return self._update_plan_and_local_costs(
                robot_pose, local_plan, footprint, extend_lookahead)

    def _update_plan_and_local_costs(self,
                                     robot_pose: Pose2D,
                                     local_plan: Sequence[Pose2D],
                                     footprint: Sequence[Tuple[float, float]],
                                     extend_lookahead: bool) -> PlannerState:
        validate_plan(local_plan, self.config.max_plan_gap)

        front, back = local_plan[0], local_plan[-1]
        yaw_error = get_goal_orientation_angle_difference(robot_pose, front.theta)
        plan_distance = get_goal_position_distance(robot_pose, front.x, front.y)
        goal_distance = get_goal_position_distance(robot_pose, back.x, back.y)

        switches = self.config.switches()
        previous = self.state
        state = determine_state(yaw_error, plan_distance, goal_distance, switches, previous)

        if state != previous:
            logger.info(f"[DWA] 状态 = {state.label} "
                        f"(yaw_error={yaw_error:.2f}, goal_distance={goal_distance:.2f})")
            self.state = state
            if self.on_state_change:
                self.on_state_change(previous, state)

        if plan_distance > switches.switch_plan_distance:
            logger.warning(f"[DWA] 机器人偏离路径 {plan_distance:.2f}m")

        self._apply_profile(state)
        if self.config.profile(state).use_goal_orientation:
            self.alignment_costs.set_desired_orientation(back.theta)
        else:
            self.alignment_costs.set_desired_orientation(front.theta)

        lookahead = self.config.max_trans_vel * self.config.sim_time
        self.goal_costs.set_target_poses(plan_from_lookahead(local_plan, lookahead, extend_lookahead))
        self.plan_costs.set_target_poses(local_plan)

        self.obstacle_costs.set_footprint(footprint)

        return state

    def find_best_path(self,
                       robot_pose: Pose2D,
                       robot_vel: Velocity2D,
                       limits: Optional[VelocityLimits] = None,
                       all_explored: Optional[List[Trajectory]] = None) -> Optional[Trajectory]:
        """搜索最优轨迹

        Args:
            robot_pose: 当前位姿
            robot_vel: 当前速度
            limits: 速度限制，None则由当前配置生成
            all_explored: 若提供，追加所有评估过的轨迹

        Returns:
            最优可行轨迹，没有可行轨迹时返回None
        """
        with self._lock:
            return self._find_best_path(robot_pose, robot_vel, limits, all_explored)

    def _find_best_path(self,
                        robot_pose: Pose2D,
                        robot_vel: Velocity2D,
                        limits: Optional[VelocityLimits],
                        all_explored: Optional[List[Trajectory]]) -> Optional[Trajectory]:
        if limits is None:
            limits = VelocityLimits.from_config(self.config)

        self.generator.initialise(robot_pose, robot_vel, limits, self.config.vsamples())
        best = self.scored_sampling_planner.find_best_trajectory(all_explored)
        self.last_trajectory = best
        return best

    def compute(self,
                robot_pose: Pose2D,
                robot_vel: Velocity2D,
                local_plan: Sequence[Pose2D],
                footprint: Sequence[Tuple[float, float]],
                limits: Optional[VelocityLimits] = None,
                all_explored: Optional[List[Trajectory]] = None,
                extend_lookahead: bool = False) -> Tuple[PlannerState, Optional[Trajectory]]:
        """一个完整的规划周期（状态更新与搜索在同一次加锁内完成）

        Raises:
            InvalidPlanError: 局部路径不可用

        Returns:
            (state, trajectory)
        """
        with self._lock:
            state = self._update_plan_and_local_costs(
                robot_pose, local_plan, footprint, extend_lookahead)
            traj = self._find_best_path(robot_pose, robot_vel, limits, all_explored)
        return state, traj

    def footprint_cost(self, pose: Pose2D, footprint: Sequence[Tuple[float, float]]) -> float:
        """按当前未知区域策略查询单个位姿的footprint代价"""
        with self._lock:
            return self.obstacle_costs.footprint_cost(pose, footprint)
