"""
局部规划控制器
持有全局路径，每个控制周期裁剪出局部路径交给DWA规划器，输出速度指令
"""

import math
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .dwa_planner import DWAPlanner
from .generator import TrajectoryGenerator
from .goal_functions import (
    InvalidPlanError, crop_plan, fill_plan_headings, get_goal_orientation_angle_difference,
    get_goal_position_distance, prune_plan, stopped
)
from .limits import VelocityLimits
from .planner_config import DWAPlannerConfig, load_planner_config
from .state_machine import PlannerState
from .trajectory import Pose2D, Velocity2D, Trajectory
from ..utils.logger import PerformanceLogger


logger = logging.getLogger(__name__)


class PlanningStatus(Enum):
    """规划结果状态枚举"""
    OK = 0                   # 找到可行轨迹
    NO_VALID_TRAJECTORY = 1  # 所有候选轨迹都不可行，输出零速度
    INVALID_PLAN = 2         # 局部路径不可用
    GOAL_REACHED = 3         # 已到达终点
    NOT_INITIALIZED = 4      # 尚未设置路径


@dataclass
class CommandResult:
    """一次规划周期的输出"""
    velocity: Velocity2D
    status: PlanningStatus
    state: Optional[PlannerState] = None
    trajectory: Optional[Trajectory] = None
    explored: List[Trajectory] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.status == PlanningStatus.OK


class LocalPlannerController:
    """局部规划控制器

    流程（每个控制周期）：
    1. 删除已经过的路径点，并截取前local_plan_length米作为局部路径
    2. DWA规划器判定状态、更新代价函数
    3. 采样搜索最优轨迹
    4. 输出速度指令（无可行轨迹时输出零速度）

    Attributes:
        planner: DWAPlanner对象
        limits: 当前速度限制
        recorder: PlanningRecorder对象（可选）

    Example:
        >>> controller = LocalPlannerController(cost_grid)
        >>> controller.set_plan([(0.0, 0.0), (1.0, 0.0), (2.0, 0.0)])
        >>> result = controller.compute_velocity_commands(pose, velocity, footprint)
        >>> if result.is_valid:
        ...     send(result.velocity)
    """

    def __init__(self,
                 costmap,
                 config: DWAPlannerConfig = None,
                 recorder=None,
                 keep_explored: bool = False):
        """初始化控制器

        Args:
            costmap: 障碍物查询接口
            config: 规划器配置（None则从config.py加载）
            recorder: PlanningRecorder对象（可选）
            keep_explored: 是否在结果中保留所有评估过的轨迹
        """
        if config is None:
            config = load_planner_config()

        self.costmap = costmap
        self.recorder = recorder
        self.keep_explored = keep_explored

        self.planner = DWAPlanner(costmap, config)
        # 首次生效的配置作为默认配置
        self.default_config = self.config.copy()

        self.global_plan: List[Pose2D] = []
        self.xy_latched = False
        self.perf = PerformanceLogger(logger)

        logger.info(f"[控制器] 初始化完成 (sim_time={self.config.sim_time}s, "
                    f"samples={self.config.vsamples()})")

    @property
    def state(self) -> Optional[PlannerState]:
        return self.planner.state

    @property
    def config(self) -> DWAPlannerConfig:
        """当前生效的配置（重配置时整体替换，不会原地修改）"""
        return self.planner.config

    @property
    def limits(self) -> VelocityLimits:
        return VelocityLimits.from_config(self.config)

    def reconfigure(self, config: DWAPlannerConfig) -> bool:
        """重新配置规划器

        config.restore_defaults为True时恢复首次生效的配置。

        Returns:
            是否应用成功
        """
        if config.restore_defaults:
            logger.info("[控制器] 恢复默认配置")
            config = self.default_config.copy(restore_defaults=False)

        return self.planner.reconfigure(config)

    def set_plan(self, global_plan: Sequence) -> bool:
        """设置全局路径

        Args:
            global_plan: Pose2D或(x, y)列表；(x, y)点的航向指向下一个点

        Returns:
            是否设置成功（空路径返回False）
        """
        if not global_plan:
            logger.warning("[控制器] 收到空路径，忽略")
            return False

        self.global_plan = fill_plan_headings(global_plan)
        self.xy_latched = False
        logger.info(f"[控制器] 新路径: {len(self.global_plan)}个点, "
                    f"终点({self.global_plan[-1].x:.2f}, {self.global_plan[-1].y:.2f})")
        return True

    def get_local_plan(self,
                       robot_pose: Pose2D,
                       config: DWAPlannerConfig = None) -> Tuple[List[Pose2D], bool]:
        """从全局路径中取出局部路径

        Args:
            robot_pose: 当前位姿
            config: 本周期使用的配置，None则取当前配置

        Returns:
            (local_plan, cropped)
        """
        config = config or self.config
        if config.prune_plan:
            self.global_plan = prune_plan(robot_pose, self.global_plan,
                                          config.prune_search_distance)
        return crop_plan(self.global_plan, config.local_plan_length)

    def compute_velocity_commands(self,
                                  robot_pose: Pose2D,
                                  robot_vel: Velocity2D,
                                  footprint: Sequence[Tuple[float, float]]) -> CommandResult:
        """计算一个控制周期的速度指令

        Args:
            robot_pose: 当前位姿
            robot_vel: 当前速度
            footprint: 机器人轮廓（机器人坐标系）

        Returns:
            CommandResult
        """
        if not self.global_plan:
            logger.warning("[控制器] 尚未设置路径")
            return CommandResult(Velocity2D.zero(), PlanningStatus.NOT_INITIALIZED)

        start = time.time()
        # 本周期的路径裁剪与到达判定都使用同一份配置
        config = self.config

        if self.is_position_reached(robot_pose, config):
            result = self._stop_and_rotate(robot_pose, robot_vel, footprint, config)
            self.perf.log_execution_time('compute_velocity_commands', time.time() - start)
            self._record(result, robot_pose)
            return result

        local_plan, cropped = self.get_local_plan(robot_pose, config)
        explored: List[Trajectory] = [] if (self.keep_explored or self.recorder) else None

        # 速度限制由规划器在锁内按其当前配置生成
        try:
            state, traj = self.planner.compute(robot_pose, robot_vel, local_plan, footprint,
                                               all_explored=explored,
                                               extend_lookahead=cropped)
        except InvalidPlanError as e:
            logger.error(f"[控制器] 局部路径不可用: {e}")
            result = CommandResult(Velocity2D.zero(), PlanningStatus.INVALID_PLAN,
                                   state=self.planner.state)
            self._record(result, robot_pose)
            return result

        if traj is None or traj.cost < 0:
            logger.warning(f"[控制器] 没有可行轨迹，输出零速度 (状态={state.label})")
            result = CommandResult(Velocity2D.zero(), PlanningStatus.NO_VALID_TRAJECTORY,
                                   state=state, explored=explored or [])
        else:
            logger.debug(f"[控制器] 速度指令 vx={traj.xv:.2f} vy={traj.yv:.2f} "
                         f"vth={traj.thetav:.2f} cost={traj.cost:.3f}")
            result = CommandResult(traj.velocity, PlanningStatus.OK,
                                   state=state, trajectory=traj, explored=explored or [])

        self.perf.log_execution_time('compute_velocity_commands', time.time() - start)
        self._record(result, robot_pose)
        return result

    def is_position_reached(self, robot_pose: Pose2D, config: DWAPlannerConfig = None) -> bool:
        """终点位置是否在xy容差内（latch_xy_goal_tolerance时一旦到达便保持）"""
        if not self.global_plan:
            return False
        if self.xy_latched:
            return True

        config = config or self.config
        goal = self.global_plan[-1]
        reached = get_goal_position_distance(robot_pose, goal.x, goal.y) <= config.xy_goal_tolerance
        if reached and config.latch_xy_goal_tolerance:
            logger.info("[控制器] 到达终点位置，锁定位置只调整朝向")
            self.xy_latched = True
        return reached

    def is_goal_reached(self,
                        robot_pose: Pose2D,
                        robot_vel: Velocity2D,
                        config: DWAPlannerConfig = None) -> bool:
        """位置、朝向都在容差内且机器人已停下"""
        config = config or self.config
        if not self.is_position_reached(robot_pose, config):
            return False

        goal = self.global_plan[-1]
        if abs(get_goal_orientation_angle_difference(robot_pose, goal.theta)) > \
                config.yaw_goal_tolerance:
            return False
        return stopped(robot_vel, config.rot_stopped_vel, config.trans_stopped_vel)

    def _stop_and_rotate(self,
                         robot_pose: Pose2D,
                         robot_vel: Velocity2D,
                         footprint: Sequence[Tuple[float, float]],
                         config: DWAPlannerConfig) -> CommandResult:
        """到达终点位置后：先刹停，再原地转到终点朝向"""
        limits = VelocityLimits.from_config(config)
        dt = config.sim_period
        state = self.planner.state

        if self.is_goal_reached(robot_pose, robot_vel, config):
            logger.info("[控制器] 已到达终点")
            return CommandResult(Velocity2D.zero(), PlanningStatus.GOAL_REACHED, state=state)

        if not stopped(robot_vel, limits.rot_stopped_vel, limits.trans_stopped_vel):
            vel = TrajectoryGenerator.compute_new_velocities(
                Velocity2D.zero(), robot_vel, limits.acc_limits(), dt)
            logger.debug(f"[控制器] 到达终点位置，减速中 vx={vel.vx:.2f} vth={vel.vtheta:.2f}")
            return CommandResult(vel, PlanningStatus.OK, state=state)

        goal = self.global_plan[-1]
        yaw_error = get_goal_orientation_angle_difference(robot_pose, goal.theta)

        # 保证转到目标角度前能刹住
        v_theta = math.sqrt(2.0 * limits.acc_lim_theta * abs(yaw_error))
        v_theta = min(limits.max_rot_vel, max(limits.min_rot_vel, v_theta))
        v_theta = math.copysign(v_theta, yaw_error)
        v_theta = min(robot_vel.vtheta + limits.acc_lim_theta * dt,
                      max(robot_vel.vtheta - limits.acc_lim_theta * dt, v_theta))

        cmd = Velocity2D(0.0, 0.0, v_theta)
        next_pose = TrajectoryGenerator.compute_new_positions(robot_pose, cmd, dt)
        if self.planner.footprint_cost(next_pose, footprint) < 0:
            logger.warning("[控制器] 原地旋转会发生碰撞，输出零速度")
            return CommandResult(Velocity2D.zero(), PlanningStatus.NO_VALID_TRAJECTORY, state=state)

        return CommandResult(cmd, PlanningStatus.OK, state=state)

    def get_statistics(self) -> dict:
        return self.perf.get_statistics('compute_velocity_commands') or {}

    def _record(self, result: CommandResult, robot_pose: Pose2D):
        if self.recorder is not None:
            self.recorder.record_cycle(result, robot_pose)
