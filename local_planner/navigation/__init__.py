"""
导航模块
DWA局部规划：轨迹采样、代价评分、状态切换与速度指令输出
"""

from .trajectory import Pose2D, Velocity2D, Trajectory
from .limits import VelocityLimits
from .goal_functions import InvalidPlanError
from .generator import TrajectoryGenerator
from .cost_functions import (
    TrajectoryCostFunction, GoalDistanceCost, PathAlignmentCost,
    ObstacleProximityCost, HeadingAlignmentCost, CommandVelocityShapingCost
)
from .scored_search import ScoredSamplingPlanner
from .state_machine import PlannerState, StateSwitches, StateProfile, determine_state
from .planner_config import DWAPlannerConfig, load_planner_config
from .dwa_planner import DWAPlanner
from .controller import LocalPlannerController, PlanningStatus, CommandResult

__all__ = [
    'Pose2D', 'Velocity2D', 'Trajectory', 'VelocityLimits', 'InvalidPlanError',
    'TrajectoryGenerator',
    'TrajectoryCostFunction', 'GoalDistanceCost', 'PathAlignmentCost',
    'ObstacleProximityCost', 'HeadingAlignmentCost', 'CommandVelocityShapingCost',
    'ScoredSamplingPlanner',
    'PlannerState', 'StateSwitches', 'StateProfile', 'determine_state',
    'DWAPlannerConfig', 'load_planner_config',
    'DWAPlanner',
    'LocalPlannerController', 'PlanningStatus', 'CommandResult',
]
