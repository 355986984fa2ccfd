"""
路径与目标辅助函数
角度/距离误差计算、路径裁剪、前视截断与路径校验
"""

import math
from typing import List, Sequence, Tuple, Union

from .trajectory import Pose2D, Velocity2D


class InvalidPlanError(ValueError):
    """局部路径不可用（为空、含非法数值或不连续）"""


def normalize_angle(angle: float) -> float:
    """归一化角度到[-π, π]"""
    return math.atan2(math.sin(angle), math.cos(angle))


def shortest_angular_distance(from_angle: float, to_angle: float) -> float:
    return normalize_angle(to_angle - from_angle)


def get_goal_position_distance(pose: Pose2D, goal_x: float, goal_y: float) -> float:
    return math.hypot(goal_x - pose.x, goal_y - pose.y)


def get_goal_orientation_angle_difference(pose: Pose2D, goal_theta: float) -> float:
    """机器人航向到目标朝向的有符号角度差"""
    return shortest_angular_distance(pose.theta, goal_theta)


def stopped(velocity: Velocity2D, rot_stopped_vel: float, trans_stopped_vel: float) -> bool:
    return (abs(velocity.vtheta) <= rot_stopped_vel and
            abs(velocity.vx) <= trans_stopped_vel and
            abs(velocity.vy) <= trans_stopped_vel)


def fill_plan_headings(points: Sequence[Union[Pose2D, Tuple[float, float]]]) -> List[Pose2D]:
    """把(x, y)路径点转换为Pose2D，航向取指向下一个点的方向

    已经是Pose2D的点保持不变；最后一个(x, y)点沿用上一段的方向。
    """
    plan = []
    for i, point in enumerate(points):
        if isinstance(point, Pose2D):
            plan.append(point)
            continue

        x, y = point[0], point[1]
        if i + 1 < len(points):
            nxt = points[i + 1]
            nx, ny = (nxt.x, nxt.y) if isinstance(nxt, Pose2D) else (nxt[0], nxt[1])
            theta = math.atan2(ny - y, nx - x) if (nx, ny) != (x, y) else (
                plan[-1].theta if plan else 0.0)
        else:
            theta = plan[-1].theta if plan else 0.0
        plan.append(Pose2D(x, y, theta))
    return plan


def validate_plan(plan: Sequence[Pose2D], max_gap: float):
    """检查局部路径是否可用于规划

    Raises:
        InvalidPlanError: 路径为空、含非有限数值，或相邻点距离超过max_gap
    """
    if not plan:
        raise InvalidPlanError("局部路径为空")

    for i, pose in enumerate(plan):
        if not all(math.isfinite(v) for v in pose.as_tuple()):
            raise InvalidPlanError(f"路径点{i}含非法数值: {pose}")

    if max_gap > 0:
        for i in range(1, len(plan)):
            gap = plan[i - 1].distance_to(plan[i])
            if gap > max_gap:
                raise InvalidPlanError(
                    f"路径不连续: 点{i - 1}->{i} 间距{gap:.2f}m > {max_gap:.2f}m")


def prune_plan(robot_pose: Pose2D,
               plan: Sequence[Pose2D],
               search_distance: float = 1.0) -> List[Pose2D]:
    """删除机器人已经经过的路径点

    在路径前search_distance米（弧长）范围内寻找离机器人最近的点，删除它之前的所有点。
    """
    if not plan:
        return []

    best_index = 0
    best_dist = robot_pose.distance_to(plan[0])
    travelled = 0.0
    for i in range(1, len(plan)):
        travelled += plan[i - 1].distance_to(plan[i])
        if travelled > search_distance:
            break
        dist = robot_pose.distance_to(plan[i])
        if dist < best_dist:
            best_dist = dist
            best_index = i

    return list(plan[best_index:])


def crop_plan(plan: Sequence[Pose2D], max_length: float) -> Tuple[List[Pose2D], bool]:
    """按弧长截取路径前max_length米

    Returns:
        (cropped_plan, cropped): cropped表示原路径比max_length更长
    """
    if not plan or max_length <= 0:
        return list(plan), False

    cropped = [plan[0]]
    travelled = 0.0
    for i in range(1, len(plan)):
        travelled += plan[i - 1].distance_to(plan[i])
        if travelled > max_length:
            return cropped, True
        cropped.append(plan[i])
    return cropped, False


def plan_from_lookahead(plan: Sequence[Pose2D],
                        lookahead: float,
                        extend: bool = False) -> List[Pose2D]:
    """前视截断

    沿路径累加弧长，在lookahead处插值出终点并截断；
    路径不足lookahead且extend=True时沿最后一段方向延长到lookahead。

    Args:
        plan: 局部路径（第一个点靠近机器人）
        lookahead: 前视距离 (m)，通常为 max_trans_vel * sim_time
        extend: 路径较短时是否延长

    Returns:
        截断后的路径
    """
    if not plan:
        return []

    result = [plan[0]]
    travelled = 0.0
    for i in range(1, len(plan)):
        prev, curr = plan[i - 1], plan[i]
        segment = prev.distance_to(curr)
        if travelled + segment >= lookahead:
            ratio = (lookahead - travelled) / segment if segment > 0 else 0.0
            result.append(Pose2D(prev.x + ratio * (curr.x - prev.x),
                                 prev.y + ratio * (curr.y - prev.y),
                                 curr.theta))
            return result
        travelled += segment
        result.append(curr)

    if extend and len(plan) >= 2 and travelled < lookahead:
        last, before = plan[-1], plan[-2]
        heading = math.atan2(last.y - before.y, last.x - before.x)
        remaining = lookahead - travelled
        result.append(Pose2D(last.x + remaining * math.cos(heading),
                             last.y + remaining * math.sin(heading),
                             last.theta))
    return result
