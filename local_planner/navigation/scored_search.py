"""
采样评分搜索
遍历生成器给出的候选轨迹，用代价函数打分，返回代价最小的可行轨迹
"""

import logging
from typing import Iterable, List, Optional, Sequence

from .cost_functions import TrajectoryCostFunction
from .trajectory import Trajectory


logger = logging.getLogger(__name__)


class ScoredSamplingPlanner:
    """采样评分规划器

    总代价 = Σ scale_i * cost_i；任一代价函数返回负值即拒绝该轨迹（提前结束打分）。
    代价相同时保留最先遇到的轨迹，因此结果由生成器的枚举顺序唯一确定。

    复杂度: O(采样数 × 仿真步数 × 代价函数个数)

    Attributes:
        generators: 轨迹生成器列表（按顺序遍历）
        critics: 代价函数列表（顺序只影响提前拒绝的效率）
    """

    def __init__(self,
                 generators: Sequence[Iterable] = (),
                 critics: Sequence[TrajectoryCostFunction] = ()):
        self.generators = list(generators)
        self.critics = list(critics)

    def score_trajectory(self, traj: Trajectory) -> float:
        """计算单条轨迹的总代价

        scale为0的代价函数依然会执行，用于保留其拒绝能力，但不计入总代价。
        """
        traj_cost = 0.0
        for critic in self.critics:
            cost = critic.score_trajectory(traj)
            if cost < 0:
                logger.debug(f"轨迹被{critic.name}拒绝 ({cost}) "
                             f"v=({traj.xv:.2f}, {traj.yv:.2f}, {traj.thetav:.2f})")
                return cost
            if cost != 0:
                cost *= critic.get_scale()
            traj_cost += cost
        return traj_cost

    def find_best_trajectory(self,
                             all_explored: Optional[List[Trajectory]] = None) -> Optional[Trajectory]:
        """搜索最优轨迹

        Args:
            all_explored: 若提供，所有打过分的轨迹会追加到此列表（用于诊断）

        Returns:
            代价最小的可行轨迹；没有可行轨迹或代价函数准备失败时返回None
        """
        for critic in self.critics:
            if not critic.prepare():
                logger.warning(f"代价函数{critic.name}准备失败，本周期放弃规划")
                return None

        best_traj = None
        best_cost = float('inf')
        count = 0
        rejected = 0

        for generator in self.generators:
            for _, traj in generator:
                count += 1
                traj.cost = self.score_trajectory(traj)

                if all_explored is not None:
                    all_explored.append(traj)

                if traj.cost < 0:
                    rejected += 1
                    continue

                if traj.cost < best_cost:
                    best_cost = traj.cost
                    best_traj = traj

        if best_traj is None:
            logger.debug(f"{count}条候选轨迹全部不可行 (拒绝{rejected}条)")
        else:
            logger.debug(f"评估{count}条轨迹，拒绝{rejected}条，最优代价{best_cost:.3f}")

        return best_traj
