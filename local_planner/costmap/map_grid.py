"""
波前距离栅格
从目标栅格（路径或局部目标）出发做4邻域波前传播，障碍物阻断传播
"""

import numpy as np
from typing import List, Optional, Sequence, Tuple
from scipy.ndimage import binary_dilation

from .cost_grid import ray_trace
from .cost_values import INSCRIBED_INFLATED_OBSTACLE, LETHAL_OBSTACLE, NO_INFORMATION


# 4邻域结构元
_CROSS = np.array([[0, 1, 0],
                   [1, 1, 1],
                   [0, 1, 0]], dtype=bool)


class MapGrid:
    """波前距离栅格

    每个栅格存储到最近目标栅格的传播距离（栅格数），不可达或障碍物为inf。

    Attributes:
        costmap: 代价地图（需提供grid / world_to_grid / is_valid_grid / resolution）
        distances: 距离矩阵 (height x width)，未计算前为None

    Example:
        >>> map_grid = MapGrid(cost_grid)
        >>> map_grid.set_target_cells(plan)
        >>> map_grid.distance_at(1.0, 0.5)
    """

    def __init__(self, costmap, unknown_is_obstacle: bool = True):
        self.costmap = costmap
        self.unknown_is_obstacle = unknown_is_obstacle
        self.distances: Optional[np.ndarray] = None

    def _obstacle_mask(self) -> np.ndarray:
        grid = self.costmap.grid
        mask = (grid == INSCRIBED_INFLATED_OBSTACLE) | (grid == LETHAL_OBSTACLE)
        if self.unknown_is_obstacle:
            mask |= grid == NO_INFORMATION
        return mask

    def _plan_cells(self, plan: Sequence) -> List[Tuple[int, int]]:
        """路径点转栅格，相邻路径点之间用Bresenham连线补齐"""
        cells = []
        prev = None
        for pose in plan:
            cell = self.costmap.world_to_grid(pose.x, pose.y)
            if prev is not None:
                segment = ray_trace(prev[0], prev[1], cell[0], cell[1])[1:]
            else:
                segment = [cell]
            cells.extend(c for c in segment if self.costmap.is_valid_grid(*c))
            prev = cell
        return cells

    def set_target_cells(self, plan: Sequence) -> bool:
        """以整条路径为目标计算距离

        Returns:
            路径至少有一个栅格落在地图内时返回True
        """
        return self._compute(self._plan_cells(plan))

    def set_local_goal(self, plan: Sequence) -> bool:
        """以路径上最后一个落在地图内的点为目标计算距离"""
        local_goal = None
        for pose in plan:
            cell = self.costmap.world_to_grid(pose.x, pose.y)
            if self.costmap.is_valid_grid(*cell):
                local_goal = cell
        return self._compute([local_goal] if local_goal is not None else [])

    def _compute(self, cells: List[Tuple[int, int]]) -> bool:
        height, width = self.costmap.grid.shape
        self.distances = np.full((height, width), np.inf)
        if not cells:
            return False

        frontier = np.zeros((height, width), dtype=bool)
        for gx, gy in cells:
            frontier[gy, gx] = True

        passable = ~self._obstacle_mask()
        visited = frontier.copy()
        self.distances[frontier] = 0.0

        step = 0
        while frontier.any():
            step += 1
            grown = binary_dilation(frontier, structure=_CROSS)
            frontier = grown & passable & ~visited
            self.distances[frontier] = step
            visited |= frontier

        return True

    def distance_at(self, x: float, y: float) -> Optional[float]:
        """世界坐标处的传播距离（米）

        Returns:
            越界返回None；障碍物或不可达返回inf
        """
        if self.distances is None:
            return None
        gx, gy = self.costmap.world_to_grid(x, y)
        if not self.costmap.is_valid_grid(gx, gy):
            return None
        return float(self.distances[gy, gx]) * self.costmap.resolution
