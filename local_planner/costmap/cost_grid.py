"""
代价栅格地图模块
局部规划器使用的障碍物查询接口（footprint代价、单点代价）
"""

import logging

import numpy as np
from typing import Tuple, List, Optional, Sequence
from dataclasses import dataclass
from scipy.ndimage import distance_transform_edt

from .cost_values import (
    FREE_SPACE, INSCRIBED_INFLATED_OBSTACLE, LETHAL_OBSTACLE, NO_INFORMATION,
    LETHAL_COST, UNKNOWN_COST
)
from ..utils.logger import log_performance


logger = logging.getLogger(__name__)


def ray_trace(x0: int, y0: int, x1: int, y1: int) -> List[Tuple[int, int]]:
    """Bresenham直线光栅化

    生成从(x0, y0)到(x1, y1)的所有栅格坐标（包含两端）
    """
    cells = []

    dx = abs(x1 - x0)
    dy = abs(y1 - y0)

    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1

    err = dx - dy

    x, y = x0, y0

    while True:
        cells.append((x, y))

        if x == x1 and y == y1:
            break

        e2 = 2 * err

        if e2 > -dy:
            err -= dy
            x += sx

        if e2 < dx:
            err += dx
            y += sy

    return cells


@dataclass
class CostGridConfig:
    """代价地图配置参数"""
    width: int = 100  # 栅格数量
    height: int = 100
    resolution: float = 0.05  # 米/栅格
    origin_x: int = 50  # 世界原点所在栅格坐标
    origin_y: int = 50
    default_value: int = FREE_SPACE  # 初始代价


class CostGrid:
    """代价栅格地图

    每个栅格存储0-255的代价值：
    - 0: 空闲
    - 253: 内切圆膨胀区（机器人中心进入即碰撞）
    - 254: 致命障碍物
    - 255: 未知

    本类只负责查询和简单的障碍物标记，地图的增量维护由外部模块完成。

    Attributes:
        grid: 代价矩阵 (height x width)，uint8
        config: 地图配置

    Example:
        >>> grid = CostGrid(CostGridConfig(width=200, height=200, resolution=0.05))
        >>> grid.add_obstacle(1.0, 0.0)
        >>> grid.inflate(inscribed_radius=0.2, inflation_radius=0.5)
        >>> cost = grid.footprint_cost(0.5, 0.0, 0.0, footprint)
    """

    def __init__(self, config: CostGridConfig = None):
        """初始化代价地图

        Args:
            config: 地图配置，None则使用默认配置
        """
        self.config = config if config else CostGridConfig()

        if self.config.width <= 0 or self.config.height <= 0:
            raise ValueError(f"地图尺寸必须大于0: {self.config.width}x{self.config.height}")
        if self.config.resolution <= 0:
            raise ValueError(f"地图分辨率必须大于0: {self.config.resolution}")

        self.grid = np.full(
            (self.config.height, self.config.width),
            self.config.default_value,
            dtype=np.uint8
        )

    @property
    def resolution(self) -> float:
        return self.config.resolution

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) 栅格数量"""
        return self.config.width, self.config.height

    def world_to_grid(self, x: float, y: float) -> Tuple[int, int]:
        """世界坐标转栅格坐标

        Args:
            x, y: 世界坐标（米）

        Returns:
            (grid_x, grid_y): 栅格坐标（可能越界，需配合is_valid_grid使用）
        """
        grid_x = int(np.floor(x / self.config.resolution)) + self.config.origin_x
        grid_y = int(np.floor(y / self.config.resolution)) + self.config.origin_y
        return grid_x, grid_y

    def grid_to_world(self, grid_x: int, grid_y: int) -> Tuple[float, float]:
        """栅格坐标转世界坐标（栅格中心）"""
        x = (grid_x - self.config.origin_x + 0.5) * self.config.resolution
        y = (grid_y - self.config.origin_y + 0.5) * self.config.resolution
        return x, y

    def is_valid_grid(self, grid_x: int, grid_y: int) -> bool:
        return (0 <= grid_x < self.config.width and
                0 <= grid_y < self.config.height)

    def get_cost(self, grid_x: int, grid_y: int) -> int:
        return int(self.grid[grid_y, grid_x])

    def set_cost(self, grid_x: int, grid_y: int, cost: int):
        if self.is_valid_grid(grid_x, grid_y):
            self.grid[grid_y, grid_x] = cost

    def add_obstacle(self, x: float, y: float, cost: int = LETHAL_OBSTACLE):
        """在世界坐标处标记障碍物"""
        self.set_cost(*self.world_to_grid(x, y), cost)

    def add_obstacle_rect(self,
                          x_min: float, y_min: float,
                          x_max: float, y_max: float,
                          cost: int = LETHAL_OBSTACLE):
        """标记矩形区域（世界坐标，包含边界）"""
        gx0, gy0 = self.world_to_grid(x_min, y_min)
        gx1, gy1 = self.world_to_grid(x_max, y_max)
        gx0, gx1 = max(gx0, 0), min(gx1, self.config.width - 1)
        gy0, gy1 = max(gy0, 0), min(gy1, self.config.height - 1)
        if gx0 > gx1 or gy0 > gy1:
            return
        self.grid[gy0:gy1 + 1, gx0:gx1 + 1] = cost

    def clear(self):
        self.grid[:, :] = self.config.default_value

    @log_performance(logger)
    def inflate(self,
                inscribed_radius: float,
                inflation_radius: float,
                cost_scaling_factor: float = 10.0):
        """按指数衰减对致命障碍物做代价膨胀

        cost = 252 * exp(-factor * (d - inscribed_radius))，d为到最近障碍物的距离。
        未知栅格保持不变。

        Args:
            inscribed_radius: 机器人内切圆半径（米）
            inflation_radius: 膨胀半径（米）
            cost_scaling_factor: 衰减系数
        """
        lethal = self.grid == LETHAL_OBSTACLE
        if not lethal.any():
            return

        dist = distance_transform_edt(~lethal) * self.config.resolution

        inflated = np.zeros_like(self.grid, dtype=np.float64)
        decay = (INSCRIBED_INFLATED_OBSTACLE - 1) * np.exp(
            -cost_scaling_factor * (dist - inscribed_radius))
        band = (dist > inscribed_radius) & (dist <= inflation_radius)
        inflated[band] = decay[band]
        inflated[dist <= inscribed_radius] = INSCRIBED_INFLATED_OBSTACLE
        inflated[lethal] = LETHAL_OBSTACLE

        unknown = self.grid == NO_INFORMATION
        merged = np.maximum(self.grid, inflated.astype(np.uint8))
        merged[unknown] = NO_INFORMATION
        self.grid = merged

    def point_cost(self, x: float, y: float) -> float:
        """单点代价

        Returns:
            栅格代价；致命障碍物返回LETHAL_COST，未知或越界返回UNKNOWN_COST
        """
        gx, gy = self.world_to_grid(x, y)
        if not self.is_valid_grid(gx, gy):
            return UNKNOWN_COST
        return self._cell_query(self.get_cost(gx, gy))

    def footprint_cost(self,
                       x: float,
                       y: float,
                       theta: float,
                       footprint: Sequence[Tuple[float, float]]) -> float:
        """机器人footprint放在(x, y, theta)时的代价

        沿多边形每条边做Bresenham光栅化，同时检查中心栅格，取最大代价。

        Args:
            x, y, theta: 机器人位姿
            footprint: 机器人坐标系下的多边形顶点 [(x1, y1), ...]

        Returns:
            最大栅格代价；碰到致命障碍物返回LETHAL_COST，碰到未知区域返回UNKNOWN_COST
        """
        center_cost = self.point_cost(x, y)
        if center_cost == LETHAL_COST:
            return LETHAL_COST

        if len(footprint) < 3:
            return center_cost

        cos_th, sin_th = np.cos(theta), np.sin(theta)
        vertices = []
        for fx, fy in footprint:
            wx = x + fx * cos_th - fy * sin_th
            wy = y + fx * sin_th + fy * cos_th
            gx, gy = self.world_to_grid(wx, wy)
            if not self.is_valid_grid(gx, gy):
                return UNKNOWN_COST
            vertices.append((gx, gy))

        unknown = center_cost == UNKNOWN_COST
        max_cost = max(center_cost, 0.0)
        for i in range(len(vertices)):
            x0, y0 = vertices[i]
            x1, y1 = vertices[(i + 1) % len(vertices)]
            for cx, cy in ray_trace(x0, y0, x1, y1):
                cost = self._cell_query(self.get_cost(cx, cy))
                if cost == LETHAL_COST:
                    return LETHAL_COST
                if cost == UNKNOWN_COST:
                    unknown = True
                    continue
                max_cost = max(max_cost, cost)

        return UNKNOWN_COST if unknown else max_cost

    @staticmethod
    def _cell_query(cost: int) -> float:
        if cost == LETHAL_OBSTACLE:
            return LETHAL_COST
        if cost == NO_INFORMATION:
            return UNKNOWN_COST
        return float(cost)

    def get_statistics(self) -> dict:
        """获取地图统计信息"""
        total_cells = self.config.width * self.config.height
        lethal_cells = int(np.sum(self.grid == LETHAL_OBSTACLE))
        unknown_cells = int(np.sum(self.grid == NO_INFORMATION))
        free_cells = int(np.sum(self.grid == FREE_SPACE))

        return {
            'total_cells': total_cells,
            'lethal_cells': lethal_cells,
            'unknown_cells': unknown_cells,
            'free_cells': free_cells,
            'inflated_cells': total_cells - lethal_cells - unknown_cells - free_cells,
        }

    def save_map(self, filename: str):
        """保存代价矩阵（.npy）"""
        from pathlib import Path

        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        np.save(path.with_suffix('.npy'), self.grid)
        logger.info(f"[代价地图] 已保存: {path.with_suffix('.npy')}")

    def load_map(self, filename: str, config: Optional[CostGridConfig] = None):
        """从.npy文件加载代价矩阵"""
        grid = np.load(filename).astype(np.uint8)
        target = config if config is not None else self.config
        if grid.shape != (target.height, target.width):
            raise ValueError(f"地图尺寸不匹配: {grid.shape} != "
                             f"{(target.height, target.width)}")
        self.config = target
        self.grid = grid
        logger.info(f"[代价地图] 已加载: {filename}")
