"""
代价地图模块
障碍物查询接口（CostGrid）与波前距离栅格（MapGrid）
"""

from .cost_values import (
    FREE_SPACE, INSCRIBED_INFLATED_OBSTACLE, LETHAL_OBSTACLE, NO_INFORMATION,
    LETHAL_COST, UNKNOWN_COST, ObstacleQueryError
)
from .cost_grid import CostGrid, CostGridConfig, ray_trace
from .map_grid import MapGrid

__all__ = [
    'CostGrid', 'CostGridConfig', 'MapGrid', 'ray_trace', 'ObstacleQueryError',
    'FREE_SPACE', 'INSCRIBED_INFLATED_OBSTACLE', 'LETHAL_OBSTACLE', 'NO_INFORMATION',
    'LETHAL_COST', 'UNKNOWN_COST',
]
