"""
代价值定义
栅格代价常量与障碍物查询的返回哨兵值
"""

# 栅格代价（与costmap_2d约定一致）
FREE_SPACE = 0
INSCRIBED_INFLATED_OBSTACLE = 253
LETHAL_OBSTACLE = 254
NO_INFORMATION = 255

# footprint_cost / point_cost 的哨兵返回值（负数表示不可用）
LETHAL_COST = -1.0
UNKNOWN_COST = -2.0


class ObstacleQueryError(RuntimeError):
    """障碍物查询失败（地图暂时无法回答）"""
