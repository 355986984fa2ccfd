"""
代价地图测试
"""

import math
import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from local_planner.costmap import (
    CostGrid, CostGridConfig, MapGrid, ray_trace,
    FREE_SPACE, INSCRIBED_INFLATED_OBSTACLE, LETHAL_OBSTACLE, NO_INFORMATION,
    LETHAL_COST, UNKNOWN_COST
)
from local_planner.navigation import Pose2D


SQUARE = [(0.12, 0.12), (0.12, -0.12), (-0.12, -0.12), (-0.12, 0.12)]


@pytest.fixture
def grid():
    """5m x 5m，0.05m/格，原点在中心"""
    return CostGrid(CostGridConfig(width=100, height=100, resolution=0.05,
                                   origin_x=50, origin_y=50))


# ============================================================================
# CostGrid Tests
# ============================================================================

def test_cost_grid_init(grid):
    """测试初始化"""
    assert grid.grid.shape == (100, 100)
    assert grid.size == (100, 100)
    assert grid.resolution == 0.05
    assert np.all(grid.grid == FREE_SPACE)


def test_cost_grid_invalid_config():
    """测试非法配置"""
    with pytest.raises(ValueError):
        CostGrid(CostGridConfig(width=0, height=10))
    with pytest.raises(ValueError):
        CostGrid(CostGridConfig(resolution=0.0))


def test_coordinate_conversion(grid):
    """测试坐标转换"""
    assert grid.world_to_grid(0.0, 0.0) == (50, 50)
    assert grid.world_to_grid(0.11, -0.01) == (52, 49)

    x, y = grid.grid_to_world(50, 50)
    assert np.isclose(x, 0.025) and np.isclose(y, 0.025)
    assert grid.world_to_grid(x, y) == (50, 50)

    assert grid.is_valid_grid(0, 0)
    assert not grid.is_valid_grid(100, 0)
    assert not grid.is_valid_grid(0, -1)


def test_point_cost(grid):
    """测试单点代价"""
    grid.add_obstacle(1.0, 1.0)
    grid.add_obstacle(-1.0, -1.0, cost=NO_INFORMATION)
    grid.add_obstacle(0.5, 0.5, cost=100)

    assert grid.point_cost(0.0, 0.0) == 0.0
    assert grid.point_cost(1.0, 1.0) == LETHAL_COST
    assert grid.point_cost(-1.0, -1.0) == UNKNOWN_COST
    assert grid.point_cost(0.5, 0.5) == 100.0
    # 地图外按未知处理
    assert grid.point_cost(10.0, 0.0) == UNKNOWN_COST


def test_footprint_cost_free(grid):
    """测试空闲区域的footprint代价"""
    assert grid.footprint_cost(0.0, 0.0, 0.0, SQUARE) == 0.0


def test_footprint_cost_lethal_on_edge(grid):
    """测试footprint边上的致命障碍物"""
    grid.add_obstacle(0.11, 0.01)
    assert grid.footprint_cost(0.0, 0.0, 0.0, SQUARE) == LETHAL_COST
    # 平移开后不再碰撞
    assert grid.footprint_cost(-0.5, 0.0, 0.0, SQUARE) == 0.0


def test_footprint_cost_takes_max(grid):
    """测试取footprint覆盖栅格的最大代价"""
    grid.add_obstacle(0.11, 0.01, cost=80)
    grid.add_obstacle(-0.11, 0.01, cost=120)
    assert grid.footprint_cost(0.0, 0.0, 0.0, SQUARE) == 120.0


def test_footprint_cost_unknown(grid):
    """测试未知区域与越界"""
    grid.add_obstacle(0.11, 0.01, cost=NO_INFORMATION)
    assert grid.footprint_cost(0.0, 0.0, 0.0, SQUARE) == UNKNOWN_COST

    # footprint部分在地图外
    assert grid.footprint_cost(2.45, 0.0, 0.0, SQUARE) == UNKNOWN_COST


def test_footprint_cost_lethal_beats_unknown(grid):
    """测试同时碰到未知和致命障碍物时返回致命"""
    grid.add_obstacle(0.11, 0.01, cost=NO_INFORMATION)
    grid.add_obstacle(-0.11, 0.01)
    assert grid.footprint_cost(0.0, 0.0, 0.0, SQUARE) == LETHAL_COST


def test_footprint_cost_degenerate_footprint(grid):
    """测试少于3个顶点时退化为中心点代价"""
    grid.add_obstacle(0.0, 0.0, cost=42)
    assert grid.footprint_cost(0.0, 0.0, 0.0, []) == 42.0
    assert grid.footprint_cost(0.0, 0.0, 0.0, [(0.1, 0.0), (0.0, 0.1)]) == 42.0


def test_footprint_cost_rotation(grid):
    """测试旋转后的footprint"""
    long_footprint = [(0.3, 0.05), (0.3, -0.05), (-0.05, -0.05), (-0.05, 0.05)]
    grid.add_obstacle(0.06, 0.21)

    # 朝x方向时不碰到(0.06, 0.21)，朝y方向时该点落在footprint侧边上
    assert grid.footprint_cost(0.0, 0.0, 0.0, long_footprint) == 0.0
    assert grid.footprint_cost(0.0, 0.0, math.pi / 2, long_footprint) == LETHAL_COST


def test_inflate(grid):
    """测试代价膨胀"""
    grid.add_obstacle(0.5, 0.0)
    grid.add_obstacle(-1.0, 0.0, cost=NO_INFORMATION)
    grid.inflate(inscribed_radius=0.12, inflation_radius=0.35, cost_scaling_factor=10.0)

    gx, gy = grid.world_to_grid(0.5, 0.0)
    assert grid.get_cost(gx, gy) == LETHAL_OBSTACLE
    assert grid.get_cost(gx + 1, gy) == INSCRIBED_INFLATED_OBSTACLE

    # 膨胀带内代价随距离衰减
    near = grid.get_cost(gx + 4, gy)
    farther = grid.get_cost(gx + 6, gy)
    assert 0 < farther < near < INSCRIBED_INFLATED_OBSTACLE

    # 膨胀半径外不受影响
    assert grid.get_cost(gx + 10, gy) == FREE_SPACE

    # 未知栅格保持未知
    assert grid.point_cost(-1.0, 0.0) == UNKNOWN_COST


def test_inflate_no_obstacles(grid):
    """测试没有障碍物时膨胀不改变地图"""
    grid.inflate(0.12, 0.35)
    assert np.all(grid.grid == FREE_SPACE)


def test_statistics(grid):
    """测试统计信息"""
    grid.add_obstacle_rect(0.0, 0.0, 0.2, 0.2)
    stats = grid.get_statistics()
    assert stats['total_cells'] == 100 * 100
    assert stats['lethal_cells'] == 25
    assert stats['unknown_cells'] == 0


def test_save_and_load(grid, tmp_path):
    """测试地图保存与加载"""
    grid.add_obstacle(1.0, 1.0)
    path = tmp_path / 'costmap.npy'
    grid.save_map(str(path))

    loaded = CostGrid(grid.config)
    loaded.load_map(str(path))
    assert np.array_equal(loaded.grid, grid.grid)

    # 尺寸不匹配时拒绝加载，原地图保持不变
    small = CostGrid(CostGridConfig(width=10, height=10))
    with pytest.raises(ValueError):
        small.load_map(str(path))
    assert small.grid.shape == (10, 10)


# ============================================================================
# ray_trace Tests
# ============================================================================

def test_ray_trace_endpoints():
    """测试光栅化包含两个端点且连续"""
    cells = ray_trace(0, 0, 5, 3)
    assert cells[0] == (0, 0)
    assert cells[-1] == (5, 3)
    for (x0, y0), (x1, y1) in zip(cells, cells[1:]):
        assert max(abs(x1 - x0), abs(y1 - y0)) == 1


def test_ray_trace_single_cell():
    assert ray_trace(3, 3, 3, 3) == [(3, 3)]


# ============================================================================
# MapGrid Tests
# ============================================================================

def test_map_grid_path_distance(grid):
    """测试到整条路径的波前距离"""
    map_grid = MapGrid(grid)
    plan = [Pose2D(0.0, 0.0), Pose2D(1.0, 0.0)]
    assert map_grid.set_target_cells(plan)

    assert map_grid.distance_at(0.5, 0.0) == 0.0
    assert np.isclose(map_grid.distance_at(0.0, 0.5), 0.5)


def test_map_grid_local_goal(grid):
    """测试到局部目标的波前距离"""
    map_grid = MapGrid(grid)
    plan = [Pose2D(0.0, 0.0), Pose2D(1.0, 0.0)]
    assert map_grid.set_local_goal(plan)

    assert map_grid.distance_at(1.0, 0.0) == 0.0
    assert np.isclose(map_grid.distance_at(0.0, 0.0), 1.0)


def test_map_grid_blocked(grid):
    """测试障碍物阻断波前传播"""
    grid.add_obstacle_rect(0.5, -2.5, 0.55, 2.5)
    map_grid = MapGrid(grid)
    assert map_grid.set_local_goal([Pose2D(0.0, 0.0), Pose2D(1.0, 0.0)])

    assert math.isinf(map_grid.distance_at(0.0, 0.0))
    assert np.isclose(map_grid.distance_at(1.52, 0.0), 0.5)


def test_map_grid_detour(grid):
    """测试波前绕过障碍物"""
    grid.add_obstacle_rect(0.5, -1.0, 0.55, 1.0)
    map_grid = MapGrid(grid)
    map_grid.set_local_goal([Pose2D(1.0, 0.0)])

    # 直线距离1米，绕行后更远
    assert map_grid.distance_at(0.0, 0.0) > 1.0
    assert not math.isinf(map_grid.distance_at(0.0, 0.0))


def test_map_grid_unknown_policy(grid):
    """测试未知区域是否阻断传播"""
    grid.add_obstacle_rect(0.5, -2.5, 0.55, 2.5, cost=NO_INFORMATION)
    plan = [Pose2D(1.0, 0.0)]

    blocking = MapGrid(grid, unknown_is_obstacle=True)
    blocking.set_local_goal(plan)
    assert math.isinf(blocking.distance_at(0.0, 0.0))

    passable = MapGrid(grid, unknown_is_obstacle=False)
    passable.set_local_goal(plan)
    assert np.isclose(passable.distance_at(0.0, 0.0), 1.0)


def test_map_grid_off_grid(grid):
    """测试地图外查询与地图外目标"""
    map_grid = MapGrid(grid)
    assert map_grid.distance_at(0.0, 0.0) is None

    assert not map_grid.set_local_goal([Pose2D(10.0, 10.0)])
    assert map_grid.set_target_cells([Pose2D(0.0, 0.0)])
    assert map_grid.distance_at(10.0, 0.0) is None
