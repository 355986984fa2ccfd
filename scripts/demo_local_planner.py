"""
DWA局部规划器演示脚本
展示单周期的候选轨迹评分，以及各场景下的闭环仿真轨迹
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import matplotlib
matplotlib.use('Agg')  # 非交互式后端
import matplotlib.pyplot as plt

from local_planner.navigation import DWAPlannerConfig, LocalPlannerController, Velocity2D
from local_planner.simulation import SCENARIOS, build_scenario, run_closed_loop


OUTPUT_DIR = 'data/test_outputs'


def draw_costmap(ax, scenario):
    """以世界坐标绘制代价地图"""
    grid = scenario.costmap
    cfg = grid.config
    extent = [
        -cfg.origin_x * cfg.resolution, (cfg.width - cfg.origin_x) * cfg.resolution,
        -cfg.origin_y * cfg.resolution, (cfg.height - cfg.origin_y) * cfg.resolution,
    ]
    ax.imshow(grid.grid, cmap='gray_r', origin='lower', extent=extent, vmin=0, vmax=255)

    px = [p.x for p in scenario.plan]
    py = [p.y for p in scenario.plan]
    ax.plot(px, py, 'g--', linewidth=2, label='Global Plan')


def demo_explored_trajectories():
    """演示1: 单个规划周期的候选轨迹"""
    print("\n=== 演示1: 候选轨迹评分 ===")

    scenario = build_scenario('corridor')
    config = DWAPlannerConfig(vx_samples=8, vth_samples=15)
    controller = LocalPlannerController(scenario.costmap, config, keep_explored=True)
    controller.set_plan(scenario.plan)

    result = controller.compute_velocity_commands(
        scenario.start, Velocity2D(0.3, 0.0, 0.0), scenario.footprint)

    valid = [t for t in result.explored if t.cost >= 0]
    rejected = [t for t in result.explored if t.cost < 0]
    print(f"[结果] 状态={result.state.label}, 候选{len(result.explored)}条, "
          f"拒绝{len(rejected)}条, 指令={result.velocity.as_tuple()}")

    fig, ax = plt.subplots(figsize=(10, 6))
    draw_costmap(ax, scenario)

    if valid:
        costs = np.array([t.cost for t in valid])
        norm = plt.Normalize(costs.min(), costs.max())
        cmap = plt.get_cmap('viridis')
        for traj in valid:
            xs = [p.x for p in traj.poses]
            ys = [p.y for p in traj.poses]
            ax.plot(xs, ys, color=cmap(norm(traj.cost)), linewidth=1, alpha=0.8)
    for traj in rejected:
        xs = [p.x for p in traj.poses]
        ys = [p.y for p in traj.poses]
        ax.plot(xs, ys, 'r:', linewidth=0.8, alpha=0.5)

    if result.trajectory is not None:
        xs = [p.x for p in result.trajectory.poses]
        ys = [p.y for p in result.trajectory.poses]
        ax.plot(xs, ys, 'b-', linewidth=3, label='Selected')

    ax.set_xlim(-0.5, 3.5)
    ax.set_ylim(-1.0, 1.0)
    ax.set_title('DWA Explored Trajectories (red = rejected)', fontsize=14, fontweight='bold')
    ax.set_xlabel('X (m)')
    ax.set_ylabel('Y (m)')
    ax.legend(loc='upper right')
    ax.grid(True, alpha=0.3)

    os.makedirs(OUTPUT_DIR, exist_ok=True)
    plt.savefig(f'{OUTPUT_DIR}/demo_explored_trajectories.png', dpi=150, bbox_inches='tight')
    print(f"[保存] {OUTPUT_DIR}/demo_explored_trajectories.png")
    plt.close()


def demo_closed_loop(name):
    """闭环仿真并绘制实际轨迹"""
    print(f"\n=== 闭环仿真: {name} ===")

    scenario = build_scenario(name)
    controller = LocalPlannerController(scenario.costmap, DWAPlannerConfig())
    sim = run_closed_loop(controller, scenario, max_cycles=300)

    final = sim.final_pose
    print(f"[结果] {'到达' if sim.reached else '未到达'}, {sim.cycles}个周期, "
          f"终点({final.x:.2f}, {final.y:.2f}, {final.theta:.2f})")

    fig, ax = plt.subplots(figsize=(10, 6))
    draw_costmap(ax, scenario)

    xs = [p.x for p in sim.poses]
    ys = [p.y for p in sim.poses]
    ax.plot(xs, ys, 'b-', linewidth=3, label='Robot Path')

    # 每10个周期画一次朝向
    for pose in sim.poses[::10]:
        ax.arrow(pose.x, pose.y, 0.1 * np.cos(pose.theta), 0.1 * np.sin(pose.theta),
                 head_width=0.03, color='orange')

    goal = scenario.plan[-1]
    ax.scatter([scenario.start.x], [scenario.start.y], c='cyan', s=200, marker='o',
               edgecolors='black', linewidths=2, label='Start', zorder=10)
    ax.scatter([goal.x], [goal.y], c='red', s=300, marker='*',
               edgecolors='black', linewidths=2, label='Goal', zorder=10)

    ax.set_xlim(-1.0, 3.5)
    ax.set_ylim(-1.5, 1.5)
    ax.set_title(f'Closed Loop: {name}', fontsize=14, fontweight='bold')
    ax.set_xlabel('X (m)')
    ax.set_ylabel('Y (m)')
    ax.legend(loc='upper right')
    ax.grid(True, alpha=0.3)

    os.makedirs(OUTPUT_DIR, exist_ok=True)
    plt.savefig(f'{OUTPUT_DIR}/demo_closed_loop_{name}.png', dpi=150, bbox_inches='tight')
    print(f"[保存] {OUTPUT_DIR}/demo_closed_loop_{name}.png")
    plt.close()


def main():
    """主函数"""
    print("=" * 60)
    print("   DWA局部规划器演示")
    print("=" * 60)

    demos = [("候选轨迹评分", demo_explored_trajectories)]
    demos += [(f"闭环仿真 {name}", lambda n=name: demo_closed_loop(n)) for name in SCENARIOS]

    for name, demo_func in demos:
        demo_func()
        print(f"[成功] {name} 演示完成\n")

    print("=" * 60)
    print(f"所有演示完成！图片保存在 {OUTPUT_DIR}/")
    print("=" * 60)


if __name__ == '__main__':
    main()
