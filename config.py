# config.py - 局部规划器统一配置文件
# 修改此文件后，重启程序即可生效
# DWA_<参数名大写> 形式的常量会被 load_planner_config() 读入 DWAPlannerConfig

import numpy as np

# ============================================================================
# 机器人外形
# ============================================================================
# 机器人坐标系下的footprint多边形（米），x朝前
ROBOT_FOOTPRINT = [
    (0.15, 0.12),
    (0.15, -0.12),
    (-0.15, -0.12),
    (-0.15, 0.12),
]
ROBOT_INSCRIBED_RADIUS = 0.12      # 内切圆半径（米）

# ============================================================================
# 代价地图配置
# ============================================================================
COSTMAP_WIDTH = 200                # 栅格数量（X方向）
COSTMAP_HEIGHT = 200               # 栅格数量（Y方向）
COSTMAP_RESOLUTION = 0.05          # 米/栅格
COSTMAP_ORIGIN_X = COSTMAP_WIDTH // 2   # 世界原点所在栅格X
COSTMAP_ORIGIN_Y = COSTMAP_HEIGHT // 2  # 世界原点所在栅格Y

# 代价膨胀
COSTMAP_INFLATION_RADIUS = 0.35    # 膨胀半径（米）
COSTMAP_COST_SCALING = 10.0        # 指数衰减系数（越大衰减越快）

# ============================================================================
# DWA速度与加速度限制
# ============================================================================
DWA_MAX_TRANS_VEL = 0.55           # 合成平移速度上限（m/s）
DWA_MIN_TRANS_VEL = 0.1            # 合成平移速度下限（m/s）
DWA_MAX_VEL_X = 0.55
DWA_MIN_VEL_X = 0.0                # 0表示不允许倒车
DWA_MAX_VEL_Y = 0.0                # 差速底盘横向速度为0
DWA_MIN_VEL_Y = 0.0
DWA_MAX_ROT_VEL = 1.0              # 旋转速度上限（rad/s）
DWA_MIN_ROT_VEL = 0.4              # 原地旋转最小速度（rad/s）

DWA_ACC_LIM_X = 2.5                # m/s²
DWA_ACC_LIM_Y = 2.5                # m/s²
DWA_ACC_LIM_THETA = 3.2            # rad/s²
DWA_ACC_LIMIT_TRANS = 3.0          # 合成平移加速度上限，0表示不限制

# 到达判定
DWA_XY_GOAL_TOLERANCE = 0.1        # 米
DWA_YAW_GOAL_TOLERANCE = 0.1       # rad
DWA_TRANS_STOPPED_VEL = 0.1        # m/s
DWA_ROT_STOPPED_VEL = 0.1          # rad/s
DWA_LATCH_XY_GOAL_TOLERANCE = False  # 到达位置后不再平移，只原地对准朝向

# ============================================================================
# DWA轨迹仿真
# ============================================================================
DWA_SIM_TIME = 1.7                 # 前向仿真时长（秒）
DWA_SIM_PERIOD = 0.1               # 控制周期（秒），决定动态窗口大小
DWA_SIM_GRANULARITY = 0.05         # 平移仿真步长（米）
DWA_ANGULAR_SIM_GRANULARITY = 0.1  # 旋转仿真步长（rad）
DWA_USE_DWA = True                 # False时在全部速度范围内采样

# 采样数量（越多越精细，计算量按乘积增长）
DWA_VX_SAMPLES = 6
DWA_VY_SAMPLES = 1
DWA_VTH_SAMPLES = 11

# ============================================================================
# DWA状态切换
# ============================================================================
DWA_SWITCH_YAW_ERROR = 0.5         # 航向误差超过此值进入Align（rad）
DWA_SWITCH_GOAL_DISTANCE = 0.5     # 距终点小于此值进入Arrive（米）
DWA_SWITCH_PLAN_DISTANCE = 1.0     # 偏离路径超过此值输出警告（米）

# ============================================================================
# DWA代价权重（按状态）
# ============================================================================
# Align: 只关心转向，不关心前进
DWA_ALIGN_ALIGN_SCALE = 2.0
DWA_ALIGN_PLAN_SCALE = 0.0
DWA_ALIGN_GOAL_SCALE = 0.0
DWA_ALIGN_CMD_SCALE = 1.0
DWA_ALIGN_OCC_SCALE = 0.01

# Default: 跟踪路径并朝前视目标前进
DWA_DEFAULT_ALIGN_SCALE = 0.5
DWA_DEFAULT_PLAN_SCALE = 1.0
DWA_DEFAULT_GOAL_SCALE = 1.5
DWA_DEFAULT_CMD_SCALE = 1.0
DWA_DEFAULT_OCC_SCALE = 0.01

# Arrive: 靠近终点并对齐终点朝向
DWA_ARRIVE_ALIGN_SCALE = 1.0
DWA_ARRIVE_PLAN_SCALE = 0.5
DWA_ARRIVE_GOAL_SCALE = 2.0
DWA_ARRIVE_CMD_SCALE = 1.0
DWA_ARRIVE_OCC_SCALE = 0.01

# 速度指令惩罚系数：p*=正方向, n*=负方向
DWA_DEFAULT_CMD_NX = 1.0           # 惩罚倒车
DWA_DEFAULT_CMD_PTH = 0.05
DWA_DEFAULT_CMD_NTH = 0.05

# ============================================================================
# DWA障碍物与路径处理
# ============================================================================
DWA_ALLOW_UNKNOWN = False          # 是否允许轨迹进入未知区域
DWA_OBSTACLE_SUM_SCORES = False    # True=累加代价，False=取最大值
DWA_MAX_SCALING_FACTOR = 0.2       # 高速时footprint最大放大比例
DWA_SCALING_SPEED = 0.25           # 超过此速度开始放大footprint（m/s）

DWA_PRUNE_PLAN = True              # 删除已经过的路径点
DWA_PRUNE_SEARCH_DISTANCE = 1.0    # 寻找最近路径点的范围（米）
DWA_LOCAL_PLAN_LENGTH = 3.0        # 局部路径长度（米）
DWA_MAX_PLAN_GAP = 0.5             # 相邻路径点最大间距（米）

# ============================================================================
# 仿真运行配置（main.py）
# ============================================================================
SIM_MAX_CYCLES = 400               # 最大控制周期数
SIM_SCENARIO = 'corridor'          # open | corridor | blocked | turn

# ============================================================================
# 日志配置
# ============================================================================
LOG_DIR = 'data/logs'
LOG_LEVEL = 'INFO'                 # DEBUG | INFO | WARNING | ERROR
ENABLE_FILE_LOG = True
ENABLE_CONSOLE_LOG = True
PERF_REPORT_INTERVAL = 100         # 每N个周期输出一次耗时统计

# ============================================================================
# 数据记录配置
# ============================================================================
ENABLE_DATA_RECORDING = False
RECORDING_DIR = 'data/recordings'
RECORDING_FORMAT = 'json'          # json | pickle
RECORD_EXPLORED = True             # 记录全部候选轨迹的代价

# ============================================================================
# 调试配置
# ============================================================================
DEBUG_SAVE_PLOTS = False           # 保存调试图像
DEBUG_PLOT_DIR = 'data/test_outputs'

# ============================================================================
# 辅助函数
# ============================================================================

def get_config_summary():
    """获取配置摘要（用于调试）"""
    return f"""
╔════════════════════════════════════════════════════════════════╗
║                    局部规划器配置摘要                          ║
╠════════════════════════════════════════════════════════════════╣
║ 地图: {COSTMAP_WIDTH}x{COSTMAP_HEIGHT} @ {COSTMAP_RESOLUTION}m/格, 膨胀={COSTMAP_INFLATION_RADIUS}m
║ 速度: vx∈[{DWA_MIN_VEL_X}, {DWA_MAX_VEL_X}]m/s, vth≤{DWA_MAX_ROT_VEL}rad/s ({np.rad2deg(DWA_MAX_ROT_VEL):.0f}°/s)
║ 仿真: {DWA_SIM_TIME}s, 采样={DWA_VX_SAMPLES}x{DWA_VY_SAMPLES}x{DWA_VTH_SAMPLES}
║ 切换: yaw>{DWA_SWITCH_YAW_ERROR}rad -> Align, 距终点<{DWA_SWITCH_GOAL_DISTANCE}m -> Arrive
║ 日志: {LOG_LEVEL} -> {LOG_DIR}
╚════════════════════════════════════════════════════════════════╝
    """


def validate_config():
    """验证配置参数的合理性

    Returns:
        (ok, errors, warnings)
    """
    errors = []
    warnings = []

    if COSTMAP_RESOLUTION <= 0:
        errors.append("COSTMAP_RESOLUTION 必须大于0")
    if len(ROBOT_FOOTPRINT) < 3:
        errors.append("ROBOT_FOOTPRINT 至少需要3个顶点")
    if DWA_SIM_TIME <= 0 or DWA_SIM_PERIOD <= 0:
        errors.append("DWA_SIM_TIME / DWA_SIM_PERIOD 必须大于0")
    if min(DWA_VX_SAMPLES, DWA_VY_SAMPLES, DWA_VTH_SAMPLES) < 1:
        errors.append("DWA采样数量必须 >= 1")
    if DWA_MIN_VEL_X > DWA_MAX_VEL_X:
        errors.append("DWA_MIN_VEL_X 大于 DWA_MAX_VEL_X")

    if DWA_MAX_TRANS_VEL > 2.0:
        warnings.append(f"DWA_MAX_TRANS_VEL={DWA_MAX_TRANS_VEL}m/s 可能过快，建议<2.0")
    if DWA_VX_SAMPLES * DWA_VY_SAMPLES * DWA_VTH_SAMPLES > 500:
        warnings.append("采样总数超过500，单周期耗时可能超过控制周期")
    if DWA_MAX_TRANS_VEL * DWA_SIM_TIME > DWA_LOCAL_PLAN_LENGTH:
        warnings.append("前视距离大于局部路径长度，目标代价将使用延长后的路径")

    return len(errors) == 0, errors, warnings

# ============================================================================
# 自动执行（导入时）
# ============================================================================

if __name__ == '__main__':
    # 如果直接运行此文件，显示配置摘要
    print(get_config_summary())
    ok, errors, warnings = validate_config()
    for err in errors:
        print(f"❌ {err}")
    for warn in warnings:
        print(f"⚠️  {warn}")
    if ok and not warnings:
        print("✅ 配置验证通过")
