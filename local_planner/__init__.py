"""
DWA局部规划器
在障碍物代价地图上跟踪全局路径，按控制周期输出速度指令
"""

__version__ = '1.0.0'
