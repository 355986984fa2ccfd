"""
工具模块
日志配置与规划过程记录
"""
