"""
日志系统模块
统一的日志配置，以及规划周期耗时统计
"""

import time
import logging
import functools
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler


LOG_FORMAT = '[%(asctime)s] %(name)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


def setup_logger(
    name: str,
    log_file: str = None,
    level: int = logging.INFO,
    console: bool = True,
    max_bytes: int = 10*1024*1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """配置日志记录器

    Args:
        name: 日志记录器名称（如 'local_planner'，子模块logger会继承其handler）
        log_file: 日志文件路径（None则只输出到控制台）
        level: 日志级别
        console: 是否输出到控制台
        max_bytes: 单个日志文件最大字节数
        backup_count: 保留的备份文件数量

    Returns:
        配置好的Logger对象

    Example:
        >>> planner_logger = setup_logger('local_planner', 'data/logs/planner.log')
        >>> planner_logger.info('规划器启动')
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # 避免重复添加handler
    if logger.handlers:
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    # 文件处理器（带轮转）
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


class PerformanceLogger:
    """性能日志记录器

    按操作名累计调用次数、总耗时、最小与最大耗时（不保存历史），
    每report_interval次调用输出一次平均值
    """

    def __init__(self, logger: logging.Logger, report_interval: int = 100):
        self.logger = logger
        self.report_interval = report_interval
        self.timings = {}

    def log_execution_time(self, func_name: str, duration: float):
        """记录一次执行时间

        Args:
            func_name: 操作名称
            duration: 执行时长（秒）
        """
        entry = self.timings.get(func_name)
        if entry is None:
            entry = {'count': 0, 'total': 0.0, 'min': duration, 'max': duration}
            self.timings[func_name] = entry

        entry['count'] += 1
        entry['total'] += duration
        entry['min'] = min(entry['min'], duration)
        entry['max'] = max(entry['max'], duration)

        count = entry['count']
        if self.report_interval > 0 and count % self.report_interval == 0:
            self.logger.info(
                f"[性能] {func_name}: 调用{count}次, "
                f"平均{entry['total'] / count * 1000:.2f}ms, "
                f"最大{entry['max'] * 1000:.2f}ms"
            )

    def _summary(self, name: str) -> dict:
        entry = self.timings[name]
        return {
            'count': entry['count'],
            'avg': entry['total'] / entry['count'],
            'min': entry['min'],
            'max': entry['max']
        }

    def get_statistics(self, func_name: str = None):
        """获取性能统计

        Args:
            func_name: 操作名（None=所有）

        Returns:
            统计信息字典；指定的操作没有记录时返回None
        """
        if func_name:
            if func_name in self.timings:
                return self._summary(func_name)
            return None
        return {name: self._summary(name) for name in self.timings}

    def reset(self):
        self.timings.clear()


def log_performance(logger: logging.Logger):
    """装饰器：以DEBUG级别记录函数执行时间

    Example:
        >>> @log_performance(logging.getLogger(__name__))
        ... def inflate_costmap(grid):
        ...     ...
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            result = func(*args, **kwargs)
            duration = time.perf_counter() - start

            logger.debug(f"{func.__name__} 执行时间: {duration*1000:.2f}ms")
            return result
        return wrapper
    return decorator
