"""
规划过程记录与回放模块
逐周期记录规划结果（状态、选中轨迹、候选轨迹代价），用于离线分析和调参
"""

import csv
import json
import time
import pickle
import logging
from pathlib import Path
from datetime import datetime
from typing import Dict, Iterator, Optional


logger = logging.getLogger(__name__)


class PlanningRecorder:
    """规划记录器

    功能：
    - 记录每个控制周期的位姿、速度指令、规划状态和轨迹
    - 保存为JSON或pickle格式
    - 支持回放和导出CSV

    Example:
        >>> recorder = PlanningRecorder()
        >>> recorder.start_recording('corridor', format='json')
        >>> controller = LocalPlannerController(grid, recorder=recorder)
        >>> ...
        >>> recorder.stop_recording()
        >>>
        >>> recorder.load_recording(recorder.current_file)
        >>> for frame in recorder.replay(speed=0):
        ...     print(frame['data']['status'])
    """

    VERSION = '1.0'

    def __init__(self, data_dir: str = 'data/recordings', keep_explored: bool = True):
        """初始化记录器

        Args:
            data_dir: 数据保存目录
            keep_explored: 是否保存每条候选轨迹的速度与代价
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.keep_explored = keep_explored

        self.recording = False
        self.current_file: Optional[Path] = None
        self.format = 'pickle'
        self.start_time = 0.0

        self.frames = []
        self.stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict:
        return {
            'cycles': 0,
            'ok': 0,
            'no_valid_trajectory': 0,
            'invalid_plan': 0,
            'state_changes': 0,
            'duration': 0.0,
        }

    def start_recording(self, filename: str, format: str = 'pickle') -> bool:
        """开始记录

        Args:
            filename: 文件名（自动追加时间戳和扩展名）
            format: 'pickle' 或 'json'
        """
        if self.recording:
            logger.warning("[记录器] 已在记录中，请先停止")
            return False
        if format not in ('pickle', 'json'):
            raise ValueError(f"不支持的记录格式: {format}")

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        base_name = Path(filename).stem
        ext = '.pkl' if format == 'pickle' else '.json'

        self.current_file = self.data_dir / f"{base_name}_{timestamp}{ext}"
        self.format = format
        self.recording = True
        self.start_time = time.time()
        self.frames = []
        self.stats = self._empty_stats()

        logger.info(f"[记录器] 开始记录: {self.current_file}")
        return True

    def record_cycle(self, result, robot_pose):
        """记录一个规划周期

        Args:
            result: CommandResult对象
            robot_pose: 本周期的机器人位姿
        """
        if not self.recording:
            return

        state = result.state.label if result.state is not None else None
        if self.frames and self.frames[-1]['data']['state'] != state:
            self.stats['state_changes'] += 1

        data = {
            'pose': list(robot_pose.as_tuple()),
            'velocity': list(result.velocity.as_tuple()),
            'status': result.status.name,
            'state': state,
            'cost': result.trajectory.cost if result.trajectory is not None else None,
            'trajectory': ([list(p.as_tuple()) for p in result.trajectory.poses]
                           if result.trajectory is not None else []),
            'explored_count': len(result.explored),
        }
        if self.keep_explored:
            data['explored'] = [[t.xv, t.yv, t.thetav, t.cost] for t in result.explored]

        self.frames.append({
            'type': 'cycle',
            'timestamp': time.time() - self.start_time,
            'data': data,
        })

        self.stats['cycles'] += 1
        key = result.status.name.lower()
        if key in self.stats:
            self.stats[key] += 1

    def stop_recording(self) -> bool:
        """停止记录并保存"""
        if not self.recording:
            logger.warning("[记录器] 未在记录中")
            return False

        self.recording = False
        self.stats['duration'] = time.time() - self.start_time

        data_to_save = {
            'version': self.VERSION,
            'start_time': self.start_time,
            'duration': self.stats['duration'],
            'stats': self.stats,
            'frames': self.frames
        }

        if self.format == 'pickle':
            with open(self.current_file, 'wb') as f:
                pickle.dump(data_to_save, f)
        else:
            with open(self.current_file, 'w', encoding='utf-8') as f:
                json.dump(data_to_save, f, indent=2, ensure_ascii=False)

        logger.info(f"[记录器] 记录完成: {self.current_file} "
                    f"(时长{self.stats['duration']:.1f}秒, {self.stats['cycles']}个周期, "
                    f"无可行轨迹{self.stats['no_valid_trajectory']}次)")
        return True

    def load_recording(self, filename) -> bool:
        """加载录制文件

        Args:
            filename: 文件路径（找不到时在data_dir中查找）
        """
        filepath = Path(filename)
        if not filepath.exists():
            filepath = self.data_dir / filename

        if not filepath.exists():
            logger.error(f"[记录器] 文件不存在: {filename}")
            return False

        try:
            if filepath.suffix == '.pkl':
                with open(filepath, 'rb') as f:
                    data = pickle.load(f)
            else:
                with open(filepath, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            frames = data['frames']
            stats = data['stats']
        except (OSError, ValueError, KeyError, pickle.UnpicklingError) as e:
            logger.error(f"[记录器] 加载失败: {filepath}: {e}")
            return False

        self.frames = frames
        self.stats = stats
        logger.info(f"[记录器] 加载成功: {filepath} ({len(self.frames)}帧)")
        return True

    def replay(self,
               speed: float = 1.0,
               start_time: float = 0,
               end_time: float = None) -> Iterator[Dict]:
        """回放数据

        Args:
            speed: 回放速度倍率（1.0=实时，<=0表示不等待）
            start_time: 开始时间（秒）
            end_time: 结束时间（秒，None=全部）

        Yields:
            数据帧
        """
        if not self.frames:
            logger.warning("[记录器] 没有数据可回放")
            return

        if end_time is None:
            end_time = float('inf')

        last_time = start_time

        for frame in self.frames:
            frame_time = frame['timestamp']

            if frame_time < start_time:
                continue
            if frame_time > end_time:
                break

            if speed > 0:
                delay = (frame_time - last_time) / speed
                if delay > 0:
                    time.sleep(delay)
            last_time = frame_time

            yield frame

    def get_statistics(self) -> Dict:
        return self.stats.copy()

    def export_csv(self, output_file: str) -> Path:
        """把每个周期的位姿、速度指令和状态导出为CSV

        Returns:
            输出文件路径
        """
        output_path = self.data_dir / output_file

        with open(output_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(['Time', 'X', 'Y', 'Theta', 'Vx', 'Vy', 'Vtheta',
                             'Status', 'State', 'Cost', 'Explored'])
            for frame in self.frames:
                if frame['type'] != 'cycle':
                    continue
                d = frame['data']
                writer.writerow([frame['timestamp'], *d['pose'], *d['velocity'],
                                 d['status'], d['state'], d['cost'], d['explored_count']])

        logger.info(f"[记录器] CSV导出完成: {output_path}")
        return output_path
