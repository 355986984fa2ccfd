"""
工具模块测试
日志配置、耗时统计与规划记录器
"""

import csv
import json
import logging
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from local_planner.navigation import (
    Pose2D, Velocity2D, Trajectory, PlannerState, PlanningStatus, CommandResult
)
from local_planner.utils.logger import PerformanceLogger, setup_logger, log_performance
from local_planner.utils.planning_recorder import PlanningRecorder


def make_result(status=PlanningStatus.OK, state=PlannerState.DEFAULT, cost=1.5):
    """构造一个规划周期的结果"""
    if status != PlanningStatus.OK:
        return CommandResult(Velocity2D.zero(), status, state=state)

    traj = Trajectory(xv=0.3, thetav=0.1, time_delta=0.1, cost=cost)
    traj.add_point(Pose2D(0.0, 0.0, 0.0))
    traj.add_point(Pose2D(0.03, 0.0, 0.01))
    rejected = Trajectory(xv=0.1, cost=-1.0)
    return CommandResult(traj.velocity, status, state=state,
                         trajectory=traj, explored=[traj, rejected])


# ============================================================================
# Logger Tests
# ============================================================================

class TestLogger:
    """日志配置测试"""

    def test_setup_logger_file(self, tmp_path):
        log_file = tmp_path / 'logs' / 'planner.log'
        logger = setup_logger('test_utils.file', str(log_file), console=False)

        logger.info('规划器启动')
        for handler in logger.handlers:
            handler.flush()

        assert log_file.exists()
        content = log_file.read_text(encoding='utf-8')
        assert '规划器启动' in content
        assert 'test_utils.file - INFO' in content

    def test_setup_logger_no_duplicate_handlers(self):
        first = setup_logger('test_utils.dup', console=True)
        count = len(first.handlers)
        second = setup_logger('test_utils.dup', console=True)
        assert first is second
        assert len(second.handlers) == count

    def test_log_performance_decorator(self, caplog):
        logger = logging.getLogger('test_utils.decorator')

        @log_performance(logger)
        def add(a, b):
            return a + b

        with caplog.at_level(logging.DEBUG, logger='test_utils.decorator'):
            assert add(1, 2) == 3
        assert any('add 执行时间' in r.message for r in caplog.records)
        assert add.__name__ == 'add'


class TestPerformanceLogger:
    """耗时统计测试"""

    def test_statistics(self):
        perf = PerformanceLogger(logging.getLogger('test_utils.perf'), report_interval=0)
        perf.log_execution_time('cycle', 0.01)
        perf.log_execution_time('cycle', 0.03)

        stats = perf.get_statistics('cycle')
        assert stats['count'] == 2
        assert stats['avg'] == pytest.approx(0.02)
        assert stats['min'] == 0.01
        assert stats['max'] == 0.03

        assert perf.get_statistics('missing') is None
        assert set(perf.get_statistics()) == {'cycle'}

        perf.reset()
        assert perf.get_statistics() == {}

    def test_storage_bounded(self):
        """长时间运行只保留累计量，不保存每次耗时"""
        perf = PerformanceLogger(logging.getLogger('test_utils.bounded'), report_interval=0)
        for i in range(10000):
            perf.log_execution_time('cycle', 0.001 * (i % 10 + 1))

        assert set(perf.timings) == {'cycle'}
        assert len(perf.timings['cycle']) == 4

        stats = perf.get_statistics('cycle')
        assert stats['count'] == 10000
        assert stats['avg'] == pytest.approx(0.0055)
        assert stats['min'] == pytest.approx(0.001)
        assert stats['max'] == pytest.approx(0.010)

    def test_periodic_report(self, caplog):
        perf = PerformanceLogger(logging.getLogger('test_utils.report'), report_interval=2)
        with caplog.at_level(logging.INFO, logger='test_utils.report'):
            perf.log_execution_time('cycle', 0.01)
            assert not caplog.records
            perf.log_execution_time('cycle', 0.01)
        assert any('调用2次' in r.message for r in caplog.records)


# ============================================================================
# PlanningRecorder Tests
# ============================================================================

class TestPlanningRecorder:
    """规划记录器测试"""

    @pytest.fixture
    def recorder(self, tmp_path):
        return PlanningRecorder(str(tmp_path))

    def record_session(self, recorder, fmt):
        assert recorder.start_recording('corridor', format=fmt)
        recorder.record_cycle(make_result(), Pose2D(0.0, 0.0, 0.0))
        recorder.record_cycle(make_result(state=PlannerState.ARRIVE), Pose2D(0.1, 0.0, 0.0))
        recorder.record_cycle(make_result(PlanningStatus.NO_VALID_TRAJECTORY,
                                          state=PlannerState.ARRIVE), Pose2D(0.1, 0.0, 0.0))
        assert recorder.stop_recording()

    def test_json_recording(self, recorder):
        self.record_session(recorder, 'json')

        assert recorder.current_file.suffix == '.json'
        assert recorder.current_file.name.startswith('corridor_')

        with open(recorder.current_file, encoding='utf-8') as f:
            data = json.load(f)
        assert data['version'] == PlanningRecorder.VERSION
        assert len(data['frames']) == 3

        first = data['frames'][0]['data']
        assert first['status'] == 'OK'
        assert first['state'] == 'Default'
        assert first['cost'] == 1.5
        assert first['explored_count'] == 2
        assert first['explored'][1] == [0.1, 0.0, 0.0, -1.0]
        assert len(first['trajectory']) == 2

        last = data['frames'][2]['data']
        assert last['status'] == 'NO_VALID_TRAJECTORY'
        assert last['cost'] is None
        assert last['trajectory'] == []

    def test_statistics(self, recorder):
        self.record_session(recorder, 'json')
        stats = recorder.get_statistics()
        assert stats['cycles'] == 3
        assert stats['ok'] == 2
        assert stats['no_valid_trajectory'] == 1
        assert stats['state_changes'] == 1

    def test_pickle_round_trip(self, recorder, tmp_path):
        self.record_session(recorder, 'pickle')
        saved = recorder.current_file
        assert saved.suffix == '.pkl'

        loader = PlanningRecorder(str(tmp_path))
        assert loader.load_recording(saved)
        assert len(loader.frames) == 3
        assert loader.get_statistics()['cycles'] == 3

        # 只给文件名时在data_dir中查找
        assert loader.load_recording(saved.name)

    def test_without_explored(self, tmp_path):
        recorder = PlanningRecorder(str(tmp_path), keep_explored=False)
        recorder.start_recording('open', format='json')
        recorder.record_cycle(make_result(), Pose2D(0.0, 0.0))
        recorder.stop_recording()
        data = recorder.frames[0]['data']
        assert 'explored' not in data
        assert data['explored_count'] == 2

    def test_start_twice_and_stop_idle(self, recorder):
        assert not recorder.stop_recording()
        assert recorder.start_recording('a')
        assert not recorder.start_recording('b')
        recorder.stop_recording()

    def test_invalid_format(self, recorder):
        with pytest.raises(ValueError):
            recorder.start_recording('a', format='yaml')
        assert not recorder.recording

    def test_record_when_idle_is_ignored(self, recorder):
        recorder.record_cycle(make_result(), Pose2D(0.0, 0.0))
        assert recorder.frames == []

    def test_load_failures(self, recorder, tmp_path):
        assert not recorder.load_recording(tmp_path / 'missing.json')

        broken = tmp_path / 'broken.json'
        broken.write_text('{not json', encoding='utf-8')
        assert not recorder.load_recording(broken)

        incomplete = tmp_path / 'incomplete.json'
        incomplete.write_text('{"version": "1.0"}', encoding='utf-8')
        assert not recorder.load_recording(incomplete)

    def test_replay(self, recorder):
        self.record_session(recorder, 'json')
        frames = list(recorder.replay(speed=0))
        assert len(frames) == 3
        assert [f['data']['state'] for f in frames] == ['Default', 'Arrive', 'Arrive']

        assert list(recorder.replay(speed=0, end_time=-1.0)) == []

    def test_replay_empty(self, tmp_path):
        assert list(PlanningRecorder(str(tmp_path)).replay()) == []

    def test_export_csv(self, recorder):
        self.record_session(recorder, 'json')
        output = recorder.export_csv('cycles.csv')

        with open(output, newline='', encoding='utf-8') as f:
            rows = list(csv.reader(f))
        assert rows[0][:4] == ['Time', 'X', 'Y', 'Theta']
        assert len(rows) == 4
        assert rows[1][7] == 'OK'
        assert rows[3][7] == 'NO_VALID_TRAJECTORY'
