"""Tests for the command line interface."""

import json
import logging
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from main import main, parse_args
from storage.session_store import SessionStore

DETECTION_ARGS = ['--min-speed', '12', '--min-duration', '5', '--smoothing', '1']


def write_activity(path, activity_id, sport_type='Kitesurf', riding=True, day=1, start=None):
    speed = [0.0, 0.0] + [5.0 if riding else 1.0] * 14 + [0.0] * 4
    distance = []
    total = 0.0
    for s in speed:
        total += s
        distance.append(total)
    payload = {
        'activity': {
            'id': activity_id,
            'name': f'Wing {activity_id}',
            'sport_type': sport_type,
            'start_date_local': f'2024-09-{day:02d}T11:00:00Z',
        },
        'streams': {
            'time': {'data': list(range(len(speed)))},
            'velocity_smooth': {'data': speed},
            'distance': {'data': distance},
        },
    }
    if start is not None:
        payload['streams']['latlng'] = {'data': [[start[0], start[1] + i * 0.0001] for i in range(len(speed))]}
    path.write_text(json.dumps(payload))
    return path


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def base_args(workspace):
    return [
        '--sessions-dir', str(workspace / 'sessions'),
        '--config-file', str(workspace / 'detection.json'),
    ]


def test_parse_analyze_arguments():
    args = parse_args(['analyze', '--file', 'session.fit', '--jibes', '--min-speed', '14'])
    assert args.command == 'analyze'
    assert args.file == 'session.fit'
    assert args.jibes is True
    assert args.save is False
    assert args.min_speed == 14.0
    assert args.min_duration is None


def test_parse_config_arguments():
    args = parse_args(['config', '--set', 'min_speed_threshold=14', '--set', 'min_run_duration=8'])
    assert args.set == ['min_speed_threshold=14', 'min_run_duration=8']


def test_missing_command_exits(workspace):
    with pytest.raises(SystemExit) as exc_info:
        main(base_args(workspace))
    assert exc_info.value.code == 1


def test_analyze_and_save(workspace, capsys):
    recording = write_activity(workspace / 'w1.json', 'w1')

    main(base_args(workspace) + ['analyze', '--file', str(recording), '--save',
                                 '--output-dir', str(workspace / 'reports')] + DETECTION_ARGS)

    output = capsys.readouterr().out
    assert "SESSION: Wing w1" in output
    assert "Runs: 1" in output

    session = SessionStore(workspace / 'sessions').load_session('session_w1')
    assert session is not None
    assert len(session.runs) == 1
    assert session.has_raw_data

    with open(workspace / 'reports' / 'session_w1_analysis.json') as f:
        analysis = json.load(f)
    assert analysis['config']['min_speed_threshold'] == 12.0
    assert len(analysis['runs']) == 1


def test_analyze_without_runs(workspace, capsys):
    recording = write_activity(workspace / 'slow.json', 'slow', riding=False)

    main(base_args(workspace) + ['analyze', '--file', str(recording), '--save'] + DETECTION_ARGS)

    assert "SESSION:" not in capsys.readouterr().out
    assert SessionStore(workspace / 'sessions').load_sessions() == []


def test_analyze_missing_file(workspace):
    with pytest.raises(SystemExit) as exc_info:
        main(base_args(workspace) + ['analyze', '--file', str(workspace / 'missing.json')])
    assert exc_info.value.code == 1


def test_batch_skips_other_sports(workspace):
    recordings = workspace / 'recordings'
    recordings.mkdir()
    write_activity(recordings / 'a.json', 'a', day=1)
    write_activity(recordings / 'b.json', 'b', sport_type='Ride', day=2)
    (recordings / 'notes.txt').write_text('ignored')

    main(base_args(workspace) + ['batch', '--directory', str(recordings), '--save'] + DETECTION_ARGS)

    sessions = SessionStore(workspace / 'sessions').load_sessions()
    assert [s.session_id for s in sessions] == ['session_a']


def test_batch_all_sports(workspace, capsys):
    recordings = workspace / 'recordings'
    recordings.mkdir()
    write_activity(recordings / 'a.json', 'a', day=1)
    write_activity(recordings / 'b.json', 'b', sport_type='Ride', day=2)

    main(base_args(workspace) + ['batch', '--directory', str(recordings), '--save',
                                 '--all-sports'] + DETECTION_ARGS)

    sessions = SessionStore(workspace / 'sessions').load_sessions()
    assert [s.session_id for s in sessions] == ['session_b', 'session_a']
    assert "PROGRESS" in capsys.readouterr().out


def test_progress_and_reanalyze(workspace, capsys):
    recording = write_activity(workspace / 'w1.json', 'w1')
    main(base_args(workspace) + ['analyze', '--file', str(recording), '--save'] + DETECTION_ARGS)
    capsys.readouterr()

    main(base_args(workspace) + ['progress'])
    output = capsys.readouterr().out
    assert "PROGRESS" in output
    assert "Sessions: 1" in output

    main(base_args(workspace) + ['reanalyze', '--min-speed', '20'])

    session = SessionStore(workspace / 'sessions').load_session('session_w1')
    assert session.runs == []
    assert session.stats.number_of_runs == 0


def test_config_set_and_show(workspace, capsys):
    main(base_args(workspace) + ['config', '--set', 'min_speed_threshold=14',
                                 '--set', 'speed_smoothing_window=5'])

    with open(workspace / 'detection.json') as f:
        stored = json.load(f)
    assert stored['min_speed_threshold'] == 14.0
    assert stored['speed_smoothing_window'] == 5

    output = capsys.readouterr().out
    assert "min_speed_threshold: 14.0" in output

    main(base_args(workspace) + ['config', '--show'])
    assert "speed_smoothing_window: 5" in capsys.readouterr().out


def test_config_set_unknown_key(workspace):
    with pytest.raises(SystemExit) as exc_info:
        main(base_args(workspace) + ['config', '--set', 'wind=20'])
    assert exc_info.value.code == 1
    assert not (workspace / 'detection.json').exists()


def test_spots(workspace, capsys):
    write_activity(workspace / 'a.json', 'a', day=1, start=(52.0, 4.0))
    write_activity(workspace / 'b.json', 'b', day=2, start=(52.001, 4.0))
    for name in ('a.json', 'b.json'):
        main(base_args(workspace) + ['analyze', '--file', str(workspace / name), '--save']
             + DETECTION_ARGS)
    capsys.readouterr()

    main(base_args(workspace) + ['spots'])

    output = capsys.readouterr().out
    assert "SPOTS" in output
    assert "Spot 1 (52.001, 4.000)" in output
    assert "Sessions: 2, last visit 2024-09-02" in output


def test_delete_session(workspace):
    recording = write_activity(workspace / 'w1.json', 'w1')
    main(base_args(workspace) + ['analyze', '--file', str(recording), '--save'] + DETECTION_ARGS)

    main(base_args(workspace) + ['delete', '--session-id', 'session_w1'])

    assert SessionStore(workspace / 'sessions').load_sessions() == []
    with pytest.raises(SystemExit) as exc_info:
        main(base_args(workspace) + ['delete', '--session-id', 'session_w1'])
    assert exc_info.value.code == 1


def test_batch_ignores_stored_sessions_and_outputs(workspace, caplog):
    caplog.set_level(logging.INFO)
    data = workspace / 'data'
    data.mkdir()
    write_activity(data / 'a.json', 'a')
    args = ['--sessions-dir', str(data / 'sessions'),
            '--config-file', str(workspace / 'detection.json')]
    batch = ['batch', '--directory', str(data), '--save',
             '--output-dir', str(data / 'reports')] + DETECTION_ARGS

    main(args + batch)
    assert (data / 'sessions' / 'session_a.json').exists()
    assert (data / 'reports' / 'session_a_analysis.json').exists()
    caplog.clear()

    main(args + batch)

    assert "Error analyzing" not in caplog.text
    assert "session_a already stored" in caplog.text


def test_batch_force_replaces_stored_sessions(workspace):
    recordings = workspace / 'recordings'
    recordings.mkdir()
    write_activity(recordings / 'a.json', 'a')
    batch = ['batch', '--directory', str(recordings), '--save'] + DETECTION_ARGS
    store = SessionStore(workspace / 'sessions')

    main(base_args(workspace) + batch)
    session = store.load_session('session_a')
    session.name = 'Edited'
    store.save_session(session)

    main(base_args(workspace) + batch)
    assert store.load_session('session_a').name == 'Edited'

    main(base_args(workspace) + batch + ['--force'])
    assert store.load_session('session_a').name == 'Wing a'
