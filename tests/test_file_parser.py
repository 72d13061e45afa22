"""Tests for parsing Strava stream exports and FIT recordings."""

import json
import os
import sys
from collections import namedtuple
from datetime import datetime
from unittest.mock import patch

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from parsers.file_parser import FileParser, is_wingfoil_sport

Field = namedtuple('Field', ['name', 'value'])

# 45 degrees in FIT semicircles
SEMICIRCLES_45 = 2 ** 29


@pytest.fixture
def parser():
    return FileParser()


@pytest.fixture
def streams():
    return {
        'time': {'data': [0, 1, 2, 3, 4]},
        'velocity_smooth': {'data': [0.0, 4.0, 5.0, 5.0, 1.0]},
        'distance': {'data': [0.0, 4.0, 9.0, 14.0, 15.0]},
        'heartrate': {'data': [120, None, 140, 150, 145]},
        'latlng': {'data': [[52.0, 4.0], [52.0, 4.001], [52.0, 4.002], [52.0, 4.003], [52.0, 4.004]]},
    }


def write_json(path, payload):
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(payload, f)
    return path


def test_parse_streams_export_with_activity(parser, streams, tmp_path):
    payload = {
        'activity': {
            'id': 987,
            'name': 'Morning wing',
            'sport_type': 'Kitesurf',
            'start_date_local': '2024-05-01T10:00:00Z',
            'elapsed_time': 3600,
            'distance': 8000.0,
            'location_city': 'Brouwersdam',
        },
        'streams': streams,
    }
    path = write_json(tmp_path / 'activity.json', payload)

    activity = parser.parse_file(path)

    assert activity is not None
    metadata = activity.metadata
    assert metadata.activity_id == '987'
    assert metadata.name == 'Morning wing'
    assert metadata.sport_type == 'Kitesurf'
    assert metadata.start_time == datetime(2024, 5, 1, 10, 0, 0)
    assert metadata.start_time.tzinfo is None
    assert metadata.elapsed_time == 3600.0
    assert metadata.distance == 8000.0
    assert metadata.location == 'Brouwersdam'

    series = activity.series
    assert series.time == [0.0, 1.0, 2.0, 3.0, 4.0]
    assert series.speed[2] == 5.0
    assert series.heartrate == [120.0, 0.0, 140.0, 150.0, 145.0]
    assert series.latlng[1] == (52.0, 4.001)


def test_parse_stream_list_without_activity(parser, tmp_path):
    payload = [
        {'type': 'time', 'data': [0, 1, 2]},
        {'type': 'velocity_smooth', 'data': [1.0, 2.0, 3.0]},
        {'type': 'distance', 'data': [0.0, 2.0, 5.0]},
    ]
    path = write_json(tmp_path / 'streams_only.json', payload)

    activity = parser.parse_file(path)

    assert activity is not None
    assert activity.metadata.activity_id == 'streams_only'
    assert activity.metadata.elapsed_time == 2.0
    assert activity.metadata.distance == 5.0
    assert isinstance(activity.metadata.start_time, datetime)
    assert activity.series.heartrate is None
    assert activity.series.latlng is None


def test_missing_required_stream(parser, streams):
    del streams['velocity_smooth']
    assert parser.parse_streams(streams) is None


def test_empty_required_stream(parser, streams):
    streams['distance'] = {'data': []}
    assert parser.parse_streams(streams) is None


def test_unsupported_format(parser, tmp_path):
    path = tmp_path / 'notes.txt'
    path.write_text('not a recording')
    assert parser.parse_file(path) is None


def test_missing_file(parser, tmp_path):
    assert parser.parse_file(tmp_path / 'missing.fit') is None


def test_invalid_json(parser, tmp_path):
    path = tmp_path / 'broken.json'
    path.write_text('{"streams": ')
    assert parser.parse_file(path) is None


class FakeFitFile:
    """Stand-in for fitparse.FitFile serving prepared messages."""

    def __init__(self, messages):
        self.messages = messages

    def get_messages(self, name):
        return iter(self.messages.get(name, []))


def fit_records(with_speed=True):
    records = []
    for i in range(5):
        fields = [
            Field('timestamp', datetime(2024, 5, 1, 10, 0, i)),
            Field('distance', i * 5.0),
            Field('heart_rate', 140),
            Field('position_lat', SEMICIRCLES_45),
            Field('position_long', SEMICIRCLES_45),
        ]
        if with_speed:
            fields.append(Field('enhanced_speed', 5.0))
        records.append(fields)
    return records


def fit_session():
    return [[
        Field('sport', 'kitesurfing'),
        Field('start_time', datetime(2024, 5, 1, 10, 0, 0)),
        Field('total_elapsed_time', 4.0),
        Field('total_distance', 20.0),
    ]]


def test_parse_fit(parser, tmp_path):
    path = tmp_path / 'ride.fit'
    path.write_bytes(b'fit')
    fake = FakeFitFile({'session': fit_session(), 'record': fit_records()})

    with patch('parsers.file_parser.FitFile', return_value=fake):
        activity = parser.parse_file(path)

    assert activity is not None
    assert activity.metadata.activity_id == 'ride'
    assert activity.metadata.name == 'Kitesurfing session'
    assert activity.metadata.sport_type == 'kitesurfing'
    assert activity.metadata.start_time == datetime(2024, 5, 1, 10, 0, 0)
    assert activity.metadata.elapsed_time == 4.0
    assert activity.metadata.distance == 20.0

    series = activity.series
    assert series.time == [0.0, 1.0, 2.0, 3.0, 4.0]
    assert series.speed == [5.0] * 5
    assert series.distance == [0.0, 5.0, 10.0, 15.0, 20.0]
    assert series.heartrate == [140.0] * 5
    assert series.latlng[0] == pytest.approx((45.0, 45.0))


def test_parse_fit_derives_speed_from_distance(parser, tmp_path):
    path = tmp_path / 'no_speed.fit'
    path.write_bytes(b'fit')
    fake = FakeFitFile({'session': [], 'record': fit_records(with_speed=False)})

    with patch('parsers.file_parser.FitFile', return_value=fake):
        activity = parser.parse_file(path)

    assert activity is not None
    assert activity.series.speed == pytest.approx([0.0, 5.0, 5.0, 5.0, 5.0])
    assert activity.metadata.name == 'no_speed'
    assert activity.metadata.start_time == datetime(2024, 5, 1, 10, 0, 0)


def test_parse_fit_without_records(parser, tmp_path):
    path = tmp_path / 'empty.fit'
    path.write_bytes(b'fit')
    fake = FakeFitFile({'session': fit_session(), 'record': []})

    with patch('parsers.file_parser.FitFile', return_value=fake):
        assert parser.parse_file(path) is None


@pytest.mark.parametrize("sport_type, expected", [
    (None, True),
    ('Kitesurf', True),
    ('windsurf', True),
    ('Ride', False),
    ('Run', False),
])
def test_is_wingfoil_sport(sport_type, expected):
    assert is_wingfoil_sport(sport_type) is expected
