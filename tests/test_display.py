"""
Unit tests for clock readout formatting.
"""

import pytest
from datetime import datetime, timezone

# 2030-01-01T09:05:03Z, a Tuesday
SAMPLE_MS = datetime(2030, 1, 1, 9, 5, 3, tzinfo=timezone.utc).timestamp() * 1000


class TestFormatting:

    def test_clock(self):
        from virtual_clock.display import format_clock
        assert format_clock(SAMPLE_MS, timezone.utc) == '09:05:03'

    def test_date_includes_weekday(self):
        from virtual_clock.display import format_date
        assert format_date(SAMPLE_MS, timezone.utc) == '2030-01-01  Tuesday'

    def test_status_bar(self):
        from virtual_clock.display import format_status_bar
        assert format_status_bar(SAMPLE_MS, timezone.utc) == '09:05'

    def test_local_time_by_default(self):
        from virtual_clock.display import format_clock
        local = datetime.fromtimestamp(SAMPLE_MS / 1000)
        assert format_clock(SAMPLE_MS) == local.strftime('%H:%M:%S')

    @pytest.mark.parametrize('speed, label', [
        (1, '1x'),
        (1.0, '1x'),
        (2.5, '2.5x'),
        (0.1, '0.1x'),
        (10, '10x'),
        (3.04, '3x'),
    ])
    def test_speed_label(self, speed, label):
        from virtual_clock.display import format_speed
        assert format_speed(speed) == label


class TestSpeedInput:

    @pytest.mark.parametrize('value, expected', [
        (2, 2.0),
        ('1.5', 1.5),
        (0, 1.0),
        (-3, 1.0),
        ('abc', 1.0),
        (float('nan'), 1.0),
        (99, 5.0),
        (0.01, 0.1),
    ])
    def test_clamp(self, value, expected):
        from virtual_clock.display import clamp_speed_input
        assert clamp_speed_input(value) == expected


class TestStatusSnapshot:

    def test_fields(self, engine):
        from virtual_clock.display import status_snapshot

        engine.set_time(SAMPLE_MS)
        engine.set_speed(2)
        status = status_snapshot(engine, timezone.utc)

        assert status['virtual_ms'] == SAMPLE_MS
        assert status['speed'] == 2
        assert status['iso'] == '2030-01-01T09:05:03+00:00'
        assert status['clock'] == '09:05:03'
        assert status['date'] == '2030-01-01  Tuesday'
        assert status['speed_label'] == '2x'
