from datetime import datetime

from codearena.daily_challenge.scheduler import EXPIRY_SWEEP_TIME, GENERATION_TIME, seconds_until


def test_seconds_until_later_today():
    assert seconds_until(*EXPIRY_SWEEP_TIME, now=datetime(2024, 3, 15, 0, 0)) == 300


def test_seconds_until_rolls_over_to_tomorrow():
    assert seconds_until(*GENERATION_TIME, now=datetime(2024, 3, 15, 23, 59)) == 60
    assert seconds_until(*GENERATION_TIME, now=datetime(2024, 3, 15, 0, 0)) == 86400
