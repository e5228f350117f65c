"""Unit tests for batch number generation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from freezegun import freeze_time

from modules.orders.batch import BATCH_PREFIX, generate_batch_number

pytestmark = pytest.mark.unit


def test_format_uses_local_minute(settings):
    settings.TIME_ZONE = "America/Sao_Paulo"
    moment = datetime(2024, 3, 5, 12, 7, 45, tzinfo=dt_timezone.utc)

    # 12:07 UTC is 09:07 in São Paulo (UTC-3)
    assert generate_batch_number(moment) == "LOTE-202403050907"


def test_naive_moment_is_used_as_is():
    assert generate_batch_number(datetime(2024, 12, 31, 23, 59)) == "LOTE-202412312359"


def test_same_minute_gives_same_number():
    moment = datetime(2024, 1, 1, 8, 30, 1, tzinfo=dt_timezone.utc)
    assert generate_batch_number(moment) == generate_batch_number(
        moment + timedelta(seconds=50)
    )


def test_different_minutes_give_different_numbers():
    moment = datetime(2024, 1, 1, 8, 30, tzinfo=dt_timezone.utc)
    assert generate_batch_number(moment) != generate_batch_number(
        moment + timedelta(minutes=1)
    )


@freeze_time("2024-06-10 15:42:10")
def test_defaults_to_now(settings):
    settings.TIME_ZONE = "UTC"
    number = generate_batch_number()
    assert number.startswith(BATCH_PREFIX)
    assert number == "LOTE-202406101542"
