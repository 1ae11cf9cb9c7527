import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import date, datetime

import pandas as pd
import pytest

from errors import MalformedRecordError
from records import parse_date, record_from_row


def test_parse_date_accepts_common_shapes():
    assert parse_date("2024-01-10") == date(2024, 1, 10)
    assert parse_date("2024-01-10T09:30:00Z") == date(2024, 1, 10)
    assert parse_date(datetime(2024, 1, 10, 23, 59)) == date(2024, 1, 10)
    assert parse_date(pd.Timestamp("2024-01-10")) == date(2024, 1, 10)
    assert parse_date(date(2024, 1, 10)) == date(2024, 1, 10)


def test_parse_date_treats_blanks_as_open_ended():
    assert parse_date(None) is None
    assert parse_date("") is None
    assert parse_date(float("nan")) is None
    assert parse_date(pd.NaT) is None


def test_parse_date_rejects_garbage():
    with pytest.raises(MalformedRecordError):
        parse_date("2024-13-45")
    with pytest.raises(MalformedRecordError):
        parse_date(20240110)


def test_flat_join_columns():
    record = record_from_row({
        "user_id": 7,
        "status": "active",
        "store_id": "s1",
        "start_date": "2024-01-10",
        "end_date": None,
        "plan": None,
        "monthly_fee": None,
        "user_full_name": "Mona Ali",
        "user_plan": "Monthly 8",
        "user_monthly_fee": 22000,
        "billing_start_month": "2024-02-15",
    })
    assert record.user_id == "7"
    assert record.start_date == date(2024, 1, 10)
    assert record.end_date is None
    assert record.full_name == "Mona Ali"
    assert record.plan_label == "Monthly 8"
    assert record.effective_fee == 22000
    assert record.billing_start_month == date(2024, 2, 1)
    assert not record.malformed


@pytest.mark.parametrize("joined", [
    {"full_name": "Omar Samy", "plan": "Monthly 2", "monthly_fee": 8800},
    [{"full_name": "Omar Samy", "plan": "Monthly 2", "monthly_fee": 8800}],
])
def test_nested_join_as_object_or_single_item_list(joined):
    record = record_from_row({
        "user_id": "u3",
        "status": "active",
        "start_date": "2024-01-10",
        "monthly_fee": 9900,
        "users": joined,
    })
    assert record.full_name == "Omar Samy"
    assert record.plan_label == "Monthly 2"
    # history snapshot wins over the user's current fee
    assert record.effective_fee == 9900


def test_missing_join_uses_placeholders():
    record = record_from_row({"user_id": "u1", "status": "active", "start_date": "2024-01-10", "users": []})
    assert record.full_name == "Unknown"
    assert record.plan_label is None
    assert record.effective_fee == 0


def test_unparsable_dates_flag_the_record(caplog):
    record = record_from_row({"user_id": "u1", "status": "active", "start_date": "not a date"})
    assert record.malformed
    assert record.start_date is None
    assert "Skipping dates" in caplog.text

    missing_start = record_from_row({"user_id": "u2", "status": "active", "start_date": None})
    assert missing_start.malformed


def test_unparsable_billing_start_month_is_ignored(caplog):
    record = record_from_row({
        "user_id": "u1",
        "status": "active",
        "start_date": "2024-01-10",
        "billing_start_month": "someday",
    })
    assert not record.malformed
    assert record.billing_start_month is None
    assert "billing start month" in caplog.text
