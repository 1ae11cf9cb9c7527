import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import date

import pytest

import db
import utils
from analytics import generate_report
from errors import UpstreamFetchError

TODAY = date(2026, 10, 19)


@pytest.fixture
def fresh_db(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "membership.db")
    db.init_db()
    return db


def add_user(user_id, name, plan=None, fee=None, store_id=None, billing_start_month=None):
    db.execute(
        "INSERT INTO users(id, full_name, plan, monthly_fee, store_id, billing_start_month) VALUES(?,?,?,?,?,?)",
        (user_id, name, plan, fee, store_id, billing_start_month),
    )


def test_status_change_closes_previous_row_the_day_before(fresh_db):
    add_user("u1", "Ahmed Hassan")
    db.record_status_change("u1", "active", "s1", date(2024, 1, 1), "Monthly 4", 13200)
    db.record_status_change("u1", "suspended", "s1", date(2024, 3, 1), "Monthly 4", 0)

    rows = db.fetch_all("SELECT status, start_date, end_date FROM membership_history ORDER BY id")
    assert [dict(r) for r in rows] == [
        {"status": "active", "start_date": "2024-01-01", "end_date": "2024-02-29"},
        {"status": "suspended", "start_date": "2024-03-01", "end_date": None},
    ]


def test_unknown_status_is_rejected(fresh_db):
    with pytest.raises(ValueError):
        db.record_status_change("u1", "expired", "s1", date(2024, 1, 1))


def test_fetch_joins_user_and_filters_store(fresh_db):
    add_user("u1", "Mona Ali", plan="Monthly 8", fee=22000, billing_start_month="2024-02-01")
    add_user("u2", "Omar Samy")
    db.record_status_change("u1", "active", "s1", date(2024, 1, 1))
    db.record_status_change("u2", "active", "s2", date(2024, 1, 1), "Monthly 2", 8800)

    records = db.fetch_membership_history("all")
    assert [r.user_id for r in records] == ["u1", "u2"]
    mona = records[0]
    assert mona.full_name == "Mona Ali"
    assert mona.plan_label == "Monthly 8"
    assert mona.effective_fee == 22000
    assert mona.billing_start_month == date(2024, 2, 1)

    only_s2 = db.fetch_membership_history("s2")
    assert [r.user_id for r in only_s2] == ["u2"]
    assert db.list_stores() == ["s1", "s2"]


def test_fetch_failure_raises_upstream_error(tmp_path, monkeypatch):
    # database file without the schema
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "empty.db")
    with pytest.raises(UpstreamFetchError):
        db.fetch_membership_history("all")
    with pytest.raises(UpstreamFetchError):
        generate_report("all", TODAY)


def test_sample_data_is_inserted_once(fresh_db):
    utils.insert_sample_data(TODAY)
    count = db.fetch_one("SELECT COUNT(*) AS c FROM membership_history")["c"]
    utils.insert_sample_data(TODAY)
    assert db.fetch_one("SELECT COUNT(*) AS c FROM membership_history")["c"] == count == 6


def test_report_over_sample_history(fresh_db):
    utils.insert_sample_data(TODAY)
    report = generate_report("all", TODAY, "1y")
    history = {m["month"]: m for m in report["memberHistory"]}

    assert [e["user_id"] for e in history["2025-12"]["newMembers"]] == ["sample-3"]
    assert [e["user_id"] for e in history["2026-02"]["newMembers"]] == ["sample-1"]
    assert [e["user_id"] for e in history["2026-04"]["newMembers"]] == ["sample-2"]

    # plan change in July is a continuation
    assert history["2026-06"]["withdrawn"] == 0
    assert history["2026-07"]["newMembers"] == []
    assert [e["user_id"] for e in history["2026-05"]["withdrawnMembers"]] == ["sample-3"]

    current = history["2026-10"]
    assert current["active"] == 1
    assert [e["user_id"] for e in current["suspendedMembers"]] == ["sample-2"]
    assert report["projectedSales"] == 13200


def test_report_for_single_store(fresh_db):
    utils.insert_sample_data(TODAY)
    report = generate_report("store-2", TODAY, "all")
    assert sum(m["new"] for m in report["memberHistory"]) == 1
    assert sum(m["withdrawn"] for m in report["memberHistory"]) == 1
    assert report["projectedSales"] == 0


def test_status_change_must_start_after_open_row(fresh_db):
    add_user("u1", "Ahmed Hassan")
    db.record_status_change("u1", "active", "s1", date(2024, 3, 1))

    with pytest.raises(ValueError):
        db.record_status_change("u1", "suspended", "s1", date(2024, 3, 1))
    with pytest.raises(ValueError):
        db.record_status_change("u1", "suspended", "s1", date(2024, 2, 15))

    rows = db.fetch_all("SELECT status, start_date, end_date FROM membership_history ORDER BY id")
    assert [dict(r) for r in rows] == [
        {"status": "active", "start_date": "2024-03-01", "end_date": None},
    ]
