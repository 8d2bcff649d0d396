"""
Tests for the value store: upsert semantics, date filters, referential checks.
"""
from datetime import date

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from lifelog.core.errors import NotFoundError, StorageError, ValidationError
from lifelog.models.event_value import EventValue
from lifelog.services import values as value_store
from lifelog.services.events import create_event
from lifelog.services.values import (
    DateRange,
    delete_value,
    encode_value,
    get_all_values,
    get_value,
    get_values,
    get_values_for_date,
    get_values_for_event,
    normalize_date,
    set_value,
)


@pytest.fixture()
def mood(db):
    return create_event(db, name="Mood", type="number", unit="/10")


@pytest.fixture()
def exercise(db):
    return create_event(db, name="Exercise", type="boolean")


class TestSetValue:
    def test_insert(self, db, mood):
        row = set_value(db, mood.id, "2024-03-01", "7")
        assert row.id > 0
        assert row.event_id == mood.id
        assert row.date == "2024-03-01"
        assert row.value == "7"

    def test_overwrite_converges_to_one_row(self, db, mood):
        first = set_value(db, mood.id, "2024-03-01", "7")
        first_timestamp = first.timestamp
        second = set_value(db, mood.id, "2024-03-01", "9")
        rows = (
            db.query(EventValue)
            .filter(EventValue.event_id == mood.id, EventValue.date == "2024-03-01")
            .all()
        )
        assert len(rows) == 1
        assert rows[0].value == "9"
        assert second.id == first.id
        assert second.timestamp >= first_timestamp

    def test_repeated_writes(self, db, mood):
        for v in ["1", "2", "3", "4"]:
            set_value(db, mood.id, date(2024, 3, 1), v)
        assert [r.value for r in get_values_for_event(db, mood.id)] == ["4"]

    def test_unknown_event(self, db):
        with pytest.raises(NotFoundError):
            set_value(db, 404, "2024-03-01", "1")
        assert db.query(EventValue).count() == 0

    @pytest.mark.parametrize("bad", ["", "2024-3-1", "2024-02-30", "yesterday", "2024/03/01"])
    def test_invalid_date(self, db, mood, bad):
        with pytest.raises(ValidationError):
            set_value(db, mood.id, bad, "1")

    def test_typed_values_encoded_as_text(self, db, mood, exercise):
        assert set_value(db, exercise.id, "2024-03-01", True).value == "true"
        assert set_value(db, exercise.id, "2024-03-02", False).value == "false"
        assert set_value(db, mood.id, "2024-03-01", 7.5).value == "7.5"

    def test_unique_constraint_enforced_by_database(self, db, mood):
        set_value(db, mood.id, "2024-03-01", "1")
        db.add(EventValue(event_id=mood.id, date="2024-03-01", value="2"))
        with pytest.raises(IntegrityError):
            db.flush()
        db.rollback()


class TestReads:
    def test_values_for_date(self, db, mood, exercise):
        set_value(db, exercise.id, "2024-03-01", "true")
        set_value(db, mood.id, "2024-03-01", "6")
        set_value(db, mood.id, "2024-03-02", "8")
        rows = get_values_for_date(db, "2024-03-01")
        assert [r.event_id for r in rows] == sorted([mood.id, exercise.id])
        assert get_values_for_date(db, "2024-04-01") == []

    def test_values_for_event_sorted_by_date(self, db, mood):
        for day in ["2024-03-05", "2024-03-01", "2024-03-03"]:
            set_value(db, mood.id, day, "5")
        assert [r.date for r in get_values_for_event(db, mood.id)] == [
            "2024-03-01", "2024-03-03", "2024-03-05",
        ]

    def test_values_for_event_inclusive_range(self, db, mood):
        for day in ["2024-02-28", "2024-03-01", "2024-03-15", "2024-03-31", "2024-04-01"]:
            set_value(db, mood.id, day, "5")
        rows = get_values_for_event(db, mood.id, DateRange("2024-03-01", "2024-03-31"))
        assert [r.date for r in rows] == ["2024-03-01", "2024-03-15", "2024-03-31"]

    def test_open_ended_range(self, db, mood):
        for day in ["2024-01-01", "2024-06-01"]:
            set_value(db, mood.id, day, "5")
        assert [r.date for r in get_values_for_event(db, mood.id, DateRange(start="2024-02-01"))] == [
            "2024-06-01"
        ]
        assert [r.date for r in get_values_for_event(db, mood.id, DateRange(end="2024-02-01"))] == [
            "2024-01-01"
        ]

    def test_get_values_without_range_returns_everything(self, db, mood, exercise):
        set_value(db, mood.id, "2024-03-01", "5")
        set_value(db, exercise.id, "2024-03-02", "true")
        assert len(get_values(db)) == 2
        assert len(get_values(db, DateRange("2024-03-02", "2024-03-02"))) == 1
        assert len(get_all_values(db)) == 2

    def test_get_value(self, db, mood):
        assert get_value(db, mood.id, "2024-03-01") is None
        set_value(db, mood.id, "2024-03-01", "5")
        assert get_value(db, mood.id, "2024-03-01").value == "5"


class TestDeleteValue:
    def test_delete_existing(self, db, mood):
        set_value(db, mood.id, "2024-03-01", "5")
        assert delete_value(db, mood.id, "2024-03-01") is True
        assert get_value(db, mood.id, "2024-03-01") is None

    def test_delete_missing(self, db, mood):
        assert delete_value(db, mood.id, "2024-03-01") is False


class TestHelpers:
    def test_normalize_date_accepts_date(self):
        assert normalize_date(date(2024, 1, 2)) == "2024-01-02"

    def test_date_range_contains(self):
        r = DateRange("2024-01-01", "2024-01-31")
        assert r.contains("2024-01-01")
        assert r.contains("2024-01-31")
        assert not r.contains("2023-12-31")
        assert not r.contains("2024-02-01")
        assert DateRange().contains("1999-01-01")

    def test_encode_value(self):
        assert encode_value(True) == "true"
        assert encode_value(0) == "0"
        assert encode_value("  x ") == "  x "


class TestConcurrentInsert:
    def test_lost_insert_race_becomes_update(self, db, mood, monkeypatch):
        set_value(db, mood.id, "2024-03-01", "1")

        real_find = value_store._find
        calls = []

        def stale_first_read(session, event_id, day_str):
            # the first lookup misses a row another writer already committed
            calls.append(day_str)
            if len(calls) == 1:
                return None
            return real_find(session, event_id, day_str)

        monkeypatch.setattr(value_store, "_find", stale_first_read)
        row = set_value(db, mood.id, "2024-03-01", "2")
        monkeypatch.undo()

        assert row.value == "2"
        assert [r.value for r in get_values_for_event(db, mood.id)] == ["2"]


class TestStorageErrors:
    @pytest.fixture()
    def broken(self, db, mood):
        db.execute(text("DROP TABLE event_values"))
        db.commit()
        return mood

    def test_write_raises_storage_error(self, db, broken):
        with pytest.raises(StorageError):
            set_value(db, broken.id, "2024-01-01", "1")

    def test_read_raises_storage_error(self, db, broken):
        with pytest.raises(StorageError):
            get_values_for_date(db, "2024-01-01")

    def test_session_usable_afterwards(self, db, broken):
        with pytest.raises(StorageError):
            get_values_for_event(db, broken.id)
        assert db.execute(text("SELECT 1")).scalar() == 1
