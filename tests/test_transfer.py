"""
Tests for snapshot export / import.

Covers:
- Export document shape and timestamp format
- Round trip into an empty store (new ids, same events and triples)
- clear_existing replaces the store
- Progress: monotonic, reaches 100 exactly once, sink failures ignored
- Unmapped value ids skipped without aborting the batch
- Format validation and failure results (never raises)
- Batching across more than one batch
- Settings whitelist
- Snapshot files
"""
import json
import re

import pytest

from lifelog.core.errors import FormatError, IoError
from lifelog.models.event import Event
from lifelog.models.event_value import EventValue
from lifelog.services import app_settings
from lifelog.services.events import create_event, list_events
from lifelog.services.transfer import (
    SNAPSHOT_VERSION,
    TransferPhase,
    default_backup_filename,
    export_snapshot,
    format_timestamp,
    import_snapshot,
    parse_timestamp,
    read_snapshot_file,
    write_snapshot_file,
)
from lifelog.services.values import get_all_values, get_values_for_event, set_value

ISO_Z = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def _seed(db):
    sleep = create_event(db, name="Sleep Hours", type="number", unit="hours", color="#3b82f6")
    exercise = create_event(db, name="Exercise", type="boolean", color="#10b981")
    notes = create_event(db, name="Notes", type="string", color="#f59e0b")
    set_value(db, sleep.id, "2024-01-01", "7.5")
    set_value(db, sleep.id, "2024-01-02", "6")
    set_value(db, exercise.id, "2024-01-01", "true")
    set_value(db, notes.id, "2024-01-02", "tired")
    return sleep, exercise, notes


def _events_by_signature(db):
    return sorted((e.name, e.type.value, e.color, e.unit) for e in list_events(db))


def _triples(db):
    names = {e.id: e.name for e in list_events(db)}
    return sorted((names[v.event_id], v.date, v.value) for v in get_all_values(db))


def _document(events, values, **extra):
    doc = {
        "version": SNAPSHOT_VERSION,
        "exportDate": "2024-01-03T00:00:00.000Z",
        "events": events,
        "eventValues": values,
        "settings": {},
    }
    doc.update(extra)
    return doc


class TestExport:
    def test_shape(self, db):
        sleep, _, _ = _seed(db)
        doc = export_snapshot(db)
        assert doc["version"] == "1.0.0"
        assert ISO_Z.match(doc["exportDate"])
        assert [e["name"] for e in doc["events"]] == ["Sleep Hours", "Exercise", "Notes"]
        assert doc["events"][0]["id"] == sleep.id
        assert doc["events"][0]["type"] == "number"
        assert doc["events"][0]["unit"] == "hours"
        assert len(doc["eventValues"]) == 4
        assert set(doc["eventValues"][0]) == {"eventId", "date", "value", "timestamp"}
        assert all(ISO_Z.match(v["timestamp"]) for v in doc["eventValues"])
        assert doc["settings"] == {}

    def test_empty_store(self, db):
        doc = export_snapshot(db)
        assert doc["events"] == []
        assert doc["eventValues"] == []

    def test_color_scheme_included(self, db):
        app_settings.set_color_scheme(db, "dark")
        assert export_snapshot(db)["settings"] == {"colorScheme": "dark"}

    def test_document_is_json_serializable(self, db):
        _seed(db)
        json.dumps(export_snapshot(db))


class TestRoundTrip:
    def test_into_empty_store(self, db, other_db):
        _seed(db)
        doc = export_snapshot(db)

        result = import_snapshot(other_db, doc)

        assert result.success, result.message
        assert result.events_imported == 3
        assert result.values_imported == 4
        assert _events_by_signature(other_db) == _events_by_signature(db)
        assert _triples(other_db) == _triples(db)

    def test_ids_are_reassigned(self, db):
        sleep, _, _ = _seed(db)
        doc = export_snapshot(db)

        result = import_snapshot(db, doc)

        assert result.success
        copies = [e for e in list_events(db) if e.name == "Sleep Hours"]
        assert len(copies) == 2
        new = [e for e in copies if e.id != sleep.id][0]
        assert [v.value for v in get_values_for_event(db, new.id)] == ["7.5", "6"]

    def test_display_order_preserved(self, db, other_db):
        a = create_event(db, name="A", type="boolean", order=5)
        create_event(db, name="B", type="boolean", order=1)
        create_event(db, name="C", type="boolean", order=3)
        assert a.order == 5
        import_snapshot(other_db, export_snapshot(db))
        assert [e.name for e in list_events(other_db)] == ["B", "C", "A"]

    def test_value_timestamps_preserved(self, db, other_db):
        _seed(db)
        doc = export_snapshot(db)
        import_snapshot(other_db, doc)
        exported = sorted(v["timestamp"] for v in doc["eventValues"])
        restored = sorted(format_timestamp(v.timestamp) for v in get_all_values(other_db))
        assert restored == exported


class TestClearExisting:
    def test_replaces_store_and_reports_progress(self, db):
        for name in ["X", "Y", "Z"]:
            event = create_event(db, name=name, type="boolean")
            set_value(db, event.id, "2024-01-01", "true")
        doc = _document(
            events=[
                {"id": 10, "name": "A", "type": "number", "color": "#000000"},
                {"id": 11, "name": "B", "type": "string", "color": "#ffffff"},
            ],
            values=[{"eventId": 10, "date": "2024-02-01", "value": "3", "timestamp": None}],
        )
        progress = []

        result = import_snapshot(
            db, doc, clear_existing=True,
            on_progress=lambda p, m: progress.append((p, m)),
        )

        assert result.success
        assert [e.name for e in list_events(db)] == ["A", "B"]
        assert db.query(EventValue).count() == 1
        percents = [p for p, _ in progress]
        assert percents == sorted(percents)
        assert percents.count(100) == 1
        assert percents[-1] == 100
        assert progress[0] == (0, "Starting import...")

    def test_without_clear_keeps_existing(self, db):
        create_event(db, name="Existing", type="boolean")
        doc = _document(events=[{"id": 1, "name": "New", "type": "boolean"}], values=[])
        assert import_snapshot(db, doc).success
        assert [e.name for e in list_events(db)] == ["Existing", "New"]


class TestSkippingAndBatches:
    def test_unmapped_event_id_skipped(self, db):
        doc = _document(
            events=[{"id": 1, "name": "A", "type": "number"}],
            values=[
                {"eventId": 1, "date": "2024-01-01", "value": "1"},
                {"eventId": 77, "date": "2024-01-01", "value": "2"},
                {"eventId": 1, "date": "2024-01-02", "value": "3"},
            ],
        )
        result = import_snapshot(db, doc)
        assert result.success
        assert result.values_imported == 2
        assert result.values_skipped == 1
        assert [v.value for v in get_all_values(db)] == ["1", "3"]

    def test_many_values_span_batches(self, db):
        values = [
            {"eventId": 1, "date": f"2023-{1 + i // 28:02d}-{1 + i % 28:02d}", "value": str(i)}
            for i in range(250)
        ]
        doc = _document(events=[{"id": 1, "name": "A", "type": "number"}], values=values)
        progress = []

        result = import_snapshot(db, doc, on_progress=lambda p, m: progress.append((p, m)), batch_size=100)

        assert result.success
        assert db.query(EventValue).count() == 250
        batch_messages = [m for _, m in progress if m.startswith("Importing values:")]
        assert batch_messages == [
            "Importing values: 100/250",
            "Importing values: 200/250",
            "Importing values: 250/250",
        ]

    def test_duplicate_keys_in_document_converge(self, db):
        doc = _document(
            events=[{"id": 1, "name": "A", "type": "number"}],
            values=[
                {"eventId": 1, "date": "2024-01-01", "value": "1"},
                {"eventId": 1, "date": "2024-01-01", "value": "2"},
            ],
        )
        assert import_snapshot(db, doc).success
        assert [v.value for v in get_all_values(db)] == ["2"]


class TestFailures:
    @pytest.mark.parametrize("missing", ["version", "events", "eventValues"])
    def test_missing_required_field(self, db, missing):
        doc = _document(events=[], values=[])
        del doc[missing]
        result = import_snapshot(db, doc)
        assert result.success is False
        assert result.phase == TransferPhase.failed
        assert result.failed_at == TransferPhase.validating
        assert "Invalid export file format" in result.message

    def test_not_a_mapping(self, db):
        result = import_snapshot(db, ["not", "a", "document"])
        assert result.success is False

    def test_invalid_format_does_not_clear(self, db):
        create_event(db, name="Keep", type="boolean")
        result = import_snapshot(db, {"events": []}, clear_existing=True)
        assert result.success is False
        assert [e.name for e in list_events(db)] == ["Keep"]

    def test_bad_event_rolls_back_later_writes(self, db):
        create_event(db, name="Existing", type="boolean")
        doc = _document(
            events=[
                {"id": 1, "name": "Good", "type": "number"},
                {"id": 2, "name": "", "type": "number"},
            ],
            values=[],
        )
        progress = []
        result = import_snapshot(db, doc, on_progress=lambda p, m: progress.append(p))
        assert result.success is False
        assert result.failed_at == TransferPhase.writing_events
        assert [e.name for e in list_events(db)] == ["Existing"]
        assert 100 not in progress

    def test_bad_value_date_fails_import(self, db):
        doc = _document(
            events=[{"id": 1, "name": "A", "type": "number"}],
            values=[{"eventId": 1, "date": "01/02/2024", "value": "1"}],
        )
        result = import_snapshot(db, doc)
        assert result.success is False
        assert result.failed_at == TransferPhase.writing_values
        assert db.query(Event).count() == 0

    def test_progress_sink_errors_are_ignored(self, db):
        def broken_sink(percent, message):
            raise RuntimeError("ui went away")

        doc = _document(events=[{"id": 1, "name": "A", "type": "boolean"}], values=[])
        assert import_snapshot(db, doc, on_progress=broken_sink).success


class TestSettingsRestore:
    def test_color_scheme_restored(self, db):
        doc = _document(events=[], values=[], settings={"colorScheme": "dark", "fontSize": 14})
        assert import_snapshot(db, doc).success
        assert app_settings.get_color_scheme(db) == "dark"
        assert app_settings.get_setting(db, "fontSize") is None

    def test_unknown_color_scheme_ignored(self, db):
        doc = _document(events=[], values=[], settings={"colorScheme": "purple"})
        assert import_snapshot(db, doc).success
        assert app_settings.get_color_scheme(db) is None


class TestTimestamps:
    def test_format_naive_as_utc(self):
        from datetime import datetime
        assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5, 678900)) == "2024-01-02T03:04:05.678Z"

    def test_parse_round_trip(self):
        parsed = parse_timestamp("2024-01-02T03:04:05.678Z")
        assert format_timestamp(parsed) == "2024-01-02T03:04:05.678Z"

    @pytest.mark.parametrize("junk", [None, "", "yesterday", 12])
    def test_parse_junk(self, junk):
        assert parse_timestamp(junk) is None


class TestFiles:
    def test_write_then_read(self, db, tmp_path):
        _seed(db)
        doc = export_snapshot(db)
        path = write_snapshot_file(doc, tmp_path / "nested" / default_backup_filename())
        assert path.exists()
        assert read_snapshot_file(path) == doc

    def test_missing_file(self, tmp_path):
        with pytest.raises(IoError):
            read_snapshot_file(tmp_path / "nope.json")

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(FormatError):
            read_snapshot_file(path)

    def test_non_utf8_file(self, tmp_path):
        path = tmp_path / "latin.json"
        path.write_bytes(b"\xff\xfe{not utf8")
        with pytest.raises(FormatError):
            read_snapshot_file(path)

    def test_unwritable_target(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        with pytest.raises(IoError):
            write_snapshot_file({}, blocker / "backup.json")

    def test_default_filename(self):
        from datetime import date
        assert default_backup_filename(date(2024, 5, 6)) == "life-events-backup-2024-05-06.json"
