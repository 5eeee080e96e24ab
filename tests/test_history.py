from datetime import datetime

import pytest

from components.loan.history import (
    HistoryEntry,
    append_entry,
    format_timestamp,
    new_entry,
    parse_history,
    serialize_history,
)


@pytest.mark.parametrize("size", [0, 1, 5])
def test_history_survives_storage(size):
    history = [new_entry("En proceso", f"Usuario {n}", datetime(2024, 3, 1, 8, n)) for n in range(size)]
    assert parse_history(serialize_history(history)) == history


def test_serialized_keys_match_stored_format():
    raw = serialize_history([new_entry("Creado", "Ana Gómez", datetime(2024, 3, 1, 8, 5, 9))])
    assert raw == '[{"estado":"Creado","usuario":"Ana Gómez","fecha":"2024-03-01 08:05:09"}]'


def test_format_timestamp_has_no_fraction_or_zone():
    assert format_timestamp(datetime(2024, 12, 31, 23, 59, 59, 999999)) == "2024-12-31 23:59:59"


@pytest.mark.parametrize("raw", [None, "", "{not json", '{"estado": "Creado"}', '[{"estado": "Creado"}]'])
def test_unreadable_history_is_empty(raw):
    assert parse_history(raw) == []


def test_numeric_status_from_older_rows_is_read_as_text():
    history = parse_history('[{"estado": 2, "usuario": 1001, "fecha": "2023-11-02 10:00:00"}]')
    assert history == [HistoryEntry(estado="2", usuario="1001", fecha="2023-11-02 10:00:00")]


def test_append_keeps_existing_entries_in_order():
    raw = serialize_history([new_entry("Creado", "Ana", datetime(2024, 1, 1))])
    history = append_entry(raw, new_entry("Cancelado", "Lucía", datetime(2024, 1, 2)))
    assert [entry.estado for entry in history] == ["Creado", "Cancelado"]


def test_append_to_unreadable_history_starts_over():
    history = append_entry("garbage", new_entry("En proceso", "Ana"))
    assert len(history) == 1
