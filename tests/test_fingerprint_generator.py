"""
tests/test_fingerprint_generator.py

Pytest unit tests for record fingerprinting.

Coverage
--------
- Hash scheme (joined, lowercased, trimmed, SHA-256)
- Header matching ignores case and surrounding whitespace
- Selected column order changes the fingerprint
- Missing columns contribute an empty part
- Separator collision is a known, accepted limitation
- Batch fingerprinting: row numbers, malformed rows, column resolution
"""

from __future__ import annotations

import hashlib

import pytest

from fingerprint.generator import (
    MalformedRecordError,
    fingerprint_record,
    fingerprint_rows,
    normalize_header,
    resolve_batch_columns,
    stringify_cell,
)


def _sha(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class TestFingerprintRecord:
    def test_hash_matches_joined_lowercased_input(self) -> None:
        result = fingerprint_record({"Name": "Alice", "City": "Paris"}, ["Name", "City"])
        assert result.hash_input == "alice|paris"
        assert result.fingerprint == _sha("alice|paris")

    def test_is_deterministic(self) -> None:
        record = {"Name": "Alice", "City": "Paris"}
        assert fingerprint_record(record, ["Name"]) == fingerprint_record(record, ["Name"])

    def test_header_case_and_whitespace_ignored(self) -> None:
        left = fingerprint_record({"Name": "Alice"}, ["name"])
        right = fingerprint_record({"  NAME ": "Alice"}, ["Name"])
        assert left.fingerprint == right.fingerprint

    def test_value_case_ignored(self) -> None:
        left = fingerprint_record({"Name": "ALICE"}, ["Name"])
        right = fingerprint_record({"Name": "alice"}, ["Name"])
        assert left.fingerprint == right.fingerprint

    def test_column_order_matters(self) -> None:
        record = {"a": "x", "b": "y"}
        assert (
            fingerprint_record(record, ["a", "b"]).fingerprint
            != fingerprint_record(record, ["b", "a"]).fingerprint
        )

    def test_value_change_changes_fingerprint(self) -> None:
        left = fingerprint_record({"a": "x", "b": "y"}, ["a", "b"])
        right = fingerprint_record({"a": "x", "b": "z"}, ["a", "b"])
        assert left.fingerprint != right.fingerprint

    def test_unselected_column_ignored(self) -> None:
        left = fingerprint_record({"a": "x", "note": "first"}, ["a"])
        right = fingerprint_record({"a": "x", "note": "second"}, ["a"])
        assert left.fingerprint == right.fingerprint

    def test_missing_column_contributes_empty_part(self) -> None:
        result = fingerprint_record({"a": "x"}, ["a", "missing"])
        assert result.hash_input == "x|"
        assert result.matched_values == {"a": "x"}

    def test_only_joined_string_is_trimmed(self) -> None:
        result = fingerprint_record({"a": " x ", "b": " y "}, ["a", "b"])
        assert result.hash_input == "x | y"

    def test_empty_columns_use_every_record_column(self) -> None:
        result = fingerprint_record({"a": "1", "b": "2"})
        assert result.hash_input == "1|2"

    def test_separator_collision(self) -> None:
        left = fingerprint_record({"a": "x|y", "b": "z"}, ["a", "b"])
        right = fingerprint_record({"a": "x", "b": "y|z"}, ["a", "b"])
        assert left.fingerprint == right.fingerprint

    def test_non_mapping_rejected(self) -> None:
        with pytest.raises(MalformedRecordError):
            fingerprint_record(["not", "a", "mapping"], ["a"])  # type: ignore[arg-type]


class TestCellHelpers:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, ""),
            (True, "true"),
            (1.0, "1"),
            (1.5, "1.5"),
            (7, "7"),
            ("Text", "Text"),
        ],
    )
    def test_stringify_cell(self, value, expected) -> None:
        assert stringify_cell(value) == expected

    def test_normalize_header(self) -> None:
        assert normalize_header("  Email Address ") == "email address"
        assert normalize_header(None) == ""


class TestFingerprintRows:
    def test_row_numbers_start_after_header(self) -> None:
        batch = fingerprint_rows([{"a": "1"}, {"a": "2"}], ["a"])
        assert [row.row_number for row in batch.rows] == [2, 3]

    def test_explicit_row_numbers(self) -> None:
        batch = fingerprint_rows([{"a": "1"}, {"a": "2"}], ["a"], row_numbers=[2, 5])
        assert [row.row_number for row in batch.rows] == [2, 5]

    def test_row_numbers_must_match_records(self) -> None:
        with pytest.raises(ValueError, match="row_numbers has 1 entries for 2 records"):
            fingerprint_rows([{"a": 1}, {"a": 2}], ["a"], row_numbers=[2])

    def test_malformed_rows_reported(self) -> None:
        batch = fingerprint_rows([{"a": "1"}, "broken", {"a": "2"}], ["a"])
        assert [row.row_number for row in batch.rows] == [2, 4]
        assert len(batch.row_errors) == 1
        assert batch.row_errors[0].row_number == 3

    def test_columns_default_to_first_record(self) -> None:
        batch = fingerprint_rows([{"a": "1", "b": "2"}, {"b": "2", "a": "1"}])
        assert batch.columns == ("a", "b")
        assert batch.rows[0].fingerprint == batch.rows[1].fingerprint

    def test_resolve_batch_columns_skips_malformed(self) -> None:
        assert resolve_batch_columns(["bad", {"x": 1}], ()) == ("x",)
        assert resolve_batch_columns([], ()) == ()
