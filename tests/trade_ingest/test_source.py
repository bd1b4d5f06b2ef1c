"""Tests for the CSV record source."""

from unittest.mock import patch

import pytest

from core.errors import SourceReadError
from trade_ingest.source import CsvRecordSource


class TestCsvRecordSource:

    def test_yields_rows_in_file_order(self, write_csv):
        path = write_csv(
            "token_address,price_in_sol,block_time\n"
            "T1,1.5,2024-01-01T00:00:00Z\n"
            "T2,2.5,2024-01-02T00:00:00Z\n"
        )

        rows = list(CsvRecordSource(path))

        assert rows == [
            {"token_address": "T1", "price_in_sol": "1.5", "block_time": "2024-01-01T00:00:00Z"},
            {"token_address": "T2", "price_in_sol": "2.5", "block_time": "2024-01-02T00:00:00Z"},
        ]

    def test_column_order_and_extra_columns_are_kept_as_read(self, write_csv):
        path = write_csv("slot,block_time,token_address\n7,b,T1\n")

        assert list(CsvRecordSource(path)) == [{"slot": "7", "block_time": "b", "token_address": "T1"}]

    def test_empty_values_stay_empty_strings(self, write_csv):
        path = write_csv("token_address,price_in_sol,block_time\n,bad,\n")

        assert list(CsvRecordSource(path)) == [
            {"token_address": "", "price_in_sol": "bad", "block_time": ""}
        ]

    def test_header_only_file_has_no_rows(self, write_csv):
        assert list(CsvRecordSource(write_csv("token_address,price_in_sol,block_time\n"))) == []

    def test_strips_byte_order_mark_from_header(self, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_bytes(b"\xef\xbb\xbftoken_address\nT1\n")

        assert list(CsvRecordSource(path)) == [{"token_address": "T1"}]

    def test_custom_delimiter(self, write_csv):
        path = write_csv("token_address;price_in_sol\nT1;3\n")

        assert list(CsvRecordSource(path, delimiter=";")) == [
            {"token_address": "T1", "price_in_sol": "3"}
        ]

    def test_each_iteration_rereads_file(self, write_csv):
        source = CsvRecordSource(write_csv("token_address\nT1\n"))

        assert list(source) == list(source) == [{"token_address": "T1"}]

    def test_missing_file_raises_source_read_error(self, tmp_path):
        source = CsvRecordSource(tmp_path / "missing.csv")

        with pytest.raises(SourceReadError) as exc_info:
            list(source)

        assert exc_info.value.path.endswith("missing.csv")
        assert isinstance(exc_info.value.cause, FileNotFoundError)

    def test_unreadable_file_raises_source_read_error(self, write_csv):
        path = write_csv("token_address\nT1\n")

        with patch("builtins.open", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(SourceReadError) as exc_info:
                list(CsvRecordSource(path))

        assert isinstance(exc_info.value.cause, PermissionError)

    def test_too_many_columns_raises(self, write_csv):
        path = write_csv("token_address,price_in_sol\nT1,1\nT2,2,extra\n")
        rows = iter(CsvRecordSource(path))

        assert next(rows) == {"token_address": "T1", "price_in_sol": "1"}
        with pytest.raises(SourceReadError) as exc_info:
            next(rows)
        assert exc_info.value.line_number == 3

    def test_too_few_columns_raises(self, write_csv):
        path = write_csv("token_address,price_in_sol,block_time\nT1,1\n")

        with pytest.raises(SourceReadError):
            list(CsvRecordSource(path))

    def test_undecodable_bytes_raise(self, tmp_path):
        path = tmp_path / "latin1.csv"
        path.write_bytes(b"token_address\n\xff\xfe\xfa\n")

        with pytest.raises(SourceReadError) as exc_info:
            list(CsvRecordSource(path))

        assert isinstance(exc_info.value.cause, UnicodeDecodeError)
