"""Tests for raw row normalization."""

import json
import math
from datetime import UTC, datetime

import pytest

from trade_ingest.normalizer import (
    format_timestamp,
    invalid_price,
    normalize_row,
    parse_price,
)
from trade_ingest.schemas import TradeRecord

FIXED_NOW = datetime(2026, 3, 14, 9, 26, 53, 589000, tzinfo=UTC)


class TestTokenAddress:

    def test_keeps_present_value(self):
        record = normalize_row({"token_address": "T1", "price_in_sol": "1", "block_time": "x"})
        assert record.token_address == "T1"

    @pytest.mark.parametrize("row", [{}, {"token_address": ""}, {"token_address": None}])
    def test_missing_or_empty_defaults_to_unknown(self, row):
        assert normalize_row(row, now=FIXED_NOW).token_address == "UNKNOWN"


class TestPriceInSol:

    @pytest.mark.parametrize(
        "raw, expected",
        [("1.5", 1.5), ("0.000123", 0.000123), ("-2", -2.0), ("1e3", 1000.0), (" 42 ", 42.0)],
    )
    def test_parses_numeric_strings(self, raw, expected):
        record = normalize_row({"price_in_sol": raw}, now=FIXED_NOW)
        assert record.price_in_sol == expected

    @pytest.mark.parametrize(
        "raw", [None, "", "   ", "bad", "1.5abc", "nan", "inf", "-Infinity", "1_000"]
    )
    def test_absent_empty_or_invalid_defaults_to_zero(self, raw):
        row = {} if raw is None else {"price_in_sol": raw}
        record = normalize_row(row, now=FIXED_NOW)
        assert record.price_in_sol == 0
        assert math.isfinite(record.price_in_sol)


class TestBlockTime:

    def test_keeps_present_value(self):
        record = normalize_row({"block_time": "2024-01-01T00:00:00Z"}, now=FIXED_NOW)
        assert record.block_time == "2024-01-01T00:00:00Z"

    def test_missing_uses_normalization_time(self):
        record = normalize_row({"block_time": ""}, now=FIXED_NOW)
        assert record.block_time == "2026-03-14T09:26:53.589Z"

    def test_default_is_current_time_when_no_clock_given(self):
        before = datetime.now(UTC)
        record = normalize_row({})
        after = datetime.now(UTC)

        stamped = datetime.fromisoformat(record.block_time.replace("Z", "+00:00"))
        # Millisecond truncation can put the stamp just under `before`
        assert before.replace(microsecond=before.microsecond // 1000 * 1000) <= stamped <= after


class TestNormalizeRow:

    def test_ignores_extra_columns(self):
        record = normalize_row(
            {"token_address": "T1", "price_in_sol": "2", "block_time": "b", "slot": "99"}
        )
        assert record == TradeRecord(token_address="T1", price_in_sol=2.0, block_time="b")

    def test_record_is_immutable(self):
        record = normalize_row({"token_address": "T1"}, now=FIXED_NOW)
        with pytest.raises(Exception):
            record.token_address = "T2"

    def test_message_has_exactly_three_keys(self):
        record = normalize_row({"token_address": "T1", "price_in_sol": "1.5", "block_time": "b"})
        payload = json.loads(record.to_message())
        assert payload == {"token_address": "T1", "price_in_sol": 1.5, "block_time": "b"}


class TestHelpers:

    def test_parse_price_rejects_garbage(self):
        assert parse_price("abc") is None
        assert parse_price("3.25") == 3.25

    def test_invalid_price_only_flags_present_garbage(self):
        assert invalid_price({"price_in_sol": "bad"}) == "bad"
        assert invalid_price({"price_in_sol": ""}) is None
        assert invalid_price({}) is None
        assert invalid_price({"price_in_sol": "1.0"}) is None

    def test_digit_separators_are_not_numeric(self):
        assert parse_price("1_000") is None
        assert invalid_price({"price_in_sol": "1_000"}) == "1_000"

    def test_format_timestamp_converts_to_utc(self):
        assert format_timestamp(datetime(2024, 1, 1, tzinfo=UTC)) == "2024-01-01T00:00:00.000Z"
