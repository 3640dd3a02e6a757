"""
SignalDesk - Utility Tests
"""
from datetime import datetime

from signaldesk.utils import parse_datetime, safe_int, slugify


class TestParseDatetime:

    def test_iso_with_zone(self):
        assert parse_datetime('2024-02-01T10:00:00Z') == datetime(2024, 2, 1, 10, 0)
        assert parse_datetime('2024-02-01T12:00:00+02:00') == datetime(2024, 2, 1, 10, 0)

    def test_epoch_milliseconds(self):
        assert parse_datetime('1706781600000') == datetime(2024, 2, 1, 10, 0)
        assert parse_datetime(1706781600000) == datetime(2024, 2, 1, 10, 0)

    def test_unparseable(self):
        assert parse_datetime(None) is None
        assert parse_datetime('') is None
        assert parse_datetime('next tuesday') is None

    def test_out_of_range_epoch(self):
        assert parse_datetime('99999999999999999999') is None


def test_safe_int():
    assert safe_int('7', 1) == 7
    assert safe_int('seven', 1) == 1


def test_slugify():
    assert slugify('  BTC / ETH  Breakout! ') == 'btc-eth-breakout'
