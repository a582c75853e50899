"""
tests/test_vouch_engine.py — Pure vouch logic
==============================================

Resequencing, leaderboard aggregation, vendor resolution and input parsing.
No database involved.
"""

from __future__ import annotations

import pytest

from vouchboard.engine.records import GuildRecord, Vendor, Vouch
from vouchboard.engine.vouches import (
    UNKNOWN_VENDOR,
    build_vouch,
    compute_leaderboard,
    format_timestamp,
    parse_note,
    parse_qty,
    resequence,
    resolve_vendor,
)
from vouchboard.errors import ValidationError


def _vouch(vouch_id: int, created_at: int, vendor_label: str | None = "Shop", vendor_id: str | None = None) -> Vouch:
    return Vouch(
        id=vouch_id,
        vendor_label=vendor_label,
        vendor_id=vendor_id,
        note=5,
        created_at=created_at,
    )


# ===========================================================================
# Resequencing
# ===========================================================================
class TestResequence:
    def test_delete_middle_shifts_later_ids(self):
        """ids [1,2,3] at t1<t2<t3, drop #2 → [#1 (t1), #2 (t3)], next 3."""
        record = GuildRecord(
            guild_id="g",
            vouches=[_vouch(1, 100), _vouch(2, 200), _vouch(3, 300)],
            next_id=4,
        )
        record.vouches = [v for v in record.vouches if v.id != 2]
        resequence(record)

        assert [(v.id, v.created_at) for v in record.vouches] == [(1, 100), (2, 300)]
        assert record.next_id == 3

    def test_orders_by_created_at(self):
        record = GuildRecord(
            guild_id="g",
            vouches=[_vouch(9, 300), _vouch(4, 100), _vouch(7, 200)],
        )
        resequence(record)
        assert [(v.id, v.created_at) for v in record.vouches] == [(1, 100), (2, 200), (3, 300)]
        assert record.next_id == 4

    def test_equal_timestamps_keep_insertion_order(self):
        first = _vouch(5, 100, vendor_label="A")
        second = _vouch(6, 100, vendor_label="B")
        record = GuildRecord(guild_id="g", vouches=[first, second])
        resequence(record)
        assert [v.vendor_label for v in record.vouches] == ["A", "B"]
        assert [v.id for v in record.vouches] == [1, 2]

    def test_empty_record(self):
        record = GuildRecord(guild_id="g", vouches=[], next_id=12)
        resequence(record)
        assert record.vouches == []
        assert record.next_id == 1


# ===========================================================================
# Leaderboard
# ===========================================================================
class TestComputeLeaderboard:
    def test_counts_sum_to_total_and_sorted_descending(self):
        vouches = [
            _vouch(1, 1, vendor_label="Alpha"),
            _vouch(2, 2, vendor_label="Beta"),
            _vouch(3, 3, vendor_label="Beta"),
            _vouch(4, 4, vendor_label="Gamma"),
            _vouch(5, 5, vendor_label="Beta"),
            _vouch(6, 6, vendor_label="Gamma"),
        ]
        rows = compute_leaderboard(vouches)

        assert sum(r.count for r in rows) == len(vouches)
        assert [r.count for r in rows] == sorted((r.count for r in rows), reverse=True)
        assert [(r.rank, r.vendor, r.count) for r in rows] == [
            (1, "Beta", 3),
            (2, "Gamma", 2),
            (3, "Alpha", 1),
        ]

    def test_vendor_id_beats_label_and_digits_render_as_mention(self):
        vouches = [
            _vouch(1, 1, vendor_label="Seller", vendor_id="4242"),
            _vouch(2, 2, vendor_label="Seller renamed", vendor_id="4242"),
        ]
        rows = compute_leaderboard(vouches)
        assert len(rows) == 1
        assert rows[0].vendor == "@4242"
        assert rows[0].count == 2

    def test_missing_vendor_falls_into_unknown(self):
        rows = compute_leaderboard([_vouch(1, 1, vendor_label=None)])
        assert rows[0].vendor == UNKNOWN_VENDOR

    def test_ties_keep_first_appearance_order(self):
        vouches = [
            _vouch(1, 1, vendor_label="Zed"),
            _vouch(2, 2, vendor_label="Amy"),
        ]
        assert [r.vendor for r in compute_leaderboard(vouches)] == ["Zed", "Amy"]

    def test_to_dict_shape(self):
        row = compute_leaderboard([_vouch(1, 1, vendor_label="Shop")])[0]
        assert row.to_dict() == {"rank": 1, "vendor": "Shop", "count": 1}


# ===========================================================================
# Vendor resolution
# ===========================================================================
class TestResolveVendor:
    VENDORS = [
        Vendor(label="Alice", id="111"),
        Vendor(label="Bob"),
        Vendor(label="Carol", id="carol-shop"),
    ]

    def test_match_by_id(self):
        assert resolve_vendor(self.VENDORS, "111") == ("111", "Alice")

    def test_match_by_label(self):
        assert resolve_vendor(self.VENDORS, "Alice") == ("111", "Alice")
        assert resolve_vendor(self.VENDORS, "Bob") == (None, "Bob")

    def test_non_numeric_id_is_not_kept(self):
        assert resolve_vendor(self.VENDORS, "carol-shop") == (None, "Carol")

    def test_unknown_reference_stored_verbatim(self):
        assert resolve_vendor(self.VENDORS, "Dave") == (None, "Dave")


# ===========================================================================
# Input parsing
# ===========================================================================
class TestParsing:
    @pytest.mark.parametrize(
        "raw, expected",
        [("4", 4), (5, 5), ("4.5", 4.5), (3.0, 3), (" 2 ", 2), ("0", 0)],
    )
    def test_parse_note_accepts_numbers(self, raw, expected):
        assert parse_note(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "great", "nan", "inf", True])
    def test_parse_note_rejects(self, raw):
        with pytest.raises(ValidationError):
            parse_note(raw)

    @pytest.mark.parametrize(
        "raw, expected",
        [("3", 3), (2, 2), ("x", 1), (None, 1), ("0", 1), ("-4", 1), ("2.5", 1)],
    )
    def test_parse_qty(self, raw, expected):
        assert parse_qty(raw) == expected

    def test_format_timestamp(self):
        assert format_timestamp(0) == "01/01/1970 00:00"
        assert format_timestamp(1_700_000_000_000) == "14/11/2023 22:13"


class TestBuildVouch:
    def test_assigns_next_id_and_resolves_vendor(self):
        record = GuildRecord(guild_id="g", next_id=8, vendors=[Vendor(label="Alice", id="111")])
        vouch = build_vouch(
            record,
            vendor="Alice",
            note="4",
            item="  Nitro ",
            qty="2",
            price="10€",
            payment="PayPal",
            comment="",
            created_at=123,
            author_id="5",
        )
        assert vouch.id == 8
        assert vouch.vendor_id == "111"
        assert vouch.vendor_label == "Alice"
        assert vouch.note == 4
        assert vouch.item == "Nitro"
        assert vouch.qty == 2
        assert vouch.comment is None
        assert vouch.created_at == 123
        # Not appended
        assert record.vouches == []

    def test_missing_vendor_rejected(self):
        record = GuildRecord(guild_id="g")
        with pytest.raises(ValidationError):
            build_vouch(record, vendor="  ", note=5, created_at=1)
