"""Tests for src.core.members — category membership and submission lookups."""

from datetime import date, datetime, timezone

import pytest

from src.core.errors import InvalidFormatError
from src.core.members import (
    UNCATEGORIZED,
    add_members,
    all_members,
    categories_of,
    category_label,
    group_by_category,
    member_handle,
    member_index,
    missing_members,
    parse_add_member_args,
    parse_usernames,
    remove_members,
    submitted_on,
)
from src.data.models import GroupRecord, UpdateEntry

DAY = date(2024, 3, 20)


def _entry(user, day=DAY, text="Today: Y"):
    return UpdateEntry(user=user, text=text, date=datetime(day.year, day.month, day.day, 9, tzinfo=timezone.utc))


def _group(**categories):
    group = GroupRecord(id="-100123")
    group.member_categories.update({k: list(v) for k, v in categories.items()})
    return group


class TestParsing:
    def test_parse_usernames(self):
        assert parse_usernames("alice, @bob,carol, alice") == ["alice", "bob", "carol"]

    def test_parse_usernames_empty(self):
        assert parse_usernames(" , ") == []

    def test_add_member_args(self):
        assert parse_add_member_args("eng alice, bob") == ("eng", ["alice", "bob"])

    def test_add_member_args_quoted_category(self):
        assert parse_add_member_args('"Sales Team" alice') == ("Sales Team", ["alice"])

    @pytest.mark.parametrize("text", ["", "eng", '"Sales alice', '"" alice', "eng ,"])
    def test_add_member_args_invalid(self, text):
        with pytest.raises(InvalidFormatError):
            parse_add_member_args(text)


class TestAddRemove:
    def test_add_creates_lowercase_category(self):
        group = _group()
        result = add_members(group, "Eng", ["alice", "bob"])
        assert group.member_categories == {"eng": ["alice", "bob"]}
        assert result.added == ["alice", "bob"]

    def test_add_reports_existing(self):
        group = _group(eng=["alice"])
        result = add_members(group, "eng", ["alice", "bob"])
        assert result.already == ["alice"]
        assert group.member_categories["eng"] == ["alice", "bob"]

    def test_remove_keeps_non_empty_category(self):
        group = _group(eng=["alice", "bob"])
        result = remove_members(group, ["alice"])
        assert group.member_categories == {"eng": ["bob"]}
        assert result.removed == [("alice", "eng")]
        assert result.cleaned_categories == []

    def test_remove_drops_empty_category(self):
        group = _group(eng=["alice"])
        result = remove_members(group, ["alice"])
        assert group.member_categories == {}
        assert result.cleaned_categories == ["eng"]

    def test_remove_from_every_category(self):
        group = _group(eng=["alice", "bob"], ops=["alice"])
        result = remove_members(group, ["alice", "zed"])
        assert group.member_categories == {"eng": ["bob"]}
        assert result.not_found == ["zed"]
        assert ("alice", "ops") in result.removed


class TestLookups:
    def test_member_handle_of_draft_key(self):
        assert member_handle("Jane Doe (@jane)") == "jane"
        assert member_handle("alice") == "alice"

    def test_categories_of_matches_draft_key(self):
        group = _group(eng=["jane"], ops=["jane", "bob"])
        assert categories_of(group, "Jane Doe (@jane)") == ["eng", "ops"]
        assert category_label(group, "bob") == "ops"
        assert category_label(group, "nobody") == UNCATEGORIZED

    def test_all_members_and_index(self):
        group = _group(eng=["alice", "bob"], ops=["bob", "carol"])
        assert all_members(group) == ["alice", "bob", "carol"]
        assert member_index(group)["bob"] == ["eng", "ops"]

    def test_submitted_and_missing(self):
        group = _group(eng=["alice", "bob", "jane"])
        group.stand_up_logs = [
            _entry("alice"),
            _entry("Jane Doe (@jane)"),
            _entry("bob", day=date(2024, 3, 19)),
        ]
        assert {"alice", "jane"} <= submitted_on(group, DAY)
        assert missing_members(group, DAY) == ["bob"]

    def test_group_by_category(self):
        group = _group(eng=["alice"])
        entries = [_entry("alice"), _entry("zed")]
        grouped = group_by_category(group, entries)
        assert list(grouped) == ["eng", UNCATEGORIZED]
        assert grouped[UNCATEGORIZED][0].user == "zed"
