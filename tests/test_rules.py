"""Tests for the rule catalog."""

from __future__ import annotations

import pytest

from gtfsrt_validator import rules
from gtfsrt_validator.models.validation import Severity, ValidationRule


class TestRuleCatalog:
    """Tests for ALL_RULES, get_rules and get_rule."""

    def test_catalog_size(self) -> None:
        assert len(rules.get_rules()) == 61
        assert len(rules.ALL_RULES) == 61

    def test_identifiers_are_unique_and_keyed(self) -> None:
        for rule_id, rule in rules.ALL_RULES.items():
            assert rule.rule_id == rule_id

    def test_warnings_first_in_identifier_order(self) -> None:
        ids = [rule.rule_id for rule in rules.get_rules()]
        assert ids[:9] == [f"W{n:03d}" for n in range(1, 10)]
        assert ids[9:] == [f"E{n:03d}" for n in range(1, 53)]

    def test_severity_matches_prefix(self) -> None:
        for rule in rules.get_rules():
            expected = Severity.WARNING if rule.rule_id.startswith("W") else Severity.ERROR
            assert rule.severity is expected

    def test_get_rule(self) -> None:
        assert rules.get_rule("E002") is rules.E002
        assert rules.get_rule("W009").title == "schedule_relationship not populated"

    def test_unknown_rule_raises(self) -> None:
        with pytest.raises(KeyError):
            rules.get_rule("E053")

    def test_catalog_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            rules.ALL_RULES["X001"] = rules.E001  # type: ignore[index]

    def test_rules_are_frozen(self) -> None:
        with pytest.raises(AttributeError):
            rules.E001.title = "changed"  # type: ignore[misc]

    def test_rules_are_hashable_and_equal_by_value(self) -> None:
        copy = ValidationRule(
            "E001",
            Severity.ERROR,
            rules.E001.title,
            rules.E001.description,
            rules.E001.occurrence_suffix,
        )
        assert copy == rules.E001
        assert {rules.E001: 1}[copy] == 1

    def test_to_dict(self) -> None:
        data = rules.W007.to_dict()
        assert data["rule_id"] == "W007"
        assert data["severity"] == "WARNING"
        assert data["occurrence_suffix"] == "which is less than the recommended interval of 35 seconds"
