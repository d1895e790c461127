"""Assertion helpers for ValidationResult."""

from __future__ import annotations

from typing import Mapping, Optional

from gtfsrt_validator.models.validation import ValidationResult, ValidationRule
from gtfsrt_validator.rules import get_rules


def assert_results(
    result: ValidationResult, expected: Optional[Mapping[ValidationRule, int]] = None
) -> None:
    """Assert the occurrence count of every catalogued rule.

    Rules missing from ``expected`` must have no occurrences.
    """
    expected = expected or {}
    actual = {rule.rule_id: result.count(rule) for rule in get_rules() if result.count(rule)}
    wanted = {rule.rule_id: count for rule, count in expected.items() if count}
    assert actual == wanted, f"occurrences {actual} != expected {wanted}: {result.to_list()}"


def prefixes(result: ValidationResult, rule: ValidationRule) -> list[str]:
    """Occurrence prefixes for ``rule``, in order."""
    return [occurrence.prefix for occurrence in result.get(rule) or []]
