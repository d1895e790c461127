"""Validation rule, occurrence and result value types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Optional, Tuple

from gtfsrt_validator.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = get_logger(__name__)


class Severity(str, Enum):
    """Rule severity."""

    ERROR = "ERROR"
    WARNING = "WARNING"


@dataclass(frozen=True)
class ValidationRule:
    """A catalogued rule, e.g. E002 "stop_times_updates not strictly sorted"."""

    rule_id: str
    severity: Severity
    title: str
    description: str
    occurrence_suffix: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "occurrence_suffix": self.occurrence_suffix,
        }


@dataclass(frozen=True)
class Occurrence:
    """One concrete violation of a rule.

    The prefix identifies the offending element (e.g. ``trip_id 6234``); the
    rule's suffix completes the sentence when rendered.
    """

    prefix: str

    def render(self, rule: ValidationRule) -> str:
        """Join the prefix and the rule's occurrence suffix."""
        return " ".join(part for part in (self.prefix, rule.occurrence_suffix) if part)


class ValidationResult:
    """Mapping of rule -> ordered occurrences produced by one validator run.

    A rule with no occurrences never appears in the mapping.
    """

    def __init__(self) -> None:
        self._occurrences: Dict[ValidationRule, List[Occurrence]] = {}

    def add(self, rule: ValidationRule, prefix: str) -> None:
        """Record an occurrence of ``rule`` described by ``prefix``."""
        logger.debug("Rule occurrence", rule_id=rule.rule_id, prefix=prefix)
        self._occurrences.setdefault(rule, []).append(Occurrence(prefix))

    def extend(self, rule: ValidationRule, occurrences: Iterable[Occurrence]) -> None:
        items = list(occurrences)
        if items:
            self._occurrences.setdefault(rule, []).extend(items)

    def get(self, rule: ValidationRule) -> Optional[List[Occurrence]]:
        """Occurrences for ``rule``, or None when the rule has none."""
        occurrences = self._occurrences.get(rule)
        return list(occurrences) if occurrences is not None else None

    def count(self, rule: ValidationRule) -> int:
        return len(self._occurrences.get(rule, ()))

    def rules(self) -> List[ValidationRule]:
        return list(self._occurrences)

    def items(self) -> Iterator[Tuple[ValidationRule, List[Occurrence]]]:
        for rule, occurrences in self._occurrences.items():
            yield rule, list(occurrences)

    def rule_ids(self) -> List[str]:
        return [rule.rule_id for rule in self._occurrences]

    def total_occurrences(self) -> int:
        return sum(len(occurrences) for occurrences in self._occurrences.values())

    def merge(self, other: ValidationResult) -> ValidationResult:
        """Return a new result with ``other`` appended rule by rule.

        Occurrence order is preserved per source: this result's occurrences
        come first, then ``other``'s.
        """
        merged = ValidationResult()
        for source in (self, other):
            for rule, occurrences in source.items():
                merged.extend(rule, occurrences)
        return merged

    @classmethod
    def merge_all(cls, results: Iterable[ValidationResult]) -> ValidationResult:
        merged = cls()
        for result in results:
            for rule, occurrences in result.items():
                merged.extend(rule, occurrences)
        return merged

    def as_mapping(self) -> Mapping[ValidationRule, List[Occurrence]]:
        return {rule: list(occurrences) for rule, occurrences in self._occurrences.items()}

    def to_list(self) -> List[Dict[str, Any]]:
        """Serialize as a list of ``{rule, occurrences}`` entries (results file format)."""
        return [
            {
                "rule": rule.to_dict(),
                "occurrences": [
                    {"prefix": occurrence.prefix, "text": occurrence.render(rule)}
                    for occurrence in occurrences
                ],
            }
            for rule, occurrences in self._occurrences.items()
        ]

    def __contains__(self, rule: object) -> bool:
        return rule in self._occurrences

    def __len__(self) -> int:
        return len(self._occurrences)

    def __bool__(self) -> bool:
        return bool(self._occurrences)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationResult):
            return NotImplemented
        return self._occurrences == other._occurrences

    def __repr__(self) -> str:
        counts = ", ".join(f"{rule.rule_id}={len(occ)}" for rule, occ in self._occurrences.items())
        return f"ValidationResult({counts})"
