"""The single capability every validator provides."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gtfsrt_validator.models.validation import ValidationResult
    from gtfsrt_validator.services.validation.context import ValidationContext


@runtime_checkable
class FeedValidator(Protocol):
    """Checks one rule family against a ValidationContext.

    Implementations hold no per-feed state, so one instance may validate many
    contexts concurrently.
    """

    def validate(self, context: ValidationContext) -> ValidationResult: ...
