"""Validation engine: runs every validator against a context and merges the results."""

from __future__ import annotations

import time
import uuid
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from gtfsrt_validator.config import get_settings
from gtfsrt_validator.logging import get_logger
from gtfsrt_validator.models.validation import Severity, ValidationResult
from gtfsrt_validator.services.validation.cross_feed import CrossFeedDescriptorValidator
from gtfsrt_validator.services.validation.frequency import (
    FrequencyTypeOneValidator,
    FrequencyTypeZeroValidator,
)
from gtfsrt_validator.services.validation.header import HeaderValidator
from gtfsrt_validator.services.validation.stop import StopLocationTypeValidator, StopValidator
from gtfsrt_validator.services.validation.stop_time_update import StopTimeUpdateValidator
from gtfsrt_validator.services.validation.timestamp import IdenticalFeedMessageError, TimestampValidator
from gtfsrt_validator.services.validation.trip_descriptor import TripDescriptorValidator
from gtfsrt_validator.services.validation.vehicle import VehicleValidator

if TYPE_CHECKING:
    from concurrent.futures import Future

    from gtfsrt_validator.services.validation.base import FeedValidator
    from gtfsrt_validator.services.validation.context import ValidationContext

logger = get_logger(__name__)


def default_validators() -> List[FeedValidator]:
    """Every validator, in the order their results are merged."""
    return [
        CrossFeedDescriptorValidator(),
        VehicleValidator(),
        TimestampValidator(),
        StopTimeUpdateValidator(),
        TripDescriptorValidator(),
        StopValidator(),
        FrequencyTypeZeroValidator(),
        FrequencyTypeOneValidator(),
        HeaderValidator(),
        StopLocationTypeValidator(),
    ]


@dataclass
class ValidationReport:
    """Merged outcome of one engine run over a single feed iteration."""

    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: str = ""
    ended_at: str = ""
    duration_ms: int = 0
    result: ValidationResult = field(default_factory=ValidationResult)
    completed: List[str] = field(default_factory=list)
    timed_out: List[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(
            len(occurrences)
            for rule, occurrences in self.result.items()
            if rule.severity is Severity.ERROR
        )

    @property
    def warning_count(self) -> int:
        return self.result.total_occurrences() - self.error_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "duration_ms": self.duration_ms,
            "rule_ids": self.result.rule_ids(),
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "completed": list(self.completed),
            "timed_out": list(self.timed_out),
            "results": self.result.to_list(),
        }


class ValidationEngine:
    """Runs a fixed set of validators concurrently against one ValidationContext.

    Validators are stateless, so one engine can serve every iteration of a
    feed. Results are merged in validator order regardless of completion
    order, which keeps reports deterministic.
    """

    def __init__(
        self,
        validators: Optional[Sequence[FeedValidator]] = None,
        *,
        max_workers: Optional[int] = None,
        timeout_sec: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self.validators: List[FeedValidator] = (
            list(validators) if validators is not None else default_validators()
        )
        self.max_workers = max_workers if max_workers is not None else settings.validation_workers
        self.timeout_sec = (
            timeout_sec if timeout_sec is not None else settings.validation_timeout_sec
        )

    def run(self, context: ValidationContext) -> ValidationReport:
        """Validate ``context`` with every validator and merge the results.

        Validators still running when ``timeout_sec`` elapses are left out of
        the merged result and named in ``ValidationReport.timed_out``.

        Raises:
            IdenticalFeedMessageError: If the context's current and previous
                messages are the same.
            Exception: Whatever a validator raised, after logging it.
        """
        report = ValidationReport()
        report.started_at = datetime.now(timezone.utc).isoformat()
        t0 = time.monotonic()

        logger.info(
            "Validation run started",
            run_id=report.run_id,
            validators=len(self.validators),
            entities=len(context.feed_message.entity),
            timeout_sec=self.timeout_sec,
        )

        executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="gtfsrt-validator"
        )
        try:
            futures: List[Future[ValidationResult]] = [
                executor.submit(validator.validate, context) for validator in self.validators
            ]
            done, _ = wait(futures, timeout=self.timeout_sec)

            results: List[ValidationResult] = []
            for validator, future in zip(self.validators, futures):
                name = type(validator).__name__
                if future not in done:
                    future.cancel()
                    report.timed_out.append(name)
                    continue
                self._raise_on_failure(report, name, future)
                results.append(future.result())
                report.completed.append(name)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        report.result = ValidationResult.merge_all(results)
        report.duration_ms = int((time.monotonic() - t0) * 1000)
        report.ended_at = datetime.now(timezone.utc).isoformat()

        if report.timed_out:
            logger.warning(
                "Validators did not finish before the deadline",
                run_id=report.run_id,
                timed_out=report.timed_out,
                timeout_sec=self.timeout_sec,
            )
        logger.info(
            "Validation run completed",
            run_id=report.run_id,
            duration_ms=report.duration_ms,
            rules=len(report.result),
            errors=report.error_count,
            warnings=report.warning_count,
        )
        return report

    @staticmethod
    def _raise_on_failure(
        report: ValidationReport, name: str, future: Future[ValidationResult]
    ) -> None:
        exc = future.exception()
        if exc is None:
            return
        if isinstance(exc, IdenticalFeedMessageError):
            logger.error(
                "Current and previous feed messages are identical",
                run_id=report.run_id,
                validator=name,
            )
        else:
            logger.error("Validator failed", run_id=report.run_id, validator=name, exc_info=exc)
        raise exc
