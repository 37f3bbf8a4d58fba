"""Validation orchestrator. Decides whether a clock-in/out is permitted.

Runs repeated acquire + match cycles. A precise match is accepted at once;
anything less is kept as a candidate, and on the last attempt the most
precise candidate is returned as a best-effort verdict. Consumer GPS
hardware must not permanently block a clock action, but an imprecise first
reading is never accepted immediately.

Each call is self-contained: no state survives between validations.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Sequence, TYPE_CHECKING

import structlog

from ponto.core.errors import LocationError
from ponto.core.matcher import active_sites, match
from ponto.core.models import (
    AuthorizedSite,
    LocationSample,
    MatchResult,
    ReasonCode,
    SiteChange,
    ValidationVerdict,
)

if TYPE_CHECKING:
    from ponto.core.acquirer import LocationAcquirer
    from ponto.core.stats import ValidationStats

log = structlog.get_logger()

DEFAULT_MAX_RETRIES = 3

# A matched sample at least this precise (meters) is accepted immediately.
IMMEDIATE_ACCEPT_ACCURACY_M = 30.0

# On the last attempt, the best sample is returned if at least this precise.
BEST_EFFORT_ACCURACY_M = 100.0


class Step(enum.Enum):
    """What the loop does after an attempt."""
    CONTINUE = "continue"
    ACCEPT_IMMEDIATELY = "accept_immediately"
    ACCEPT_BEST_EFFORT = "accept_best_effort"
    FAIL = "fail"


@dataclass(frozen=True)
class Attempt:
    sample: LocationSample
    match: MatchResult


def decide(
    current: Attempt | None,
    best: Attempt | None,
    is_final: bool,
) -> tuple[Step, Attempt | None]:
    """Termination decision for one iteration.

    ``current`` is None when the attempt raised LocationError. ``best`` must
    already include ``current``. Returns the step together with the attempt
    it accepts, which is None for CONTINUE and FAIL.
    """
    if (current is not None and current.match.matched
            and current.sample.accuracy_m <= IMMEDIATE_ACCEPT_ACCURACY_M):
        return Step.ACCEPT_IMMEDIATELY, current
    if not is_final:
        return Step.CONTINUE, None
    if best is not None and best.sample.accuracy_m <= BEST_EFFORT_ACCURACY_M:
        return Step.ACCEPT_BEST_EFFORT, best
    return Step.FAIL, None


def describe_match(result: MatchResult) -> str:
    """Human-readable summary of a match, naming the nearest site on rejection."""
    if result.matched and result.site is not None:
        return f"Location authorized at {result.site.name}"
    if result.site is None or result.distance_m is None:
        return "No authorized location nearby"
    return (f"You are {round(result.distance_m)}m from {result.site.name}. "
            f"Move closer to register.")


def describe_site_change(change: SiteChange, verdict: ValidationVerdict) -> str | None:
    """Message naming both sites when an allowed verdict is at a new site."""
    if not change.changed or change.previous_site is None or not verdict.allowed:
        return None
    site = verdict.match.site if verdict.match is not None else None
    if site is None or site.id == change.previous_site.id:
        return None
    return f"Location changed from {change.previous_site.name} to {site.name}"


class ValidationOrchestrator:
    """Drives acquire + match cycles and produces a ValidationVerdict."""

    def __init__(
        self,
        acquirer: LocationAcquirer,
        stats: ValidationStats | None = None,
    ) -> None:
        self._acquirer = acquirer
        self._stats = stats

    async def validate(
        self,
        sites: Sequence[AuthorizedSite],
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> ValidationVerdict:
        """Validate the current device position against ``sites``.

        Never raises for location failures; those end up as a
        ``LocationUnavailable`` verdict. Cancelling the awaiting task aborts
        the in-flight acquisition.
        """
        if not active_sites(sites):
            log.info("validation_no_sites", sites=len(sites))
            return ValidationVerdict(
                allowed=False,
                sample=None,
                match=None,
                reason=ReasonCode.NO_SITES_CONFIGURED,
                message="No authorized locations are configured",
            )

        max_retries = max(max_retries, 1)
        best: Attempt | None = None

        for attempt_no in range(1, max_retries + 1):
            if attempt_no > 1:
                await self._acquirer.pause()

            current: Attempt | None = None
            try:
                sample = await self._acquirer.acquire(
                    max_age_ms=None if attempt_no == 1 else 0)
            except LocationError as exc:
                log.warning("validation_attempt_failed", attempt=attempt_no, error=str(exc))
                if self._stats is not None:
                    self._stats.record_location_error()
            else:
                if self._stats is not None:
                    self._stats.record_sample()
                current = Attempt(sample, match(sample.coordinate, sites, sample.accuracy_m))
                if best is None or sample.accuracy_m < best.sample.accuracy_m:
                    best = current
                log.debug("validation_attempt",
                          attempt=attempt_no,
                          accuracy_m=sample.accuracy_m,
                          matched=current.match.matched,
                          distance_m=current.match.distance_m)

            step, chosen = decide(current, best, is_final=attempt_no == max_retries)
            if step is Step.ACCEPT_IMMEDIATELY and chosen is not None:
                return self._finish(self._immediate(chosen), attempt_no)
            if step is Step.ACCEPT_BEST_EFFORT and chosen is not None:
                return self._finish(self._best_effort(chosen), attempt_no)
            if step is Step.FAIL:
                break

        if best is not None:
            return self._finish(self._exhausted(best), max_retries)

        return self._finish(ValidationVerdict(
            allowed=False,
            sample=None,
            match=None,
            reason=ReasonCode.LOCATION_UNAVAILABLE,
            message=(f"Unable to obtain a location after {max_retries} attempts. "
                     f"Check that GPS is enabled and location permission is granted."),
        ), max_retries)

    @staticmethod
    def _immediate(attempt: Attempt) -> ValidationVerdict:
        return ValidationVerdict(
            allowed=True,
            sample=attempt.sample,
            match=attempt.match,
            reason=ReasonCode.MATCHED,
            message=(f"{describe_match(attempt.match)} "
                     f"(precision: {round(attempt.sample.accuracy_m)}m)"),
        )

    @staticmethod
    def _best_effort(best: Attempt) -> ValidationVerdict:
        matched = best.match.matched
        return ValidationVerdict(
            allowed=matched,
            sample=best.sample,
            match=best.match,
            reason=ReasonCode.BEST_EFFORT_ACCEPTED if matched else ReasonCode.BEST_EFFORT_REJECTED,
            message=(f"{describe_match(best.match)} "
                     f"(precision: {round(best.sample.accuracy_m)}m)"),
        )

    @staticmethod
    def _exhausted(best: Attempt) -> ValidationVerdict:
        matched = best.match.matched
        return ValidationVerdict(
            allowed=matched,
            sample=best.sample,
            match=best.match,
            reason=ReasonCode.BEST_EFFORT_ACCEPTED if matched else ReasonCode.NO_MATCH,
            message=(f"{describe_match(best.match)} "
                     f"(best precision: {round(best.sample.accuracy_m)}m)"),
        )

    def _finish(self, verdict: ValidationVerdict, attempts: int) -> ValidationVerdict:
        log.info("validation_completed",
                 allowed=verdict.allowed,
                 reason=verdict.reason.value,
                 attempts=attempts,
                 site=verdict.match.site.id if verdict.match and verdict.match.site else None)
        return verdict
