"""
SLA Value Objects
==================

Immutable value objects and pure calculations for the SLA domain.

Effective SLA window = Base target (by priority) x Priority multiplier

Both knobs vary by priority, so the priority effect compounds: an urgent
ticket gets 30 x 0.5 = 15 minutes to first response. This is the
established numbering customers see and is kept deliberately.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from helpdesk.config import Priority, SLAState, VALID_PRIORITIES


@dataclass(frozen=True)
class SLATargets:
    """Base time budgets in minutes, before the priority multiplier."""
    first_response_time: float
    resolution_time: float


@dataclass(frozen=True)
class SLADueDates:
    """Absolute deadlines for one ticket."""
    first_response_due: datetime
    resolution_due: datetime


DEFAULT_SLA_TARGETS: Dict[Priority, SLATargets] = {
    Priority.URGENT: SLATargets(first_response_time=30, resolution_time=240),
    Priority.HIGH: SLATargets(first_response_time=60, resolution_time=480),
    Priority.MEDIUM: SLATargets(first_response_time=240, resolution_time=1440),
    Priority.LOW: SLATargets(first_response_time=480, resolution_time=2880),
}

PRIORITY_MULTIPLIERS: Dict[Priority, float] = {
    Priority.URGENT: 0.5,
    Priority.HIGH: 0.75,
    Priority.MEDIUM: 1.0,
    Priority.LOW: 1.5,
}

DEFAULT_AT_RISK_THRESHOLD = 0.2

# Window assumed when an SLA record carries no clock start
FALLBACK_AT_RISK_WINDOW = timedelta(hours=1)


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Stateless utility class - all SLA calculation logic in one place.
    """

    @staticmethod
    def default_targets(priority: Priority) -> SLATargets:
        """Base targets for a priority under the default policy."""
        return DEFAULT_SLA_TARGETS[Priority(priority)]

    @staticmethod
    def priority_multiplier(priority: Priority) -> float:
        return PRIORITY_MULTIPLIERS[Priority(priority)]

    @staticmethod
    def calculate_due_dates(
        created_at: datetime,
        priority: Priority,
        targets: SLATargets,
        multipliers: Optional[Dict[Priority, float]] = None
    ) -> SLADueDates:
        """
        Calculate first-response and resolution deadlines.

        Args:
            created_at: When the ticket was created
            priority: Ticket priority, selects the multiplier
            targets: Base targets in minutes
            multipliers: Multiplier table (defaults to PRIORITY_MULTIPLIERS)

        Returns:
            SLADueDates for the ticket
        """
        multiplier = (multipliers or PRIORITY_MULTIPLIERS)[Priority(priority)]

        return SLADueDates(
            first_response_due=created_at + timedelta(
                minutes=targets.first_response_time * multiplier
            ),
            resolution_due=created_at + timedelta(
                minutes=targets.resolution_time * multiplier
            ),
        )

    @staticmethod
    def evaluate(
        sla: Any,
        now: datetime,
        at_risk_threshold: float = DEFAULT_AT_RISK_THRESHOLD,
        at_risk_window: Optional[timedelta] = None
    ) -> SLAState:
        """
        Classify SLA health at ``now``.

        ``sla`` is anything exposing first_response_due, first_response_at,
        resolution_due and resolved_at; an optional ``started_at`` marks
        the start of the SLA clock.

        Rules, first match wins:
        1. breached - an open deadline has passed
        2. at_risk - an open deadline has less than ``at_risk_threshold``
           of its window left
        3. on_track - otherwise

        The window of a deadline runs from ``started_at`` to the deadline.
        A fixed ``at_risk_window`` replaces it when given.
        """
        open_deadlines = [
            due for due, done in (
                (sla.first_response_due, sla.first_response_at),
                (sla.resolution_due, sla.resolved_at),
            )
            if due is not None and done is None
        ]

        if any(now > due for due in open_deadlines):
            return SLAState.BREACHED

        started_at = getattr(sla, "started_at", None)
        for due in open_deadlines:
            if SLACalculator._remaining_fraction(due, now, started_at, at_risk_window) < at_risk_threshold:
                return SLAState.AT_RISK

        return SLAState.ON_TRACK

    @staticmethod
    def is_breached(
        due: Optional[datetime],
        completed_at: Optional[datetime],
        now: datetime
    ) -> bool:
        """Whether a deadline was missed: passed while open, or met late."""
        if due is None:
            return False
        if completed_at is None:
            return now > due
        return completed_at > due

    @staticmethod
    def _remaining_fraction(
        due: datetime,
        now: datetime,
        started_at: Optional[datetime],
        window: Optional[timedelta]
    ) -> float:
        if window is None:
            window = (due - started_at) if started_at is not None else FALLBACK_AT_RISK_WINDOW

        total = window.total_seconds()
        if total <= 0:
            return 0.0
        return (due - now).total_seconds() / total


class SLATargetConfig(BaseModel):
    """Per-priority targets as they appear in the YAML policy."""
    first_response_time: float = Field(gt=0, description="Minutes to first response")
    resolution_time: float = Field(gt=0, description="Minutes to resolution")


class SLAPolicy(BaseModel):
    """
    SLA policy loaded from YAML.

    Missing priorities fall back to the default table, so a partial file
    only overrides what it names.
    """
    targets: Dict[str, SLATargetConfig] = Field(
        default_factory=dict,
        validate_default=True,
        description="Base SLA targets in minutes by priority"
    )
    priority_multipliers: Dict[str, float] = Field(
        default_factory=dict,
        validate_default=True,
        description="Multiplier applied to the base targets by priority"
    )
    at_risk_threshold: float = Field(
        default=DEFAULT_AT_RISK_THRESHOLD,
        ge=0.0,
        le=1.0,
        description="Remaining fraction of the window below which a deadline is at risk"
    )
    at_risk_window_minutes: Optional[float] = Field(
        default=None,
        gt=0,
        description="Fixed reference window; unset uses the full SLA window"
    )

    @field_validator("targets")
    @classmethod
    def validate_targets(cls, v: Dict[str, SLATargetConfig]) -> Dict[str, SLATargetConfig]:
        """Fill in priorities the file leaves out."""
        unknown = set(v) - {p.value for p in VALID_PRIORITIES}
        if unknown:
            raise ValueError(f"unknown priorities in targets: {sorted(unknown)}")

        for priority in VALID_PRIORITIES:
            if priority.value not in v:
                default = DEFAULT_SLA_TARGETS[priority]
                v[priority.value] = SLATargetConfig(
                    first_response_time=default.first_response_time,
                    resolution_time=default.resolution_time,
                )
        return v

    @field_validator("priority_multipliers")
    @classmethod
    def validate_multipliers(cls, v: Dict[str, float]) -> Dict[str, float]:
        unknown = set(v) - {p.value for p in VALID_PRIORITIES}
        if unknown:
            raise ValueError(f"unknown priorities in priority_multipliers: {sorted(unknown)}")
        if any(m <= 0 for m in v.values()):
            raise ValueError("priority multipliers must be positive")

        for priority in VALID_PRIORITIES:
            v.setdefault(priority.value, PRIORITY_MULTIPLIERS[priority])
        return v

    def targets_for(self, priority: Priority) -> SLATargets:
        config = self.targets[Priority(priority).value]
        return SLATargets(
            first_response_time=config.first_response_time,
            resolution_time=config.resolution_time,
        )

    def multiplier_for(self, priority: Priority) -> float:
        return self.priority_multipliers[Priority(priority).value]

    def due_dates_for(self, created_at: datetime, priority: Priority) -> SLADueDates:
        """Deadlines for a ticket created at ``created_at``."""
        multipliers = {p: self.multiplier_for(p) for p in VALID_PRIORITIES}
        return SLACalculator.calculate_due_dates(
            created_at, priority, self.targets_for(priority), multipliers
        )

    def effective_minutes(self, priority: Priority) -> SLATargets:
        """Windows after the multiplier, as reported by the targets endpoint."""
        targets = self.targets_for(priority)
        multiplier = self.multiplier_for(priority)
        return SLATargets(
            first_response_time=targets.first_response_time * multiplier,
            resolution_time=targets.resolution_time * multiplier,
        )

    def evaluate(self, sla: Any, now: datetime) -> SLAState:
        window = (
            timedelta(minutes=self.at_risk_window_minutes)
            if self.at_risk_window_minutes else None
        )
        return SLACalculator.evaluate(sla, now, self.at_risk_threshold, window)
