"""
StepValidator - reachability and last-step warnings for a job's steps.

Validation never raises. It produces a ValidationReport; the caller decides
whether to block the commit or ask the user to confirm. Both warnings are
confirmable, not fatal.

The validator remembers the graph revision it last confirmed. Validating an
unchanged graph again short-circuits to a clean report, so a user moving
between pages is not asked twice. Any structural change to the graph bumps its
revision and brings the warnings back.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from agentjob.schemas import JobStep
from agentjob.step_graph import StepGraph

logger = logging.getLogger(__name__)


UNREACHABLE_HEADER = "The following steps cannot be reached from the start of the job:"
LAST_STEP_WILL_CHANGE = (
    "The last step is set to go to the next step. Its success action will be "
    "changed to quit the job reporting success."
)
ARE_YOU_SURE = "Do you want to continue?"


@dataclass
class ValidationReport:
    """Result of validating a step graph."""
    unreachable_steps: list[JobStep] = field(default_factory=list)
    last_step_will_change: bool = False
    revision: int = 0

    @property
    def has_warnings(self) -> bool:
        return bool(self.unreachable_steps) or self.last_step_will_change

    def message(self) -> str:
        """Warning text for display, empty when there is nothing to warn about."""
        if not self.has_warnings:
            return ""

        lines = []
        if self.unreachable_steps:
            lines.append(UNREACHABLE_HEADER)
            for step in self.unreachable_steps:
                lines.append(f"  {step.id}: {step.name}")
            lines.append("")
        if self.last_step_will_change:
            lines.append(LAST_STEP_WILL_CHANGE)
            lines.append("")
        lines.append(ARE_YOU_SURE)
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "unreachable_steps": [{"id": s.id, "name": s.name} for s in self.unreachable_steps],
            "last_step_will_change": self.last_step_will_change,
        }


class StepValidator:
    """Stateful validator for one edit session."""

    def __init__(self, graph: StepGraph):
        self.graph = graph
        self._confirmed_revision: Optional[int] = None

    @property
    def is_confirmed(self) -> bool:
        return self._confirmed_revision == self.graph.revision

    def validate(self) -> ValidationReport:
        """
        Check the step graph.

        Returns:
            ValidationReport; empty when the current revision was already confirmed
        """
        revision = self.graph.revision
        if self.is_confirmed:
            return ValidationReport(revision=revision)

        report = ValidationReport(
            unreachable_steps=self.graph.find_unreachable_steps(),
            last_step_will_change=self.graph.last_step_completion_action_will_change(),
            revision=revision,
        )
        if report.has_warnings:
            for step in report.unreachable_steps:
                logger.warning(f"Step {step.id} ('{step.name}') is unreachable")
            if report.last_step_will_change:
                logger.warning("Last step success action will change to quit_with_success")
        else:
            self._confirmed_revision = revision
        return report

    def confirm(self, report: ValidationReport) -> None:
        """Accept a report's warnings. Reports for an older revision are ignored."""
        if report.revision != self.graph.revision:
            logger.debug(
                f"Ignoring confirmation of stale report (revision {report.revision}, graph at {self.graph.revision})"
            )
            return
        self._confirmed_revision = report.revision

    def reset(self) -> None:
        self._confirmed_revision = None

    def check(self, confirm: Optional[Callable[[ValidationReport], bool]] = None) -> bool:
        """
        Validate and, on warnings, ask the caller.

        Args:
            confirm: Called with the report when it has warnings; returns
                True to proceed. Without a callback, warnings block.

        Returns:
            True when the commit may proceed
        """
        report = self.validate()
        if not report.has_warnings:
            return True
        if confirm is not None and confirm(report):
            self.confirm(report)
            return True
        return False
