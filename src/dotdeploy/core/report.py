"""Aggregation of per-entry outcomes into a run summary."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import DeploymentOutcome, DeploymentStatus, EnvironmentDescriptor


@dataclass(frozen=True)
class Report:
    """Summary of one deployment run.

    Attributes:
        outcomes: One outcome per catalog entry, in catalog order.
        environment: The host the run happened on.
        counts: Number of outcomes per status; every status is present.
        failures: The ``WriteFailed`` outcomes.
        backup_directory: The run's backup directory, if anything was backed up.
    """

    outcomes: Tuple[DeploymentOutcome, ...]
    environment: EnvironmentDescriptor
    counts: Dict[DeploymentStatus, int]
    failures: Tuple[DeploymentOutcome, ...]
    backup_directory: Optional[Path] = None

    @property
    def installed(self) -> int:
        return self.counts[DeploymentStatus.INSTALLED]

    @property
    def missing(self) -> int:
        return self.counts[DeploymentStatus.SOURCE_MISSING]

    @property
    def failed(self) -> int:
        return self.counts[DeploymentStatus.WRITE_FAILED]

    @property
    def exit_code(self) -> int:
        """Process exit status for this run.

        Only a run where every entry failed to write is a failure; installed
        and missing entries in any mix make a successful, possibly degraded,
        run.
        """
        if self.outcomes and self.failed == len(self.outcomes):
            return 1
        return 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "environment": self.environment.to_dict(),
            "counts": {status.value: count for status, count in self.counts.items()},
            "backup_directory": str(self.backup_directory) if self.backup_directory else None,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "failures": [
                {"logical_name": outcome.logical_name, "error_detail": outcome.error_detail}
                for outcome in self.failures
            ],
            "exit_code": self.exit_code,
        }


def summarize(
    outcomes: Sequence[DeploymentOutcome],
    env: EnvironmentDescriptor,
    backup_directory: Optional[Path] = None,
) -> Report:
    """Build a :class:`Report` from the outcomes of a run. Pure."""
    counts: Dict[DeploymentStatus, int] = {status: 0 for status in DeploymentStatus}
    failures: List[DeploymentOutcome] = []
    for outcome in outcomes:
        counts[outcome.status] += 1
        if outcome.status is DeploymentStatus.WRITE_FAILED:
            failures.append(outcome)

    return Report(
        outcomes=tuple(outcomes),
        environment=env,
        counts=counts,
        failures=tuple(failures),
        backup_directory=backup_directory,
    )
