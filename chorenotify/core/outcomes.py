"""Per-item outcomes and the summary returned by each processing pass."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum


class Outcome(str, Enum):
    SENT = "sent"
    FAILED = "failed"              # dispatcher reported failure
    ERROR = "error"                # exception while processing the item
    DISABLED = "disabled"
    QUIET_HOURS = "quiet_hours"
    NOT_DUE = "not_due"
    RATE_LIMITED = "rate_limited"
    ALREADY_SENT = "already_sent"


@dataclass
class RunSummary:
    """What one pass of an entry point did.

    aborted is True when the candidate query itself failed and nothing was
    processed.
    """

    name: str
    candidates: int = 0
    aborted: bool = False
    outcomes: Counter = field(default_factory=Counter)

    def record(self, outcome: Outcome) -> None:
        self.outcomes[outcome] += 1

    @property
    def sent(self) -> int:
        return self.outcomes[Outcome.SENT]

    @property
    def failed(self) -> int:
        return self.outcomes[Outcome.FAILED] + self.outcomes[Outcome.ERROR]

    def __str__(self) -> str:
        if self.aborted:
            return f"{self.name}: aborted"
        details = ", ".join(f"{o.value}={n}" for o, n in sorted(self.outcomes.items()))
        return f"{self.name}: {self.candidates} candidates ({details or 'nothing to do'})"
