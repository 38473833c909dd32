"""Run summaries.

Summaries live in memory only and are printed at the end of a run (as a
table, or as JSON with --json-output). Outcome display lines are left out
on purpose: they may hold credentials.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from common import StepOutcome


@dataclass
class RunReport:
    """Collects step outcomes for one run."""
    request: str
    environments: list[str] = field(default_factory=list)
    outcomes: list[StepOutcome] = field(default_factory=list)
    state: str = 'idle'
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def start(self):
        """Mark run start."""
        self.started_at = datetime.now()

    def record(self, outcome: StepOutcome):
        """Record one outcome."""
        self.outcomes.append(outcome)

    def finish(self, state: str):
        """Mark run end with the controller's terminal state."""
        self.finished_at = datetime.now()
        self.state = state

    @property
    def duration(self) -> float:
        if self.finished_at and self.started_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    def to_dict(self) -> dict:
        """Return report as dictionary for JSON output."""
        result = {
            'request': self.request,
            'state': self.state,
            'success': self.state == 'completed',
            'duration_seconds': round(self.duration, 1),
            'steps': [
                {
                    'step': o.step_id,
                    'status': o.status,
                    'duration': round(o.duration, 1),
                    **({'env': o.env} if o.env else {}),
                    **({'reason': o.reason} if o.reason else {}),
                    **({'message': o.message} if o.message else {}),
                }
                for o in self.outcomes
            ]
        }
        if self.environments:
            result['environments'] = list(self.environments)

        # Include error message on failure; the failing step wins over skips
        if self.state != 'completed':
            failures = [o for o in self.outcomes if o.status == 'failure' and o.message]
            others = [o for o in self.outcomes if o.status != 'success' and o.message]
            candidates = failures or others
            if candidates:
                result['error'] = candidates[0].message

        return result

    def format_summary(self) -> str:
        """Render a plain-text summary table."""
        marks = {'success': 'OK', 'failure': 'FAIL', 'skipped': 'SKIP'}
        lines = [
            "",
            "═══════════════════════════════════════════════════════════════",
            f"  Run: {self.request}  State: {self.state.upper()}  ({self.duration:.1f}s)",
            "═══════════════════════════════════════════════════════════════",
        ]
        for o in self.outcomes:
            mark = marks.get(o.status, '?')
            lines.append(f"  [{mark:^4}] {o.label:<30} {o.duration:6.1f}s  {o.message.splitlines()[0] if o.message else ''}")
        lines.append("═══════════════════════════════════════════════════════════════")
        return '\n'.join(lines)
