"""Common utilities and types for deployment steps."""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

SUCCESS = 'success'
FAILURE = 'failure'
SKIPPED = 'skipped'


class StepError(Exception):
    """Base class for failures raised inside a step."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class PrerequisiteMissing(StepError):
    """A required tool is absent or the cluster is unreachable."""


class DeploymentTimeout(StepError):
    """A bounded wait expired before the resource became ready."""


class UnresolvedPlaceholder(StepError):
    """A document still contains a placeholder marker."""


class ExternalCallFailure(StepError):
    """An external command returned a non-success status.

    Attributes:
        diagnostic: Raw stderr (or stdout) of the failed call
    """

    def __init__(self, message: str, diagnostic: str = ''):
        self.diagnostic = diagnostic.strip()
        if self.diagnostic:
            message = f"{message}: {self.diagnostic}"
        super().__init__(message)


@dataclass
class StepOutcome:
    """Result of one step invocation.

    display lines are shown to the operator only; they are never part of
    the run summary.
    """
    step_id: str
    status: str
    message: str = ''
    reason: str = ''
    env: Optional[str] = None
    duration: float = 0.0
    display: list[str] = field(default_factory=list, repr=False)

    @property
    def success(self) -> bool:
        return self.status == SUCCESS

    @property
    def failed(self) -> bool:
        return self.status == FAILURE

    @property
    def label(self) -> str:
        """Step id qualified with the environment, e.g. deploy[dev-eu2-su1]."""
        return f"{self.step_id}[{self.env}]" if self.env else self.step_id


def run_command(
    cmd: list[str],
    cwd: Optional[Path] = None,
    timeout: int = 600,
    capture: bool = True,
    env: Optional[dict] = None,
    input_text: Optional[str] = None
) -> tuple[int, str, str]:
    """Run a command and return (returncode, stdout, stderr)."""
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=capture,
            text=True,
            timeout=timeout,
            env=env,
            input=input_text,
            check=False  # We handle return codes explicitly
        )
        return result.returncode, result.stdout or '', result.stderr or ''
    except subprocess.TimeoutExpired:
        return -1, '', f'Command timed out after {timeout}s'
    except Exception as e:
        return -1, '', str(e)
