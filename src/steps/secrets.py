"""Secret provisioning step."""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from common import SKIPPED, SUCCESS, StepOutcome, UnresolvedPlaceholder
from config import DriverConfig
from environments import EnvironmentRecord
from kube import apply
from steps import SECRET, ConfirmFn, Precondition, never_confirm, register_step

logger = logging.getLogger(__name__)


def contains_placeholder(path: Path, marker: str) -> bool:
    """True if the document still contains the placeholder marker."""
    return marker in path.read_text(encoding='utf-8')


@register_step
@dataclass
class CreateSecrets:
    """Apply the workload secrets document.

    A document that still contains the placeholder marker is only applied
    after the operator confirms it has been customized. Declining skips
    this step; a full batch carries on with the next one.
    """

    id = 'create-secrets'
    ordinal = 3
    capability = SECRET
    description = 'Create Langfuse secrets'
    scoped = False

    config: DriverConfig
    confirm: ConfirmFn = never_confirm

    def check_precondition(self) -> Precondition:
        path = self.config.secrets_path
        if not path.is_file():
            return Precondition.blocked(f"Secrets document not found: {path}")
        return Precondition.ok()

    def execute(self, env: Optional[EnvironmentRecord] = None) -> StepOutcome:
        start = time.time()
        path = self.config.secrets_path
        marker = self.config.placeholder_marker

        if contains_placeholder(path, marker):
            logger.warning(f"[{self.id}] {path} still contains {marker} placeholders")
            if not self.confirm(f"{path} contains {marker}. Have you customized the secrets file?"):
                error = UnresolvedPlaceholder(
                    f"{path} still contains {marker}; replace all placeholder values, "
                    f"then run this step again"
                )
                logger.warning(f"[{self.id}] {error}")
                return StepOutcome(
                    step_id=self.id,
                    status=SKIPPED,
                    message=str(error),
                    reason=error.kind,
                    duration=time.time() - start
                )

        logger.info(f"[{self.id}] Applying {path}...")
        summary = apply(str(path))

        return StepOutcome(
            step_id=self.id,
            status=SUCCESS,
            message=summary or f"Applied {path.name}",
            duration=time.time() - start
        )
