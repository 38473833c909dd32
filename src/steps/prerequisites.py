"""Prerequisite verification step."""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from common import SUCCESS, StepOutcome
from config import DriverConfig
from environments import EnvironmentRecord
from readiness import check_prerequisites
from steps import PREREQUISITE, ConfirmFn, Precondition, never_confirm, register_step

logger = logging.getLogger(__name__)


@register_step
@dataclass
class PrerequisiteCheck:
    """Verify required tools and cluster access.

    The check itself is the precondition: when anything is missing the
    step is Blocked, which halts a full batch before any change is made.
    """

    id = 'prerequisites'
    ordinal = 0
    capability = PREREQUISITE
    description = 'Check prerequisites'
    scoped = False

    config: DriverConfig
    confirm: ConfirmFn = never_confirm

    def check_precondition(self) -> Precondition:
        logger.info(f"[{self.id}] Checking prerequisites...")
        errors = check_prerequisites(self.config)
        if errors:
            return Precondition.blocked('\n'.join(errors))
        return Precondition.ok()

    def execute(self, env: Optional[EnvironmentRecord] = None) -> StepOutcome:
        start = time.time()
        tools = ', '.join(self.config.required_tools)
        return StepOutcome(
            step_id=self.id,
            status=SUCCESS,
            message=f"All prerequisites met ({tools}, cluster reachable)",
            duration=time.time() - start
        )
