"""Workload steps: deploy the application and inspect its status."""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from common import SUCCESS, PrerequisiteMissing, StepOutcome
from config import DriverConfig
from descriptors import render_application, to_yaml
from environments import EnvironmentRecord
from kube import apply, apply_text, list_resources
from readiness import check_control_plane
from steps import DEPLOY, STATUS, ConfirmFn, Precondition, never_confirm, register_step

logger = logging.getLogger(__name__)

# (kind, heading, shown when nothing is found)
WORKLOAD_RESOURCES = [
    ('pods', 'Pods', 'Namespace {namespace} not found yet'),
    ('svc', 'Services', 'No services yet'),
    ('ingress', 'Ingress', 'No ingress yet'),
]


@register_step
@dataclass
class DeployWorkload:
    """Submit the workload Application to the control plane.

    Without an environment the static descriptor is applied; with one, an
    Application named after the environment is rendered and applied.
    Success means the control plane accepted the Application, not that the
    rollout finished.
    """

    id = 'deploy'
    ordinal = 4
    capability = DEPLOY
    description = 'Deploy Langfuse'
    scoped = True

    config: DriverConfig
    confirm: ConfirmFn = never_confirm

    def check_precondition(self) -> Precondition:
        ok, message = check_control_plane(self.config)
        if not ok:
            return Precondition.blocked(message)
        return Precondition.ok()

    def execute(self, env: Optional[EnvironmentRecord] = None) -> StepOutcome:
        start = time.time()

        if env is None:
            path = self.config.application_path
            if not path.is_file():
                raise PrerequisiteMissing(f"Application descriptor not found: {path}")
            logger.info(f"[{self.id}] Applying {path}...")
            summary = apply(str(path))
            unit = path.stem
        else:
            unit = self.config.unit_name(env.name)
            logger.info(f"[{self.id}] Applying Application {unit} (chart {env.chart_version})...")
            summary = apply_text(to_yaml(render_application(env, self.config)))

        wait = self.config.sync_wait
        if wait > 0:
            logger.info(f"[{self.id}] Waiting {wait}s for Argo CD to start syncing...")
            time.sleep(wait)

        return StepOutcome(
            step_id=self.id,
            status=SUCCESS,
            message=summary or f"Application {unit} submitted",
            env=env.name if env else None,
            duration=time.time() - start,
            display=[
                "Check status with: "
                f"kubectl get applications -n {self.config.control_plane_namespace}",
            ]
        )


@register_step
@dataclass
class DeploymentStatus:
    """Show application, pod, service and ingress state.

    Read-only. Resources that do not exist yet are reported as
    information; only an unusable cluster connection fails the step.
    """

    id = 'status'
    ordinal = 6
    capability = STATUS
    description = 'Check deployment status'
    scoped = True

    config: DriverConfig
    confirm: ConfirmFn = never_confirm

    def check_precondition(self) -> Precondition:
        return Precondition.ok()

    def execute(self, env: Optional[EnvironmentRecord] = None) -> StepOutcome:
        start = time.time()
        control_ns = self.config.control_plane_namespace

        if env is None:
            unit = None
            namespace = self.config.workload_namespace
        else:
            unit = self.config.unit_name(env.name)
            namespace = unit

        display = []
        missing = []

        listing = list_resources('applications', control_ns, name=unit)
        display.append("=== Argo CD Applications ===")
        if listing.found:
            display.append(listing.output)
        else:
            display.append(f"Application {unit} not found" if unit else "No applications yet")
            missing.append('applications')

        for kind, heading, empty_text in WORKLOAD_RESOURCES:
            listing = list_resources(kind, namespace)
            display.append(f"=== {heading} ({namespace}) ===")
            if listing.found:
                display.append(listing.output)
            else:
                display.append(empty_text.format(namespace=namespace))
                missing.append(kind)

        if missing:
            message = f"Not found (informational): {', '.join(missing)}"
        else:
            message = f"All resources present in {namespace}"
        logger.info(f"[{self.id}] {message}")

        return StepOutcome(
            step_id=self.id,
            status=SUCCESS,
            message=message,
            env=env.name if env else None,
            duration=time.time() - start,
            display=display
        )
