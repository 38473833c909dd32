"""Control-plane steps: install Argo CD, fetch the admin password, UI access."""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from common import SUCCESS, StepOutcome
from config import DriverConfig
from environments import EnvironmentRecord
from kube import apply, cluster_reachable, ensure_namespace, get_secret_field, wait_available
from steps import ACCESS, CREDENTIAL, INSTALL, ConfirmFn, Precondition, never_confirm, register_step

logger = logging.getLogger(__name__)


@register_step
@dataclass
class InstallControlPlane:
    """Install Argo CD and wait for its server to become available.

    Safe to re-run: the namespace is created-or-left-unchanged and the
    install manifest is applied, not created.
    """

    id = 'install-control-plane'
    ordinal = 1
    capability = INSTALL
    description = 'Install Argo CD'
    scoped = False

    config: DriverConfig
    confirm: ConfirmFn = never_confirm

    def check_precondition(self) -> Precondition:
        ok, message = cluster_reachable()
        if not ok:
            return Precondition.blocked(f"Cluster not reachable: {message}")
        return Precondition.ok()

    def execute(self, env: Optional[EnvironmentRecord] = None) -> StepOutcome:
        start = time.time()
        namespace = self.config.control_plane_namespace

        logger.info(f"[{self.id}] Ensuring namespace {namespace}...")
        ensure_namespace(namespace)

        logger.info(f"[{self.id}] Applying {self.config.install_manifest}...")
        apply(self.config.install_manifest, namespace=namespace)

        deployment = self.config.server_deployment
        timeout = self.config.ready_timeout
        logger.info(f"[{self.id}] Waiting up to {timeout}s for deployment/{deployment}...")
        wait_available(deployment, namespace, timeout=timeout)

        return StepOutcome(
            step_id=self.id,
            status=SUCCESS,
            message=f"Argo CD installed in namespace {namespace}",
            duration=time.time() - start
        )


@register_step
@dataclass
class AdminPassword:
    """Retrieve the initial admin password.

    The password goes to the operator's terminal only (outcome display
    lines); it is never logged, summarized or written to disk.
    """

    id = 'admin-password'
    ordinal = 2
    capability = CREDENTIAL
    description = 'Get Argo CD admin password'
    scoped = False

    config: DriverConfig
    confirm: ConfirmFn = never_confirm

    def check_precondition(self) -> Precondition:
        return Precondition.ok()

    def execute(self, env: Optional[EnvironmentRecord] = None) -> StepOutcome:
        start = time.time()
        namespace = self.config.control_plane_namespace
        secret = self.config.admin_secret

        logger.info(f"[{self.id}] Reading {namespace}/{secret}...")
        password = get_secret_field(secret, namespace, 'password')

        return StepOutcome(
            step_id=self.id,
            status=SUCCESS,
            message=f"Admin password retrieved from {namespace}/{secret}",
            duration=time.time() - start,
            display=[
                f"Admin password: {password}",
                "Save this password! You'll need it to log in.",
            ]
        )


@register_step
@dataclass
class PortForwardInstructions:
    """Print how to reach the Argo CD UI."""

    id = 'port-forward'
    ordinal = 5
    capability = ACCESS
    description = 'Show port-forward instructions'
    scoped = False

    config: DriverConfig
    confirm: ConfirmFn = never_confirm

    def check_precondition(self) -> Precondition:
        return Precondition.ok()

    def execute(self, env: Optional[EnvironmentRecord] = None) -> StepOutcome:
        port = self.config.port_forward_port
        command = (
            f"kubectl port-forward svc/{self.config.server_deployment} "
            f"-n {self.config.control_plane_namespace} {port}:443"
        )
        return StepOutcome(
            step_id=self.id,
            status=SUCCESS,
            message='Port-forward instructions shown',
            display=[
                "Run this command in a separate terminal:",
                f"  {command}",
                f"Then access the UI at: https://localhost:{port}",
                "Username: admin",
                f"Password: (from step {AdminPassword.ordinal})",
            ]
        )
