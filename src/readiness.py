"""Readiness checks used by step preconditions.

Validates prerequisites before steps act on the cluster:
- required executables on PATH
- cluster reachability through the current kubeconfig
- control plane installed and (optionally) answering its health endpoint
"""

import logging
import shutil

import requests
import urllib3

from config import DriverConfig
from kube import cluster_reachable, deployment_exists

# Suppress SSL warnings for self-signed certs
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

logger = logging.getLogger(__name__)

INSTALL_HINTS = {
    'kubectl': 'Install kubectl: https://kubernetes.io/docs/tasks/tools/',
    'helm': 'Install Helm 3.x: https://helm.sh/docs/intro/install/',
    'argocd': 'Install the argocd CLI: https://argo-cd.readthedocs.io/en/stable/cli_installation/',
}


def missing_tools(tools: list[str]) -> list[str]:
    """Return the tools that are not on PATH."""
    return [tool for tool in tools if shutil.which(tool) is None]


def validate_control_plane_health(server_url: str, timeout: float = 10) -> tuple[bool, str]:
    """Query the Argo CD server health endpoint.

    Args:
        server_url: Server URL (e.g., https://localhost:8080)
        timeout: Request timeout in seconds

    Returns:
        (success, message) tuple
    """
    url = f"{server_url.rstrip('/')}/healthz"
    try:
        resp = requests.get(url, verify=False, timeout=timeout)  # Self-signed cert
    except requests.exceptions.ConnectionError:
        return False, f"Cannot connect to {server_url}"
    except requests.exceptions.Timeout:
        return False, f"Timeout connecting to {server_url}"
    except requests.exceptions.RequestException as e:
        return False, f"Error querying {url}: {e}"

    if resp.status_code == 200:
        return True, f"Control plane healthy at {server_url}"
    return False, f"Unexpected health response from {url}: {resp.status_code} - {resp.text[:100]}"


def check_prerequisites(config: DriverConfig) -> list[str]:
    """Check required tools and cluster access.

    Returns:
        List of error messages (empty if all prerequisites are met)
    """
    errors = []
    for tool in missing_tools(config.required_tools):
        hint = INSTALL_HINTS.get(tool, f'Install {tool} and ensure it is on PATH')
        errors.append(f"{tool} not found. {hint}")

    # Cluster check needs kubectl itself
    if 'kubectl' in config.required_tools and any(e.startswith('kubectl ') for e in errors):
        return errors

    ok, message = cluster_reachable()
    if ok:
        logger.debug(f"Cluster reachable: {message}")
    else:
        errors.append(f"Cannot connect to Kubernetes cluster. Check your kubeconfig.\n  {message}")
    return errors


def check_control_plane(config: DriverConfig) -> tuple[bool, str]:
    """Check the control plane is installed and, if configured, healthy."""
    namespace = config.control_plane_namespace
    if not deployment_exists(config.server_deployment, namespace):
        return False, (
            f"deployment/{config.server_deployment} not found in namespace {namespace}. "
            f"Install the control plane first"
        )
    if config.server_url:
        return validate_control_plane_health(config.server_url)
    return True, f"deployment/{config.server_deployment} present in {namespace}"
