"""Thin wrappers over kubectl.

Every function issues exactly one logical call. Mutating helpers raise
ExternalCallFailure (or DeploymentTimeout) on a non-zero exit; listing
helpers report "not found" as data instead of an error.
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Optional

from common import DeploymentTimeout, ExternalCallFailure, run_command

logger = logging.getLogger(__name__)

# Missing namespace, object or CRD
NOT_FOUND_MARKERS = (
    'NotFound',
    'not found',
    'No resources found',
    "doesn't have a resource type",
)


@dataclass
class ResourceListing:
    """Output of a kubectl get, with not-found folded into found=False."""
    kind: str
    namespace: str
    found: bool
    output: str


def kubectl(
    args: list[str],
    namespace: Optional[str] = None,
    timeout: int = 60,
    input_text: Optional[str] = None
) -> tuple[int, str, str]:
    """Run kubectl with optional namespace and stdin."""
    cmd = ['kubectl']
    if namespace:
        cmd += ['-n', namespace]
    return run_command(cmd + args, timeout=timeout, input_text=input_text)


def cluster_reachable(timeout: int = 15) -> tuple[bool, str]:
    """Check the current kubeconfig context answers cluster-info."""
    rc, out, err = kubectl(['cluster-info', f'--request-timeout={timeout}s'], timeout=timeout + 5)
    if rc == 0:
        first_line = out.strip().splitlines()[0] if out.strip() else 'cluster reachable'
        return True, first_line
    return False, (err or out).strip() or 'kubectl cluster-info failed'


def ensure_namespace(name: str) -> str:
    """Create a namespace, leaving it unchanged if it already exists.

    Renders the namespace client-side and pipes it to apply, which is a
    no-op for an existing namespace.
    """
    rc, manifest, err = kubectl(['create', 'namespace', name, '--dry-run=client', '-o', 'yaml'])
    if rc != 0:
        raise ExternalCallFailure(f"Failed to render namespace {name}", err)
    return apply_text(manifest)


def apply(source: str, namespace: Optional[str] = None, timeout: int = 300) -> str:
    """kubectl apply -f <path or URL>; returns kubectl's summary."""
    rc, out, err = kubectl(['apply', '-f', source], namespace=namespace, timeout=timeout)
    if rc != 0:
        raise ExternalCallFailure(f"kubectl apply -f {source} failed", err or out)
    return out.strip()


def apply_text(manifest: str, namespace: Optional[str] = None, timeout: int = 120) -> str:
    """kubectl apply -f - with manifest on stdin."""
    rc, out, err = kubectl(['apply', '-f', '-'], namespace=namespace, timeout=timeout,
                           input_text=manifest)
    if rc != 0:
        raise ExternalCallFailure("kubectl apply failed", err or out)
    return out.strip()


def wait_available(deployment: str, namespace: str, timeout: int = 300) -> str:
    """Wait for a deployment to report condition=available.

    Raises:
        DeploymentTimeout: The wait expired
        ExternalCallFailure: kubectl failed for any other reason
    """
    rc, out, err = kubectl(
        ['wait', '--for=condition=available', f'--timeout={timeout}s', f'deployment/{deployment}'],
        namespace=namespace,
        timeout=timeout + 30,
    )
    if rc == 0:
        return out.strip()
    if 'timed out' in err.lower():
        raise DeploymentTimeout(f"deployment/{deployment} not available after {timeout}s")
    raise ExternalCallFailure(f"Waiting for deployment/{deployment} failed", err or out)


def deployment_exists(name: str, namespace: str) -> bool:
    rc, _, _ = kubectl(['get', 'deployment', name, '-o', 'name'], namespace=namespace)
    return rc == 0


def get_secret_field(name: str, namespace: str, key: str) -> str:
    """Read and base64-decode one key of a secret.

    Raises:
        ExternalCallFailure: Secret missing, key empty or not valid base64
    """
    rc, out, err = kubectl(
        ['get', 'secret', name, '-o', f'jsonpath={{.data.{key}}}'],
        namespace=namespace,
    )
    if rc != 0:
        raise ExternalCallFailure(f"Cannot read secret {namespace}/{name}", err)
    encoded = out.strip()
    if not encoded:
        raise ExternalCallFailure(f"Secret {namespace}/{name} has no '{key}' key")
    try:
        return base64.b64decode(encoded, validate=True).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ExternalCallFailure(f"Secret {namespace}/{name} key '{key}' is not valid base64", str(e)) from e


def list_resources(kind: str, namespace: str, name: Optional[str] = None) -> ResourceListing:
    """kubectl get <kind> [name] in a namespace.

    Missing namespaces, missing objects, unknown resource types (CRD not
    installed) and empty lists yield found=False.

    Raises:
        ExternalCallFailure: Any other kubectl error (e.g. cluster unreachable)
    """
    args = ['get', kind] + ([name] if name else [])
    rc, out, err = kubectl(args, namespace=namespace)
    text = out.strip()
    diagnostic = err.strip()

    if rc != 0:
        if any(marker in diagnostic for marker in NOT_FOUND_MARKERS):
            return ResourceListing(kind=kind, namespace=namespace, found=False, output=diagnostic)
        raise ExternalCallFailure(f"kubectl get {kind} -n {namespace} failed", diagnostic or text)

    if not text:
        return ResourceListing(kind=kind, namespace=namespace, found=False,
                               output=diagnostic or f"No {kind} found in {namespace}")
    return ResourceListing(kind=kind, namespace=namespace, found=True, output=text)
