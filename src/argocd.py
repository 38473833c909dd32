"""Argo CD application operations via the argocd CLI.

The CLI uses whatever server/context the operator has logged into
(``argocd login`` or ARGOCD_* environment variables).
"""

import logging

from common import ExternalCallFailure, run_command

logger = logging.getLogger(__name__)


def _app(action: str, name: str, extra: list[str] = None, timeout: int = 120) -> tuple[int, str, str]:
    cmd = ['argocd', 'app', action, name] + (extra or [])
    return run_command(cmd, timeout=timeout)


def _checked(action: str, name: str, extra: list[str] = None, timeout: int = 120) -> str:
    rc, out, err = _app(action, name, extra, timeout)
    if rc != 0:
        raise ExternalCallFailure(f"argocd app {action} {name} failed", err or out)
    return out


def app_get(name: str) -> str:
    """Application summary (sync/health status, resources)."""
    return _checked('get', name)


def app_sync(name: str, timeout: int = 300) -> str:
    """Trigger a sync and wait for the operation to finish."""
    logger.info(f"Syncing application {name}...")
    return _checked('sync', name, ['--timeout', str(timeout)], timeout=timeout + 30)


def app_diff(name: str) -> tuple[bool, str]:
    """Compare live state with the desired state.

    Returns:
        (differs, output). argocd exits 1 when differences exist; that is
        reported as differs=True, not as an error.
    """
    rc, out, err = _app('diff', name)
    if rc == 0:
        return False, out
    if rc == 1 and not err.strip():
        return True, out
    raise ExternalCallFailure(f"argocd app diff {name} failed", err or out)


def app_manifests(name: str, source: str = 'git') -> str:
    """Rendered manifests, from git (desired) or live state."""
    return _checked('manifests', name, ['--source', source])


def app_logs(name: str, tail: int = 100) -> str:
    return _checked('logs', name, ['--tail', str(tail)])
