"""Driver configuration management.

Defaults cover the Argo CD + Langfuse layout. They can be overridden by a
YAML file, resolved in this order:

1. $GITOPS_DRIVER_CONFIG (must exist if set)
2. gitops-driver.yaml in the base directory
3. built-in defaults

Relative paths in the config are resolved against the base directory,
which is passed explicitly (defaults to the process working directory).
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

CONFIG_ENV_VAR = 'GITOPS_DRIVER_CONFIG'
CONFIG_FILENAME = 'gitops-driver.yaml'

DEFAULT_INSTALL_MANIFEST = (
    'https://raw.githubusercontent.com/argoproj/argo-cd/stable/manifests/install.yaml'
)


class ConfigError(Exception):
    """Configuration error."""


@dataclass
class DriverConfig:
    """Settings shared by all steps.

    Attributes:
        base_dir: Directory that relative document paths resolve against
        control_plane_namespace: Namespace Argo CD is installed into
        install_manifest: URL or path of the Argo CD install manifest
        server_deployment: Deployment that must become available after install
        ready_timeout: Seconds to wait for the server deployment
        admin_secret: Secret holding the initial admin password
        server_url: Argo CD server URL for the health probe (empty = skip)
        secrets_file: Secrets document applied by the secret step
        placeholder_marker: Marker left in uncustomized documents
        application_file: Static Application descriptor (single-env path)
        environments_file: Environment descriptor document
        workload_namespace: Namespace of the single-env deployment
        app_prefix: Prefix for deployment unit names
        sync_wait: Seconds to wait after submitting a deployment
        required_tools: Executables that must be on PATH
        repo_url: Helm repository of the workload chart
        chart: Chart name within repo_url
        project: Argo CD project for generated Applications
        port_forward_port: Local port suggested for the UI port-forward
    """
    base_dir: Path = field(default_factory=Path.cwd)
    control_plane_namespace: str = 'argocd'
    install_manifest: str = DEFAULT_INSTALL_MANIFEST
    server_deployment: str = 'argocd-server'
    ready_timeout: int = 300
    admin_secret: str = 'argocd-initial-admin-secret'
    server_url: str = ''
    secrets_file: str = 'langfuse/base/secrets-example.yaml'
    placeholder_marker: str = 'REPLACE_ME'
    application_file: str = 'langfuse/applications/langfuse-dev-simple.yaml'
    environments_file: str = 'langfuse/environments.yaml'
    workload_namespace: str = 'langfuse'
    app_prefix: str = 'langfuse'
    sync_wait: int = 10
    required_tools: list = field(default_factory=lambda: ['kubectl', 'helm', 'argocd'])
    repo_url: str = 'https://langfuse.github.io/langfuse-k8s'
    chart: str = 'langfuse'
    project: str = 'default'
    port_forward_port: int = 8080

    def __post_init__(self):
        if isinstance(self.base_dir, str):
            self.base_dir = Path(self.base_dir)

    def resolve(self, relative: str) -> Path:
        """Resolve a document path against base_dir."""
        path = Path(relative)
        return path if path.is_absolute() else self.base_dir / path

    @property
    def secrets_path(self) -> Path:
        return self.resolve(self.secrets_file)

    @property
    def application_path(self) -> Path:
        return self.resolve(self.application_file)

    @property
    def environments_path(self) -> Path:
        return self.resolve(self.environments_file)

    def unit_name(self, env_name: str) -> str:
        """Deployment unit (Application) name for an environment."""
        return f"{self.app_prefix}-{env_name}"


def _parse_yaml(path: Path) -> dict:
    """Parse a YAML file and return contents."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def find_config_file(base_dir: Path) -> Optional[Path]:
    """Locate the driver config file, or None when defaults apply."""
    if env_path := os.environ.get(CONFIG_ENV_VAR):
        path = Path(env_path)
        if path.exists():
            return path
        raise ConfigError(f"{CONFIG_ENV_VAR}={env_path} does not exist")

    candidate = base_dir / CONFIG_FILENAME
    if candidate.exists():
        return candidate
    return None


def load_config(base_dir: Optional[Path] = None, **overrides) -> DriverConfig:
    """Build a DriverConfig from defaults, the config file and overrides.

    Args:
        base_dir: Base directory (defaults to cwd)
        **overrides: Values that take precedence over the file (CLI flags)

    Returns:
        Populated DriverConfig

    Raises:
        ConfigError: On unreadable file, unknown keys or bad value types
    """
    base_dir = Path(base_dir) if base_dir else Path.cwd()
    known = {f.name: f for f in fields(DriverConfig) if f.name != 'base_dir'}

    values: dict = {}
    config_file = find_config_file(base_dir)
    if config_file:
        values.update(_parse_yaml(config_file))

    unknown = sorted(set(values) - set(known))
    if unknown:
        raise ConfigError(f"Unknown config keys in {config_file}: {', '.join(unknown)}")

    values.update({k: v for k, v in overrides.items() if v is not None})

    defaults = DriverConfig(base_dir=base_dir)
    for key, value in values.items():
        expected = type(getattr(defaults, key))
        # bool is an int subclass; reject it where a number is expected
        if isinstance(value, bool) and expected is not bool:
            raise ConfigError(f"Config key '{key}' must be {expected.__name__}, got bool")
        if not isinstance(value, expected):
            raise ConfigError(
                f"Config key '{key}' must be {expected.__name__}, got {type(value).__name__}"
            )

    return DriverConfig(base_dir=base_dir, **values)
