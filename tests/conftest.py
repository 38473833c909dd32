"""Shared pytest fixtures for gitops-driver tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

ENVIRONMENTS_YAML = """
environments:
  - name: dev-eu2-su1
    clusterURL: https://kubernetes.default.svc
    chartVersion: "1.5.18"
    autoSync: true
    hostname: langfuse-dev.typeface.ai
    postgresHost: pg-dev.internal
    clickhouseHost: ch-dev.internal
    clickhouseMigrationURL: clickhouse://ch-dev.internal:9000
    redisHost: redis-dev.internal
    storageBucket: langfuse-dev
    storageEndpoint: https://s3.eu-west-2.amazonaws.com
  - name: prod-us1
    clusterURL: https://prod.example.com:6443
    chartVersion: "1.5.20"
    autoSync: false
    hostname: langfuse.typeface.ai
    postgresHost: pg-prod.internal
    clickhouseHost: ch-prod.internal
    clickhouseMigrationURL: clickhouse://ch-prod.internal:9000
    redisHost: redis-prod.internal
    storageBucket: langfuse-prod
    storageEndpoint: https://s3.us-east-1.amazonaws.com
"""

SECRETS_YAML = """
apiVersion: v1
kind: Secret
metadata:
  name: langfuse-secrets
  namespace: langfuse
stringData:
  salt: "{salt}"
"""

APPLICATION_YAML = """
apiVersion: argoproj.io/v1alpha1
kind: Application
metadata:
  name: langfuse-dev-simple
  namespace: argocd
"""


@pytest.fixture
def base_dir(tmp_path):
    """Create a working directory with the documents the steps read.

    Creates:
    - langfuse/environments.yaml (two environments)
    - langfuse/base/secrets-example.yaml (customized, no placeholder)
    - langfuse/applications/langfuse-dev-simple.yaml
    """
    (tmp_path / 'langfuse' / 'base').mkdir(parents=True)
    (tmp_path / 'langfuse' / 'applications').mkdir(parents=True)
    (tmp_path / 'langfuse' / 'environments.yaml').write_text(ENVIRONMENTS_YAML)
    (tmp_path / 'langfuse' / 'base' / 'secrets-example.yaml').write_text(
        SECRETS_YAML.format(salt='c2FsdHk=')
    )
    (tmp_path / 'langfuse' / 'applications' / 'langfuse-dev-simple.yaml').write_text(APPLICATION_YAML)
    return tmp_path


@pytest.fixture
def config(base_dir):
    """DriverConfig rooted at base_dir with no post-deploy wait."""
    from config import DriverConfig
    return DriverConfig(base_dir=base_dir, sync_wait=0)


@pytest.fixture
def registry(base_dir):
    """Registry loaded from the fixture environment document."""
    from environments import load_environments
    return load_environments(base_dir / 'langfuse' / 'environments.yaml')


@pytest.fixture
def dev_env(registry):
    """The dev-eu2-su1 environment record."""
    return registry.get('dev-eu2-su1')
