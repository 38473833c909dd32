"""Argo CD deployment descriptors rendered from environment records.

Each EnvironmentRecord becomes one Application named
``<app_prefix>-<name>``; the whole registry becomes one ApplicationSet
whose list generator yields the same Applications.
"""

from typing import Iterable

import yaml

from config import DriverConfig
from environments import EnvironmentRecord

API_VERSION = 'argoproj.io/v1alpha1'


def helm_values(record: EnvironmentRecord) -> dict:
    """Chart values for an environment (external datastores, ingress host)."""
    return {
        'langfuse': {
            'nextauth': {'url': f"https://{record.hostname}"},
            'ingress': {
                'enabled': True,
                'hosts': [{
                    'host': record.hostname,
                    'paths': [{'path': '/', 'pathType': 'Prefix'}],
                }],
            },
        },
        'postgresql': {'deploy': False, 'host': record.postgres_host},
        'clickhouse': {
            'deploy': False,
            'host': record.clickhouse_host,
            'migration': {'url': record.clickhouse_migration_url},
        },
        'redis': {'deploy': False, 'host': record.redis_host},
        's3': {
            'deploy': False,
            'bucket': record.storage_bucket,
            'endpoint': record.storage_endpoint,
        },
    }


def _sync_policy(auto_sync: bool) -> dict:
    policy: dict = {'syncOptions': ['CreateNamespace=true']}
    if auto_sync:
        policy['automated'] = {'prune': True, 'selfHeal': True}
    return policy


def render_application(record: EnvironmentRecord, config: DriverConfig) -> dict:
    """Render the Application for one environment."""
    unit = config.unit_name(record.name)
    return {
        'apiVersion': API_VERSION,
        'kind': 'Application',
        'metadata': {
            'name': unit,
            'namespace': config.control_plane_namespace,
            'labels': {'environment': record.name},
        },
        'spec': {
            'project': config.project,
            'source': {
                'repoURL': config.repo_url,
                'chart': config.chart,
                'targetRevision': record.chart_version,
                'helm': {'valuesObject': helm_values(record)},
            },
            'destination': {
                'server': record.cluster_url,
                'namespace': unit,
            },
            'syncPolicy': _sync_policy(record.auto_sync),
        },
    }


def render_application_set(records: Iterable[EnvironmentRecord], config: DriverConfig) -> dict:
    """Render a list-generator ApplicationSet covering every record.

    Elements carry the record fields under their descriptor key names, so
    the template can reference them as ``{{name}}``, ``{{hostname}}`` etc.
    The generated Application names match render_application().
    """
    elements = []
    for record in records:
        element = record.to_dict()
        # Generator parameters are strings; goTemplate is off
        element['autoSync'] = 'true' if record.auto_sync else 'false'
        elements.append(element)

    prefix = config.app_prefix
    return {
        'apiVersion': API_VERSION,
        'kind': 'ApplicationSet',
        'metadata': {
            'name': prefix,
            'namespace': config.control_plane_namespace,
        },
        'spec': {
            'generators': [{'list': {'elements': elements}}],
            'template': {
                'metadata': {
                    'name': f"{prefix}-{{{{name}}}}",
                    'labels': {'environment': '{{name}}'},
                },
                'spec': {
                    'project': config.project,
                    'source': {
                        'repoURL': config.repo_url,
                        'chart': config.chart,
                        'targetRevision': '{{chartVersion}}',
                        'helm': {'valuesObject': _templated_values()},
                    },
                    'destination': {
                        'server': '{{clusterURL}}',
                        'namespace': f"{prefix}-{{{{name}}}}",
                    },
                    'syncPolicy': {'syncOptions': ['CreateNamespace=true']},
                },
            },
        },
    }


def _templated_values() -> dict:
    """helm_values() with every field replaced by its generator parameter."""
    placeholder = EnvironmentRecord(
        name='{{name}}',
        cluster_url='{{clusterURL}}',
        chart_version='{{chartVersion}}',
        auto_sync=False,
        hostname='{{hostname}}',
        postgres_host='{{postgresHost}}',
        clickhouse_host='{{clickhouseHost}}',
        clickhouse_migration_url='{{clickhouseMigrationURL}}',
        redis_host='{{redisHost}}',
        storage_bucket='{{storageBucket}}',
        storage_endpoint='{{storageEndpoint}}',
    )
    return helm_values(placeholder)


def to_yaml(*documents: dict) -> str:
    """Serialize one or more documents as a multi-document YAML stream."""
    return yaml.safe_dump_all(documents, sort_keys=False, default_flow_style=False)
