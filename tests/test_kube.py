"""Tests for kube.py - kubectl wrappers."""

import base64
from unittest.mock import patch

import pytest

from common import DeploymentTimeout, ExternalCallFailure
from kube import (
    apply,
    apply_text,
    cluster_reachable,
    ensure_namespace,
    get_secret_field,
    kubectl,
    list_resources,
    wait_available,
)

NAMESPACE_YAML = "apiVersion: v1\nkind: Namespace\nmetadata:\n  name: argocd\n"


class TestKubectl:
    """Tests for the kubectl command builder."""

    def test_adds_namespace(self):
        with patch('kube.run_command', return_value=(0, '', '')) as mock_run:
            kubectl(['get', 'pods'], namespace='langfuse')
        cmd = mock_run.call_args[0][0]
        assert cmd == ['kubectl', '-n', 'langfuse', 'get', 'pods']

    def test_passes_stdin(self):
        with patch('kube.run_command', return_value=(0, '', '')) as mock_run:
            kubectl(['apply', '-f', '-'], input_text='doc')
        assert mock_run.call_args.kwargs['input_text'] == 'doc'


class TestClusterReachable:
    """Tests for cluster_reachable()."""

    def test_reachable(self):
        out = "Kubernetes control plane is running at https://127.0.0.1:6443\n"
        with patch('kube.run_command', return_value=(0, out, '')):
            ok, message = cluster_reachable()
        assert ok is True
        assert '127.0.0.1' in message

    def test_unreachable(self):
        err = "Unable to connect to the server: dial tcp 127.0.0.1:6443: connection refused"
        with patch('kube.run_command', return_value=(1, '', err)):
            ok, message = cluster_reachable()
        assert ok is False
        assert 'connection refused' in message


class TestEnsureNamespace:
    """Tests for ensure_namespace()."""

    def test_renders_then_applies(self):
        responses = [(0, NAMESPACE_YAML, ''), (0, 'namespace/argocd created\n', '')]
        with patch('kube.run_command', side_effect=responses) as mock_run:
            summary = ensure_namespace('argocd')

        assert summary == 'namespace/argocd created'
        render_cmd = mock_run.call_args_list[0][0][0]
        assert '--dry-run=client' in render_cmd
        apply_call = mock_run.call_args_list[1]
        assert apply_call[0][0] == ['kubectl', 'apply', '-f', '-']
        assert apply_call.kwargs['input_text'] == NAMESPACE_YAML

    def test_existing_namespace_unchanged(self):
        """Second run against an existing namespace is a no-op, not an error."""
        responses = [(0, NAMESPACE_YAML, ''), (0, 'namespace/argocd unchanged\n', '')]
        with patch('kube.run_command', side_effect=responses):
            assert ensure_namespace('argocd') == 'namespace/argocd unchanged'

    def test_render_failure(self):
        with patch('kube.run_command', return_value=(1, '', 'invalid name')):
            with pytest.raises(ExternalCallFailure) as exc_info:
                ensure_namespace('Bad_Name')
        assert 'invalid name' in str(exc_info.value)


class TestApply:
    """Tests for apply() and apply_text()."""

    def test_apply_url_with_namespace(self):
        with patch('kube.run_command', return_value=(0, 'deployment.apps/argocd-server created\n', '')) as mock_run:
            apply('https://example.com/install.yaml', namespace='argocd')
        cmd = mock_run.call_args[0][0]
        assert cmd == ['kubectl', '-n', 'argocd', 'apply', '-f', 'https://example.com/install.yaml']

    def test_apply_failure_carries_diagnostic(self):
        with patch('kube.run_command', return_value=(1, '', 'error: the path "x.yaml" does not exist')):
            with pytest.raises(ExternalCallFailure) as exc_info:
                apply('x.yaml')
        assert 'does not exist' in exc_info.value.diagnostic

    def test_apply_text_failure(self):
        with patch('kube.run_command', return_value=(1, '', 'no matches for kind "Application"')):
            with pytest.raises(ExternalCallFailure) as exc_info:
                apply_text('kind: Application')
        assert 'no matches' in str(exc_info.value)


class TestWaitAvailable:
    """Tests for wait_available()."""

    def test_available(self):
        with patch('kube.run_command', return_value=(0, 'deployment.apps/argocd-server condition met\n', '')) as mock_run:
            wait_available('argocd-server', 'argocd', timeout=300)
        cmd = mock_run.call_args[0][0]
        assert '--timeout=300s' in cmd
        assert 'deployment/argocd-server' in cmd
        # Process timeout must outlast kubectl's own wait
        assert mock_run.call_args.kwargs['timeout'] > 300

    def test_timeout_raises_deployment_timeout(self):
        err = 'error: timed out waiting for the condition on deployments/argocd-server'
        with patch('kube.run_command', return_value=(1, '', err)):
            with pytest.raises(DeploymentTimeout):
                wait_available('argocd-server', 'argocd', timeout=5)

    def test_process_timeout_raises_deployment_timeout(self):
        with patch('kube.run_command', return_value=(-1, '', 'Command timed out after 35s')):
            with pytest.raises(DeploymentTimeout):
                wait_available('argocd-server', 'argocd', timeout=5)

    def test_other_error_raises_external_failure(self):
        with patch('kube.run_command', return_value=(1, '', 'deployments.apps "argocd-server" not found')):
            with pytest.raises(ExternalCallFailure):
                wait_available('argocd-server', 'argocd')


class TestGetSecretField:
    """Tests for get_secret_field()."""

    def test_decodes_base64(self):
        encoded = base64.b64encode(b'hunter2').decode()
        with patch('kube.run_command', return_value=(0, encoded, '')) as mock_run:
            assert get_secret_field('argocd-initial-admin-secret', 'argocd', 'password') == 'hunter2'
        assert 'jsonpath={.data.password}' in mock_run.call_args[0][0]

    def test_missing_secret(self):
        err = 'Error from server (NotFound): secrets "argocd-initial-admin-secret" not found'
        with patch('kube.run_command', return_value=(1, '', err)):
            with pytest.raises(ExternalCallFailure) as exc_info:
                get_secret_field('argocd-initial-admin-secret', 'argocd', 'password')
        assert 'NotFound' in str(exc_info.value)

    def test_empty_key(self):
        with patch('kube.run_command', return_value=(0, '', '')):
            with pytest.raises(ExternalCallFailure) as exc_info:
                get_secret_field('s', 'ns', 'password')
        assert "no 'password' key" in str(exc_info.value)

    def test_invalid_base64(self):
        with patch('kube.run_command', return_value=(0, 'not*base64', '')):
            with pytest.raises(ExternalCallFailure):
                get_secret_field('s', 'ns', 'password')


class TestListResources:
    """Tests for list_resources()."""

    def test_found(self):
        out = "NAME      READY   STATUS\nweb-0     1/1     Running\n"
        with patch('kube.run_command', return_value=(0, out, '')):
            listing = list_resources('pods', 'langfuse')
        assert listing.found is True
        assert 'web-0' in listing.output

    def test_empty_namespace_is_not_found(self):
        """kubectl exits 0 with 'No resources found' on stderr."""
        with patch('kube.run_command', return_value=(0, '', 'No resources found in langfuse namespace.\n')):
            listing = list_resources('pods', 'langfuse')
        assert listing.found is False
        assert 'No resources found' in listing.output

    def test_named_object_not_found(self):
        err = 'Error from server (NotFound): applications.argoproj.io "langfuse-dev" not found'
        with patch('kube.run_command', return_value=(1, '', err)):
            listing = list_resources('applications', 'argocd', name='langfuse-dev')
        assert listing.found is False

    def test_missing_crd_is_not_found(self):
        """Cluster without Argo CD has no 'applications' resource type."""
        err = 'error: the server doesn\'t have a resource type "applications"'
        with patch('kube.run_command', return_value=(1, '', err)):
            listing = list_resources('applications', 'argocd')
        assert listing.found is False
        assert 'resource type' in listing.output

    def test_connection_error_raises(self):
        err = 'Unable to connect to the server: dial tcp: connection refused'
        with patch('kube.run_command', return_value=(1, '', err)):
            with pytest.raises(ExternalCallFailure):
                list_resources('pods', 'langfuse')
