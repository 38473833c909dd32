"""Tests for argocd.py - argocd CLI wrappers."""

from unittest.mock import patch

import pytest

from argocd import app_diff, app_get, app_logs, app_manifests, app_sync
from common import ExternalCallFailure


class TestAppGet:

    def test_returns_output(self):
        with patch('argocd.run_command', return_value=(0, 'Sync Status: Synced\n', '')) as mock_run:
            assert 'Synced' in app_get('langfuse-dev-eu2-su1')
        assert mock_run.call_args[0][0] == ['argocd', 'app', 'get', 'langfuse-dev-eu2-su1']

    def test_failure(self):
        err = 'rpc error: code = NotFound desc = application not found'
        with patch('argocd.run_command', return_value=(20, '', err)):
            with pytest.raises(ExternalCallFailure) as exc_info:
                app_get('missing')
        assert 'application not found' in str(exc_info.value)


class TestAppSync:

    def test_passes_timeout(self):
        with patch('argocd.run_command', return_value=(0, 'Phase: Succeeded\n', '')) as mock_run:
            app_sync('langfuse-dev-eu2-su1', timeout=60)
        cmd = mock_run.call_args[0][0]
        assert cmd[-2:] == ['--timeout', '60']
        assert mock_run.call_args.kwargs['timeout'] > 60


class TestAppDiff:

    def test_in_sync(self):
        with patch('argocd.run_command', return_value=(0, '', '')):
            assert app_diff('a') == (False, '')

    def test_differences_are_not_errors(self):
        out = '===== apps/Deployment langfuse/web ======\n< replicas: 1\n> replicas: 2\n'
        with patch('argocd.run_command', return_value=(1, out, '')):
            differs, output = app_diff('a')
        assert differs is True
        assert 'replicas' in output

    def test_real_failure(self):
        with patch('argocd.run_command', return_value=(1, '', 'FATA[0000] permission denied')):
            with pytest.raises(ExternalCallFailure):
                app_diff('a')


class TestAppManifestsAndLogs:

    def test_manifests_source(self):
        with patch('argocd.run_command', return_value=(0, 'kind: Deployment\n', '')) as mock_run:
            app_manifests('a', source='live')
        assert mock_run.call_args[0][0][-2:] == ['--source', 'live']

    def test_logs_tail(self):
        with patch('argocd.run_command', return_value=(0, 'line\n', '')) as mock_run:
            assert app_logs('a', tail=20) == 'line\n'
        assert mock_run.call_args[0][0][-2:] == ['--tail', '20']
