"""Tests for menu.py - interactive step menu."""

import sys
from unittest.mock import MagicMock

import pytest

from common import FAILURE, SKIPPED, SUCCESS, StepOutcome
from execution import COMPLETED, ExecutionController, FullBatch, RunResult, SingleStep
from menu import QUIT, parse_selection, print_outcome, prompt_confirm, render_menu, run_interactive
from steps import build_catalog


def _inputs(*replies):
    """input() replacement that returns replies in order, then raises EOFError."""
    it = iter(replies)

    def fake_input(_prompt=''):
        try:
            return next(it)
        except StopIteration:
            raise EOFError
    return fake_input


class TestRenderMenu:

    def test_lists_steps_and_controls(self, config):
        text = render_menu(build_catalog(config))
        assert '  0. Check prerequisites' in text
        assert '  6. Check deployment status' in text
        assert 'A. Run ALL steps (0-6)' in text
        assert 'Q. Quit' in text


class TestParseSelection:

    @pytest.mark.parametrize('text,expected', [
        ('0', SingleStep('prerequisites')),
        ('4', SingleStep('deploy')),
        (' 6 ', SingleStep('status')),
        ('deploy', SingleStep('deploy')),
        ('a', FullBatch()),
        ('A', FullBatch()),
        ('q', QUIT),
        ('Q', QUIT),
    ])
    def test_valid(self, config, text, expected):
        assert parse_selection(text, build_catalog(config)) == expected

    @pytest.mark.parametrize('text', ['', '7', 'x', 'all'])
    def test_invalid(self, config, text):
        assert parse_selection(text, build_catalog(config)) is None


class TestPrintOutcome:

    def test_success_with_display(self, capsys):
        print_outcome(StepOutcome(step_id='admin-password', status=SUCCESS, message='retrieved',
                                  display=['Admin password: s3cr3t']))
        out = capsys.readouterr().out
        assert '✓ admin-password: retrieved' in out
        assert '  Admin password: s3cr3t' in out

    def test_failure(self, capsys):
        print_outcome(StepOutcome(step_id='deploy', status=FAILURE, message='apply failed',
                                  env='dev-eu2-su1'))
        assert '✗ deploy[dev-eu2-su1] failed: apply failed' in capsys.readouterr().out

    def test_skipped(self, capsys):
        print_outcome(StepOutcome(step_id='create-secrets', status=SKIPPED, message='placeholders'))
        assert '⚠ create-secrets skipped: placeholders' in capsys.readouterr().out


class TestPromptConfirm:

    @pytest.mark.parametrize('reply,expected', [('y', True), ('Yes', True), ('n', False), ('', False)])
    def test_replies(self, reply, expected):
        assert prompt_confirm('Continue?', input_fn=_inputs(reply)) is expected

    def test_eof_declines(self):
        assert prompt_confirm('Continue?', input_fn=_inputs()) is False

    def test_question_written_to_file(self, capsys):
        prompts = []

        def fake_input(prompt=''):
            prompts.append(prompt)
            return 'y'

        assert prompt_confirm('Customized?', input_fn=fake_input, file=sys.stderr) is True
        captured = capsys.readouterr()
        assert captured.out == ''
        assert 'Customized? (y/n)' in captured.err
        assert prompts == ['']


class TestRunInteractive:

    def _controller(self):
        controller = MagicMock(spec=ExecutionController)
        controller.catalog = []
        controller.run.return_value = RunResult(state=COMPLETED)
        return controller

    def test_quit(self, capsys):
        controller = self._controller()
        assert run_interactive(controller, input_fn=_inputs('q')) == 0
        assert 'Goodbye!' in capsys.readouterr().out
        controller.run.assert_not_called()

    def test_eof_exits_cleanly(self):
        assert run_interactive(self._controller(), input_fn=_inputs()) == 0

    def test_invalid_choice(self, capsys):
        controller = self._controller()
        run_interactive(controller, input_fn=_inputs('9', '', 'q'))
        assert 'Invalid choice. Please try again.' in capsys.readouterr().out
        controller.run.assert_not_called()

    def test_runs_selection_then_returns_to_menu(self, config, capsys):
        controller = self._controller()
        controller.catalog = build_catalog(config)

        run_interactive(controller, input_fn=_inputs('5', '', 'a', '', 'q'))

        requests = [c.args[0] for c in controller.run.call_args_list]
        assert requests == [SingleStep('port-forward'), FullBatch()]
        assert capsys.readouterr().out.count('Run finished: completed') == 2

    def test_interrupt_during_run(self, config):
        controller = self._controller()
        controller.catalog = build_catalog(config)
        controller.run.side_effect = KeyboardInterrupt
        assert run_interactive(controller, input_fn=_inputs('1')) == 130
