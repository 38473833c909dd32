"""Interactive step menu.

Renders the catalog, turns one selection into a RunRequest, runs it and
prints each outcome as it arrives. Input is not read while a run is in
flight.
"""

import logging
import sys
from typing import Callable, Optional, Union

from common import FAILURE, SKIPPED, StepOutcome
from execution import ExecutionController, FullBatch, RunRequest, SingleStep
from steps import Step

logger = logging.getLogger(__name__)

QUIT = 'quit'
RULE = "=============================================="

InputFn = Callable[[str], str]


def render_menu(catalog: list[Step]) -> str:
    """Menu text: one line per step, then run-all and quit."""
    last = max((step.ordinal for step in catalog), default=0)
    lines = [RULE, "  Choose an action:", RULE]
    for step in catalog:
        lines.append(f"  {step.ordinal}. {step.description}")
    lines.append(f"  A. Run ALL steps (0-{last})")
    lines.append("  Q. Quit")
    lines.append(RULE)
    return '\n'.join(lines)


def parse_selection(text: str, catalog: list[Step]) -> Optional[Union[RunRequest, str]]:
    """Map menu input to a RunRequest, QUIT, or None if invalid.

    Accepts a step ordinal, a step id, 'A' (all) or 'Q' (quit), case-insensitive.
    """
    choice = text.strip().lower()
    if not choice:
        return None
    if choice == 'q':
        return QUIT
    if choice == 'a':
        return FullBatch()
    for step in catalog:
        if choice == str(step.ordinal) or choice == step.id:
            return SingleStep(step.id)
    return None


def print_outcome(outcome: StepOutcome, file=None) -> None:
    """Echo one outcome, operator-only display lines included."""
    if outcome.status == FAILURE:
        print(f"✗ {outcome.label} failed: {outcome.message}", file=file)
    elif outcome.status == SKIPPED:
        print(f"⚠ {outcome.label} skipped: {outcome.message}", file=file)
    else:
        print(f"✓ {outcome.label}: {outcome.message}", file=file)
    for line in outcome.display:
        print(f"  {line}", file=file)
    print(file=file)


def prompt_confirm(prompt: str, input_fn: InputFn = input, file=None) -> bool:
    """Ask a yes/no question. No terminal attached means no.

    With file set, the question is written there instead of stdout.
    """
    if input_fn is input and not sys.stdin.isatty():
        logger.warning("No interactive terminal, treating confirmation as declined")
        return False
    question = f"{prompt} (y/n) "
    try:
        if file is None:
            reply = input_fn(question)
        else:
            print(question, end='', file=file, flush=True)
            reply = input_fn('')
    except EOFError:
        return False
    return reply.strip().lower().startswith('y')


def run_interactive(controller: ExecutionController, input_fn: InputFn = input) -> int:
    """Menu loop. Returns exit code 0 when the operator quits."""
    while True:
        print(render_menu(controller.catalog))
        print()
        try:
            selection = parse_selection(input_fn("Enter your choice: "), controller.catalog)
        except (EOFError, KeyboardInterrupt):
            print()
            return 0
        print()

        if selection == QUIT:
            print("Goodbye!")
            return 0
        if selection is None:
            print("Invalid choice. Please try again.")
        else:
            try:
                result = controller.run(selection)
            except KeyboardInterrupt:
                print("\nInterrupted.")
                return 130
            print(f"Run finished: {result.state}")

        print()
        try:
            input_fn("Press Enter to continue...")
        except (EOFError, KeyboardInterrupt):
            return 0
        print()
