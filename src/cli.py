#!/usr/bin/env python3
"""CLI entry point for gitops-driver.

Step workflow:
- Interactive menu: gitops-driver
- Full batch:       gitops-driver --all
- Per environment:  gitops-driver --all --env dev-eu2-su1

Nouns:
- env: Environment registry utilities (list/validate/render)
- app: Deployment unit operations (get/sync/diff/manifests/logs/render)
"""

import argparse
import functools
import json
import logging
import subprocess
import sys
from pathlib import Path

from config import ConfigError, load_config
from environments import RegistryError, load_environments
from execution import ExecutionController, FullBatch
from menu import print_outcome, prompt_confirm, run_interactive
from reporting import RunReport
from steps import build_catalog

# Noun commands (noun-action subcommands)
NOUN_COMMANDS = {
    "env": "Environment registry utilities (list/validate/render)",
    "app": "Deployment unit operations (get/sync/diff/manifests/logs/render)",
}

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def get_version():
    """Get version from git tags, 'dev' outside a tagged checkout."""
    try:
        result = subprocess.run(
            ['git', 'describe', '--tags', '--abbrev=0'],
            capture_output=True, text=True,
            cwd=Path(__file__).parent,
            check=False,
        )
        return result.stdout.strip() if result.returncode == 0 else 'dev'
    except OSError:
        return 'dev'


def dispatch_noun(noun: str, argv: list) -> int:
    """Dispatch to noun-specific CLI handler.

    Args:
        noun: The noun command (e.g., "env", "app")
        argv: Remaining command line arguments

    Returns:
        Exit code
    """
    if noun == "env":
        from env_cli import main as env_main
        rc: int = env_main(argv)
        return rc

    if noun == "app":
        from app_cli import main as app_main
        rc = app_main(argv)
        return rc

    print(f"Error: Noun '{noun}' not yet implemented")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='gitops-driver',
        description='Argo CD deployment driver - runs setup steps interactively or as a batch',
        epilog='Commands: ' + '; '.join(f'{noun}: {desc}' for noun, desc in NOUN_COMMANDS.items()),
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'gitops-driver {get_version()}'
    )
    parser.add_argument(
        '--all',
        action='store_true',
        help='Run every step in order without the menu; exit non-zero if a step fails or is blocked'
    )
    parser.add_argument(
        '--base-dir', '-b',
        type=Path,
        help='Directory that document paths are relative to (default: current directory)'
    )
    parser.add_argument(
        '--env', '-e',
        action='append',
        default=[],
        help='Deploy/inspect this environment from the environment document (repeatable)'
    )
    parser.add_argument(
        '--all-envs',
        action='store_true',
        help='Deploy/inspect every environment in the environment document'
    )
    parser.add_argument(
        '--timeout', '-t',
        type=int,
        help='Seconds to wait for the Argo CD server to become available (default: 300)'
    )
    parser.add_argument(
        '--sync-wait',
        type=int,
        help='Seconds to wait after submitting a deployment (default: 10)'
    )
    parser.add_argument(
        '--list-steps',
        action='store_true',
        help='List steps and exit'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show the steps --all would run without running them'
    )
    parser.add_argument(
        '--json-output',
        action='store_true',
        help='Output the run summary as JSON to stdout (logs and step output go to stderr)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    return parser


def _redirect_logging_to_stderr():
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter(
        '%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    root_logger.addHandler(stderr_handler)


def _select_environments(args, config):
    """Load the registry when an environment option was given.

    Returns:
        (records, exit_code): records on success (exit_code=None), or
        (None, exit_code) on error.
    """
    if not args.env and not args.all_envs:
        return [], None

    try:
        registry = load_environments(config.environments_path)
    except RegistryError as e:
        print(f"Error: {e}")
        return None, 1

    if args.all_envs:
        records = list(registry)
    else:
        try:
            records = registry.select(args.env)
        except KeyError as e:
            print(f"Error: {e.args[0]}")
            return None, 1

    if not records:
        print(f"Error: No environments defined in {config.environments_path}")
        return None, 1
    logger.info(f"Environments: {', '.join(r.name for r in records)}")
    return records, None


def _print_steps(catalog, environments):
    print("Steps:")
    for step in catalog:
        scope = ''
        if step.scoped and environments:
            scope = f"  (per environment: {', '.join(r.name for r in environments)})"
        print(f"  {step.ordinal}. {step.id:24} {step.description}{scope}")


def main(argv: list = None) -> int:
    """CLI entry point - dispatch to noun handlers or run steps."""
    argv = sys.argv[1:] if argv is None else argv

    if argv and argv[0] in NOUN_COMMANDS:
        return dispatch_noun(argv[0], argv[1:])

    args = build_parser().parse_args(argv)

    if args.json_output:
        _redirect_logging_to_stderr()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(
            args.base_dir,
            ready_timeout=args.timeout,
            sync_wait=args.sync_wait,
        )
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    environments, exit_code = _select_environments(args, config)
    if exit_code is not None:
        return exit_code

    output = sys.stderr if args.json_output else None
    confirm = functools.partial(prompt_confirm, file=output) if output else prompt_confirm
    catalog = build_catalog(config, confirm=confirm)

    if args.list_steps or args.dry_run:
        _print_steps(catalog, environments)
        if args.dry_run:
            print("\nMode: DRY-RUN (no changes made). Remove --dry-run to execute.")
        return 0

    if not args.all:
        controller = ExecutionController(catalog, environments=environments,
                                         on_outcome=print_outcome)
        return run_interactive(controller)

    report = RunReport(request='all', environments=[r.name for r in environments])

    def on_outcome(outcome):
        report.record(outcome)
        print_outcome(outcome, file=output)

    controller = ExecutionController(catalog, environments=environments, on_outcome=on_outcome)
    report.start()
    try:
        result = controller.run(FullBatch())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130
    report.finish(result.state)

    if args.json_output:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(report.format_summary())
    return 0 if result.success else 1


if __name__ == '__main__':
    sys.exit(main())
