"""Deployment unit CLI.

Operates on the Argo CD Application of one environment.

Usage:
    gitops-driver app get <env>
    gitops-driver app sync <env> [--timeout N]
    gitops-driver app diff <env>
    gitops-driver app manifests <env> [--live]
    gitops-driver app logs <env> [--tail N]
    gitops-driver app render <env>
"""

import argparse
import logging

import yaml

import argocd
from common import ExternalCallFailure, run_command
from config import ConfigError, DriverConfig
from descriptors import helm_values
from env_cli import add_common_args, load_context
from environments import EnvironmentRecord

logger = logging.getLogger(__name__)


def helm_template(record: EnvironmentRecord, config: DriverConfig) -> str:
    """Render the workload chart locally with the environment's values."""
    unit = config.unit_name(record.name)
    cmd = [
        'helm', 'template', unit, config.chart,
        '--repo', config.repo_url,
        '--version', record.chart_version,
        '--namespace', unit,
        '-f', '-',
    ]
    values = yaml.safe_dump(helm_values(record), sort_keys=False)
    rc, out, err = run_command(cmd, timeout=300, input_text=values)
    if rc != 0:
        raise ExternalCallFailure(f"helm template {unit} failed", err or out)
    return out


def run_action(args, config: DriverConfig, record: EnvironmentRecord) -> int:
    unit = config.unit_name(record.name)

    if args.action == "get":
        print(argocd.app_get(unit), end='')
        return 0

    if args.action == "sync":
        print(argocd.app_sync(unit, timeout=args.timeout), end='')
        return 0

    if args.action == "diff":
        differs, output = argocd.app_diff(unit)
        if differs:
            print(output, end='')
            print(f"\n{unit}: live state differs from desired state")
        else:
            print(f"{unit}: in sync, no differences")
        return 0

    if args.action == "manifests":
        print(argocd.app_manifests(unit, source='live' if args.live else 'git'), end='')
        return 0

    if args.action == "logs":
        print(argocd.app_logs(unit, tail=args.tail), end='')
        return 0

    if args.action == "render":
        print(helm_template(record, config), end='')
        return 0

    return 1


def main(argv: list) -> int:
    """App CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="gitops-driver app",
        description="Deployment unit operations",
    )
    sub = parser.add_subparsers(dest="action")

    parsers = {
        "get": sub.add_parser("get", help="Show application sync and health status"),
        "sync": sub.add_parser("sync", help="Sync the application and wait for completion"),
        "diff": sub.add_parser("diff", help="Diff live state against desired state"),
        "manifests": sub.add_parser("manifests", help="Print the application's manifests"),
        "logs": sub.add_parser("logs", help="Print recent workload logs"),
        "render": sub.add_parser("render", help="Render the chart locally with helm template"),
    }
    for action_parser in parsers.values():
        action_parser.add_argument("env", help="Environment name from the environment document")
        add_common_args(action_parser)
    parsers["sync"].add_argument("--timeout", type=int, default=300, help="Sync timeout in seconds")
    parsers["manifests"].add_argument("--live", action="store_true", help="Show live manifests")
    parsers["logs"].add_argument("--tail", type=int, default=100, help="Lines per container")

    args = parser.parse_args(argv)

    if not args.action:
        parser.print_help()
        return 1

    try:
        config, registry = load_context(args.base_dir)
        record = registry.get(args.env)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1
    except KeyError as e:
        print(f"Error: {e.args[0]}")
        return 1

    try:
        return run_action(args, config, record)
    except ExternalCallFailure as e:
        print(f"Error: {e}")
        return 1
