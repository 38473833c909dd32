"""Environment registry CLI.

Usage:
    gitops-driver env list [--base-dir DIR]
    gitops-driver env validate [--base-dir DIR]
    gitops-driver env render [--appset] [--env NAME ...]
"""

import argparse
from pathlib import Path

from config import ConfigError, DriverConfig, load_config
from descriptors import render_application, render_application_set, to_yaml
from environments import EnvironmentRegistry, load_environments


def add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--base-dir', '-b', type=Path,
        help='Directory that document paths are relative to (default: current directory)',
    )


def load_context(base_dir) -> tuple[DriverConfig, EnvironmentRegistry]:
    """Load driver config and the environment registry.

    Raises:
        ConfigError: Config or registry could not be loaded
    """
    config = load_config(base_dir)
    return config, load_environments(config.environments_path)


def list_environments(registry: EnvironmentRegistry, config: DriverConfig) -> int:
    if not len(registry):
        print(f"No environments defined in {config.environments_path}")
        return 0
    print(f"  {'NAME':20} {'UNIT':28} {'CHART':8} {'SYNC':6} HOSTNAME")
    for record in registry:
        sync = 'auto' if record.auto_sync else 'manual'
        print(f"  {record.name:20} {config.unit_name(record.name):28} "
              f"{record.chart_version:8} {sync:6} {record.hostname}")
    return 0


def render(registry: EnvironmentRegistry, config: DriverConfig, names: list, appset: bool) -> int:
    records = registry.select(names) if names else list(registry)
    if appset:
        print(to_yaml(render_application_set(records, config)), end='')
        return 0
    print(to_yaml(*(render_application(r, config) for r in records)), end='')
    return 0


def main(argv: list) -> int:
    """Env CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="gitops-driver env",
        description="Environment registry utilities",
    )
    sub = parser.add_subparsers(dest="action")

    list_parser = sub.add_parser("list", help="List environments and their deployment units")
    add_common_args(list_parser)

    validate_parser = sub.add_parser("validate", help="Load and validate the environment document")
    add_common_args(validate_parser)

    render_parser = sub.add_parser("render", help="Print Argo CD descriptors for environments")
    add_common_args(render_parser)
    render_parser.add_argument(
        "--appset", action="store_true",
        help="Render one list-generator ApplicationSet instead of one Application per environment",
    )
    render_parser.add_argument(
        "--env", "-e", action="append", default=[],
        help="Limit to this environment (repeatable)",
    )

    args = parser.parse_args(argv)

    if not args.action:
        parser.print_help()
        return 1

    try:
        config, registry = load_context(args.base_dir)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    if args.action == "list":
        return list_environments(registry, config)

    if args.action == "validate":
        print(f"{config.environments_path}: {len(registry)} environments OK")
        for name in registry.names():
            print(f"  {name} -> {config.unit_name(name)}")
        return 0

    if args.action == "render":
        try:
            return render(registry, config, args.env, args.appset)
        except KeyError as e:
            print(f"Error: {e.args[0]}")
            return 1

    return 1
