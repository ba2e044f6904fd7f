"""
CLI App - Main entry point for the reffy command line tool.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from reffy import __version__
from reffy.adapters import EnvironmentConfigProvider, LinearGateway, ReferencesStore
from reffy.application.sync import ConflictCleaner, MappingStore, RunResult, SyncEngine
from reffy.core.exceptions import ConfigError
from reffy.core.ports.config_provider import AppConfig

from .exit_codes import ExitCode
from .logging import setup_logging
from .output import Console


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--repo",
        default=".",
        help="Repository root containing .references/ (default: current directory)",
    )
    parser.add_argument(
        "--output",
        "-o",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument("--config", "-c", help="YAML config file (default: <repo>/.reffy.yaml)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only print errors and a summary")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log format (default: text)",
    )
    parser.add_argument("--log-file", help="Also write logs to this file")


def create_parser() -> argparse.ArgumentParser:
    """
    Create the command-line argument parser for reffy.

    Returns:
        Configured ArgumentParser instance.
    """
    common = argparse.ArgumentParser(add_help=False)
    _add_common_options(common)

    parser = argparse.ArgumentParser(
        prog="reffy",
        description="Sync .references/ artifacts with Linear issues",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Push local artifacts to Linear
  reffy push

  # Pull Linear edits, importing issues labelled "docs"
  reffy pull --create --label docs

  # List issues attached to conflict copies, then archive them
  reffy cleanup-conflicts
  reffy cleanup-conflicts --apply

  # Index files dropped into .references/artifacts/ by hand
  reffy reindex

  # Check the manifest against the files on disk
  reffy validate --output json
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True

    push = subparsers.add_parser("push", parents=[common], help="Push artifacts to Linear")
    push.add_argument("--team-id", help="Linear team id (default: LINEAR_TEAM_ID or first team)")
    push.add_argument("--project-id", help="Linear project id for new issues")
    push.add_argument("--label", dest="push_label", help="Label for pushed issues (default: reffy)")

    pull = subparsers.add_parser("pull", parents=[common], help="Pull Linear edits into artifacts")
    pull.add_argument(
        "--create",
        dest="pull_create",
        action="store_true",
        default=None,
        help="Import unmapped issues carrying the pull label",
    )
    pull.add_argument("--label", dest="pull_label", help="Label selecting issues to import")
    pull.add_argument(
        "--no-conflict-copies",
        dest="pull_create_conflicts",
        action="store_false",
        default=None,
        help="Overwrite local edits without keeping a conflict copy",
    )

    cleanup = subparsers.add_parser(
        "cleanup-conflicts",
        parents=[common],
        help="Archive Linear issues mapped to conflict copies",
    )
    cleanup.add_argument(
        "--apply",
        action="store_true",
        help="Archive and unmap (default is a dry run)",
    )

    subparsers.add_parser("reindex", parents=[common], help="Index untracked artifact files")
    subparsers.add_parser("validate", parents=[common], help="Validate the manifest")

    return parser


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    names = ("team_id", "project_id", "push_label", "pull_create", "pull_label", "pull_create_conflicts")
    return {name: getattr(args, name) for name in names if getattr(args, name, None) is not None}


def _exit_code(result: RunResult) -> ExitCode:
    if not result.ok:
        return ExitCode.ERROR
    if result.has_errors:
        return ExitCode.PARTIAL
    return ExitCode.SUCCESS


def load_config(args: argparse.Namespace) -> AppConfig:
    """
    Resolve configuration for a command.

    Raises:
        ConfigError: If a config file is invalid
    """
    provider = EnvironmentConfigProvider(
        repo_root=Path(args.repo).resolve(),
        config_file=args.config,
        cli_overrides=_cli_overrides(args),
    )
    return provider.load()


def run_sync_command(args: argparse.Namespace, console: Console) -> int:
    """
    Run push, pull or cleanup-conflicts against Linear.

    Args:
        args: Parsed command-line arguments.
        console: Console for output.

    Returns:
        Exit code.
    """
    config = load_config(args)
    errors = config.validate(pull=args.command == "pull")
    if errors:
        console.config_errors(errors)
        console.flush_errors()
        return ExitCode.CONFIG_ERROR

    store = ReferencesStore(config.repo_root)
    gateway = LinearGateway.from_config(config.linear)
    mapping_store = MappingStore.for_repo(config.repo_root)

    try:
        if args.command == "push":
            console.header("reffy push")
            result: RunResult = SyncEngine(gateway, store, config, mapping_store).push()
            console.run_result("Push", result)
        elif args.command == "pull":
            console.header("reffy pull")
            result = SyncEngine(gateway, store, config, mapping_store).pull()
            console.run_result("Pull", result)
        else:
            console.header("reffy cleanup-conflicts")
            if not args.apply:
                console.info("Dry run: pass --apply to archive")
            result = ConflictCleaner(gateway, store, mapping_store).run(apply=args.apply)
            console.run_result("Cleanup", result)
    finally:
        gateway.client.close()

    return _exit_code(result)


def run_reindex(args: argparse.Namespace, console: Console) -> int:
    store = ReferencesStore(Path(args.repo).resolve())
    result = store.reindex_artifacts()

    if console.json_mode:
        console.emit_json({"status": "ok", **result.to_dict()})
    elif console.quiet:
        print(f"added={result.added} total={result.total}")
    else:
        console.success(f"Indexed {result.added} new artifact(s), {result.total} total")
    return ExitCode.SUCCESS


def run_validate(args: argparse.Namespace, console: Console) -> int:
    store = ReferencesStore(Path(args.repo).resolve())
    result = store.validate_manifest()

    if console.json_mode:
        console.emit_json(result.to_dict())
        return ExitCode.SUCCESS if result.ok else ExitCode.ERROR

    for warning in result.warnings:
        console.warning(warning)
    for error in result.errors:
        console.error(error)
    if result.ok:
        console.success(f"Manifest valid ({result.artifact_count} artifacts)")
        return ExitCode.SUCCESS
    console.error(f"Manifest invalid: {len(result.errors)} error(s)")
    return ExitCode.ERROR


COMMANDS = {
    "push": run_sync_command,
    "pull": run_sync_command,
    "cleanup-conflicts": run_sync_command,
    "reindex": run_reindex,
    "validate": run_validate,
}


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the reffy CLI.

    Parses arguments, sets up logging, and runs the selected command.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        log_level = logging.DEBUG
    elif args.quiet or args.output == "json":
        log_level = logging.WARNING
    else:
        log_level = logging.INFO
    setup_logging(level=log_level, log_format=args.log_format, log_file=args.log_file)

    console = Console(
        color=not args.no_color,
        verbose=args.verbose,
        quiet=args.quiet,
        json_mode=args.output == "json",
    )

    try:
        return COMMANDS[args.command](args, console)

    except KeyboardInterrupt:
        console.print()
        console.warning("Interrupted by user")
        return ExitCode.SIGINT

    except ConfigError as e:
        console.config_errors([str(e)])
        console.flush_errors()
        return ExitCode.CONFIG_ERROR

    except Exception as e:
        console.error(str(e))
        console.flush_errors()
        if args.verbose:
            import traceback

            traceback.print_exc()
        return ExitCode.from_exception(e)


def run() -> None:
    """
    Entry point for the console script.

    Calls main() and exits with its return code.
    """
    sys.exit(main())


if __name__ == "__main__":
    run()
