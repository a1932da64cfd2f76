"""Entry point for zed-go-tasks.

Scans a Go test file and writes one Zed task (``generate``) or Delve debug
config (``generate-debug``) per runnable test into the workspace's Zed
documents, replacing entries generated earlier and leaving hand-written ones
alone. ``clear`` removes everything that was generated.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from zed_go_tasks.config import ENV_PREFIX, TaskGenConfig
from zed_go_tasks.discovery.selection import (
    count_unique_not_in_base,
    filter_discovered,
    intersect_tests,
    merge_unique_tests,
)
from zed_go_tasks.discovery.source import extract_test_names
from zed_go_tasks.discovery.toolchain import discover_subtests, list_runnable_tests
from zed_go_tasks.documents.store import read_entries, serialize_entries, write_entries
from zed_go_tasks.durations import format_duration
from zed_go_tasks.errors import GoTasksError
from zed_go_tasks.generation.entries import (
    EntryContext,
    make_debug_entries,
    make_task_entries,
)
from zed_go_tasks.generation.reconcile import MergeStats, clear_generated, merge_entries
from zed_go_tasks.workspace import (
    detect_workspace_root,
    package_arg,
    relative_file_path,
    resolve_path,
    validate_source_file,
)

_EPILOG = f"""\
configuration:
  Settings come from .zed/go-tasks.yaml (or --config-file), then from
  environment variables prefixed {ENV_PREFIX}, e.g.
  {ENV_PREFIX}LABEL_PREFIX=unit: or {ENV_PREFIX}PRUNE_GENERATED=false.

  zed-go-tasks --file <path> behaves the same as "generate".
  Arguments after -- are appended to the extra go test arguments.
"""


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Workspace root (default: nearest directory with go.mod or .git)",
    )
    parser.add_argument(
        "--tasks",
        default=None,
        help="Override the tasks JSON path",
    )
    parser.add_argument(
        "--debug",
        default=None,
        help="Override the debug JSON path",
    )
    parser.add_argument(
        "--config-file",
        type=Path,
        default=None,
        help="YAML config file (default: <root>/.zed/go-tasks.yaml if present)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Print the resulting JSON instead of writing it",
    )


def _add_generate_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-f", "--file",
        required=True,
        help="Go test file to scan",
    )
    parser.add_argument(
        "--go-test-arg",
        dest="go_test_args",
        action="append",
        default=[],
        metavar="ARG",
        help="Extra go test argument (repeatable), e.g. --go-test-arg=-v",
    )
    parser.add_argument(
        "--discover-subtests",
        action="store_true",
        default=False,
        help="Run the tests with go test -json and include discovered subtests",
    )
    parser.add_argument(
        "--subtest-timeout",
        default=None,
        help="Timeout for subtest discovery, e.g. 30s or 2m (default from config: 30s)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser."""
    parser = argparse.ArgumentParser(
        prog="zed-go-tasks",
        description="Generate Zed tasks and debug configs for Go tests in a file",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    generate_parser = subparsers.add_parser(
        "generate",
        help="Write/update one Zed task per test in the file",
    )
    _add_common_arguments(generate_parser)
    _add_generate_arguments(generate_parser)
    generate_parser.set_defaults(target="tasks")

    debug_parser = subparsers.add_parser(
        "generate-debug",
        aliases=["debug"],
        help="Write/update one Zed debug config per test in the file",
    )
    _add_common_arguments(debug_parser)
    _add_generate_arguments(debug_parser)
    debug_parser.set_defaults(target="debug")

    clear_parser = subparsers.add_parser(
        "clear",
        help="Remove all previously generated tasks",
    )
    _add_common_arguments(clear_parser)
    clear_parser.add_argument(
        "--include-debug",
        action="store_true",
        default=False,
        help="Also remove generated debug configs",
    )

    subparsers.add_parser("help", help="Show this help")
    return parser


def _split_passthrough(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split *argv* at the first bare ``--``."""
    if "--" in argv:
        index = argv.index("--")
        return argv[:index], argv[index + 1:]
    return argv, []


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    A missing subcommand (or leading flags) means ``generate``. Arguments after
    ``--`` are returned in ``args.passthrough``.
    """
    if argv is None:
        argv = sys.argv[1:]
    argv, passthrough = _split_passthrough(list(argv))
    if not argv or (argv[0].startswith("-") and argv[0] not in ("-h", "--help")):
        argv = ["generate", *argv]

    args = build_parser().parse_args(argv)
    args.passthrough = passthrough
    return args


def _print_generate_summary(
    doc_path: Path,
    noun: str,
    label_prefix: str,
    file_tests: list[str],
    runnable: list[str],
    selected: list[str],
    stats: MergeStats,
    discovery: tuple[int, int, str] | None,
) -> None:
    print(f"Updated {doc_path}")
    print(
        f"Discovered in file: {len(file_tests)}, "
        f"runnable with go test -list: {len(runnable)}"
    )
    if discovery is not None:
        found, new, timeout_text = discovery
        print(
            f"Discovered by runtime execution: {found} "
            f"(new: {new}, timeout {timeout_text})"
        )
    print(
        f"{noun.capitalize()}s added: {stats.added}, "
        f"updated: {stats.updated}, removed: {stats.removed}"
    )
    for test_name in selected:
        print(f"Generated {noun}: {label_prefix}{test_name}")


def cmd_generate(args: argparse.Namespace) -> int:
    """Handle the generate and generate-debug subcommands.

    Returns:
        Exit code (0 for success).

    Raises:
        GoTasksError: On any failure; nothing is written in that case.
    """
    file_path = validate_source_file(args.file)
    root = args.root if args.root is not None else detect_workspace_root(file_path.parent)
    root = root.expanduser().absolute()

    config = TaskGenConfig.load(
        root,
        os.environ,
        config_file=args.config_file,
        tasks_path=args.tasks,
        debug_path=args.debug,
        subtest_timeout=args.subtest_timeout,
    )

    extra_args = [
        *config.additional_go_test_args,
        *args.go_test_args,
        *getattr(args, "passthrough", []),
    ]

    file_tests = extract_test_names(file_path, config.test_name_pattern)
    package_dir = file_path.parent
    listed = list_runnable_tests(config.go_binary, package_dir, config.go_list_regex)
    runnable = sorted(intersect_tests(file_tests, listed))

    context = EntryContext(
        package_arg=package_arg(root, package_dir),
        file_path=relative_file_path(root, file_path),
        extra_args=tuple(extra_args),
        cwd=str(root) if config.is_global else None,
    )

    selected = list(runnable)
    discovery_summary: tuple[int, int, str] | None = None
    if args.discover_subtests:
        result = discover_subtests(
            config.go_binary,
            package_dir,
            runnable,
            config.subtest_timeout,
            extra_args,
        )
        if result.timed_out:
            print(
                f"Warning: subtest discovery timed out after "
                f"{format_duration(config.subtest_timeout)}; "
                f"using {len(result.names)} test(s) reported before the timeout",
                file=sys.stderr,
            )
        kept, dropped = filter_discovered(result.names, runnable)
        if dropped:
            print(
                f"Warning: ignoring {len(dropped)} discovered test(s) outside "
                f"the selected top-level tests: {', '.join(dropped)}",
                file=sys.stderr,
            )
        selected = sorted(merge_unique_tests(runnable, kept))
        discovery_summary = (
            len(kept),
            count_unique_not_in_base(runnable, kept),
            format_duration(config.subtest_timeout),
        )

    if args.target == "debug":
        generated = make_debug_entries(selected, context, config)
        doc_path = resolve_path(root, config.debug_path)
        noun = "debug config"
        label_prefix = config.debug_label_prefix
    else:
        generated = make_task_entries(selected, context, config)
        doc_path = resolve_path(root, config.tasks_path)
        noun = "task"
        label_prefix = config.label_prefix

    existing = read_entries(doc_path)
    merged, stats = merge_entries(
        existing, generated, config.marker, prune=config.prune_generated,
    )
    for label in stats.skipped:
        print(
            f"Warning: not writing {label!r}: a hand-written entry already uses this label",
            file=sys.stderr,
        )
    output = serialize_entries(merged)

    if args.dry_run:
        sys.stdout.write(output)
        return 0

    write_entries(doc_path, output)
    _print_generate_summary(
        doc_path, noun, label_prefix, file_tests, runnable, selected, stats,
        discovery_summary,
    )
    return 0


def _clear_document(doc_path: Path, config: TaskGenConfig, dry_run: bool) -> int:
    existing = read_entries(doc_path)
    remaining, removed = clear_generated(existing, config.marker)
    output = serialize_entries(remaining)
    if dry_run:
        sys.stdout.write(output)
    else:
        write_entries(doc_path, output)
    return removed


def cmd_clear(args: argparse.Namespace) -> int:
    """Handle the clear subcommand.

    Returns:
        Exit code (0 for success).
    """
    root = args.root if args.root is not None else detect_workspace_root(Path.cwd())
    root = root.expanduser().absolute()

    config = TaskGenConfig.load(
        root,
        os.environ,
        config_file=args.config_file,
        tasks_path=args.tasks,
        debug_path=args.debug,
    )

    documents = [(resolve_path(root, config.tasks_path), "tasks")]
    if args.include_debug:
        documents.append((resolve_path(root, config.debug_path), "debug configs"))

    for doc_path, noun in documents:
        removed = _clear_document(doc_path, config, args.dry_run)
        if not args.dry_run:
            print(f"Updated {doc_path}")
            print(f"Removed generated {noun}: {removed}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.command in (None, "help"):
        build_parser().print_help()
        return 0

    try:
        if args.command in ("generate", "generate-debug", "debug"):
            return cmd_generate(args)
        elif args.command == "clear":
            return cmd_clear(args)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1
    except GoTasksError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
