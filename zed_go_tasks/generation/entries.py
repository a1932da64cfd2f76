"""Build generated task and debug entries for Go tests.

A generated entry is a plain dict, serialized as-is into the Zed document.
It is tagged as machine-generated by a marker key/value pair inside its
``env`` map, next to the originating test name and file path.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable

from zed_go_tasks.discovery.selectors import run_pattern_for_test

if TYPE_CHECKING:
    from zed_go_tasks.config import TaskGenConfig

TEST_NAME_ENV_KEY = "ZED_GO_TEST_NAME"
TEST_FILE_ENV_KEY = "ZED_GO_TEST_FILE"

DEBUG_ADAPTER = "Delve"
DEBUG_REQUEST = "launch"
DEBUG_MODE = "test"


@dataclass(frozen=True)
class Marker:
    """The ``env`` key/value pair that tags an entry as generated."""

    key: str
    value: str

    def matches(self, entry: Any) -> bool:
        """True if *entry* carries this marker with a string value."""
        if not isinstance(entry, dict):
            return False
        env = entry.get("env")
        if not isinstance(env, dict):
            return False
        value = env.get(self.key)
        return isinstance(value, str) and value == self.value


@dataclass(frozen=True)
class EntryContext:
    """Per-invocation facts shared by every generated entry.

    Attributes:
        package_arg: Package argument for ``go test`` (``.`` or ``./pkg``).
        file_path: Originating file, slash-separated and relative to the
            workspace root when possible.
        extra_args: Extra ``go test`` arguments, in order.
        cwd: Working directory to pin on each entry (global target only).
    """

    package_arg: str
    file_path: str
    extra_args: tuple[str, ...] = ()
    cwd: str | None = None


def _entry_env(test_name: str, context: EntryContext, marker: Marker) -> dict[str, str]:
    return {
        marker.key: marker.value,
        TEST_NAME_ENV_KEY: test_name,
        TEST_FILE_ENV_KEY: context.file_path,
    }


def make_task_entries(
    test_names: Iterable[str],
    context: EntryContext,
    config: TaskGenConfig,
) -> list[dict[str, Any]]:
    """Create one ``go test -run`` task per test name."""
    tasks: list[dict[str, Any]] = []
    for test_name in test_names:
        args = ["test", *context.extra_args, context.package_arg,
                "-run", run_pattern_for_test(test_name)]
        task: dict[str, Any] = {
            "label": config.label_prefix + test_name,
            "command": config.go_binary,
            "args": args,
            "use_new_terminal": config.use_new_terminal,
            "allow_concurrent_runs": config.allow_concurrent_runs,
            "reveal": config.reveal,
            "hide": config.hide,
        }
        if context.cwd is not None:
            task["cwd"] = context.cwd
        task["env"] = _entry_env(test_name, context, config.marker)
        tasks.append(task)
    return tasks


def normalize_args_for_delve(args: Iterable[str]) -> list[str]:
    """Translate ``go test`` flags into the test binary flags Delve expects.

    ``-v`` becomes ``-test.v`` and ``-count=N`` becomes ``-test.count=N``.
    A bare ``-count`` has no value to carry over and is dropped.
    """
    out: list[str] = []
    for arg in args:
        if arg == "-v":
            out.append("-test.v")
        elif arg == "-count":
            continue
        elif arg.startswith("-count="):
            out.append("-test." + arg[1:])
        else:
            out.append(arg)
    return out


def make_debug_entries(
    test_names: Iterable[str],
    context: EntryContext,
    config: TaskGenConfig,
) -> list[dict[str, Any]]:
    """Create one Delve launch config per test name."""
    configs: list[dict[str, Any]] = []
    for test_name in test_names:
        args = normalize_args_for_delve(context.extra_args)
        args.extend(["-test.run", run_pattern_for_test(test_name)])
        entry: dict[str, Any] = {
            "label": config.debug_label_prefix + test_name,
            "adapter": DEBUG_ADAPTER,
            "request": DEBUG_REQUEST,
            "mode": DEBUG_MODE,
            "program": context.package_arg,
            "args": args,
        }
        if context.cwd is not None:
            entry["cwd"] = context.cwd
        entry["env"] = _entry_env(test_name, context, config.marker)
        configs.append(entry)
    return configs
