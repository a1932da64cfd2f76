"""Run the go toolchain to confirm and expand the tests found in a file.

Two subprocess calls are made against the package directory:

* ``go test -list <regex> .`` reports which top-level tests actually build
  and run in the current configuration (build tags, GOOS, ...).
* ``go test -json -count=1 -run <selector> .`` executes the selected tests
  and reports every test and subtest that started, which is the only way to
  learn names created at runtime by ``t.Run``.

Both outputs are line oriented and parsed leniently: banners and non-event
lines are skipped rather than treated as errors.
"""

from __future__ import annotations

import json
import os
import re
import signal
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from zed_go_tasks.discovery.selectors import top_level_run_pattern
from zed_go_tasks.durations import format_duration
from zed_go_tasks.errors import DiscoveryError, DiscoveryTimeoutError, ToolchainError

# Lines printed by go test -list that are not test names
_STATUS_PREFIXES = ("ok ", "? ", "PASS", "FAIL")

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Flags controlled by discovery itself; caller copies are dropped
_DISCOVERY_FLAGS = frozenset({"json", "run", "list", "timeout", "count"})
_BOOL_DISCOVERY_FLAGS = frozenset({"json"})

# Time allowed to drain output after the process group was killed
_KILL_GRACE_SECONDS = 5.0


@dataclass(frozen=True)
class GoTestEvent:
    """One decoded line of ``go test -json`` output."""

    action: str
    test: str


@dataclass
class CommandResult:
    """Outcome of a bounded subprocess run."""

    returncode: int | None
    output: str
    timed_out: bool = False


@dataclass
class DiscoveryResult:
    """Names reported as started by ``go test -json``.

    ``timed_out`` is set when the run was killed at the timeout but had
    already reported at least one test.
    """

    names: list[str] = field(default_factory=list)
    timed_out: bool = False
    exit_code: int | None = 0


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def _terminate_process_group(proc: subprocess.Popen) -> None:
    """Kill *proc* and everything it spawned (go runs a separate test binary)."""
    killpg = getattr(os, "killpg", None)
    if killpg is not None:
        try:
            killpg(proc.pid, signal.SIGKILL)
            return
        except ProcessLookupError:
            return
        except PermissionError:
            pass
    try:
        proc.kill()
    except ProcessLookupError:
        pass


def run_bounded(cmd: list[str], cwd: Path, timeout: float) -> CommandResult:
    """Run *cmd* with combined stdout/stderr, killing it after *timeout* seconds.

    The process is started in its own session so the whole process group can
    be killed. Output produced before the kill is returned.

    Raises:
        ToolchainError: If the executable cannot be started.
    """
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            start_new_session=True,
        )
    except FileNotFoundError as e:
        raise ToolchainError(f"{cmd[0]} not found in PATH") from e
    except OSError as e:
        raise ToolchainError(f"cannot start {cmd[0]}: {e}") from e

    with proc:
        try:
            stdout, _ = proc.communicate(timeout=timeout)
            return CommandResult(proc.returncode, _decode(stdout))
        except subprocess.TimeoutExpired:
            _terminate_process_group(proc)
            try:
                stdout, _ = proc.communicate(timeout=_KILL_GRACE_SECONDS)
            except subprocess.TimeoutExpired as exc:
                stdout = exc.output
            return CommandResult(proc.returncode, _decode(stdout), timed_out=True)


def iter_listed_names(lines: Iterable[str]) -> Iterator[str]:
    """Yield test names from ``go test -list`` output lines."""
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith(_STATUS_PREFIXES):
            continue
        name = line.split()[0]
        if _IDENT_RE.match(name):
            yield name


def parse_list_output(output: str) -> set[str]:
    """Parse ``go test -list`` output into a set of test names."""
    return set(iter_listed_names(output.splitlines()))


def list_runnable_tests(go_binary: str, package_dir: Path, list_regex: str) -> set[str]:
    """Ask ``go test -list`` which top-level tests are runnable in *package_dir*.

    Raises:
        ToolchainError: If go cannot be started or exits with a failure.
    """
    cmd = [go_binary, "test", "-list", list_regex, "."]
    try:
        result = subprocess.run(
            cmd,
            cwd=package_dir,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
        )
    except FileNotFoundError as e:
        raise ToolchainError(f"{go_binary} not found in PATH") from e
    except OSError as e:
        raise ToolchainError(f"cannot start {go_binary}: {e}") from e

    output = _decode(result.stdout)
    if result.returncode != 0:
        raise ToolchainError(
            f"go test -list failed in {package_dir} (exit {result.returncode})\n"
            f"{output.strip()}",
            output=output,
        )
    return parse_list_output(output)


def iter_test_events(lines: Iterable[str]) -> Iterator[GoTestEvent]:
    """Yield decoded ``go test -json`` events, skipping lines that are not events."""
    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(data, dict):
            continue
        action = data.get("Action")
        test = data.get("Test")
        if not isinstance(action, str):
            continue
        yield GoTestEvent(action=action, test=test if isinstance(test, str) else "")


def parse_run_events(output: str) -> list[str]:
    """Return the sorted, unique names of tests that started running."""
    started = {
        event.test
        for event in iter_test_events(output.splitlines())
        if event.action == "run" and event.test
    }
    return sorted(started)


def _flag_name(arg: str) -> str | None:
    """Return the bare flag name of *arg* (``--test.run=x`` -> ``run``)."""
    if arg.startswith("--"):
        name = arg[2:]
    elif arg.startswith("-"):
        name = arg[1:]
    else:
        return None
    name = name.split("=", 1)[0]
    if name.startswith("test."):
        name = name[len("test."):]
    return name


def sanitize_discovery_args(args: Iterable[str]) -> list[str]:
    """Drop arguments that would fight the selector, format, timeout or count.

    A controlled flag given without ``=`` also drops the value that follows
    it, except ``-json`` which takes no value.
    """
    out: list[str] = []
    skip_value = False
    for arg in args:
        if skip_value:
            skip_value = False
            continue
        name = _flag_name(arg)
        if name in _DISCOVERY_FLAGS:
            skip_value = name not in _BOOL_DISCOVERY_FLAGS and "=" not in arg
            continue
        out.append(arg)
    return out


def discover_subtests(
    go_binary: str,
    package_dir: Path,
    top_level_tests: list[str],
    timeout: float,
    extra_args: Iterable[str] = (),
) -> DiscoveryResult:
    """Run the given top-level tests once and collect every started test name.

    Failing tests are expected and do not matter: a failing exit status is
    only an error when nothing at all was discovered. The run is bounded by
    *timeout* seconds (also passed to ``go test -timeout``).

    Raises:
        ToolchainError: If go cannot be started.
        DiscoveryTimeoutError: If the timeout elapsed before any test started.
        DiscoveryError: If go failed and no test started.
    """
    if not top_level_tests:
        return DiscoveryResult()

    cmd = [go_binary, "test", "-json", "-count=1", "-timeout", format_duration(timeout)]
    cmd.extend(sanitize_discovery_args(extra_args))
    cmd.extend(["-run", top_level_run_pattern(top_level_tests), "."])

    result = run_bounded(cmd, package_dir, timeout)
    discovered = parse_run_events(result.output)

    if result.timed_out:
        if not discovered:
            raise DiscoveryTimeoutError(
                f"go test discovery in {package_dir} timed out after "
                f"{format_duration(timeout)}",
                output=result.output,
            )
        return DiscoveryResult(discovered, timed_out=True, exit_code=result.returncode)

    if result.returncode != 0 and not discovered:
        raise DiscoveryError(
            f"go test discovery failed in {package_dir} (exit {result.returncode})\n"
            f"{result.output.strip()}",
            output=result.output,
        )

    return DiscoveryResult(discovered, exit_code=result.returncode)
