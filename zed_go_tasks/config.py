"""Configuration for task generation.

Settings are layered, lowest priority first:

1. ``DEFAULT_CONFIG`` below.
2. An optional YAML config file (``--config-file`` or ``.zed/go-tasks.yaml``
   under the workspace root). Keys are the lowercase field names.
3. ``ZED_GO_TASKS_*`` environment variables (upper-case field names).
4. Command-line overrides for the document paths and the discovery timeout.

The result is a frozen ``TaskGenConfig`` built once per invocation and passed
to every component.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from zed_go_tasks.durations import parse_duration
from zed_go_tasks.errors import ConfigError
from zed_go_tasks.generation.entries import Marker

ENV_PREFIX = "ZED_GO_TASKS_"
DEFAULT_CONFIG_FILE = Path(".zed/go-tasks.yaml")

TARGETS = ("project", "global")

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "target": "project",
    "tasks_path": None,
    "debug_path": None,
    "label_prefix": "go:",
    "debug_label_prefix": "go:debug:",
    "go_binary": "go",
    "test_name_regex": "^Test",
    "go_list_regex": "^Test",
    "additional_go_test_args": "",
    "use_new_terminal": False,
    "allow_concurrent_runs": False,
    "reveal": "always",
    "hide": "never",
    "prune_generated": True,
    "generated_env_key": "ZED_GO_TEST_TASK_GENERATED",
    "generated_env_value": "1",
    "subtest_discovery_timeout": "30s",
}

_PROJECT_PATHS = {
    "tasks_path": ".zed/tasks.json",
    "debug_path": ".zed/debug.json",
}

_GLOBAL_FILE_NAMES = {
    "tasks_path": "tasks.json",
    "debug_path": "debug.json",
}

_TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_STRINGS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ConfigError(f"invalid boolean for {name}: {value!r}")


def _split_args(value: Any) -> tuple[str, ...]:
    """Split a comma-separated argument list, dropping blank items."""
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        items = str(value).split(",")
    return tuple(item.strip() for item in items if item.strip())


def _global_config_dir(environ: Mapping[str, str]) -> Path:
    base = environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / "zed"
    return Path.home() / ".config" / "zed"


def load_config_file(path: Path) -> dict[str, Any]:
    """Load a YAML config file into a dict of lowercase keys.

    Raises:
        ConfigError: If the file cannot be read, does not parse, or its
            top level is not a mapping.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")

    unknown = sorted(str(key) for key in data if str(key).lower() not in DEFAULT_CONFIG)
    if unknown:
        raise ConfigError(
            f"unknown keys in config file {path}: {', '.join(unknown)}"
        )
    return {str(key).lower(): value for key, value in data.items()}


def env_overrides(environ: Mapping[str, str]) -> dict[str, str]:
    """Collect ``ZED_GO_TASKS_*`` variables that name a known setting.

    Empty variables count as unset, so the lower layers still apply.
    """
    overrides: dict[str, str] = {}
    for key in DEFAULT_CONFIG:
        value = environ.get(ENV_PREFIX + key.upper(), "")
        if value != "":
            overrides[key] = value
    return overrides


@dataclass(frozen=True)
class TaskGenConfig:
    """Resolved, immutable settings for one invocation."""

    target: str
    tasks_path: Path
    debug_path: Path
    label_prefix: str
    debug_label_prefix: str
    go_binary: str
    test_name_pattern: re.Pattern[str]
    go_list_regex: str
    additional_go_test_args: tuple[str, ...]
    use_new_terminal: bool
    allow_concurrent_runs: bool
    reveal: str
    hide: str
    prune_generated: bool
    marker: Marker
    subtest_timeout: float

    @property
    def is_global(self) -> bool:
        return self.target == "global"

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        environ: Mapping[str, str] | None = None,
    ) -> TaskGenConfig:
        """Build a config from a mapping of raw (string or typed) values.

        Missing keys fall back to ``DEFAULT_CONFIG``.

        Raises:
            ConfigError: If a value cannot be converted.
        """
        if environ is None:
            environ = os.environ
        raw = {**DEFAULT_CONFIG, **{k: v for k, v in data.items() if v is not None}}

        target = str(raw["target"]).strip().lower()
        if target not in TARGETS:
            raise ConfigError(
                f"invalid target {raw['target']!r} (expected one of: {', '.join(TARGETS)})"
            )

        paths: dict[str, Path] = {}
        for key in ("tasks_path", "debug_path"):
            value = raw.get(key)
            if value:
                paths[key] = Path(str(value)).expanduser()
            elif target == "global":
                paths[key] = _global_config_dir(environ) / _GLOBAL_FILE_NAMES[key]
            else:
                paths[key] = Path(_PROJECT_PATHS[key])

        try:
            test_name_pattern = re.compile(str(raw["test_name_regex"]))
        except re.error as e:
            raise ConfigError(
                f"invalid test_name_regex {raw['test_name_regex']!r}: {e}"
            ) from e

        timeout_text = str(raw["subtest_discovery_timeout"])
        try:
            timeout = parse_duration(timeout_text)
        except ValueError as e:
            raise ConfigError(f"invalid subtest discovery timeout {timeout_text!r}: {e}") from e
        if timeout <= 0:
            raise ConfigError(
                f"subtest discovery timeout must be > 0, got {timeout_text!r}"
            )

        marker_key = str(raw["generated_env_key"])
        if not marker_key:
            raise ConfigError("generated_env_key must not be empty")

        return cls(
            target=target,
            tasks_path=paths["tasks_path"],
            debug_path=paths["debug_path"],
            label_prefix=str(raw["label_prefix"]),
            debug_label_prefix=str(raw["debug_label_prefix"]),
            go_binary=str(raw["go_binary"]),
            test_name_pattern=test_name_pattern,
            go_list_regex=str(raw["go_list_regex"]),
            additional_go_test_args=_split_args(raw["additional_go_test_args"]),
            use_new_terminal=_parse_bool("use_new_terminal", raw["use_new_terminal"]),
            allow_concurrent_runs=_parse_bool(
                "allow_concurrent_runs", raw["allow_concurrent_runs"]
            ),
            reveal=str(raw["reveal"]),
            hide=str(raw["hide"]),
            prune_generated=_parse_bool("prune_generated", raw["prune_generated"]),
            marker=Marker(marker_key, str(raw["generated_env_value"])),
            subtest_timeout=timeout,
        )

    @classmethod
    def load(
        cls,
        root: Path,
        environ: Mapping[str, str] | None = None,
        config_file: Path | None = None,
        tasks_path: str | None = None,
        debug_path: str | None = None,
        subtest_timeout: str | None = None,
    ) -> TaskGenConfig:
        """Resolve the layered configuration for a workspace.

        Args:
            root: Workspace root; the default config file is looked up here.
            environ: Environment mapping (defaults to ``os.environ``).
            config_file: Explicit YAML config file. Must exist when given.
            tasks_path: Command-line override for the tasks document path.
            debug_path: Command-line override for the debug document path.
            subtest_timeout: Command-line override for the discovery timeout.
        """
        if environ is None:
            environ = os.environ

        data: dict[str, Any] = {}
        if config_file is not None:
            data.update(load_config_file(config_file))
        else:
            default_file = root / DEFAULT_CONFIG_FILE
            if default_file.is_file():
                data.update(load_config_file(default_file))

        data.update(env_overrides(environ))

        if tasks_path:
            data["tasks_path"] = tasks_path
        if debug_path:
            data["debug_path"] = debug_path
        if subtest_timeout and subtest_timeout.strip():
            data["subtest_discovery_timeout"] = subtest_timeout.strip()

        return cls.from_mapping(data, environ)
