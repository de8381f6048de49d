"""Supervisor options and child script discovery."""

import dataclasses
import json
import logging
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass

SUPERVISOR_ONLY_OPTIONS: tuple[str, ...] = (
    "executable_path",
    "read_timeout",
    "stop_timeout",
    "logger",
    "debug",
)
DEFAULT_MODULE_SPECIFIER: str = "@nodebridge/runtime/src/serve.js"
DEFAULT_PROBE_TIMEOUT: float = 10.0
_NULLABLE_TIMEOUTS: tuple[str, ...] = ("idle_timeout", "read_timeout")
_BOOLEAN_OPTIONS: tuple[str, ...] = ("log_node_console", "debug")


@dataclass(frozen=True)
class Options:
    """Resolved supervisor options."""

    # Runtime executable path
    executable_path: str = "node"

    # Seconds the child may stay inactive before stopping itself (None disables)
    idle_timeout: float | None = 60

    # Seconds an instruction may take to return a value (None or 0 disables)
    read_timeout: float | None = 30

    # Seconds the child may take to shut down before being killed
    stop_timeout: float = 3

    # Logger receiving supervisor and child logs (None means the package logger)
    logger: logging.Logger | None = None

    # Forward console output of the child runtime to the logger
    log_node_console: bool = False

    # Adds --inspect to the command and appends remote stack traces to error messages
    debug: bool = False

    def __post_init__(self) -> None:
        """Validate field values.

        :raises ValueError: If a field holds an unsupported value.
        """
        if isinstance(self.executable_path, str) is False or len(self.executable_path) == 0:
            raise ValueError("executable_path must be a non-empty string")
        for name in _NULLABLE_TIMEOUTS:
            value: object = getattr(self, name)
            if value is None:
                continue
            _validate_seconds(name, value)
        _validate_seconds("stop_timeout", self.stop_timeout)
        for name in _BOOLEAN_OPTIONS:
            if isinstance(getattr(self, name), bool) is False:
                raise ValueError(f"{name} must be a bool")
        if self.logger is not None and isinstance(self.logger, logging.Logger) is False:
            raise ValueError("logger must be a logging.Logger instance")

    def process_options(self) -> dict[str, object]:
        """Return the options forwarded to the child process.

        :returns: Process-facing option mapping.
        """
        forwarded: dict[str, object] = {}
        for field in dataclasses.fields(self):
            if field.name in SUPERVISOR_ONLY_OPTIONS:
                continue
            forwarded[field.name] = getattr(self, field.name)
        return forwarded

    def encoded_process_options(self) -> str:
        """Return the JSON argument passed to the child process.

        :returns: JSON-encoded process options.
        """
        return json.dumps(self.process_options())


def _validate_seconds(name: str, value: object) -> None:
    """Validate one duration option.

    :param name: Option name.
    :param value: Candidate value.
    :raises ValueError: If the value is not a non-negative number.
    """
    is_number: bool = isinstance(value, (int, float)) is True and isinstance(value, bool) is False
    if is_number is False:
        raise ValueError(f"{name} must be a number of seconds")
    if value < 0:  # type: ignore[operator]
        raise ValueError(f"{name} cannot be negative")


def resolve_options(overrides: "Options | Mapping[str, object] | None" = None) -> Options:
    """Merge caller overrides onto the default options.

    :param overrides: Options instance or mapping of overrides.
    :returns: Resolved options.
    :raises ValueError: If an override key is unknown or a value is invalid.
    """
    if overrides is None:
        return Options()
    if isinstance(overrides, Options) is True:
        return overrides

    known: set[str] = {field.name for field in dataclasses.fields(Options)}
    unknown: list[str] = sorted(key for key in overrides if key not in known)
    if len(unknown) > 0:
        raise ValueError("Unknown options: " + ", ".join(unknown))
    return Options(**dict(overrides))  # type: ignore[arg-type]


class ScriptLocator:
    """Find the child entry script once and remember it."""

    _module_specifier: str | None
    _fallback_path: str | None
    _probe_timeout: float
    _script_path: str | None

    def __init__(
        self,
        module_specifier: str | None = DEFAULT_MODULE_SPECIFIER,
        fallback_path: str | None = None,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        """Initialize a locator.

        :param module_specifier: Package path resolved by the runtime's module loader.
        :param fallback_path: Script path used when the specifier cannot be resolved.
        :param probe_timeout: Seconds the runtime may take to resolve the specifier.
        """
        self._module_specifier = module_specifier
        self._fallback_path = fallback_path
        self._probe_timeout = probe_timeout
        self._script_path = None

    @classmethod
    def fixed(cls, script_path: str) -> "ScriptLocator":
        """Build a locator that always returns ``script_path``.

        :param script_path: Script path.
        :returns: Locator without runtime probing.
        """
        return cls(module_specifier=None, fallback_path=script_path)

    def locate(self, executable_path: str) -> str:
        """Return the child entry script path.

        Installed packages win over the fallback so a script is never loaded
        from two different paths.

        :param executable_path: Runtime executable used for probing.
        :returns: Script path.
        :raises FileNotFoundError: If no script path can be determined.
        """
        if self._script_path is not None:
            return self._script_path

        if self._module_specifier is not None:
            resolved: str | None = self._probe(executable_path, self._module_specifier, self._probe_timeout)
            if resolved is not None:
                self._script_path = resolved
                return resolved

        if self._fallback_path is None:
            raise FileNotFoundError(f"Cannot locate the child script '{self._module_specifier}'.")
        self._script_path = self._fallback_path
        return self._fallback_path

    @staticmethod
    def _probe(executable_path: str, module_specifier: str, timeout: float) -> str | None:
        """Ask the runtime to resolve ``module_specifier``.

        :param executable_path: Runtime executable.
        :param module_specifier: Module specifier to resolve.
        :param timeout: Seconds granted to the runtime.
        :returns: Resolved path, ``None`` when resolution failed.
        """
        probe: str = f"process.stdout.write(require.resolve({json.dumps(module_specifier)}))"
        try:
            completed = subprocess.run(
                [executable_path, "-e", probe],
                capture_output=True,
                text=True,
                check=False,
                timeout=timeout,
            )
        except (OSError, subprocess.TimeoutExpired):
            return None
        if completed.returncode != 0 or len(completed.stdout) == 0:
            return None
        return completed.stdout
