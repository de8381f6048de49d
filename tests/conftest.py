"""Shared fixtures for nodebridge tests."""

import json
import sys
from collections.abc import Callable
from collections.abc import Iterator
from pathlib import Path

import pytest

from nodebridge import ProcessSupervisor
from nodebridge import ScriptLocator

FAKE_RUNTIME_PATH: Path = Path(__file__).parent / "fixtures" / "fake_runtime.py"


def write_delegate(directory: Path, **scenario: object) -> Path:
    """Write a connection delegate file read by the fake runtime.

    :param directory: Target directory.
    :param scenario: Scenario settings.
    :returns: Delegate file path.
    """
    delegate_path: Path = directory / "delegate.json"
    delegate_path.write_text(json.dumps(scenario), encoding="utf-8")
    return delegate_path


@pytest.fixture
def fake_locator() -> ScriptLocator:
    """Return a locator pointing at the fake runtime script.

    :returns: Fixed script locator.
    """
    return ScriptLocator.fixed(str(FAKE_RUNTIME_PATH))


@pytest.fixture
def spawn_supervisor(tmp_path: Path, fake_locator: ScriptLocator) -> Iterator[Callable[..., ProcessSupervisor]]:
    """Build supervisors running the fake runtime and close them afterwards.

    :param tmp_path: Per-test temporary directory.
    :param fake_locator: Locator pointing at the fake runtime.
    :yields: Factory taking option overrides and scenario settings.
    """
    created: list[ProcessSupervisor] = []

    def _spawn(options: dict[str, object] | None = None, **scenario: object) -> ProcessSupervisor:
        overrides: dict[str, object] = {"executable_path": sys.executable}
        if options is not None:
            overrides.update(options)
        delegate_path: Path = write_delegate(tmp_path, **scenario)
        supervisor = ProcessSupervisor(str(delegate_path), options=overrides, script_locator=fake_locator)
        created.append(supervisor)
        return supervisor

    yield _spawn

    for supervisor in created:
        supervisor.close()
