"""Child process handle with incremental stream capture."""

import shlex
import subprocess
import threading
from typing import IO

_STREAM_JOIN_TIMEOUT: float = 1.0


class ProcessHandle:
    """Own one child process and buffer its standard streams.

    Each pipe is drained by a daemon thread so the child never blocks on a
    full pipe. The first stdout line is kept apart as the handshake line.
    """

    _command: list[str]
    _popen: subprocess.Popen[str] | None
    _lock: threading.Lock
    _first_line: str | None
    _first_line_ready: threading.Event
    _output: str
    _error_output: str
    _error_offset: int
    _readers: list[threading.Thread]

    def __init__(self, command: list[str]) -> None:
        """Initialize a handle for ``command``.

        :param command: Full argument vector.
        """
        self._command = list(command)
        self._popen = None
        self._lock = threading.Lock()
        self._first_line = None
        self._first_line_ready = threading.Event()
        self._output = ""
        self._error_output = ""
        self._error_offset = 0
        self._readers = []

    @property
    def command(self) -> list[str]:
        """Return the argument vector.

        :returns: Argument vector copy.
        """
        return list(self._command)

    @property
    def command_line(self) -> str:
        """Return the shell-quoted command line.

        :returns: Command line string.
        """
        return shlex.join(self._command)

    @property
    def pid(self) -> int | None:
        """Return the process identifier, ``None`` before start.

        :returns: Process identifier.
        """
        if self._popen is None:
            return None
        return self._popen.pid

    def start(self) -> int:
        """Spawn the process and its stream readers.

        :returns: Process identifier.
        :raises RuntimeError: If the process was already started or its pipes are missing.
        """
        if self._popen is not None:
            raise RuntimeError("Process already started")

        popen: subprocess.Popen[str] = subprocess.Popen(
            self._command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
        self._popen = popen
        if popen.stdout is None or popen.stderr is None:
            popen.kill()
            raise RuntimeError("Process pipes are not available")

        stdout_reader = threading.Thread(target=self._pump_stdout, args=(popen.stdout,), daemon=True)
        stderr_reader = threading.Thread(target=self._pump_stderr, args=(popen.stderr,), daemon=True)
        self._readers = [stdout_reader, stderr_reader]
        stdout_reader.start()
        stderr_reader.start()
        return popen.pid

    def _pump_stdout(self, stream: IO[str]) -> None:
        """Drain stdout until EOF.

        :param stream: Child stdout pipe.
        """
        try:
            for line in iter(stream.readline, ""):
                with self._lock:
                    if self._first_line_ready.is_set() is False:
                        self._first_line = line
                        self._first_line_ready.set()
                        continue
                    self._output += line
        finally:
            self._first_line_ready.set()
            stream.close()

    def _pump_stderr(self, stream: IO[str]) -> None:
        """Drain stderr until EOF.

        :param stream: Child stderr pipe.
        """
        try:
            for line in iter(stream.readline, ""):
                with self._lock:
                    self._error_output += line
        finally:
            stream.close()

    def _sync_streams(self) -> None:
        """Wait for the readers to reach EOF once the process has exited."""
        if self._popen is None or self._popen.poll() is None:
            return
        for reader in self._readers:
            reader.join(timeout=_STREAM_JOIN_TIMEOUT)

    def read_first_line(self) -> str | None:
        """Block until the first stdout line arrives or stdout closes.

        :returns: First line without its line terminator, ``None`` when stdout closed first.
        """
        self._first_line_ready.wait()
        with self._lock:
            first_line: str | None = self._first_line
        if first_line is None:
            # stdout closed, give the exit status a moment to become visible
            self.wait(_STREAM_JOIN_TIMEOUT)
            return None
        return first_line.rstrip("\r\n")

    def get_incremental_output(self) -> str:
        """Return stdout received since the previous call.

        :returns: New stdout content.
        """
        self._sync_streams()
        with self._lock:
            chunk: str = self._output
            self._output = ""
        return chunk

    def get_incremental_error_output(self) -> str:
        """Return stderr received since the previous call.

        :returns: New stderr content.
        """
        self._sync_streams()
        with self._lock:
            chunk: str = self._error_output[self._error_offset:]
            self._error_offset = len(self._error_output)
        return chunk

    @property
    def error_output(self) -> str:
        """Return all stderr content received so far.

        :returns: Cumulative stderr content.
        """
        self._sync_streams()
        with self._lock:
            return self._error_output

    def clear_error_output(self) -> None:
        """Forget stderr content received so far."""
        with self._lock:
            self._error_output = ""
            self._error_offset = 0

    @property
    def is_running(self) -> bool:
        """Report whether the process is still running.

        :returns: ``True`` while the process runs.
        """
        if self._popen is None:
            return False
        return self._popen.poll() is None

    @property
    def is_terminated(self) -> bool:
        """Report whether a started process has exited.

        :returns: ``True`` once the process exited.
        """
        if self._popen is None:
            return False
        return self._popen.poll() is not None

    @property
    def exit_code(self) -> int | None:
        """Return the exit code, ``None`` while running.

        :returns: Exit code.
        """
        if self._popen is None:
            return None
        return self._popen.poll()

    @property
    def is_successful(self) -> bool:
        """Report whether the process exited with status 0.

        :returns: ``True`` for a successful exit.
        """
        return self.exit_code == 0

    def wait(self, timeout: float | None) -> int | None:
        """Wait for the process to exit.

        :param timeout: Maximum wait in seconds, ``None`` waits forever.
        :returns: Exit code, ``None`` if the process is still running.
        """
        if self._popen is None:
            return None
        try:
            return self._popen.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def stop(self, timeout: float, kill_signal_timeout: float = 5.0) -> int | None:
        """Stop the process, killing it if it ignores the termination signal.

        :param timeout: Seconds granted after the termination signal.
        :param kill_signal_timeout: Seconds granted after the kill signal.
        :returns: Exit code.
        """
        popen: subprocess.Popen[str] | None = self._popen
        if popen is None:
            return None
        if popen.poll() is None:
            popen.terminate()
            try:
                popen.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                popen.kill()
                popen.wait(timeout=kill_signal_timeout)
        self._sync_streams()
        return popen.poll()
