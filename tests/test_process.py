"""Tests for the child process handle."""

import sys

from nodebridge.process import ProcessHandle


def test_handshake_line_and_incremental_output() -> None:
    """Verify the first line is set apart and stdout is handed out only once."""
    process = ProcessHandle([sys.executable, "-c", "print('4242'); print('a'); print('b')"])
    process.start()
    assert process.read_first_line() == "4242"
    assert process.wait(10) == 0

    assert process.get_incremental_output() == "a\nb\n"
    assert process.get_incremental_output() == ""
    assert process._output == ""


def test_error_output_stays_cumulative() -> None:
    """Verify incremental stderr reads keep the full stderr content."""
    process = ProcessHandle([sys.executable, "-c", "import sys; sys.stderr.write('one\\ntwo\\n')"])
    process.start()
    process.wait(10)

    assert process.get_incremental_error_output() == "one\ntwo\n"
    assert process.get_incremental_error_output() == ""
    assert process.error_output == "one\ntwo\n"
    assert process.is_terminated is True
    assert process.is_successful is True
