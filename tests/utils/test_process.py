# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for external tool invocation.

Real child processes, but only ever the current Python interpreter, so these
run anywhere the suite runs.
"""

import sys
import time
from pathlib import Path

import pytest

from relforge.utils.process import COMMAND_NOT_FOUND, ToolResult, run_tool, stream_tool


def python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class TestStreamTool:
    def test_lines_reach_the_callback_in_order(self) -> None:
        seen: list[str] = []
        result = stream_tool(python("print('one'); print('two')"), on_line=seen.append)

        assert seen == ["one", "two"]
        assert result.ok
        assert result.output == "one\ntwo"

    def test_stderr_is_merged(self) -> None:
        result = run_tool(python("import sys; sys.stderr.write('oops\\n')"))
        assert "oops" in result.output

    def test_exit_code_is_reported(self) -> None:
        result = run_tool(python("import sys; sys.exit(3)"))
        assert result.exit_code == 3
        assert not result.ok

    def test_missing_executable_is_127(self, tmp_path: Path) -> None:
        result = run_tool([str(tmp_path / "no-such-tool"), "--version"])
        assert result.exit_code == COMMAND_NOT_FOUND
        assert "no-such-tool" in result.output

    def test_log_file_records_command_and_exit(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "step.log"
        run_tool(python("print('hello')"), log_file=log_file)

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert lines[0].startswith("$ ")
        assert sys.executable in lines[0]
        assert lines[1] == "hello"
        assert lines[-1] == "[exit 0]"

    def test_log_file_is_appended(self, tmp_path: Path) -> None:
        log_file = tmp_path / "step.log"
        run_tool(python("print('first')"), log_file=log_file)
        run_tool(python("print('second')"), log_file=log_file)

        content = log_file.read_text(encoding="utf-8")
        assert content.count("[exit 0]") == 2
        assert content.index("first") < content.index("second")

    def test_env_is_layered(self) -> None:
        result = run_tool(
            python("import os; print(os.environ['RELFORGE_PROBE'])"),
            env={"RELFORGE_PROBE": "layered"},
        )
        assert result.output == "layered"

    def test_cwd_is_honoured(self, tmp_path: Path) -> None:
        result = run_tool(python("import os; print(os.getcwd())"), cwd=tmp_path)
        assert Path(result.output).resolve() == tmp_path.resolve()

    def test_raising_callback_kills_the_child(self) -> None:
        def explode(line: str) -> None:
            raise RuntimeError(f"bad line: {line}")

        start = time.monotonic()
        with pytest.raises(RuntimeError, match="bad line: started"):
            stream_tool(
                python("import time; print('started', flush=True); time.sleep(60)"),
                on_line=explode,
            )
        # Without the kill, leaving the Popen block would wait out the sleep.
        assert time.monotonic() - start < 30


class TestToolResult:
    def test_tail(self) -> None:
        result = ToolResult(("x",), 1, "\n".join(str(i) for i in range(30)), 0.1)
        assert result.tail(3) == "27\n28\n29"
