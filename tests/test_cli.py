"""Smoke tests for the agentwire CLI."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from click.testing import CliRunner

from agentwire import __version__
from agentwire.cli import cli

_AGENT_SCRIPT = """\
import sys
sys.stdout.write(
    "AGENT_RESPONSE:\\n"
    "hello from the agent\\n"
    "TOOL_CALL:ls\\n"
    "TOOL_ARG:dir=/tmp\\n"
    "TOOL_OUTPUT:\\n"
    "a.txt\\n"
    "END_TOOL_OUTPUT\\n"
    "FINAL_OUTPUT:\\n"
    "all done\\n"
)
sys.stdout.flush()
sys.stderr.write("boom\\n")
sys.exit(int(__import__("os").environ.get("FAKE_EXIT", "0")))
"""


def _write_agent(tmp_path: Path) -> Path:
    script = tmp_path / "fake-agent"
    script.write_text(f"#!{sys.executable}\n{_AGENT_SCRIPT}", encoding="utf-8")
    script.chmod(0o755)
    return script


def test_help() -> None:
    result = CliRunner().invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "agentwire" in result.output
    for command in ("init", "run", "parse"):
        assert command in result.output


def test_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert f"agentwire, version {__version__}" in result.output


def test_run_flags() -> None:
    result = CliRunner().invoke(cli, ["run", "--help"])
    assert result.exit_code == 0
    for flag in ("--binary", "--workspace", "--session-id", "--record", "--verbose"):
        assert flag in result.output


# ------------------------------------------------------------------ #
# run
# ------------------------------------------------------------------ #


def test_run_no_config_errors(tmp_path: Path) -> None:
    """agentwire run without agentwire.yaml or --binary exits with error."""
    runner = CliRunner()
    with runner.isolated_filesystem(temp_dir=tmp_path):
        result = runner.invoke(cli, ["run", "task"])
        assert result.exit_code == 1
        assert "agentwire.yaml" in result.output


def test_run_missing_explicit_config(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli, ["run", "-f", str(tmp_path / "nope.yaml"), "--binary", "g3", "task"]
    )
    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_run_missing_binary(tmp_path: Path) -> None:
    runner = CliRunner()
    with runner.isolated_filesystem(temp_dir=tmp_path):
        result = runner.invoke(
            cli,
            [
                "run",
                "--binary",
                str(tmp_path / "no-such-agent"),
                "--workspace",
                str(tmp_path),
                "task",
            ],
        )
        assert result.exit_code == 1
        assert "failed to start agent" in result.output


@pytest.mark.skipif(sys.platform == "win32", reason="uses a shebang script")
class TestRunWithAgent:
    def test_streams_rendered_events(self, tmp_path: Path) -> None:
        script = _write_agent(tmp_path)
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(
                cli,
                ["run", "--binary", str(script), "--workspace", str(tmp_path), "task"],
            )
        assert result.exit_code == 0
        assert "[session] g3-" in result.output
        assert "hello from the agent\n" in result.output
        assert "[tool] ls(dir=/tmp)\n" in result.output
        assert "all done\n" in result.output
        assert "a.txt" not in result.output

    def test_uses_config_file(self, tmp_path: Path) -> None:
        script = _write_agent(tmp_path)
        config = tmp_path / "agentwire.yaml"
        config.write_text(
            f'version: "1"\nbinary: {script}\nemit_tool_output: true\n',
            encoding="utf-8",
        )
        result = CliRunner().invoke(cli, ["run", "-f", str(config), "task"])
        assert result.exit_code == 0
        assert "[tool] ls produced 1 line(s) of output\n" in result.output

    def test_nonzero_exit_reports_stderr(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FAKE_EXIT", "3")
        script = _write_agent(tmp_path)
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(
                cli,
                ["run", "--binary", str(script), "--workspace", str(tmp_path), "task"],
            )
        assert result.exit_code == 3
        assert "Agent exited with code 3." in result.output
        assert "boom" in result.output

    def test_records_transcript(self, tmp_path: Path) -> None:
        script = _write_agent(tmp_path)
        record_dir = tmp_path / "transcripts"
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(
                cli,
                [
                    "run",
                    "--binary",
                    str(script),
                    "--workspace",
                    str(tmp_path),
                    "--record",
                    str(record_dir),
                    "task",
                ],
            )
        assert result.exit_code == 0
        assert "Log: " in result.output

        files = list(record_dir.glob("*.jsonl"))
        assert len(files) == 1
        entries = [json.loads(line) for line in files[0].read_text().splitlines()]
        assert entries[0]["event"]["type"] == "session_created"
        assert [e["seq"] for e in entries] == list(range(len(entries)))


# ------------------------------------------------------------------ #
# parse
# ------------------------------------------------------------------ #


def test_parse_stdin() -> None:
    result = CliRunner().invoke(
        cli,
        ["parse"],
        input="CONTEXT_STATUS:warming up\nFINAL_OUTPUT:\nthe answer\npartial",
    )
    assert result.exit_code == 0
    lines = [json.loads(line) for line in result.output.splitlines()]
    assert [line["type"] for line in lines] == ["status", "text"]
    assert lines[0]["message"] == "warming up"
    assert lines[1] == {
        "type": "text",
        "text": "the answer\n",
        "partial": True,
        "isAnswered": True,
    }


def test_parse_file_with_small_chunks(tmp_path: Path) -> None:
    source = tmp_path / "captured.txt"
    source.write_text(
        "TOOL_CALL:grep\nTOOL_ARG:pattern=a=b\nTOOL_OUTPUT:\nhit\nEND_TOOL_OUTPUT\n",
        encoding="utf-8",
    )
    result = CliRunner().invoke(
        cli, ["parse", "--chunk-size", "3", "--emit-tool-output", str(source)]
    )
    assert result.exit_code == 0
    lines = [json.loads(line) for line in result.output.splitlines()]
    assert lines == [
        {"type": "tool_use", "name": "grep", "params": {"pattern": "a=b"}},
        {"type": "tool_output", "name": "grep", "output": "hit\n"},
    ]
