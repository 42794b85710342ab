"""Tests for the command-line entry point."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from slmwatch.main import EXIT_PROVIDER_ERROR, main, run_check

from conftest import T0


@pytest.fixture
def state_file(tmp_path: Path) -> Path:
    path = tmp_path / "slm.yaml"
    path.write_text(yaml.dump({
        "operation_mode": "RUNNING",
        "policies": {
            "hourly": {"last_success": T0, "last_failure": T0 + 3_600_000},
            "nightly": {"last_success": T0, "last_failure": T0 - 1},
        },
    }), encoding="utf-8")
    return path


class TestRunCheck:
    def test_json_output(self, state_file: Path, capsys) -> None:
        code = run_check(str(state_file), None, explain=True, as_json=True)
        assert code == 1  # yellow
        body = json.loads(capsys.readouterr().out)
        assert body["status"] == "yellow"
        assert body["details"]["policy_count"] == 2
        assert body["user_actions"][0]["affected_resources"] == ["hourly"]

    def test_rich_output(self, state_file: Path, capsys) -> None:
        run_check(str(state_file), None, explain=True, as_json=False)
        out = capsys.readouterr().out
        assert "slm: YELLOW" in out
        assert "[slm-policy-failing]" in out
        assert "hourly" in out

    def test_green_exit_code(self, tmp_path: Path) -> None:
        path = tmp_path / "slm.yaml"
        path.write_text("policies: {}\n", encoding="utf-8")
        assert run_check(str(path), None, explain=False, as_json=True) == 0

    def test_missing_file(self, tmp_path: Path) -> None:
        assert run_check(str(tmp_path / "nope.yaml"), None, False, True) == EXIT_PROVIDER_ERROR


class TestMain:
    def test_check_command_exits_with_status(self, state_file: Path, monkeypatch) -> None:
        monkeypatch.setattr("sys.argv", ["slmwatch", "check", "--file", str(state_file), "--json"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1

    def test_no_command_prints_help(self, monkeypatch) -> None:
        monkeypatch.setattr("sys.argv", ["slmwatch"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
