"""Tests for the toolchain-installer command line."""

from __future__ import annotations

import json
import os
import shutil
from unittest.mock import patch

import pytest
import yaml

from toolchain_installer.main import main


@pytest.fixture
def plan_file(tmp_path, raw_plan, sources):
    # Pre-seed the cache so the CLI never touches the network.
    cache = tmp_path / "cache"
    cache.mkdir()
    for url, src in sources.items():
        shutil.copyfile(src, cache / url.rsplit("/", 1)[-1])

    path = tmp_path / "plan.yaml"
    path.write_text(yaml.safe_dump(raw_plan))
    return path


def _argv(plan_file, *extra):
    return ["--config", str(plan_file), "--log", str(plan_file.parent / "install.log"), "--arch", "arm64", *extra]


@patch("toolchain_installer.main.configure_logging")
class TestMain:
    def test_full_run_prints_json_summary(self, mock_logging, plan_file, capsys):
        with patch.dict(os.environ, {"PATH": "/usr/bin:/bin"}):
            rc = main(_argv(plan_file, "--json", "--strict"))

        assert rc == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["verification"]["failed"] == 0
        assert summary["components"]["native"] == ["runtime-arm64"]
        assert summary["warnings"] == []
        mock_logging.assert_called_once_with(log_path=str(plan_file.parent / "install.log"), also_console=False)

    def test_report_printed_and_strict_fails_on_failed_check(self, mock_logging, plan_file, capsys):
        with patch.dict(os.environ, {"PATH": "/usr/bin:/bin"}):
            rc = main(_argv(plan_file, "--start-at", "90_verify", "--strict"))

        out = capsys.readouterr().out.splitlines()
        assert rc == 1
        assert out[0].startswith("FAIL: install root")
        assert out[-1].endswith(" passed")

    def test_fatal_error_is_one_line_on_stderr(self, mock_logging, plan_file, raw_plan, capsys):
        raw_plan["prerequisites"] = {"tools": ["no-such-tool-for-tests"]}
        plan_file.write_text(yaml.safe_dump(raw_plan))

        rc = main(_argv(plan_file))

        err = capsys.readouterr().err.strip().splitlines()
        assert rc == 1
        assert err == [
            "FATAL [10_prereq] no-such-tool-for-tests: "
            "Prerequisite not met (no-such-tool-for-tests): required tool not found on PATH"
        ]

    def test_incomplete_plan_is_one_fatal_line(self, mock_logging, plan_file, raw_plan, capsys):
        raw_plan["caches"] = [{"source": "offline", "dest": "x"}]
        plan_file.write_text(yaml.safe_dump(raw_plan))

        rc = main(_argv(plan_file))

        err = capsys.readouterr().err.strip().splitlines()
        assert rc == 1
        assert err == [f"FATAL [config] {plan_file}: caches[0].name is required"]

    def test_missing_config(self, mock_logging, tmp_path, capsys):
        rc = main(["--config", str(tmp_path / "nope.yaml"), "--log", str(tmp_path / "x.log")])

        assert rc == 1
        assert capsys.readouterr().err.startswith("FATAL [config] ")
