"""
Tests for CLI commands — build, status, recover, history, config check.
"""

import json
import sys
from pathlib import Path

from click.testing import CliRunner

from reconciler.main import cli


def _config(crate: Path, extra: str = "") -> Path:
    path = crate / "reconcile.yml"
    path.write_text(f"backend:\n  executable: {sys.executable!r}\n  timeout: 60\n{extra}")
    return path


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "WASM package reconciler" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestBuildCommand:
    def test_success(self, crate: Path, fake_wasm_pack: Path):
        config = _config(crate)
        pkg = crate / "pkg"
        pkg.mkdir()
        (pkg / "package.json").write_text('{"name":"custom"}')

        result = CliRunner().invoke(cli, ["--config", str(config), "build"])

        assert result.exit_code == 0, result.output
        assert "built successfully" in result.output
        assert "npm run example" in result.output
        assert (pkg / "package.json").read_text() == '{"name":"custom"}'

    def test_backend_failure_exit_code(self, crate: Path, fake_wasm_pack: Path):
        config = _config(crate, "  extra_args: [--fail]\n")
        result = CliRunner().invoke(cli, ["--config", str(config), "build"])
        assert result.exit_code == 101
        assert "build failed" in result.output
        assert "reconciler recover" in result.output

    def test_missing_backend(self, crate: Path):
        config = crate / "reconcile.yml"
        config.write_text("backend:\n  executable: definitely-not-wasm-pack-xyz\n")
        result = CliRunner().invoke(cli, ["--config", str(config), "build"])
        assert result.exit_code == 127

    def test_stale_slot_refused(self, crate: Path, fake_wasm_pack: Path):
        config = _config(crate)
        (crate / "pkg.README.md.backup").write_text("# old")
        result = CliRunner().invoke(cli, ["--config", str(config), "build"])
        assert result.exit_code == 1
        assert "preserve failed" in result.output

    def test_stale_slot_reuse_flag(self, crate: Path, fake_wasm_pack: Path):
        config = _config(crate)
        (crate / "pkg.README.md.backup").write_text("# old")
        result = CliRunner().invoke(
            cli, ["--config", str(config), "build", "--stale-backups", "reuse"]
        )
        assert result.exit_code == 0, result.output
        assert (crate / "pkg" / "README.md").read_text() == "# old"

    def test_json(self, crate: Path, fake_wasm_pack: Path):
        config = _config(crate)
        result = CliRunner().invoke(cli, ["--config", str(config), "build", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["report"]["status"] == "ok"
        assert [s["step"] for s in data["report"]["steps"]] == [
            "preserve", "build", "fix", "restore",
        ]

    def test_dry_run(self, crate: Path, fake_wasm_pack: Path):
        config = _config(crate)
        result = CliRunner().invoke(cli, ["--config", str(config), "build", "--dry-run"])
        assert result.exit_code == 0
        assert "[dry-run]" in result.output
        assert not (crate / "pkg").exists()

    def test_invalid_config(self, tmp_path: Path):
        config = tmp_path / "reconcile.yml"
        config.write_text("stale_backups: sometimes\n")
        result = CliRunner().invoke(cli, ["--config", str(config), "build"])
        assert result.exit_code == 1
        assert "Invalid reconcile configuration" in result.output


class TestStatusCommand:
    def test_clean(self, crate: Path):
        result = CliRunner().invoke(cli, ["--config", str(_config(crate)), "status"])
        assert result.exit_code == 0
        assert "not built yet" in result.output

    def test_stale(self, crate: Path):
        (crate / "pkg.package.json.backup").write_text("{}")
        result = CliRunner().invoke(cli, ["--config", str(_config(crate)), "status"])
        assert result.exit_code == 1
        assert "stale backup slot" in result.output

    def test_json(self, crate: Path):
        result = CliRunner().invoke(
            cli, ["--config", str(_config(crate)), "status", "--json"]
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["clean"] is True
        assert [m["name"] for m in data["managed"]] == ["package.json", "README.md"]


class TestRecoverCommand:
    def test_nothing(self, crate: Path):
        result = CliRunner().invoke(cli, ["--config", str(_config(crate)), "recover"])
        assert result.exit_code == 0
        assert "Nothing to recover" in result.output

    def test_recovers(self, crate: Path):
        (crate / "pkg.package.json.backup").write_text('{"name":"custom"}')
        result = CliRunner().invoke(cli, ["--config", str(_config(crate)), "recover"])
        assert result.exit_code == 0
        assert "Recovered 1 file(s)" in result.output
        assert (crate / "pkg" / "package.json").read_text() == '{"name":"custom"}'


class TestHistoryCommand:
    def test_empty(self, crate: Path):
        result = CliRunner().invoke(cli, ["--config", str(_config(crate)), "history"])
        assert result.exit_code == 0
        assert "No runs recorded" in result.output

    def test_after_build(self, crate: Path, fake_wasm_pack: Path):
        config = _config(crate)
        runner = CliRunner()
        runner.invoke(cli, ["--config", str(config), "build"])
        result = runner.invoke(cli, ["--config", str(config), "history", "--json"])
        assert result.exit_code == 0
        entries = json.loads(result.output)
        assert entries[-1]["operation_type"] == "build"
        assert entries[-1]["status"] == "ok"


class TestConfigCheckCommand:
    def test_valid(self, crate: Path):
        result = CliRunner().invoke(cli, ["--config", str(_config(crate)), "config", "check"])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_invalid_json(self, tmp_path: Path):
        config = tmp_path / "reconcile.yml"
        config.write_text("managed_files: [a/b]\n")
        result = CliRunner().invoke(cli, ["--config", str(config), "config", "check", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["valid"] is False
