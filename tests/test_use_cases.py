"""
Tests for use cases — build, status, recover, and config check.
"""

import json
import sys
from pathlib import Path

from reconciler.adapters.registry import AdapterRegistry
from reconciler.core.models.action import ErrorKind
from reconciler.core.models.config import ReconcileConfig, StaleBackupPolicy
from reconciler.core.persistence.audit import AuditWriter
from reconciler.core.use_cases.build import run_build
from reconciler.core.use_cases.config_check import check_config
from reconciler.core.use_cases.recover import run_recover
from reconciler.core.use_cases.status import get_status


def _write_config(crate: Path, extra: str = "") -> Path:
    path = crate / "reconcile.yml"
    path.write_text(f"backend:\n  executable: {sys.executable!r}\n  timeout: 60\n{extra}")
    return path


class TestRunBuild:
    def test_with_config_object(self, crate: Path, registry: AdapterRegistry):
        result = run_build(config=ReconcileConfig(), project_root=crate, registry=registry)
        assert result.ok
        assert result.exit_code == 0
        assert (crate / "pkg" / ".gitignore").read_text() == "pkarr*\n"

    def test_real_subprocess_backend(self, crate: Path, python_backend_yml: Path):
        pkg = crate / "pkg"
        pkg.mkdir()
        (pkg / "package.json").write_text('{"name":"custom"}')

        result = run_build(config_path=python_backend_yml)

        assert result.ok, result.report.to_dict()
        assert (pkg / "package.json").read_text() == '{"name":"custom"}'
        assert (pkg / "pkarr_bg.wasm").exists()
        assert (pkg / ".gitignore").read_text() == "pkarr*\n"

    def test_real_backend_failure(self, crate: Path, fake_wasm_pack: Path):
        config_path = _write_config(crate, "  extra_args: [--fail]\n")
        pkg = crate / "pkg"
        pkg.mkdir()
        (pkg / "README.md").write_text("# mine\n")

        result = run_build(config_path=config_path)

        assert not result.ok
        assert result.exit_code == 101
        assert result.report.failed_step.error_kind == ErrorKind.BACKEND
        assert (crate / "pkg.README.md.backup").read_text() == "# mine\n"

    def test_writes_audit_entry(self, crate: Path, registry: AdapterRegistry):
        run_build(config=ReconcileConfig(), project_root=crate, registry=registry)
        entries = AuditWriter(project_root=crate.resolve()).read_all()
        assert len(entries) == 1
        assert entries[0].operation_type == "build"
        assert entries[0].status == "ok"
        assert entries[0].steps == {
            "preserve": "skipped",
            "build": "ok",
            "fix": "ok",
            "restore": "skipped",
        }

    def test_no_audit_when_disabled(self, crate: Path, registry: AdapterRegistry):
        run_build(config=ReconcileConfig(audit=False), project_root=crate, registry=registry)
        assert not (crate / ".state").exists()

    def test_no_audit_on_dry_run(self, crate: Path, registry: AdapterRegistry):
        run_build(config=ReconcileConfig(), project_root=crate, registry=registry, dry_run=True)
        assert not (crate / ".state").exists()

    def test_policy_override(self, crate: Path, registry: AdapterRegistry):
        (crate / "pkg.package.json.backup").write_text("old")
        result = run_build(
            config=ReconcileConfig(),
            project_root=crate,
            registry=registry,
            stale_backups=StaleBackupPolicy.REUSE,
        )
        assert result.ok
        assert (crate / "pkg" / "package.json").read_text() == "old"

    def test_config_error(self, tmp_path: Path):
        bad = tmp_path / "reconcile.yml"
        bad.write_text("output_dir: [\n")
        result = run_build(config_path=bad)
        assert result.error is not None
        assert result.exit_code == 1
        assert "error" in result.to_dict()

    def test_output_dir_containing_project(self, crate: Path, backend, registry: AdapterRegistry):
        result = run_build(
            config=ReconcileConfig(output_dir=str(crate)), project_root=crate, registry=registry
        )
        assert result.exit_code == 1
        assert "contains the project" in result.error
        assert backend.call_count == 0

    def test_mock_mode_touches_nothing(self, crate: Path):
        result = run_build(config=ReconcileConfig(), project_root=crate, mock_mode=True)
        assert result.ok
        assert not (crate / "pkg").exists()

    def test_no_audit_in_mock_mode(self, crate: Path):
        run_build(config=ReconcileConfig(), project_root=crate, mock_mode=True)
        assert not (crate / ".state").exists()

    def test_to_dict_is_json(self, crate: Path, registry: AdapterRegistry):
        result = run_build(config=ReconcileConfig(), project_root=crate, registry=registry)
        data = json.loads(json.dumps(result.to_dict()))
        assert data["report"]["status"] == "ok"
        assert data["next_steps"][0] == "npm run example"


class TestStatus:
    def test_before_first_build(self, crate: Path):
        result = get_status(_write_config(crate))
        assert result.output_exists is False
        assert result.clean
        assert all(not m.file_exists for m in result.managed)
        assert result.generated[0].exists is False

    def test_after_build(self, crate: Path, python_backend_yml: Path):
        run_build(config_path=python_backend_yml)
        result = get_status(python_backend_yml)
        assert result.output_exists
        assert result.generated[0].matches
        assert result.clean

    def test_reports_stale_slots(self, crate: Path):
        (crate / "pkg.README.md.backup").write_text("x")
        result = get_status(_write_config(crate))
        assert not result.clean
        assert [s.name for s in result.stale_slots] == ["README.md"]
        assert result.to_dict()["stale_slots"] == 1

    def test_unfixed_gitignore(self, crate: Path):
        (crate / "pkg").mkdir()
        (crate / "pkg" / ".gitignore").write_text("*")
        result = get_status(_write_config(crate))
        assert result.generated[0].exists
        assert not result.generated[0].matches


class TestRecover:
    def test_nothing_to_recover(self, crate: Path):
        result = run_recover(_write_config(crate))
        assert result.ok
        assert result.restored == []
        assert not (crate / ".state").exists()

    def test_after_failed_build(self, crate: Path, fake_wasm_pack: Path):
        config_path = _write_config(crate, "  extra_args: [--fail]\n")
        pkg = crate / "pkg"
        pkg.mkdir()
        (pkg / "package.json").write_text('{"name":"custom"}')
        (pkg / "README.md").write_text("# mine\n")

        run_build(config_path=config_path)
        # simulate a backend that clobbered the directory before failing
        (pkg / "package.json").write_text("{}")

        result = run_recover(config_path)

        assert result.ok
        assert sorted(result.restored) == ["README.md", "package.json"]
        assert (pkg / "package.json").read_text() == '{"name":"custom"}'
        assert (pkg / "README.md").read_text() == "# mine\n"
        assert list(crate.glob("*.backup")) == []

    def test_creates_missing_output_dir(self, crate: Path):
        (crate / "pkg.package.json.backup").write_text("{}")
        result = run_recover(_write_config(crate))
        assert result.ok
        assert (crate / "pkg" / "package.json").read_text() == "{}"

    def test_recorded_in_audit(self, crate: Path):
        (crate / "pkg.package.json.backup").write_text("{}")
        run_recover(_write_config(crate))
        entries = AuditWriter(project_root=crate.resolve()).read_all()
        assert entries[-1].operation_type == "recover"
        assert entries[-1].status == "ok"

    def test_build_succeeds_after_recover(self, crate: Path, fake_wasm_pack: Path):
        (crate / "pkg.package.json.backup").write_text('{"name":"custom"}')
        config_path = _write_config(crate)

        refused = run_build(config_path=config_path)
        assert refused.report.failed_step.error_kind == ErrorKind.STALE_BACKUP

        run_recover(config_path)
        result = run_build(config_path=config_path)

        assert result.ok
        assert (crate / "pkg" / "package.json").read_text() == '{"name":"custom"}'


class TestConfigCheck:
    def test_valid(self, crate: Path):
        result = check_config(_write_config(crate))
        assert result.valid
        assert result.errors == []
        assert result.adapters["filesystem"]["available"] is True

    def test_invalid(self, tmp_path: Path):
        path = tmp_path / "reconcile.yml"
        path.write_text("managed_files: [.gitignore]\n")
        result = check_config(path)
        assert not result.valid
        assert "both managed and generated" in result.errors[0]

    def test_missing_backend_warns(self, tmp_path: Path):
        path = tmp_path / "reconcile.yml"
        path.write_text("backend:\n  executable: definitely-not-wasm-pack-xyz\n")
        result = check_config(path)
        assert result.valid
        assert any("not found on PATH" in w for w in result.warnings)
        assert result.adapters["wasm-pack"]["available"] is False

    def test_empty_managed_warns(self, crate: Path):
        result = check_config(_write_config(crate, "managed_files: []\n"))
        assert any("No managed files" in w for w in result.warnings)
