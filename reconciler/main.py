"""
WASM package reconciler — CLI entrypoint.

Usage:
    python -m reconciler.main --help
    python -m reconciler.main build
    python -m reconciler.main status
    python -m reconciler.main recover
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from reconciler import __version__
from reconciler.core.observability.logging_config import cli_level, setup_logging

if TYPE_CHECKING:
    from reconciler.core.engine.pipeline import StepResult


@click.group()
@click.version_option(version=__version__, prog_name="reconciler")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to reconcile.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """WASM package reconciler — rebuild pkg/ and keep hand-written files."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging(level=cli_level(debug=debug, verbose=verbose, quiet=quiet))


_STEP_LABELS = {
    "preserve": "💾 Preserve managed files",
    "build": "🔨 Build with backend",
    "fix": "📝 Fix generated files",
    "restore": "🔄 Restore managed files",
    "recover": "🔄 Recover backup slots",
}


def _echo_step(step: StepResult, verbose: bool) -> None:
    label = _STEP_LABELS.get(step.step, step.step)
    if step.failed:
        click.secho(f"   ✗ {label}", fg="red")
    elif step.status == "skipped":
        click.secho(f"   ⊘ {label}", fg="yellow")
    else:
        click.secho(f"   ✓ {label}", fg="green")

    for receipt in step.receipts:
        if receipt.failed:
            for line in (receipt.error or "").split("\n")[:5]:
                click.echo(f"     │ {line}")
        elif verbose and receipt.output:
            for line in receipt.output.split("\n")[:10]:
                click.echo(f"     │ {line}")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Plan but don't execute.")
@click.option("--mock", is_flag=True, help="Use mock adapter (no real execution).")
@click.option(
    "--stale-backups",
    type=click.Choice(["refuse", "reuse", "overwrite"]),
    default=None,
    help="What to do with backup slots left by a failed run (default: from config).",
)
@click.pass_context
def build(
    ctx: click.Context,
    as_json: bool,
    dry_run: bool,
    mock: bool,
    stale_backups: str | None,
) -> None:
    """Build the package and reconcile its output directory.

    Examples:

        reconciler build

        reconciler build --dry-run

        reconciler build --stale-backups reuse
    """
    from reconciler.core.models.config import StaleBackupPolicy
    from reconciler.core.use_cases.build import run_build

    result = run_build(
        config_path=ctx.obj.get("config_path"),
        dry_run=dry_run,
        mock_mode=mock,
        stale_backups=StaleBackupPolicy(stale_backups) if stale_backups else None,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None
    assert result.config is not None
    quiet = ctx.obj.get("quiet", False)

    mode_label = "[dry-run] " if dry_run else "[mock] " if mock else ""
    if not quiet:
        click.secho(f"\n🚀 {mode_label}Building WASM package", fg="cyan", bold=True)
        click.echo(f"   Output: {report.output_dir}")
        click.echo()
        for step in report.steps:
            _echo_step(step, ctx.obj.get("verbose", False))

    if not report.ok:
        failed = report.failed_step
        assert failed is not None
        click.echo()
        click.secho(f"❌ {failed.step} failed: {failed.error}", fg="red", bold=True)
        if failed.step == "build":
            click.secho(
                "   Backup slots were kept. Run 'reconciler recover' to restore them.",
                fg="yellow",
            )
        sys.exit(report.exit_code)

    click.echo()
    click.secho("✅ WASM package built successfully!", fg="green", bold=True)
    click.echo(f"📦 Package location: {report.output_dir}")

    if result.config.next_steps and not quiet:
        click.echo()
        click.secho("🧪 Next steps:", bold=True)
        out_dir = report.output_dir
        for command in result.config.next_steps:
            click.echo(f"  cd {out_dir} && {command}")

    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show managed files, backup slots, and generated files."""
    from reconciler.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.clean else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(f"\n📦 {result.output_dir}", fg="cyan", bold=True)
    if not result.output_exists:
        click.secho("   (not built yet)", fg="yellow")
    click.echo()

    click.secho("   Managed files:", bold=True)
    for info in result.managed:
        marker = "✓" if info.file_exists else "✗"
        slot = "  ⚠️  stale backup slot" if info.slot_exists else ""
        click.echo(f"     {marker} {info.name}{slot}")

    if result.generated:
        click.echo()
        click.secho("   Generated files:", bold=True)
        for gen in result.generated:
            if not gen.exists:
                click.echo(f"     ✗ {gen.name} (missing)")
            elif gen.matches:
                click.echo(f"     ✓ {gen.name}")
            else:
                click.secho(f"     ⚠️  {gen.name} (not fixed)", fg="yellow")

    if result.stale_slots:
        click.echo()
        click.secho(
            f"   {len(result.stale_slots)} stale backup slot(s). "
            "Run 'reconciler recover' before the next build.",
            fg="yellow",
        )
        click.echo()
        sys.exit(1)

    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def recover(ctx: click.Context, as_json: bool) -> None:
    """Move backup slots left by a failed build back into place."""
    from reconciler.core.use_cases.recover import run_recover

    result = run_recover(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    assert result.step is not None
    if not result.step.receipts:
        click.secho("✅ Nothing to recover", fg="green")
        return

    _echo_step(result.step, ctx.obj.get("verbose", False))
    for name in result.restored or []:
        click.echo(f"     • {name}")

    if not result.ok:
        click.secho(f"❌ recover failed: {result.step.error}", fg="red", bold=True)
        sys.exit(result.exit_code)

    click.secho(f"✅ Recovered {len(result.restored or [])} file(s)", fg="green")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("-n", "count", default=10, type=int, help="Number of entries to show.")
@click.pass_context
def history(ctx: click.Context, as_json: bool, count: int) -> None:
    """Show recent build and recover runs from the audit ledger."""
    from reconciler.core.config.loader import ConfigError, resolve_config
    from reconciler.core.persistence.audit import AuditWriter

    try:
        _, project_root = resolve_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    entries = AuditWriter(project_root=project_root).read_recent(count)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.echo("No runs recorded yet.")
        return

    for entry in entries:
        color = "green" if entry.status == "ok" else "red"
        click.echo(f"{entry.timestamp}  {entry.operation_type:<8} ", nl=False)
        click.secho(entry.status, fg=color, nl=False)
        if entry.failed_step:
            click.echo(f"  ({entry.failed_step}, exit {entry.exit_code})", nl=False)
        click.echo()


@cli.group()
def config() -> None:
    """Reconcile configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate reconcile.yml configuration."""
    from reconciler.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Output dir: {result.config.output_dir}")
        click.echo(f"   Managed: {', '.join(result.config.managed_files) or '-'}")
        click.echo(f"   Generated: {', '.join(sorted(result.config.generated_files)) or '-'}")
        for name, info in result.adapters.items():
            marker = "✓" if info["available"] else "✗"
            click.echo(f"   {marker} adapter {name}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


if __name__ == "__main__":
    cli()
