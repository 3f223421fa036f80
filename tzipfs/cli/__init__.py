"""
tzipfs CLI.

Command-line interface for discovering, backing up and checking token assets.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from tzipfs import __version__


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Route progress logging to stderr as plain lines."""
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format="%(message)s", force=True)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _settings_from_options(
    config: str | None,
    backup_dir: str | None,
    workers: int | None,
    attempts: int | None = None,
):
    from tzipfs.core.settings import load_settings

    try:
        return load_settings(
            config,
            backup_dir=Path(backup_dir) if backup_dir else None,
            workers=workers,
            fetch_attempts=attempts,
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)


def _finish(result) -> None:
    """Report a fatal or recoverable failure and exit with the result's code."""
    if result.error is not None:
        click.echo(f"Error: {result.error}", err=True)
    raise SystemExit(result.exit_code)


def _echo_sync_summary(report) -> None:
    counts = report.counts()
    click.echo(
        f"Fetched: {counts['fetched']}, "
        f"already present: {counts['already_present']}, "
        f"failed: {counts['failed']}"
    )
    for error in report.errors():
        click.echo(f"  ✗ {error}", err=True)


_backup_dir_option = click.option(
    "--backup-dir", "-d", default=None, help="Backup root directory (default: IPFS)"
)
_config_option = click.option(
    "--config", "-C", type=click.Path(exists=True, dir_okay=False), help="Settings YAML"
)
_workers_option = click.option("--workers", "-w", type=int, help="Parallel workers")


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
@click.option("--quiet", "-q", is_flag=True, help="Only show warnings and errors")
def main(verbose: bool, quiet: bool) -> None:
    """tzipfs: Back up and verify the IPFS assets of Tezos tokens."""
    configure_logging(verbose, quiet)


@main.command()
@click.option("--creator", "-c", multiple=True, help="Creator tezos address (repeatable)")
@click.option("--holder", "-h", multiple=True, help="Holder tezos address (repeatable)")
@click.option("--attempts", type=int, help="Fetch attempts per object")
@click.option("--report", "report_path", type=click.Path(dir_okay=False), help="Write JSON report")
@_backup_dir_option
@_config_option
@_workers_option
def backup(
    creator: tuple[str, ...],
    holder: tuple[str, ...],
    attempts: int | None,
    report_path: str | None,
    backup_dir: str | None,
    config: str | None,
    workers: int | None,
) -> None:
    """
    Discover tokens, write the manifest and fetch every object.

    \b
    Example:
      tzipfs backup --creator=tz1xxxx --creator=tz1yyyy
    """
    from tzipfs.backup.runner import create_runner

    if not creator and not holder:
        raise click.UsageError("At least one --creator or --holder is required")

    settings = _settings_from_options(config, backup_dir, workers, attempts)
    result = create_runner(settings).run_backup(creators=creator, holders=holder)

    if result.report is not None:
        _echo_sync_summary(result.report)
        if report_path:
            result.report.save(Path(report_path))
    _finish(result)


@main.command()
@click.option("--creator", "-c", multiple=True, help="Creator tezos address (repeatable)")
@click.option("--holder", "-h", multiple=True, help="Holder tezos address (repeatable)")
@_backup_dir_option
@_config_option
def discover(
    creator: tuple[str, ...],
    holder: tuple[str, ...],
    backup_dir: str | None,
    config: str | None,
) -> None:
    """Discover tokens and write the manifest without fetching objects."""
    from tzipfs.backup.runner import create_runner

    if not creator and not holder:
        raise click.UsageError("At least one --creator or --holder is required")

    settings = _settings_from_options(config, backup_dir, None)
    result = create_runner(settings).run_discovery(creators=creator, holders=holder)

    if result.manifest is not None:
        click.echo(
            f"Manifest: {len(result.manifest)} entries, "
            f"{result.manifest.ref_count} references -> {settings.manifest_path}"
        )
    _finish(result)


@main.command("sync")
@click.option("--attempts", type=int, help="Fetch attempts per object")
@click.option("--report", "report_path", type=click.Path(dir_okay=False), help="Write JSON report")
@_backup_dir_option
@_config_option
@_workers_option
def sync_cmd(
    attempts: int | None,
    report_path: str | None,
    backup_dir: str | None,
    config: str | None,
    workers: int | None,
) -> None:
    """Fetch the objects of an existing manifest that are not backed up yet."""
    from tzipfs.backup.runner import create_runner

    settings = _settings_from_options(config, backup_dir, workers, attempts)
    result = create_runner(settings).run_sync()

    if result.report is not None:
        _echo_sync_summary(result.report)
        if report_path:
            result.report.save(Path(report_path))
    _finish(result)


@main.command()
@click.option("--report", "report_path", type=click.Path(dir_okay=False), help="Write JSON report")
@_backup_dir_option
@_config_option
@_workers_option
def check(
    report_path: str | None,
    backup_dir: str | None,
    config: str | None,
    workers: int | None,
) -> None:
    """Recompute every backed-up object's address and compare it to the manifest."""
    from rich.console import Console
    from rich.table import Table

    from tzipfs.backup.runner import create_runner

    settings = _settings_from_options(config, backup_dir, workers)
    result = create_runner(settings).run_check()

    report = result.report
    if report is not None:
        console = Console()
        counts = report.counts()

        table = Table(title="Backup Integrity")
        table.add_column("Status")
        table.add_column("Addresses", justify="right")
        table.add_row("[green]ok[/green]", str(counts["ok"]))
        table.add_row("[red]missing[/red]", str(counts["missing"]))
        table.add_row("[red]mismatch[/red]", str(counts["mismatch"]))
        table.add_row("[dim]untracked[/dim]", str(len(report.untracked)))
        console.print(table)

        for failure in report.failures():
            click.echo(f"  ✗ {type(failure).__name__}: {failure}", err=True)

        if report_path:
            report.save(Path(report_path))
    _finish(result)


@main.command("export-cids")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Output file")
@_backup_dir_option
@_config_option
def export_cids_cmd(output: str | None, backup_dir: str | None, config: str | None) -> None:
    """Write the unique content addresses of the manifest, one per line."""
    from tzipfs.backup.runner import create_runner

    settings = _settings_from_options(config, backup_dir, None)
    result = create_runner(settings).run_export(Path(output) if output else None)

    if result.error is None:
        click.echo(f"Exported {len(result.cids)} addresses")
    _finish(result)


if __name__ == "__main__":
    main()
