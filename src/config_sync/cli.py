"""Command-line interface for config-sync."""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import click
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from . import __version__
from .config.registry import MappingRegistry
from .config.settings import (
    DEFAULT_CONFIG_FILENAME,
    Direction,
    Location,
    RunOptions,
    SyncConfig,
)
from .exceptions import BackupNameParseError, MappingValidationError, RollbackError
from .sync.backup_manager import BackupManager
from .sync.engine import SyncEngine, SyncReport, SyncStatus
from .sync.rollback import RollbackEngine, RollbackResult, parse_backup_name
from .utils.file_utils import FileHelper
from .utils.logging import TimedOperation, get_logger, setup_logging

logger = get_logger("cli")

console = Console()

CONTEXT_SETTINGS = {'help_option_names': ['-h', '--help']}


@dataclass
class AppState:
    """Everything a command needs, built once per invocation."""
    config: SyncConfig
    options: RunOptions

    def backup_manager(self) -> BackupManager:
        return BackupManager(self.config.backup_root, self.config.retention, self.options)

    def registry(self) -> MappingRegistry:
        return MappingRegistry.from_config(self.config)


def common_options(f):
    """Flags accepted both before and after the command name."""
    options = [
        click.option('--dry-run', is_flag=True,
                     help='Show what would be done without changing any file'),
        click.option('--verbose', '-v', is_flag=True,
                     help='Show debug output'),
        click.option('--quiet', '-q', is_flag=True,
                     help='Only show warnings, errors and the final summary'),
        click.option('--no-timestamp', is_flag=True,
                     help='Omit timestamps from log lines'),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _load_config(config_path: Optional[Path]) -> SyncConfig:
    if config_path is None and Path(DEFAULT_CONFIG_FILENAME).exists():
        config_path = Path(DEFAULT_CONFIG_FILENAME)

    if config_path is None:
        return SyncConfig(repo_root=Path.cwd())

    return SyncConfig.from_yaml(config_path)


def _prepare(ctx: click.Context, **flags) -> AppState:
    """Merge group and command flags, load configuration, set up logging."""
    merged = dict(ctx.obj.get('flags', {}))
    for key, value in flags.items():
        if value:
            merged[key] = True

    if merged.get('verbose') and merged.get('quiet'):
        raise click.UsageError("--verbose and --quiet are mutually exclusive")

    options = RunOptions(
        dry_run=bool(merged.get('dry_run')),
        verbose=bool(merged.get('verbose')),
        quiet=bool(merged.get('quiet')),
        show_timestamps=not merged.get('no_timestamp'),
    )

    try:
        config = _load_config(ctx.obj.get('config_path'))
    except (FileNotFoundError, ValidationError) as e:
        console.print(f"❌ Error loading configuration: {e}", style="red bold")
        sys.exit(1)

    # Dry runs leave the filesystem untouched, the log file included
    setup_logging(
        log_level=options.log_level,
        log_file=None if options.dry_run else config.log_file,
        show_timestamps=options.show_timestamps,
    )

    if options.dry_run and not options.quiet:
        console.print("🔍 DRY RUN MODE - No files will be changed", style="yellow bold")

    return AppState(config=config, options=options)


@click.group(context_settings=CONTEXT_SETTINGS, invoke_without_command=True)
@click.version_option(version=__version__)
@click.option('--config', '-c', 'config_path',
              type=click.Path(dir_okay=False, path_type=Path),
              envvar='CONFIG_SYNC_CONFIG',
              help=f'Path to configuration file (default: ./{DEFAULT_CONFIG_FILENAME} if present)')
@common_options
@click.pass_context
def cli(ctx, config_path: Optional[Path], dry_run, verbose, quiet, no_timestamp):
    """Config Sync

    Keeps configuration files and directories in sync between this machine
    and a repository. Every overwrite is preceded by a timestamped backup
    that can be rolled back.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    ctx.obj['flags'] = {
        'dry_run': dry_run,
        'verbose': verbose,
        'quiet': quiet,
        'no_timestamp': no_timestamp,
    }
    if verbose and quiet:
        raise click.UsageError("--verbose and --quiet are mutually exclusive")

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------

def _run_sync(state: AppState, direction: Direction):
    config = state.config
    engine = SyncEngine(state.registry(), state.backup_manager(), state.options)

    if not state.options.quiet:
        console.print(f"🚀 Mode: {direction.value}")
        console.print(f"   Repository: {config.repository_root}")
        console.print(f"   Backups: {config.backup_root}\n")

    try:
        with TimedOperation(logger, f"{direction.value} of {len(config.mappings)} mapping(s)", "DEBUG"):
            report = engine.run(direction)
    except MappingValidationError as e:
        _display_validation_errors(e)
        sys.exit(1)

    _display_sync_report(report, state)
    if not report.ok:
        sys.exit(report.exit_code)


def _display_validation_errors(error: MappingValidationError):
    console.print(f"❌ {len(error.errors)} invalid mapping declaration(s), nothing was synced:",
                  style="red bold")
    for item in error.errors:
        rprint(f"   • [red]{item.entry}[/red]: {item.reason}")


def _display_sync_report(report: SyncReport, state: AppState):
    """Display sync results in a table followed by a summary."""
    if not state.options.quiet:
        table = Table(title=f"Sync Results ({report.direction.value})")
        table.add_column("Mapping", style="cyan")
        table.add_column("Status", style="magenta")
        table.add_column("Source")
        table.add_column("Destination")
        table.add_column("Backup", style="dim")

        styles = {SyncStatus.SUCCESS: "green", SyncStatus.SKIPPED: "yellow", SyncStatus.FAILED: "red"}
        for result in report.results:
            style = styles[result.status]
            table.add_row(
                result.name,
                f"[{style}]{result.status.value}[/{style}]",
                str(result.source or ""),
                str(result.destination or ""),
                result.backup_path.name if result.backup_path else "-",
            )
        console.print(table)

        if report.dry_run:
            for result in report.results:
                for description in result.operations:
                    rprint(f"   [yellow]Would {description}[/yellow]")

    summary = report.summary()
    rprint(f"\n📊 [bold]Summary:[/bold] {summary['successful']}/{summary['total']} mapping(s) synced")
    if summary['skipped']:
        rprint(f"   • Skipped: [yellow]{summary['skipped']}[/yellow]")
    if summary['failed']:
        rprint(f"   • Failed: [red]{summary['failed']}[/red]")
    if summary['backups_removed']:
        rprint(f"   • Old backups removed: {summary['backups_removed']}")

    problems = report.skipped + report.failed
    if problems:
        rprint("\n⚠️ [yellow]Some mappings were not synced:[/yellow]")
        for result in problems:
            console.print(f"   • {result.name}: {result.reason}", style="red")
    elif not report.dry_run and state.config.backup_root.is_dir() and not state.options.quiet:
        console.print(f"\n✅ All configurations synced. Backups in {state.config.backup_root}",
                      style="green")


@cli.command()
@common_options
@click.pass_context
def pull(ctx, **flags):
    """Copy configs from the system into the repository."""
    _run_sync(_prepare(ctx, **flags), Direction.PULL)


@cli.command()
@common_options
@click.pass_context
def push(ctx, **flags):
    """Copy configs from the repository onto the system."""
    _run_sync(_prepare(ctx, **flags), Direction.PUSH)


# ---------------------------------------------------------------------------
# Backups
# ---------------------------------------------------------------------------

def _backup_rows(backup_manager: BackupManager) -> List[dict]:
    """Backups newest first, with whatever their names reveal."""
    rows = []
    for path in reversed(backup_manager.list_backups()):
        info = FileHelper.get_file_info(path)
        try:
            identifier = parse_backup_name(path.name)
            config_name, location = identifier.config_name, identifier.location.value
        except BackupNameParseError:
            config_name, location = "-", "-"
        rows.append({
            'path': path,
            'name': path.name,
            'config': config_name,
            'location': location,
            'kind': info['kind'],
            'size': info['size'],
            'modified': info['modified_time'],
        })
    return rows


def _display_backup_table(rows: List[dict], numbered: bool = False):
    table = Table(title="Backups (newest first)")
    if numbered:
        table.add_column("#", justify="right")
    table.add_column("Backup", style="cyan")
    table.add_column("Config")
    table.add_column("Location", style="magenta")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Modified")

    for index, row in enumerate(rows, start=1):
        cells = [
            row['name'],
            row['config'],
            row['location'],
            row['kind'],
            FileHelper.format_file_size(row['size']),
            row['modified'].strftime('%Y-%m-%d %H:%M:%S'),
        ]
        if numbered:
            cells.insert(0, str(index))
        table.add_row(*cells)

    console.print(table)


@cli.command('list-backups')
@common_options
@click.pass_context
def list_backups(ctx, **flags):
    """List all backups, newest first."""
    state = _prepare(ctx, **flags)
    rows = _backup_rows(state.backup_manager())

    if not rows:
        console.print(f"No backups found in {state.config.backup_root}", style="yellow")
        return

    _display_backup_table(rows)
    console.print(f"{len(rows)} backup(s) in {state.config.backup_root}")


@cli.command('backup-stats')
@common_options
@click.pass_context
def backup_stats(ctx, **flags):
    """Show the number and total size of backups."""
    state = _prepare(ctx, **flags)
    stats = state.backup_manager().stats()
    retention = state.config.retention

    rprint(f"📦 [bold]Backup directory:[/bold] {state.config.backup_root}")
    rprint(f"   • Backups: {stats.count}")
    rprint(f"   • Total size: {FileHelper.format_file_size(stats.total_size_bytes)}")
    if stats.oldest:
        rprint(f"   • Oldest: {stats.oldest:%Y-%m-%d %H:%M:%S}")
        rprint(f"   • Newest: {stats.newest:%Y-%m-%d %H:%M:%S}")
    rprint(f"   • Retention: {retention.max_age_days} day(s), {retention.max_count} backup(s)")


@cli.command('backup-cleanup')
@common_options
@click.pass_context
def backup_cleanup(ctx, **flags):
    """Remove backups beyond the retention limits."""
    state = _prepare(ctx, **flags)
    removed = state.backup_manager().cleanup()

    if not removed:
        console.print("✅ Nothing to clean up", style="green")
        return

    verb = "Would remove" if state.options.dry_run else "Removed"
    console.print(f"🧹 {verb} {len(removed)} backup(s):")
    for path in removed:
        rprint(f"   • {path.name}")


# ---------------------------------------------------------------------------
# Rollback
# ---------------------------------------------------------------------------

def _display_rollback_result(result: RollbackResult, state: AppState):
    if state.options.dry_run:
        for description in result.operations:
            rprint(f"   [yellow]Would {description}[/yellow]")
        console.print(f"🔍 Would restore {result.target_path} from {result.backup_path.name}",
                      style="yellow")
        return

    if result.safety_backup:
        console.print(f"💾 Previous content saved as {result.safety_backup.name}")
    console.print(f"✅ Restored {result.target_path} from {result.backup_path.name}", style="green")


def _select_backup(state: AppState) -> Optional[Path]:
    rows = _backup_rows(state.backup_manager())
    if not rows:
        console.print(f"❌ No backups found in {state.config.backup_root}", style="red")
        return None

    _display_backup_table(rows, numbered=True)
    choice = click.prompt("Select backup to restore", type=click.IntRange(1, len(rows)))
    selected = rows[choice - 1]
    click.confirm(f"Restore {selected['name']}? The current content will be backed up first",
                  abort=True)
    return selected['path']


@cli.command()
@click.argument('backup_name', required=False)
@common_options
@click.pass_context
def rollback(ctx, backup_name: Optional[str], **flags):
    """Restore a backup to its original location.

    Without BACKUP_NAME, choose one interactively.
    """
    state = _prepare(ctx, **flags)
    engine = RollbackEngine(state.registry(), state.backup_manager(), state.options)

    try:
        if backup_name is None:
            selected = _select_backup(state)
            if selected is None:
                sys.exit(1)
            result = engine.restore(selected)
        else:
            result = engine.restore(backup_name)
    except MappingValidationError as e:
        _display_validation_errors(e)
        sys.exit(1)
    except RollbackError as e:
        console.print(f"❌ Rollback failed: {e}", style="red bold")
        sys.exit(1)

    _display_rollback_result(result, state)


@cli.command('rollback-config')
@click.argument('name')
@click.option('--location', '-l',
              type=click.Choice([location.value for location in Location]),
              help='Only consider backups of this side (default: both)')
@common_options
@click.pass_context
def rollback_config(ctx, name: str, location: Optional[str], **flags):
    """Restore the most recent backup of config NAME."""
    state = _prepare(ctx, **flags)
    engine = RollbackEngine(state.registry(), state.backup_manager(), state.options)

    try:
        result = engine.restore_latest(name, Location(location) if location else None)
    except MappingValidationError as e:
        _display_validation_errors(e)
        sys.exit(1)
    except RollbackError as e:
        console.print(f"❌ Rollback failed: {e}", style="red bold")
        sys.exit(1)

    _display_rollback_result(result, state)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@cli.command()
@click.option('--output', '-o',
              type=click.Path(dir_okay=False, path_type=Path),
              default=Path(DEFAULT_CONFIG_FILENAME),
              help='Path to save configuration file')
def init(output: Path):
    """Write a sample configuration file."""
    if output.exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    SyncConfig(repo_root=Path(".")).to_yaml(output)

    console.print(f"✅ Configuration saved to {output}", style="green")
    console.print("\n📝 Next steps:")
    console.print("1. Edit the mappings (name:system_path:repo_path:file|dir)")
    console.print("2. Run 'config-sync status' to check them")
    console.print("3. Run 'config-sync --dry-run pull' to preview a sync")


@cli.command()
@common_options
@click.pass_context
def status(ctx, **flags):
    """Show configured mappings, backup directory and retention."""
    state = _prepare(ctx, **flags)
    config = state.config
    registry = state.registry()

    rprint(f"📁 [bold]Repository:[/bold] {config.repository_root}")
    rprint(f"📦 [bold]Backups:[/bold] {config.backup_root} "
           f"(keep {config.retention.max_count}, max {config.retention.max_age_days} days)")

    errors = registry.validate_all()
    if errors:
        _display_validation_errors(MappingValidationError(errors))
        sys.exit(1)

    table = Table(title="Mappings")
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("System path")
    table.add_column("Repo path")

    for mapping in registry:
        system_mark = "✅" if mapping.system_path.exists() else "❌"
        repo_mark = "✅" if mapping.repo_path.exists() else "❌"
        table.add_row(
            mapping.name,
            mapping.kind.value,
            f"{system_mark} {mapping.system_path}",
            f"{repo_mark} {mapping.repo_path}",
        )

    console.print(table)
    console.print(f"✅ {len(registry)} mapping(s) configured", style="green")


def main(argv: Optional[List[str]] = None):
    """Console entry point; usage errors exit with status 1."""
    try:
        code = cli.main(args=argv, prog_name="config-sync", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(1)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(1)
    sys.exit(code if isinstance(code, int) else 0)


if __name__ == '__main__':
    main()
