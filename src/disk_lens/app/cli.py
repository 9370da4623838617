"""Command-line interface for disk-lens."""

from __future__ import annotations

import json
import sys
import time
from contextlib import nullcontext
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click

from disk_lens.app.render import render_drives, render_progress, render_tree
from disk_lens.core.config import ConfigurationError, load_config_or_default
from disk_lens.core.errors import RootUnavailableError, ScanCancelledError
from disk_lens.core.orchestrator import ScanOrchestrator
from disk_lens.types.models import ProgressData, ScanOptions
from disk_lens.utils.formatting import format_duration
from disk_lens.utils.logging import configure_logging

try:
    __version__ = version("disk-lens")
except PackageNotFoundError:
    __version__ = "unknown"

EXIT_CANCELLED = 130

# Configuration file discovery paths in order of precedence
# 1. Current directory
CURRENT_DIR_CONFIG_FILES = [
    'disk-lens.yaml',
    'disk-lens.yml',
]

# 2. User configuration directory
HOME_CONFIG_FILES = [
    '.config/disk-lens/config.yaml',
    '.config/disk-lens/config.yml',
    '.disk-lens.yaml',
]

# 3. System configuration directories
SYSTEM_CONFIG_PATHS = [
    Path('/etc/disk-lens/config.yaml'),
    Path('/usr/local/etc/disk-lens/config.yaml'),
]


def discover_config_file() -> Path | None:
    """Discover a configuration file in standard locations.

    Searches, in order of precedence:
    1. Current directory (disk-lens.yaml, disk-lens.yml)
    2. User home directory (~/.config/disk-lens/config.yaml, ~/.disk-lens.yaml)
    3. System directories (/etc/disk-lens/, /usr/local/etc/disk-lens/)

    Returns:
        Path to the first configuration file found, or None to use defaults
    """
    for config_file in CURRENT_DIR_CONFIG_FILES:
        config_path = Path(config_file)
        if config_path.is_file():
            return config_path

    try:
        home_dir = Path.home()
    except RuntimeError:
        home_dir = None
    if home_dir is not None:
        for config_file in HOME_CONFIG_FILES:
            config_path = home_dir / config_file
            if config_path.is_file():
                return config_path

    for config_path in SYSTEM_CONFIG_PATHS:
        if config_path.is_file():
            return config_path

    return None


def validate_config_path(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: Path | None,
) -> Path | None:
    """Validate configuration file path.

    Args:
        ctx: Click context (required by Click callback signature)
        param: Click parameter (required by Click callback signature)
        value: Path value to validate

    Returns:
        Validated Path object

    Raises:
        click.BadParameter: If validation fails
    """
    if value is None:
        return value

    if value.exists() and value.is_dir():
        raise click.BadParameter('Configuration path must be a file, not a directory')

    valid_extensions = {'.yaml', '.yml'}
    if value.suffix.lower() not in valid_extensions:
        extensions_str = ", ".join(sorted(valid_extensions))
        raise click.BadParameter(
            f'Invalid configuration file extension. Supported extensions: {extensions_str}'
        )

    return value


def validate_log_level(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: str | None,
) -> str | None:
    """Validate and normalize log level.

    Args:
        ctx: Click context (required by Click callback signature)
        param: Click parameter (required by Click callback signature)
        value: Log level value to validate

    Returns:
        Normalized log level (uppercase)

    Raises:
        click.BadParameter: If validation fails
    """
    if value is None:
        return value

    normalized_value = value.upper().strip()
    valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
    if normalized_value not in valid_levels:
        raise click.BadParameter(
            f'Invalid log level. Choose from: {", ".join(sorted(valid_levels))}'
        )

    return normalized_value


class ProgressPrinter:
    """Progress callback rewriting a single status line on stderr."""

    def __init__(self) -> None:
        self.last: ProgressData | None = None

    def __call__(self, snapshot: ProgressData) -> None:
        self.last = snapshot
        click.echo(f"\r\x1b[2K{render_progress(snapshot)}", nl=False, err=True)

    def finish(self) -> None:
        if self.last is not None:
            click.echo("\r\x1b[2K", nl=False, err=True)


@click.group()
@click.option(
    '--config', '-c',
    type=click.Path(path_type=Path),
    default=None,
    callback=validate_config_path,
    help='Configuration file path (.yaml/.yml). If not specified, searches standard locations.'
)
@click.option(
    '--log-level', '-l',
    type=str,
    default=None,
    callback=validate_log_level,
    help='Logging verbosity level (DEBUG, INFO, WARNING, ERROR, CRITICAL)'
)
@click.version_option(version=__version__, prog_name='disk-lens')
@click.pass_context
def cli(ctx: click.Context, config: Path | None, log_level: str | None) -> None:
    """disk-lens - See what is using your disk space.

    Examples:

        # Scan the current directory two levels deep
        disk-lens scan .

        # Exact sizes, hidden files included
        disk-lens scan ~/projects --comprehensive --show-hidden

        # Machine-readable tree
        disk-lens scan /var --depth 3 --json

        # List mounted volumes
        disk-lens drives
    """
    config_path = config if config is not None else discover_config_file()
    try:
        main_config = load_config_or_default(config_path)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    configure_logging(
        log_level=log_level or main_config.application.log_level,
        enable_syslog=main_config.application.syslog_enabled,
    )
    ctx.obj = ScanOrchestrator(config=main_config)


@cli.command()
@click.argument('path', type=click.Path(path_type=Path), default='.')
@click.option(
    '--depth', '-d',
    type=click.IntRange(1, 4),
    default=None,
    help='Levels below PATH to enumerate (1-4, default from configuration)'
)
@click.option(
    '--fast/--comprehensive',
    default=None,
    help='Estimate directories at the depth limit, or measure everything exactly'
)
@click.option(
    '--skip-hidden/--show-hidden',
    default=None,
    help='Omit or include hidden entries'
)
@click.option(
    '--top', '-t',
    type=click.IntRange(min=1),
    default=None,
    help='Show only the N largest entries per directory'
)
@click.option('--json', 'as_json', is_flag=True, help='Print the tree as JSON')
@click.option('--no-progress', is_flag=True, help='Do not print a progress line')
@click.pass_obj
def scan(
    orchestrator: ScanOrchestrator,
    path: Path,
    depth: int | None,
    fast: bool | None,
    skip_hidden: bool | None,
    top: int | None,
    as_json: bool,
    no_progress: bool,
) -> None:
    """Scan PATH and print its size tree."""
    defaults = orchestrator.config.scan.default_options()
    options = ScanOptions(
        fast_mode=defaults.fast_mode if fast is None else fast,
        skip_hidden=defaults.skip_hidden if skip_hidden is None else skip_hidden,
    )

    printer = ProgressPrinter()
    show_progress = not no_progress and sys.stderr.isatty()
    subscription = orchestrator.subscribe_progress(printer) if show_progress else nullcontext()

    started = time.monotonic()
    with subscription:
        try:
            tree = orchestrator.scan_directory(path, depth, options)
        except RootUnavailableError as e:
            raise click.ClickException(e.message) from e
        except (KeyboardInterrupt, ScanCancelledError):
            _ = orchestrator.cancel_scan()
            printer.finish()
            click.echo('Scan cancelled', err=True)
            click.get_current_context().exit(EXIT_CANCELLED)
    printer.finish()

    if as_json:
        click.echo(json.dumps(tree.to_dict(), indent=2))
    else:
        for line in render_tree(tree, top=top):
            click.echo(line)

    skipped = len(orchestrator.last_errors)
    if skipped:
        click.echo(f'{skipped} entries could not be read and were skipped', err=True)
    if not as_json:
        elapsed = time.monotonic() - started
        click.echo(f'Scanned in {format_duration(elapsed)}', err=True)


@cli.command()
@click.option('--json', 'as_json', is_flag=True, help='Print the listing as JSON')
@click.pass_obj
def drives(orchestrator: ScanOrchestrator, as_json: bool) -> None:
    """List mounted volumes and their capacity."""
    drive_list = orchestrator.get_drive_info()
    if as_json:
        click.echo(json.dumps([drive.to_dict() for drive in drive_list], indent=2))
        return
    for line in render_drives(drive_list):
        click.echo(line)
