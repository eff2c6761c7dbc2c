"""Configuration management commands."""

from __future__ import annotations

from pathlib import Path

import rich_click as click
import yaml

from kubeschema import console as con
from kubeschema.config import CONFIG_FILE_NAME, generate_default_config
from kubeschema.errors import ConfigError
from kubeschema.workspace import get_config, get_config_path


@click.group()
def config() -> None:
    """Manage kubeschema configuration."""
    pass


@config.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing config file.")
@click.option(
    "--path",
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory to write the config file to (default: current directory).",
)
def config_init(force: bool, directory: Path | None) -> None:
    """Initialize a new .kubeschema.yaml configuration file."""
    config_path = (directory or Path.cwd()) / CONFIG_FILE_NAME

    if config_path.exists() and not force:
        con.print_error(f"Config file already exists: {config_path}")
        con.print_hint("Use --force to overwrite.")
        raise SystemExit(1)

    config_content = generate_default_config()

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as f:
        f.write(config_content)

    con.print_success(f"Created {config_path}")
    click.echo()
    click.echo("Default configuration:")
    click.echo(config_content)


@config.command("show")
def config_show() -> None:
    """Show current configuration."""
    config_path = get_config_path()
    try:
        cfg = get_config()
    except ConfigError as e:
        con.print_error(str(e))
        raise SystemExit(1) from None

    if config_path:
        click.echo(f"Config file: {config_path}")
    else:
        click.echo("Config file: (using defaults)")
    click.echo()

    click.echo(yaml.safe_dump(cfg.to_dict(), default_flow_style=False, sort_keys=False))
