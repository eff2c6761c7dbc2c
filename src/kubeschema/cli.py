"""kubeschema CLI - browse and resolve Kubernetes resource schemas.

A CLI tool for indexing Kubernetes and CRD definitions documents.
"""

from __future__ import annotations

from pathlib import Path

import rich_click as click

from kubeschema.commands import cache, config, crd, schema
from kubeschema.console import setup_logging
from kubeschema.workspace import ConfigProvider

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.USE_MARKDOWN = False
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = (
    "Try running the '--help' flag for more information."
)
click.rich_click.STYLE_OPTION = "cyan"
click.rich_click.STYLE_ARGUMENT = "green"
click.rich_click.STYLE_COMMAND = "bold yellow"
click.rich_click.STYLE_SWITCH = "cyan"
click.rich_click.HEADER_TEXT = "kubeschema - Kubernetes schema index"
click.rich_click.STYLE_HEADER_TEXT = "bold magenta"
click.rich_click.ALIGN_COMMANDS_PANEL = "left"
click.rich_click.ALIGN_OPTIONS_PANEL = "left"
click.rich_click.MAX_WIDTH = 100

CLI_HELP = """Browse Kubernetes and CRD resource schemas.

\b
[bold cyan]Features:[/bold cyan]
  [dim]•[/dim] Indexing - Find every resource kind in a _definitions.json document
  [dim]•[/dim] Resolution - Inline $ref pointers into form-ready JSON Schema
  [dim]•[/dim] CRDs - Index CustomResourceDefinition manifests the same way

\b
[bold cyan]Quick Start:[/bold cyan]
  [bold yellow]kubeschema config init[/bold yellow]                  Create a config file
  [bold yellow]kubeschema schema kinds[/bold yellow]                 List resource kinds
  [bold yellow]kubeschema schema search deploy[/bold yellow]         Search resources
  [bold yellow]kubeschema schema show apps v1 Deployment[/bold yellow]   Show a resolved schema
"""


@click.group(help=CLI_HELP)
@click.option("--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Config file to use instead of searching for .kubeschema.yaml.",
)
def cli(verbose: bool, config_path: Path | None) -> None:
    """kubeschema CLI entry point."""
    setup_logging(verbose)
    if config_path is not None:
        ConfigProvider.get_instance().use_path(config_path)


cli.add_command(cache)
cli.add_command(config)
cli.add_command(crd)
cli.add_command(schema)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
