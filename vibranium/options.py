from pathlib import Path

import click

project_path_option = click.option(
    "--path",
    "-p",
    "project_path",
    help="Root directory of the project.",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    default=Path.cwd,
    show_default="current directory",
)

tracking_option = click.option(
    "--tracking/--no-tracking",
    "tracking_enabled",
    help="Skip contracts already deployed to the connected chain; overrides the project setting.",
    default=None,
)
