"""Config command implementation.

Shows and initializes the hvclean configuration file.
"""

from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from hvclean.core.config import (
    CleanerConfig,
    ConfigError,
    ConfigNotFoundError,
    config_to_dict,
    load_config,
    save_config,
)
from hvclean.core.paths import (
    DEFAULT_PRIMARY_CONFIG_PATH,
    DEFAULT_SNAPSHOT_CONFIG_PATH,
    ensure_config_dir,
    get_config_path,
)
from hvclean.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show or create the configuration file.",
    no_args_is_help=True,
)


@app.command()
def show() -> None:
    """Show the configuration file values."""
    config_path = get_config_path()
    try:
        config = load_config(config_path)
    except ConfigNotFoundError:
        print_info(f"No configuration file at {config_path}. Run 'hvclean config init'.")
        return
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    table = Table(
        title=f"Configuration ({config_path})",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    for key, value in config_to_dict(config).items():
        if isinstance(value, list):
            shown = "\n".join(str(v) for v in value) or "-"
        else:
            shown = str(value)
        table.add_row(key, escape(shown))

    console.print(table)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing configuration file."),
    ] = False,
) -> None:
    """Write a configuration file with the stock Hyper-V locations."""
    config_path = get_config_path()
    if config_path.exists() and not force:
        print_error(f"Configuration file already exists: {config_path} (use --force).")
        raise typer.Exit(code=1)

    try:
        ensure_config_dir()
    except RuntimeError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    config = CleanerConfig(
        primary_config_path=DEFAULT_PRIMARY_CONFIG_PATH,
        snapshot_config_path=DEFAULT_SNAPSHOT_CONFIG_PATH,
    )
    try:
        saved = save_config(config, config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Configuration written to {saved}")
    print_info("Add your disk directories under 'disk_scan_paths'.")
