# ==============================================================================
# Streamtable CLI
# ==============================================================================
"""
Command-line interface for the Kafka table engine.

Usage:
    streamtable --help
    streamtable run --output events.jsonl
    streamtable config show
    streamtable config show --json
    streamtable columns
"""

# ==============================================================================
# App Configuration
# ==============================================================================
# Set consistent terminal width for help output formatting
import os

import typer

if "COLUMNS" not in os.environ:
    os.environ["COLUMNS"] = "115"

app = typer.Typer(
    name="streamtable",
    help="Kafka table engine: stream topics into a sink with at-least-once delivery",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Run command is imported from streamtable.cli.run
from streamtable.cli.run import run_table

app.command("run")(run_table)

config_app = typer.Typer(
    help="Configuration management",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

# Register config commands from cli.config module
from streamtable.cli.config import config_show

config_app.command("show")(config_show)

# Columns command is imported from streamtable.cli.columns
from streamtable.cli.columns import show_columns

app.command("columns")(show_columns)


# ==============================================================================
# Entry Point
# ==============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
