# ==============================================================================
# Columns Command
# ==============================================================================
"""
Lists the virtual columns every Kafka table record exposes.
"""

import json as _json
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from streamtable.core.models import VALUE_COLUMN
from streamtable.core.table import KafkaTable


def show_columns(
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show the virtual columns available on every record.

    Examples:
        streamtable columns
        streamtable columns --json
    """
    columns = KafkaTable.virtuals()

    if json_output:
        print(_json.dumps([column.model_dump() for column in columns]))
        return

    console = Console()
    table = Table(title="Virtual Columns", show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Type")
    for column in columns:
        table.add_row(column.name, column.type)
    table.add_row(VALUE_COLUMN, "String", style="dim")

    print()
    console.print(table)
    print()
