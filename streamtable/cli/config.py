# ==============================================================================
# Config Commands
# ==============================================================================
"""
Configuration commands for the streamtable CLI.

Shows the effective table configuration, i.e. after table settings have been
merged with the server-wide streaming defaults.
"""

import json
from typing import Annotated

import typer

from streamtable.cli.shared import C, load_settings


# ==============================================================================
# Commands
# ==============================================================================


def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output configuration as JSON")
    ] = False,
) -> None:
    """Display the effective table configuration."""
    settings = load_settings()
    kafka = settings.kafka

    if json_output:
        config = {
            "table": {
                "database": settings.table.database,
                "name": settings.table.name,
            },
            "kafka": {
                "broker_list": [s.strip() for s in kafka.broker_list.split(",")],
                "topics": kafka.topics,
                "group_name": kafka.group_name,
                "client_id": settings.client_id,
                "format_name": kafka.format_name,
                "row_delimiter": kafka.row_delimiter,
                "schema_name": kafka.schema_name,
                "num_consumers": kafka.num_consumers,
                "commit_every_batch": kafka.commit_every_batch,
                "skip_broken_messages": kafka.skip_broken_messages,
                "librdkafka": kafka.librdkafka,
                "topic_config": kafka.topic_config,
            },
            "streaming": {
                "max_block_size": settings.max_block_size,
                "poll_max_batch_size": settings.poll_max_batch_size,
                "poll_timeout_ms": settings.poll_timeout_ms,
                "flush_interval_ms": settings.flush_interval_ms,
                "queued_min_messages": settings.queued_min_messages,
                "schedule_pool_size": settings.stream.schedule_pool_size,
            },
        }
        print(json.dumps(config, indent=2))
        return

    # Human-readable output
    print()
    print(f"{C.BOLD}Configuration{C.RESET}")
    print()

    print(f"{C.CYAN}Table{C.RESET}")
    print(f"  Name:       {C.WHITE}{settings.table.full_name}{C.RESET}")
    print(f"  Format:     {C.WHITE}{kafka.format_name}{C.RESET}")
    print()

    print(f"{C.CYAN}Kafka{C.RESET}")
    for i, broker in enumerate(kafka.broker_list.split(",")):
        label = "  Brokers:    " if i == 0 else "              "
        print(f"{label}{C.WHITE}{broker.strip()}{C.RESET}")
    print(f"  Topics:     {C.WHITE}{', '.join(kafka.topics)}{C.RESET}")
    print(f"  Group:      {C.WHITE}{kafka.group_name}{C.RESET}")
    print(f"  Client id:  {C.WHITE}{settings.client_id}{C.RESET}")
    print(f"  Consumers:  {C.WHITE}{kafka.num_consumers}{C.RESET}")
    print()

    print(f"{C.CYAN}Streaming{C.RESET}")
    print(f"  Block size:     {C.WHITE}{settings.max_block_size:,}{C.RESET}")
    print(f"  Poll batch:     {C.WHITE}{settings.poll_max_batch_size:,}{C.RESET}")
    print(f"  Poll timeout:   {C.WHITE}{settings.poll_timeout_ms}ms{C.RESET}")
    print(f"  Flush interval: {C.WHITE}{settings.flush_interval_ms}ms{C.RESET}")
    commit_mode = "every batch" if kafka.commit_every_batch else "once per round"
    print(f"  Commit:         {C.WHITE}{commit_mode}{C.RESET}")
    print(f"  Skip broken:    {C.WHITE}{kafka.skip_broken_messages}{C.RESET}")
    print()
