# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Display Module

Rich UI components for reporting teardown results.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import TeardownResult, WorkloadKind

console = Console()


def create_outcomes_table(result: TeardownResult) -> Table:
    """
    Create per-environment outcome table

    Args:
        result: Result of a teardown run

    Returns:
        Rich Table object
    """
    table = Table(title="Environments", show_header=True, header_style="bold cyan")
    table.add_column("Environment", style="cyan", width=20)
    table.add_column("Stack", width=40)
    table.add_column("Status", width=20)

    for outcome in result.outcomes:
        if outcome.already_deleted:
            table.add_row(outcome.environment, "-", "Already deleted", style="dim")
        else:
            table.add_row(outcome.environment, outcome.stack_name, "✓ Deleted", style="green")

    if not result.outcomes:
        table.add_row("No environments", "", "", style="dim")

    return table


def show_teardown_summary(result: TeardownResult):
    """
    Show summary after a successful teardown

    Args:
        result: Result of a teardown run
    """
    label = result.label or result.kind.value

    console.print()
    console.print(create_outcomes_table(result))
    console.print()

    if result.kind is not WorkloadKind.SERVICE:
        console.print(
            Panel(
                f"Deleted {label} [bold cyan]{result.name}[/bold cyan]",
                title="Summary",
                border_style="green",
            )
        )
        return

    if result.record_deleted:
        content = (
            f"Deleted {label} [bold cyan]{result.name}[/bold cyan] "
            f"from application [bold cyan]{result.app}[/bold cyan]"
        )
    else:
        content = (
            f"The {label} [bold cyan]{result.name}[/bold cyan] is still deployed to: "
            f"{', '.join(result.remaining_environments)}\n"
            "[dim]Its record is kept until it is deleted from every environment.[/dim]"
        )
    console.print(Panel(content, title="Summary", border_style="green"))
    console.print()
