# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Progress Module

Operator feedback for long-running teardown steps.
"""

from typing import Optional, Protocol

from rich.console import Console
from rich.status import Status


class ProgressReporter(Protocol):
    """Sink for per-step start/success/failure notifications"""

    def start(self, message: str) -> None: ...

    def succeed(self, message: str) -> None: ...

    def fail(self, message: str) -> None: ...


class Spinner:
    """Rich spinner that prints a ✓/✗ line when a step ends"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)
        self._status: Optional[Status] = None

    def start(self, message: str) -> None:
        self._stop_status()
        self._status = self.console.status(f"[bold blue]{message}")
        self._status.start()

    def succeed(self, message: str) -> None:
        self._stop_status()
        self.console.print(f"[green]✓ {message}[/green]")

    def fail(self, message: str) -> None:
        self._stop_status()
        self.console.print(f"[red]✗ {message}[/red]")

    def _stop_status(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None
