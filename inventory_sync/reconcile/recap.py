"""
Batch recap: one outcome per report file, summarised at the end of a run.
"""

import time
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from inventory_sync.models import EntityKind, Outcome, OutcomeKind
from inventory_sync.utils.logging import get_logger

logger = get_logger(__name__)


class ProcessingRecap:
    """Collects outcomes and renders the end-of-run summary."""

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self.started = clock()
        self.finished: Optional[float] = None
        self.outcomes: List[Outcome] = []

    def add(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)

    def finish(self) -> None:
        self.finished = self._clock()

    def _of(self, *kinds: OutcomeKind) -> List[Outcome]:
        return [outcome for outcome in self.outcomes if outcome.kind in kinds]

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> List[Outcome]:
        return [outcome for outcome in self.outcomes if outcome.succeeded]

    @property
    def skipped(self) -> List[Outcome]:
        return self._of(OutcomeKind.SKIPPED)

    @property
    def failed(self) -> List[Outcome]:
        return self._of(OutcomeKind.FAILED)

    @property
    def with_warnings(self) -> List[Outcome]:
        return [outcome for outcome in self.outcomes if outcome.warnings]

    @property
    def duration_seconds(self) -> float:
        end = self.finished if self.finished is not None else self._clock()
        return end - self.started

    def rate(self, count: int) -> float:
        return round(count / self.total * 100, 1) if self.total else 0.0

    @property
    def physical_count(self) -> int:
        return sum(1 for outcome in self.succeeded if outcome.entity_kind is EntityKind.PHYSICAL)

    @property
    def virtual_count(self) -> int:
        return sum(1 for outcome in self.succeeded if outcome.entity_kind is EntityKind.VIRTUAL)

    def to_dict(self) -> Dict[str, Any]:
        """Summary plus per-file details, as logged at the end of a run."""
        return {
            "total_files": self.total,
            "success": len(self.succeeded),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
            "success_rate": f"{self.rate(len(self.succeeded))}%",
            "duration_seconds": round(self.duration_seconds, 2),
            "physical_servers": self.physical_count,
            "virtual_machines": self.virtual_count,
            "success_files": [outcome.filename for outcome in self.succeeded],
            "skipped_files": [
                {"filename": outcome.filename, "reason": outcome.reason} for outcome in self.skipped
            ],
            "failed_files": [
                {"filename": outcome.filename, "error": outcome.error} for outcome in self.failed
            ],
            "warnings": [
                {"filename": outcome.filename, "warnings": [w.message for w in outcome.warnings]}
                for outcome in self.with_warnings
            ],
        }

    def log_summary(self) -> None:
        summary = self.to_dict()
        logger.info("Processing recap generated", extra={"recap": summary})

    def render(self, console: Console) -> None:
        """Print per-file tables and the summary."""
        console.print()
        console.rule("[bold]Processing Recap[/bold]")

        if self.succeeded:
            table = Table(title=f"Success ({len(self.succeeded)} files)")
            table.add_column("#", justify="right", style="dim")
            table.add_column("File", style="cyan")
            table.add_column("Result")
            table.add_column("Row", justify="right")
            table.add_column("Type")
            table.add_column("Hostname")
            for index, outcome in enumerate(self.succeeded, 1):
                result = outcome.kind.value
                if outcome.kind is OutcomeKind.INSERTED and not outcome.parent_found:
                    result += " (no parent)"
                elif outcome.tier is not None:
                    result += f" ({outcome.tier.label})"
                table.add_row(
                    str(index),
                    outcome.filename,
                    result,
                    str(outcome.row_index),
                    outcome.entity_kind.value,
                    outcome.hostname or "N/A",
                )
            console.print(table)
        else:
            console.print("[green]Success:[/green] 0 files")

        if self.skipped:
            table = Table(title=f"Skipped ({len(self.skipped)} files)")
            table.add_column("#", justify="right", style="dim")
            table.add_column("File", style="cyan")
            table.add_column("Reason", style="yellow")
            for index, outcome in enumerate(self.skipped, 1):
                table.add_row(str(index), outcome.filename, outcome.reason)
            console.print(table)
        else:
            console.print("[yellow]Skipped:[/yellow] 0 files")

        if self.failed:
            table = Table(title=f"Failed ({len(self.failed)} files)")
            table.add_column("#", justify="right", style="dim")
            table.add_column("File", style="cyan")
            table.add_column("Error", style="red")
            for index, outcome in enumerate(self.failed, 1):
                table.add_row(str(index), outcome.filename, outcome.error)
            console.print(table)
        else:
            console.print("[red]Failed:[/red] 0 files")

        if self.with_warnings:
            table = Table(title="Warnings")
            table.add_column("File", style="cyan")
            table.add_column("Warning", style="yellow")
            for outcome in self.with_warnings:
                for warning in outcome.warnings:
                    table.add_row(outcome.filename, warning.message)
            console.print(table)

        console.print("\n[bold]Summary:[/bold]")
        console.print(f"  Total files: {self.total}")
        console.print(f"  Success: {len(self.succeeded)} ({self.rate(len(self.succeeded))}%)")
        console.print(f"  Skipped: {len(self.skipped)} ({self.rate(len(self.skipped))}%)")
        console.print(f"  Failed: {len(self.failed)} ({self.rate(len(self.failed))}%)")
        console.print(f"  Duration: {self.duration_seconds:.2f} seconds")
        console.print(f"  Physical servers: {self.physical_count}")
        console.print(f"  Virtual machines: {self.virtual_count}")
