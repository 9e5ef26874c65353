"""Console rendering and progress helpers for uploader CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.table import Table

from .models import BatchResult, PingResult

console = Console()


def _echo(message: str) -> None:
    console.print(message)


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]bulk-up[/bold green]",
        subtitle="[dim]bulk uploader CLI[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_ping_result(result: PingResult) -> None:
    if result.success:
        _echo(f"[green]Connection OK[/green] {result.info}")
    else:
        _echo(f"[red]Connection failed:[/red] {result.info}")


class BatchUploadProgressDisplay:
    """Event-based console display for a bulk upload."""

    def __init__(self, total_files: int = 0):
        self._stats: Dict[str, int] = {
            "total_files": total_files,
            "uploaded": 0,
            "failed": 0,
        }
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=36),
            TextColumn("{task.completed}/{task.total}"),
            TextColumn("[dim]{task.fields[detail]}", justify="left"),
            expand=False,
            console=console,
        )
        self._task_id: Optional[TaskID] = None
        self._started = False

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    def start(self) -> None:
        if self._started:
            return
        self._progress.start()
        self._task_id = self._progress.add_task(
            "overall",
            label="Uploading",
            total=max(self._stats["total_files"], 1),
            completed=0,
            detail="uploaded=0 failed=0",
        )
        self._started = True

    def stop(self) -> None:
        if not self._started:
            return
        self._progress.stop()
        self._started = False

    def _update(self) -> None:
        if self._task_id is None:
            return
        uploaded = self._stats["uploaded"]
        failed = self._stats["failed"]
        completed = uploaded + failed
        total = max(self._stats["total_files"], completed, 1)
        self._progress.update(
            self._task_id,
            completed=min(completed, total),
            total=total,
            detail=f"uploaded={uploaded} failed={failed}",
        )

    def _emit_timeline(self, status: str, name: str, error: Optional[str] = None) -> None:
        stamp = time.strftime("%H:%M:%S")
        palette = {
            "DONE": "green",
            "FAIL": "red",
            "STOP": "bold red",
        }
        color = palette.get(status, "white")
        error_label = f" cause={escape(error)}" if error else ""
        self._progress.console.print(
            f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {escape(name)}{error_label}"
        )

    def on_upload_success(self, pathname: str, response: Any) -> None:
        self._stats["uploaded"] += 1
        url = response.get("secure_url") if isinstance(response, dict) else None
        self._emit_timeline("DONE", pathname if not url else f"{pathname} -> {url}")
        self._update()

    def on_upload_error(self, pathname: str, message: str) -> None:
        self._stats["failed"] += 1
        self._emit_timeline("FAIL", pathname, error=message)
        self._update()

    def on_critical_error(self, pathname: str, message: str) -> None:
        self._stats["failed"] += 1
        self._emit_timeline("STOP", pathname, error=message)
        self._update()

    def on_finish(self, result: BatchResult) -> None:
        self.stop()

        table = Table(title="Upload summary", show_header=False, border_style="blue")
        table.add_column(style="bold cyan", justify="right")
        table.add_column()
        table.add_row("Candidates", str(result.total_candidates))
        table.add_row("Uploaded", f"[green]{result.uploaded_count}[/green]")
        table.add_row("Failed", f"[red]{result.failed_count}[/red]" if result.failed_count else "0")
        table.add_row("Invalid", str(len(result.invalid)))
        table.add_row("Already uploaded", str(len(result.skipped)))
        if result.log_writes_enqueued:
            table.add_row("Error log entries", str(result.log_writes_completed))
        if result.cancelled:
            table.add_row("Status", "[bold red]aborted after critical error[/bold red]")
        console.print(table)
