"""Console rendering and progress helpers for fileupload CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, Iterable, Optional

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.table import Table

from .models import RawFile, UploadFile, UploadStatus

console = Console()

_STATUS_STYLE = {
    UploadStatus.READY: "dim",
    UploadStatus.UPLOADING: "cyan",
    UploadStatus.SUCCESS: "green",
    UploadStatus.ERROR: "red",
}


def _human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def _short(value: Any, limit: int = 60) -> str:
    text = "-" if value is None else str(value)
    return text if len(text) <= limit else text[: limit - 3] + "..."


def render_configuration_summary(config: Dict[str, Any], out: Optional[Console] = None) -> None:
    """Render startup configuration summary."""
    out = out or console
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]file-up[/bold green]",
        subtitle="[dim]fileupload CLI[/dim]",
        border_style="blue",
    )
    out.print(panel)


def render_upload_list(files: Iterable[UploadFile], out: Optional[Console] = None) -> None:
    """Render the final upload list as a table."""
    out = out or console
    table = Table(title="Uploads", show_lines=False)
    table.add_column("File", style="bold")
    table.add_column("Size", justify="right")
    table.add_column("Status")
    table.add_column("Result")

    for entry in files:
        style = _STATUS_STYLE.get(entry.status, "white")
        result = entry.response if entry.success else entry.error
        table.add_row(
            entry.name,
            _human_size(entry.size),
            f"[{style}]{entry.status.value}[/{style}]",
            _short(result),
        )
    out.print(table)


class UploadListDisplay:
    """
    Live console display for an upload orchestrator.

    One progress bar per running file; finished files leave the live area
    and are printed as a timeline line.
    """

    def __init__(self, out: Optional[Console] = None):
        self._console = out or console
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=42),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            expand=False,
            console=self._console,
        )
        self._live: Optional[Live] = None
        self._active_tasks: Dict[int, TaskID] = {}

    def attach(self, orchestrator) -> None:
        orchestrator.on_progress(self.on_progress)
        orchestrator.on_success(self.on_success)
        orchestrator.on_error(self.on_error)
        orchestrator.on_remove(self.on_remove)

    def start(self) -> None:
        if self._live is not None:
            return
        self._live = Live(
            self._progress,
            console=self._console,
            refresh_per_second=8,
            vertical_overflow="visible",
        )
        self._live.start()

    def stop(self) -> None:
        if self._live is None:
            return
        self._live.stop()
        self._live = None

    def _emit_timeline(
        self,
        status: str,
        name: str,
        size_bytes: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        stamp = time.strftime("%H:%M:%S")
        size_label = f" {_human_size(size_bytes)}" if size_bytes and size_bytes > 0 else ""
        error_label = f" cause={error}" if error else ""
        palette = {
            "DONE": "green",
            "FAIL": "red",
            "DROP": "yellow",
        }
        color = palette.get(status, "white")
        self._console.print(
            f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] "
            f"file: {name}{size_label}{error_label}"
        )

    def _finish_task(self, raw: RawFile) -> None:
        task_id = self._active_tasks.pop(id(raw), None)
        if task_id is not None:
            self._progress.remove_task(task_id)

    def on_progress(self, percent: int, raw: RawFile) -> None:
        task_id = self._active_tasks.get(id(raw))
        if task_id is None:
            task_id = self._progress.add_task("upload", label=raw.name[:60], total=100)
            self._active_tasks[id(raw)] = task_id
        self._progress.update(task_id, completed=percent)

    def on_success(self, response: Any, raw: RawFile) -> None:
        self._finish_task(raw)
        self._emit_timeline("DONE", raw.name, size_bytes=raw.size)

    def on_error(self, error: BaseException, raw: RawFile) -> None:
        self._finish_task(raw)
        self._emit_timeline("FAIL", raw.name, size_bytes=raw.size, error=str(error) or type(error).__name__)

    def on_remove(self, entry: UploadFile) -> None:
        if entry.raw is not None:
            self._finish_task(entry.raw)
        self._emit_timeline("DROP", entry.name, size_bytes=entry.size)
