#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Terminal rendering for the AIR model downloader (Rich).

- spinner while a URN is resolved against the remote API
- transfer progress bar (indeterminate when the size is unknown)
- result / error panels
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn, DownloadColumn, Progress, SpinnerColumn, TaskID, TextColumn,
    TimeRemainingColumn, TransferSpeedColumn,
)

from .core import AirError, DownloadResult, UpdateResult, UpdateStatus, human_size
from .core.download import ProgressCB
from .core.remote import DownloadDescriptor
from .core.urn import ModelURN

console = Console()
err_console = Console(stderr=True)


@contextmanager
def transfer_progress(label: str) -> Iterator[ProgressCB]:
    """Yield an on_progress(done, total) callback bound to a Rich progress bar.

    The task is only created on the first callback, so nothing is drawn when
    no body gets transferred (e.g. an update that is already current).
    """
    with Progress(
        SpinnerColumn(),
        TextColumn(f"[bold]Downloading[/] {label}", justify="left"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
        console=console,
        transient=False,
    ) as progress:
        task: Optional[TaskID] = None

        def on_progress(done: int, total: Optional[int]) -> None:
            nonlocal task
            if task is None:
                task = progress.add_task("dl", total=total, completed=done)
            else:
                progress.update(task, total=total, completed=done)

        yield on_progress


def show_urn(urn: ModelURN) -> None:
    console.print(Panel.fit(
        f"[bold cyan]Ecosystem:[/] {urn.ecosystem}\n"
        f"[bold cyan]Type:[/] {urn.model_type}\n"
        f"[bold cyan]Source:[/] {urn.source}\n"
        f"[bold cyan]Model:[/] {urn.id}\n"
        f"[bold cyan]Version:[/] {urn.version if urn.version is not None else 'latest'}"
        + (f"\n[bold cyan]Layer:[/] {urn.layer}" if urn.layer else "")
        + (f"\n[bold cyan]Format:[/] {urn.format}" if urn.format else ""),
        title="Parsed URN",
        border_style="cyan",
    ))


def show_descriptor(desc: DownloadDescriptor) -> None:
    console.print(
        f"[dim]Remote file:[/] {desc.filename or '?'}"
        f"  [dim]version:[/] {desc.version_id or '?'}"
        f"  [dim]sha256:[/] {desc.remote_hash or 'n/a'}"
    )


def show_download_result(result: DownloadResult) -> None:
    resumed = f"\n[dim]Resumed from {human_size(result.resumed_from)}[/]" if result.resumed_from else ""
    console.print(Panel.fit(
        f"[green]Done![/] Model saved:\n[bold]{result.artifact_path}[/]\n"
        f"[dim]Size:[/] {human_size(result.size)}\n"
        f"[dim]SHA256:[/] {result.content_hash}\n"
        f"[dim]Metadata:[/] {result.metadata_path}" + resumed,
        title="Download Complete",
        border_style="green",
    ))


def show_update_result(result: UpdateResult) -> None:
    if result.status is UpdateStatus.UP_TO_DATE:
        console.print(f"[green]Up to date:[/] {result.artifact_path}")
        return
    console.print(Panel.fit(
        f"[green]Updated[/] {result.urn}\n[bold]{result.artifact_path}[/]\n"
        f"[dim]SHA256:[/] {result.content_hash}",
        title="Update Complete",
        border_style="green",
    ))


def show_error(err: AirError) -> None:
    err_console.print(f"[red]{type(err).__name__}:[/] {err}")


def show_interrupted() -> None:
    err_console.print("[yellow]Interrupted by user.[/] A partial .part file is kept; run again to resume.")
