"""Typer CLI entrypoint for the workshop watcher."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import typer
import yaml
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import ConfigRepository, ScheduleConfig, ScheduleType
from .errors import ConfigurationError, StateStoreError
from .infra import StoredState
from .logging_conf import available_logs, configure_logging, default_log_dir, tail_log
from .models import CycleResult, CycleStatus
from .orchestrator import Orchestrator
from .scheduler import APSchedulerAdapter

app = typer.Typer(
    help="Watch a Steam Workshop collection and announce its changes.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="Configuration commands",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Log viewing commands",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()

FAILED_STATUSES = {
    CycleStatus.UPSTREAM_UNAVAILABLE,
    CycleStatus.STORE_UNAVAILABLE,
    CycleStatus.COMMIT_FAILED,
}

_SECRET_KEYS = {"api_key", "webhook_url"}


@dataclass
class AppState:
    repository: ConfigRepository
    scheduler: APSchedulerAdapter
    orchestrator: Orchestrator


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    scheduler = APSchedulerAdapter()
    orchestrator = Orchestrator(
        config_repository=repository,
        scheduler=scheduler,
        progress_enabled=True,
    )
    return AppState(repository=repository, scheduler=scheduler, orchestrator=orchestrator)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _format_schedule(schedule: ScheduleConfig) -> str:
    if schedule.type is ScheduleType.CRON:
        return f"cron ({schedule.value})"
    return f"interval ({schedule.value})"


def _render_result(result: CycleResult) -> Table:
    table = Table(title=f"{result.kind.capitalize()} result", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", style="green", justify="right")
    status_style = "red" if result.status in FAILED_STATUSES else "green"
    table.add_row("Status", f"[{status_style}]{result.status.value}[/{status_style}]")
    table.add_row("Scraped", str(result.scraped))
    for name, count in result.changes.counts().items():
        table.add_row(name.capitalize(), str(count))
    table.add_row("Notified", str(result.notifications.sent))
    if result.notifications.failed:
        table.add_row("Notify failed", f"[red]{result.notifications.failed}[/red]")
    return table


def _render_state(state: StoredState) -> Table:
    table = Table(
        title=f"Mirror · {len(state.snapshot)} items · updated {state.last_updated or '-'}",
        box=box.SIMPLE_HEAD,
    )
    table.add_column("Item ID", style="cyan", no_wrap=True)
    table.add_column("Title", overflow="fold")
    table.add_column("Size", justify="right")
    table.add_column("Updated", style="magenta")
    table.add_column("Last checked", style="dim")
    for item_id in state.snapshot.item_ids:
        detail = state.details.get(item_id)
        if detail is None:
            table.add_row(item_id, "[yellow]not scraped[/yellow]", "-", "-", "-")
            continue
        title = escape(detail.title or "-")
        table.add_row(
            item_id,
            f"[red]{title}[/red]" if detail.is_error else title,
            detail.file_size or "-",
            detail.updated_date or "-",
            detail.last_checked or "-",
        )
    return table


def _render_jobs_table(jobs: Iterable[dict]) -> Table:
    table = Table(title="Scheduled jobs", box=box.SIMPLE_HEAD)
    table.add_column("Job ID", style="cyan", no_wrap=True)
    table.add_column("Next run", style="green")
    table.add_column("Trigger", style="magenta", overflow="fold")
    for job in jobs:
        table.add_row(
            str(job.get("id", "-")),
            str(job.get("next_run_time", "-")),
            str(job.get("trigger", "-")),
        )
    return table


def _mask_secrets(payload: dict) -> dict:
    masked = {}
    for key, value in payload.items():
        if isinstance(value, dict):
            masked[key] = _mask_secrets(value)
        elif key in _SECRET_KEYS and value:
            masked[key] = "***"
        else:
            masked[key] = value
    return masked


def _finish(result: CycleResult) -> None:
    console.print(_render_result(result))
    if result.status in FAILED_STATUSES:
        raise typer.Exit(code=1)


app.add_typer(config_app, name="config", help="Show the active configuration")
app.add_typer(log_app, name="log", help="Inspect log files and the audit log")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging", is_flag=True)
) -> None:
    try:
        ctx.obj = build_state(verbose)
    except ConfigurationError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)


@app.command("run", help="Start the scheduler and watch until interrupted.")
def run(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        state.orchestrator.register_schedules()
    except ConfigurationError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)
    console.print(_render_jobs_table(state.scheduler.list_jobs()))
    console.print("Watcher running, press Ctrl+C to stop.", style="dim")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping watcher…", style="yellow")
    finally:
        state.orchestrator.close()


@app.command("check", help="Run one incremental check now.")
def check(
    ctx: typer.Context,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Log notifications instead of delivering them.",
        is_flag=True,
    ),
) -> None:
    state = _get_state(ctx)
    try:
        result = state.orchestrator.run_check(dry_run=dry_run)
    except ConfigurationError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)
    _finish(result)


@app.command("refresh", help="Re-scrape every stored item without notifying.")
def refresh(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        result = state.orchestrator.run_refresh()
    except ConfigurationError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)
    _finish(result)


@app.command("status", help="Show the locally mirrored collection.")
def status(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        stored = state.orchestrator.stored_state()
    except StateStoreError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)
    if stored is None:
        console.print("No state yet, run `workshop-watcher check` first.", style="yellow")
        raise typer.Exit(code=0)
    console.print(_render_state(stored))


@config_app.command("show", help="Print the effective configuration with secrets masked.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = state.repository.load_config()
    console.print(f"Config file: {state.repository.locator.config_path()}", style="cyan")
    payload = _mask_secrets(config.model_dump(mode="json"))
    console.print(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False), markup=False)
    console.print(f"check: {_format_schedule(config.schedule.check)}", style="dim")
    console.print(f"refresh: {_format_schedule(config.schedule.refresh)}", style="dim")


@log_app.command("list", help="List available log files.")
def log_list() -> None:
    logs = list(available_logs())
    console.print("Log files:", style="cyan")
    if not logs:
        console.print("No logs written yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="Show the most recent lines of a log.")
def log_show(
    ctx: typer.Context,
    name: str = typer.Argument("watcher.log", help="Log file name under the logs directory."),
    audit: bool = typer.Option(False, "--audit", help="Show the change audit log instead.", is_flag=True),
    tail: int = typer.Option(100, "--tail", help="Number of trailing lines to show."),
) -> None:
    if audit:
        path = _get_state(ctx).repository.audit_log_path()
    else:
        path = default_log_dir() / Path(name).name
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log entries yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} lines", style="cyan")
    console.print("".join(lines), markup=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()


__all__ = ["AppState", "app", "build_state", "cli"]
