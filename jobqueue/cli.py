import asyncio
import json

import click

from jobqueue.constants import DEFAULT_QUEUE
from jobqueue.db import close_db, create_schema, get_job_store, init_db
from jobqueue.db.repository import JobRepository
from jobqueue.errors import BadHandlerError, StoreUnavailableError
from jobqueue.utils import parse_delay_to_seconds, parse_run_at, seconds_from_now
from jobqueue.worker.handlers import build_handler, list_handlers


def _run(coro):
    """Run a coroutine against the configured database, closing it afterwards."""
    async def _wrapped():
        await init_db()
        try:
            return await coro(JobRepository(get_job_store()))
        finally:
            await close_db()

    try:
        return asyncio.run(_wrapped())
    except StoreUnavailableError as e:
        click.secho(f"Error: job store unavailable ({e})", fg="red", err=True)
        raise SystemExit(1)


@click.group(help="jobqueue: database-backed job queue")
def cli():
    pass


@cli.command("init-db", help="Create the jobs table if it does not exist")
def init_db_cmd():
    async def _create():
        await init_db()
        try:
            await create_schema()
        finally:
            await close_db()

    asyncio.run(_create())
    click.secho("Schema ready.", fg="green")


# ---------- Enqueue ----------
@cli.command("enqueue", help="Add a new job to a queue")
@click.argument("job_type")
@click.option("--data", "data_json", default="{}", show_default=True, help="Handler arguments as JSON")
@click.option("--queue", default=DEFAULT_QUEUE, show_default=True)
@click.option("--run-at", default=None, help="ISO datetime; naive values are UTC")
@click.option("--delay", "delay_str", default=None,
              help="Run after a delay, e.g. 20s, 5m, 1h30m (mutually exclusive with --run-at)")
def enqueue_cmd(job_type, data_json, queue, run_at, delay_str):
    try:
        if run_at and delay_str:
            raise click.ClickException("Use either --run-at or --delay, not both.")

        try:
            data = json.loads(data_json)
        except json.JSONDecodeError as e:
            raise click.ClickException(f"--data is not valid JSON: {e}")

        when = None
        if delay_str:
            when = seconds_from_now(parse_delay_to_seconds(delay_str))
        elif run_at:
            when = parse_run_at(run_at)

        handler = build_handler(job_type, data)
    except (ValueError, BadHandlerError, click.ClickException) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        raise SystemExit(1)

    if not _run(lambda repo: repo.enqueue(handler, queue=queue, run_at=when)):
        click.secho("Error: job was not enqueued", fg="red", err=True)
        raise SystemExit(1)

    click.secho(
        f"Enqueued {job_type} on queue::{queue} "
        f"({'run_at=' + when.isoformat() if when else 'run_at=now'})",
        fg="green",
    )


# ---------- Workers ----------
@cli.group("worker", help="Manage workers")
def worker_group():
    pass


@worker_group.command("start")
@click.option("--queue", default=None, help="Queue to service [default: settings]")
@click.option("--count", type=int, default=None, help="Stop after this many jobs (0 = run until stopped)")
@click.option("--sleep", "sleep_interval", type=float, default=None, help="Seconds to sleep when the queue is empty")
@click.option("--worker-id", default=None, help="Override the host/pid worker identity")
def worker_start(queue, count, sleep_interval, worker_id):
    from jobqueue.worker.main import run_async

    try:
        processed = asyncio.run(
            run_async(
                queue=queue,
                max_jobs=count,
                sleep_interval=sleep_interval,
                worker_id=worker_id,
            )
        )
    except StoreUnavailableError as e:
        click.secho(f"Worker stopped: job store unavailable ({e})", fg="red", err=True)
        raise SystemExit(1)
    click.secho(f"Worker stopped after {processed} jobs.", fg="yellow")


# ---------- Reaper ----------
@cli.group("reaper", help="Manage the stale lock reaper")
def reaper_group():
    pass


@reaper_group.command("start")
@click.option("--interval", type=int, default=None, help="Seconds between runs")
@click.option("--lock-timeout", type=int, default=None, help="Seconds after which a lock is stale")
def reaper_start(interval, lock_timeout):
    from jobqueue.reaper.main import run_async

    asyncio.run(run_async(interval_seconds=interval, lock_timeout_seconds=lock_timeout))


# ---------- Jobs ----------
@cli.command("status", help="Show job counts for a queue")
@click.option("--queue", default=DEFAULT_QUEUE, show_default=True)
def status_cmd(queue):
    status = _run(lambda repo: repo.status(queue))
    click.echo(json.dumps(status.model_dump(), indent=2))


@cli.command("failed", help="List permanently failed jobs")
@click.option("--queue", default=DEFAULT_QUEUE, show_default=True)
@click.option("--limit", type=int, default=100, show_default=True)
def failed_cmd(queue, limit):
    rows = _run(lambda repo: repo.list_failed(queue, limit=limit))

    if not rows:
        click.echo("No failed jobs.")
        return

    for r in rows:
        click.echo(f"{r.id:>8} | failed_at={r.failed_at} | error={r.error} | handler={r.handler}")


@cli.command("retry", help="Make a failed job eligible again")
@click.argument("job_id", type=int)
def retry_cmd(job_id):
    if _run(lambda repo: repo.retry_failed(job_id)):
        click.secho(f"Re-queued failed job {job_id}.", fg="green")
    else:
        click.secho(f"Error: job {job_id} not found or not failed.", fg="red", err=True)
        raise SystemExit(1)


@cli.command("handlers", help="List registered job types")
def handlers_cmd():
    for name in sorted(list_handlers()):
        click.echo(name)


@cli.command("api", help="Run the HTTP API")
def api_cmd():
    from jobqueue.api.main import run

    run()


def main():
    cli()
