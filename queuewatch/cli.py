import asyncio
import sys
import threading

import click
from rich.console import Console
from rich.live import Live
from rich.text import Text

from .api import ApiClient
from .commands import HELP, run_command
from .config import ConfigManager
from .exceptions import QueueWatchError
from .logging_utils import setup_logging
from .reconcilers import ActionDispatcher, StatsReconciler, TableReconciler
from .render import build_counters, build_dashboard, build_jobs_table
from .scheduler import PollScheduler
from .session import MonitorSession
from .version import __version__


@click.group()
@click.version_option(version=__version__)
@click.help_option('--help', '-h')
@click.option('--url', 'base_url', help='Base URL of the job service API (default: http://localhost:8080)')
@click.option('--log-level', help='Logging level (DEBUG, INFO, WARNING, ERROR)')
@click.option('--log-dir', type=click.Path(file_okay=False), help='Also write logs to DIR/queuewatch.log')
@click.pass_context
def cli(ctx, base_url, log_level, log_dir):
    """QueueWatch - live monitor and control client for a job service.

    Polls the service for jobs and queue statistics, shows them as a
    paginated, filterable table with a rolling chart, and lets an operator
    retry jobs or move them to the dead-letter queue.

    Examples:
        queuewatch watch
        queuewatch --url http://jobs.internal:8080 watch --state FAILED
        queuewatch jobs --page 2
        queuewatch retry 42
    """
    ctx.obj = ConfigManager({
        'base_url': base_url,
        'log_level': log_level,
        'log_dir': log_dir
    })


def _load_config(ctx):
    config = ctx.obj.get_config()
    setup_logging(config.log_dir, config.log_level)
    return config


def _wire(config, client):
    session = MonitorSession.from_config(config)
    table = TableReconciler(session, client)
    stats = StatsReconciler(session, client)
    dispatcher = ActionDispatcher(session, client, table, stats)
    return session, table, stats, dispatcher


def _apply_filters(session, state, job_type, q):
    session.query.set_state_filter(state)
    session.query.set_job_type_filter(job_type)
    session.query.set_text_filter(q)


def _fail(message):
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _start_stdin_reader(loop, lines: asyncio.Queue):
    def read():
        for line in sys.stdin:
            loop.call_soon_threadsafe(lines.put_nowait, line)
        loop.call_soon_threadsafe(lines.put_nowait, None)

    thread = threading.Thread(target=read, name='queuewatch-stdin', daemon=True)
    thread.start()
    return thread


async def _watch(config, interval_ms, state, job_type, q):
    console = Console()
    async with ApiClient(config.base_url) as client:
        session, table, stats, dispatcher = _wire(config, client)
        _apply_filters(session, state, job_type, q)
        scheduler = PollScheduler(session, table, stats, interval_ms or config.poll_interval_ms)

        lines = asyncio.Queue()
        _start_stdin_reader(asyncio.get_running_loop(), lines)
        stdin_open = True

        scheduler.start()
        try:
            with Live(build_dashboard(session), console=console, refresh_per_second=4) as live:
                while True:
                    line = None
                    if stdin_open:
                        try:
                            line = await asyncio.wait_for(lines.get(), timeout=0.25)
                        except asyncio.TimeoutError:
                            pass
                        else:
                            if line is None:
                                stdin_open = False
                    else:
                        await asyncio.sleep(0.25)

                    if line:
                        try:
                            if not await run_command(line, scheduler, dispatcher):
                                break
                        except QueueWatchError as e:
                            console.print(Text(str(e), style='yellow'))

                    live.update(build_dashboard(session))
        finally:
            await scheduler.stop()


@cli.command()
@click.option('--interval-ms', type=click.IntRange(min=1), help='Polling interval in milliseconds (default: 2500)')
@click.option('--state', help='Only show jobs in this state')
@click.option('--job-type', help='Only show jobs of this type')
@click.option('--q', 'text', help='Free-text filter on job id')
@click.pass_context
def watch(ctx, interval_ms, state, job_type, text):
    """Show a live dashboard of jobs and queue statistics.

    While the dashboard runs, type a command and press Enter:

    \b
        r            refresh (back to page 1)
        n / p        next / previous page
        s STATE      filter by state (no argument clears)
        t TYPE       filter by job type (no argument clears)
        f TEXT       free-text filter (no argument clears)
        retry ID     retry a job
        dlq ID       move a job to the dead-letter queue
        q            quit

    Examples:
        queuewatch watch
        queuewatch watch --interval-ms 1000 --state FAILED
    """
    try:
        config = _load_config(ctx)
        click.echo(HELP, err=True)
        asyncio.run(_watch(config, interval_ms, state, job_type, text))
    except KeyboardInterrupt:
        pass
    except QueueWatchError as e:
        _fail(e)


async def _load_jobs(config, state, job_type, q, page):
    async with ApiClient(config.base_url) as client:
        session, table, _, _ = _wire(config, client)
        _apply_filters(session, state, job_type, q)
        session.query.go_to_page(page)
        await table.refresh_jobs()
        return session


@cli.command()
@click.option('--state', help='Only show jobs in this state')
@click.option('--job-type', help='Only show jobs of this type')
@click.option('--q', 'text', help='Free-text filter on job id')
@click.option('--page', type=click.IntRange(min=1), default=1, show_default=True, help='Page to show')
@click.pass_context
def jobs(ctx, state, job_type, text, page):
    """List one page of jobs.

    Examples:
        queuewatch jobs
        queuewatch jobs --state FAILED --page 2
    """
    try:
        config = _load_config(ctx)
        session = asyncio.run(_load_jobs(config, state, job_type, text, page))
    except QueueWatchError as e:
        _fail(e)

    if 'jobs' in session.errors:
        _fail(session.errors['jobs'])
    Console().print(build_jobs_table(session))


async def _load_stats(config):
    async with ApiClient(config.base_url) as client:
        session, _, stats, _ = _wire(config, client)
        await stats.refresh_stats()
        return session


@cli.command()
@click.pass_context
def stats(ctx):
    """Show queue counters.

    Examples:
        queuewatch stats
    """
    try:
        config = _load_config(ctx)
        session = asyncio.run(_load_stats(config))
    except QueueWatchError as e:
        _fail(e)

    if 'stats' in session.errors:
        _fail(session.errors['stats'])
    Console().print(build_counters(session))


async def _act(config, job_id, action):
    async with ApiClient(config.base_url) as client:
        session, _, _, dispatcher = _wire(config, client)
        succeeded = await dispatcher.perform_action(job_id, action)
        return session, succeeded


def _run_action(ctx, job_id, action):
    try:
        config = _load_config(ctx)
        session, succeeded = asyncio.run(_act(config, job_id, action))
    except QueueWatchError as e:
        _fail(e)

    Console().print(build_jobs_table(session))
    if not succeeded:
        _fail(session.errors['action'])
    click.echo(f"Requested {action} for job {job_id}")


@cli.command()
@click.argument('job_id')
@click.pass_context
def retry(ctx, job_id):
    """Ask the service to retry a job.

    Examples:
        queuewatch retry 42
    """
    _run_action(ctx, job_id, 'retry')


@cli.command()
@click.argument('job_id')
@click.pass_context
def dlq(ctx, job_id):
    """Move a job to the dead-letter queue.

    Examples:
        queuewatch dlq 42
    """
    _run_action(ctx, job_id, 'dlq')


@cli.group()
def config():
    """Inspect configuration."""
    pass


@config.command('list')
@click.pass_context
def list_config(ctx):
    try:
        ctx.obj.get_config()
    except QueueWatchError as e:
        _fail(e)
    for key, value in sorted(ctx.obj.list_all().items()):
        click.echo(f"{key} = {value}")


if __name__ == '__main__':
    cli()
