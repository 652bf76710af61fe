"""Declarative renderers.

``render_rows`` turns job records into a target-neutral row set. The
``build_*`` helpers turn a session into rich renderables for the terminal.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Sequence, Tuple

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .history import ChartSeries, iso_to_display
from .models import JobAction, JobRecord

if TYPE_CHECKING:
    from .session import MonitorSession

COLUMNS = ('Job ID', 'Type', 'State', 'Retries', 'Created', 'Updated')

STATE_STYLES = {
    'failed': 'red',
    'dead_letter': 'magenta',
    'dlq': 'magenta',
    'dead': 'magenta',
    'succeeded': 'green',
    'completed': 'green',
    'running': 'cyan',
    'in_progress': 'cyan',
    'retrying': 'yellow',
}

SPARK_BLOCKS = '▁▂▃▄▅▆▇█'


@dataclass(frozen=True)
class ActionTrigger:
    action: JobAction
    job_id: str


@dataclass(frozen=True)
class RenderedRow:
    job_id: str
    cells: Tuple[str, ...]
    actions: Tuple[ActionTrigger, ...]


@dataclass(frozen=True)
class RenderedRowSet:
    rows: Tuple[RenderedRow, ...] = ()

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    def job_ids(self) -> Tuple[str, ...]:
        return tuple(row.job_id for row in self.rows)


def render_row(job: JobRecord) -> RenderedRow:
    return RenderedRow(
        job_id=job.job_id,
        cells=(
            job.job_id,
            job.job_type,
            job.state,
            f"{job.retry_count}/{job.max_retries}",
            iso_to_display(job.created_at),
            iso_to_display(job.updated_at)
        ),
        actions=tuple(ActionTrigger(action, job.job_id) for action in JobAction)
    )


def render_rows(jobs: Iterable[JobRecord]) -> RenderedRowSet:
    return RenderedRowSet(rows=tuple(render_row(job) for job in jobs))


def sparkline(values: Sequence[int], width: int = 60) -> str:
    values = list(values)[-width:]
    if not values:
        return ''
    # y axis starts at zero
    top = max(max(values), 1)
    steps = len(SPARK_BLOCKS) - 1
    return ''.join(SPARK_BLOCKS[round(max(v, 0) / top * steps)] for v in values)


def build_jobs_table(session: "MonitorSession") -> Table:
    title = f"Jobs - page {session.page}"
    if session.total is not None:
        title += f" ({session.total} matching)"

    table = Table(title=title, expand=True)
    for column in COLUMNS:
        if column == 'Job ID':
            table.add_column(column, no_wrap=True, min_width=8)
        elif column in ('Created', 'Updated'):
            # dates give way first on narrow terminals
            table.add_column(column)
        else:
            table.add_column(column, no_wrap=True)
    table.add_column('Actions', no_wrap=True)

    for row in session.rows:
        cells = [Text(cell) for cell in row.cells]
        style = STATE_STYLES.get(row.cells[2].lower())
        if style:
            cells[2].stylize(style)
        actions = Text(' '.join(t.action.value for t in row.actions), style='dim')
        table.add_row(*cells, actions)

    if not session.rows:
        table.caption = "No jobs found"
    return table


def build_counters(session: "MonitorSession") -> Table:
    counters = Table.grid(expand=True, padding=(0, 2))
    labels = (('Total', 'total'), ('Pending', 'pending'), ('Failed', 'failed'), ('DLQ', 'dlq'))
    for _ in labels:
        counters.add_column(justify='center')
    counters.add_row(*(f"[bold]{label}[/bold]" for label, _ in labels))
    counters.add_row(*(str(session.counters.get(key, 0)) for _, key in labels))
    return counters


def build_chart(series: ChartSeries, width: int = 60) -> Panel:
    if not series.values:
        return Panel(Text("Waiting for data...", style='dim'), title=series.name)

    shown = series.labels[-width:]
    body = Text(sparkline(series.values, width), style='cyan')
    body.append(f"\n{shown[0]} .. {shown[-1]}  latest={series.values[-1]}", style='dim')
    return Panel(body, title=series.name)


def build_dashboard(session: "MonitorSession") -> Group:
    parts = [
        Panel(build_counters(session), title='Queue'),
        build_chart(session.series),
        build_jobs_table(session)
    ]

    query = session.query
    filters = ', '.join(
        f"{name}={value}" for name, value in (
            ('state', query.state_filter),
            ('jobType', query.job_type_filter),
            ('q', query.text_filter)
        ) if value
    )
    parts.append(Text(f"Filters: {filters or 'none'}", style='dim'))

    for target, error in sorted(session.errors.items()):
        parts.append(Text(f"{target}: {error}", style='red'))

    return Group(*parts)
