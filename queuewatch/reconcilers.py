import asyncio
import logging
from typing import Union

from .api import ApiClient
from .exceptions import QueueWatchError
from .history import render_series
from .models import JobAction
from .render import render_rows
from .session import MonitorSession

logger = logging.getLogger(__name__)


class TableReconciler:
    """Fetches one page of jobs and replaces the visible rows wholesale.

    Each call takes a new generation number. A response is only applied
    when its generation is still the latest one issued, so a slow request
    can never overwrite the result of a newer one.
    """

    target = 'jobs'

    def __init__(self, session: MonitorSession, client: ApiClient):
        self.session = session
        self.client = client
        self.generation = 0

    async def refresh_jobs(self) -> bool:
        self.generation += 1
        generation = self.generation
        query = self.session.query.snapshot()

        try:
            page = await self.client.list_jobs(query)
        except QueueWatchError as e:
            if generation == self.generation:
                logger.error(f"Failed to load jobs: {e}")
                self.session.record_error(self.target, e)
            else:
                logger.debug(f"Ignoring failure of stale jobs request #{generation}: {e}")
            return False

        if generation != self.generation:
            logger.debug(f"Discarding stale jobs response #{generation} (latest #{self.generation})")
            return False

        self.session.rows = render_rows(page.items)
        self.session.page = query.page
        self.session.total = page.total
        self.session.clear_error(self.target)
        logger.debug(f"Rendered {len(page.items)} jobs for page {query.page}")
        return True


class StatsReconciler:
    target = 'stats'

    def __init__(self, session: MonitorSession, client: ApiClient):
        self.session = session
        self.client = client
        self.generation = 0

    async def refresh_stats(self) -> bool:
        self.generation += 1
        generation = self.generation

        try:
            stats = await self.client.get_stats()
        except QueueWatchError as e:
            if generation == self.generation:
                logger.error(f"Failed to load stats: {e}")
                self.session.record_error(self.target, e)
            else:
                logger.debug(f"Ignoring failure of stale stats request #{generation}: {e}")
            return False

        if generation != self.generation:
            logger.debug(f"Discarding stale stats response #{generation} (latest #{self.generation})")
            return False

        self.session.counters = stats.counters()
        if stats.points:
            self.session.history.append(stats.points[0])
            self.session.series = render_series(self.session.history)
        self.session.clear_error(self.target)
        return True


async def refresh_all(table: TableReconciler, stats: StatsReconciler):
    """Run one combined reconciliation pass; the two halves never block each other."""
    results = await asyncio.gather(
        table.refresh_jobs(),
        stats.refresh_stats(),
        return_exceptions=True
    )
    for result in results:
        if isinstance(result, Exception):
            logger.error("Unexpected error during reconciliation", exc_info=result)
    return results


class ActionDispatcher:
    target = 'action'

    def __init__(self, session: MonitorSession, client: ApiClient,
                 table: TableReconciler, stats: StatsReconciler):
        self.session = session
        self.client = client
        self.table = table
        self.stats = stats

    async def perform_action(self, job_id: str, action: Union[JobAction, str]) -> bool:
        action = JobAction.parse(action)
        succeeded = False

        try:
            await self.client.perform(job_id, action)
            succeeded = True
            logger.info(f"Requested {action.value} for job {job_id}")
            self.session.clear_error(self.target)
        except QueueWatchError as e:
            logger.warning(f"{action.value} for job {job_id} failed: {e}")
            self.session.record_error(self.target, e)

        await refresh_all(self.table, self.stats)
        return succeeded
