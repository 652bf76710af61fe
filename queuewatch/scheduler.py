import asyncio
import logging
from typing import Optional, Set, Union

from .models import JobAction
from .reconcilers import ActionDispatcher, StatsReconciler, TableReconciler, refresh_all
from .session import MonitorSession

logger = logging.getLogger(__name__)


class PollScheduler:
    """Drives combined reconciliation passes on a timer and on demand.

    ``start`` runs an initial pass and then one every ``interval_ms`` until
    ``stop`` is called. User triggers adjust the query and schedule an
    immediate pass without waiting for the timer.
    """

    def __init__(self, session: MonitorSession, table: TableReconciler,
                 stats: StatsReconciler, interval_ms: int = 2500):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self.session = session
        self.table = table
        self.stats = stats
        self.interval_ms = interval_ms
        self.ticks = 0
        self._timer: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start(self) -> asyncio.Task:
        if self.running:
            return self._timer
        logger.info(f"Polling every {self.interval_ms}ms")
        self._timer = asyncio.get_running_loop().create_task(self._run())
        return self._timer

    async def _run(self):
        # a tick never waits for the previous one, so a hung request
        # cannot hold back later polls
        while True:
            self.ticks += 1
            self.trigger()
            await asyncio.sleep(self.interval_ms / 1000)

    async def refresh_all(self):
        await refresh_all(self.table, self.stats)

    def _track(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task):
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Reconciliation task failed", exc_info=task.exception())

    def trigger(self) -> asyncio.Task:
        return self._track(self.refresh_all())

    def dispatch(self, dispatcher: ActionDispatcher, job_id: str,
                 action: Union[JobAction, str]) -> asyncio.Task:
        action = JobAction.parse(action)
        return self._track(dispatcher.perform_action(job_id, action))

    def refresh(self) -> asyncio.Task:
        self.session.query.reset()
        return self.trigger()

    def next_page(self) -> asyncio.Task:
        self.session.query.next_page()
        return self.trigger()

    def prev_page(self) -> asyncio.Task:
        self.session.query.prev_page()
        return self.trigger()

    def set_state_filter(self, value: Optional[str]) -> asyncio.Task:
        self.session.query.set_state_filter(value)
        return self.trigger()

    def set_job_type_filter(self, value: Optional[str]) -> asyncio.Task:
        self.session.query.set_job_type_filter(value)
        return self.trigger()

    def set_text_filter(self, value: Optional[str]) -> asyncio.Task:
        self.session.query.set_text_filter(value)
        return self.trigger()

    async def stop(self):
        tasks = list(self._pending)
        if self._timer is not None:
            tasks.append(self._timer)
            self._timer = None

        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()

        if tasks:
            logger.info("Polling stopped")
