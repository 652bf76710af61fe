from typing import Dict, Optional

from .exceptions import QueueWatchError
from .history import ChartSeries, HistoryBuffer
from .models import Config
from .query import QueryState
from .render import RenderedRowSet


class MonitorSession:
    """Everything one monitoring session owns.

    Holds the query and history state together with what is currently on
    screen. Reconcilers only write to the session they were given.
    """

    def __init__(self, page_limit: int = 50, history_size: int = 120):
        self.query = QueryState(limit=page_limit)
        self.history = HistoryBuffer(history_size)
        self.rows = RenderedRowSet()
        self.page = 1
        self.total: Optional[int] = None
        self.counters: Dict[str, int] = {'total': 0, 'pending': 0, 'failed': 0, 'dlq': 0}
        self.series = ChartSeries()
        self.errors: Dict[str, QueueWatchError] = {}

    @classmethod
    def from_config(cls, config: Config) -> "MonitorSession":
        return cls(page_limit=config.page_limit, history_size=config.history_size)

    def record_error(self, target: str, error: QueueWatchError):
        self.errors[target] = error

    def clear_error(self, target: str):
        self.errors.pop(target, None)
