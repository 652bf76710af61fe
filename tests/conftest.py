import asyncio

import pytest

from queuewatch.models import HistoryPoint, JobPage, JobRecord, StatsSnapshot
from queuewatch.session import MonitorSession


def make_job(job_id, state='queued', job_type='email', retry_count=0, max_retries=3):
    return JobRecord(
        job_id=job_id,
        job_type=job_type,
        state=state,
        retry_count=retry_count,
        max_retries=max_retries,
        created_at='2024-05-01T10:00:00Z',
        updated_at='2024-05-01T10:05:00Z'
    )


def make_page(*job_ids, total=None):
    return JobPage(items=tuple(make_job(job_id) for job_id in job_ids), total=total)


def make_stats(total=10, pending=3, failed=2, dlq=1, ts='2024-05-01T10:00:00Z'):
    points = (HistoryPoint(ts=ts, total=total),) if ts else ()
    return StatsSnapshot(total=total, pending=pending, failed=failed, dlq=dlq, points=points)


class Gated:
    """A response that is only delivered once its gate is opened."""

    def __init__(self, gate: asyncio.Event, response):
        self.gate = gate
        self.response = response


class FakeApiClient:
    def __init__(self):
        self.job_responses = [make_page()]
        self.stats_responses = [make_stats()]
        self.action_responses = [None]
        self.calls = []

    async def _next(self, responses):
        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(response, Gated):
            await response.gate.wait()
            response = response.response
        if isinstance(response, Exception):
            raise response
        return response

    async def list_jobs(self, query):
        self.calls.append(f"GET /jobs?{query.query_string()}")
        return await self._next(self.job_responses)

    async def get_stats(self):
        self.calls.append("GET /stats")
        return await self._next(self.stats_responses)

    async def perform(self, job_id, action):
        self.calls.append(f"POST /jobs/{job_id}/{action.value}")
        return await self._next(self.action_responses)

    def count(self, prefix):
        return sum(1 for call in self.calls if call.startswith(prefix))


@pytest.fixture
def session():
    return MonitorSession()


@pytest.fixture
def client():
    return FakeApiClient()
