"""Async HTTP client for the job service API.

Every call is a single attempt: no retry, no backoff and no timeout are
applied here. Failures surface as ``RemoteError``, ``DecodeError`` or
``NetworkError``.
"""

import json
import logging
from typing import Any, Optional, Union
from urllib.parse import quote

import httpx

from .exceptions import DecodeError, NetworkError, RemoteError
from .models import JobAction, JobPage, StatsSnapshot
from .query import QueryState

logger = logging.getLogger(__name__)


class ApiClient:
    def __init__(self, base_url: str = "http://localhost:8080",
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip('/')
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=None, transport=transport)

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def _send(self, method: str, path: str) -> httpx.Response:
        try:
            response = await self._client.request(method, path)
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e

        if not response.is_success:
            raise RemoteError(response.status_code, response.text, path)
        return response

    async def get(self, path: str) -> Any:
        response = await self._send("GET", path)
        try:
            return json.loads(response.content)
        except ValueError as e:
            raise DecodeError(f"Invalid JSON from {path}: {e}") from e

    async def post(self, path: str) -> None:
        await self._send("POST", path)
        logger.debug(f"POST {path} succeeded")

    async def list_jobs(self, query: QueryState) -> JobPage:
        data = await self.get(f"/jobs?{query.query_string()}")
        return JobPage.from_dict(data)

    async def get_stats(self) -> StatsSnapshot:
        data = await self.get("/stats")
        return StatsSnapshot.from_dict(data)

    async def perform(self, job_id: str, action: Union[JobAction, str]) -> None:
        action = JobAction.parse(action)
        await self.post(f"/jobs/{quote(job_id, safe='')}/{action.value}")

    async def retry_job(self, job_id: str) -> None:
        await self.perform(job_id, JobAction.RETRY)

    async def dlq_job(self, job_id: str) -> None:
        await self.perform(job_id, JobAction.DLQ)
