import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .exceptions import DecodeError, InvalidActionError

logger = logging.getLogger(__name__)


class JobAction(Enum):
    RETRY = "retry"
    DLQ = "dlq"

    @classmethod
    def parse(cls, value) -> "JobAction":
        try:
            return cls(value)
        except ValueError:
            choices = ', '.join(a.value for a in cls)
            raise InvalidActionError(f"Unknown action '{value}' (expected one of: {choices})")


def _as_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise DecodeError(f"Expected an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise DecodeError(f"Expected an integer, got {value!r}")


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


@dataclass(frozen=True)
class JobRecord:
    job_id: str
    job_type: str
    state: str
    retry_count: int
    max_retries: int
    created_at: str
    updated_at: str
    last_error: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobRecord":
        if not isinstance(data, dict):
            raise DecodeError(f"Job record must be a JSON object, got {type(data).__name__}")
        if data.get('jobId') is None:
            raise DecodeError("Job record is missing 'jobId'")

        return cls(
            job_id=_as_str(data['jobId']),
            job_type=_as_str(data.get('jobType')),
            state=_as_str(data.get('state')),
            retry_count=_as_int(data.get('retryCount')),
            max_retries=_as_int(data.get('maxRetries')),
            created_at=_as_str(data.get('createdAt')),
            updated_at=_as_str(data.get('updatedAt')),
            last_error=_as_str(data.get('lastError'))
        )


def _decode_rows(items):
    for item in items:
        try:
            yield JobRecord.from_dict(item)
        except DecodeError as e:
            logger.warning(f"Skipping malformed job row: {e}")


@dataclass(frozen=True)
class JobPage:
    items: Tuple[JobRecord, ...]
    total: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "JobPage":
        if not isinstance(data, dict):
            raise DecodeError("Job page must be a JSON object")

        items = data.get('items')
        if items is None:
            items = []
        if not isinstance(items, list):
            raise DecodeError("Job page 'items' must be a list")

        total = data.get('total')
        return cls(
            items=tuple(_decode_rows(items)),
            total=_as_int(total) if total is not None else None
        )


@dataclass(frozen=True)
class HistoryPoint:
    ts: str
    total: int

    @classmethod
    def from_dict(cls, data: Any) -> "HistoryPoint":
        if not isinstance(data, dict):
            raise DecodeError("Stats point must be a JSON object")
        return cls(ts=_as_str(data.get('ts')), total=_as_int(data.get('total')))


@dataclass(frozen=True)
class StatsSnapshot:
    total: int = 0
    pending: int = 0
    failed: int = 0
    dlq: int = 0
    points: Tuple[HistoryPoint, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "StatsSnapshot":
        if not isinstance(data, dict):
            raise DecodeError("Stats must be a JSON object")

        # only the most recent point is consumed
        points = data.get('points')
        if not isinstance(points, list):
            points = []

        return cls(
            total=_as_int(data.get('total')),
            pending=_as_int(data.get('pending')),
            failed=_as_int(data.get('failed')),
            dlq=_as_int(data.get('dlq')),
            points=tuple(HistoryPoint.from_dict(p) for p in points[:1])
        )

    def counters(self) -> Dict[str, int]:
        return {
            'total': self.total,
            'pending': self.pending,
            'failed': self.failed,
            'dlq': self.dlq
        }


@dataclass
class Config:
    base_url: str = "http://localhost:8080"
    poll_interval_ms: int = 2500
    page_limit: int = 50
    history_size: int = 120
    log_level: str = "INFO"
    log_dir: Optional[str] = None
