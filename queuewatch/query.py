from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode


def encode_query(params: Mapping[str, Any]) -> str:
    """Build a query string, omitting parameters with no usable value.

    A value is dropped when it is None or blank after stripping whitespace.
    Everything else is sent in its natural string form, so ``0`` and ``"0"``
    survive. Sending an empty filter must behave exactly like not filtering.
    """
    pairs = []
    for key, value in params.items():
        if value is None:
            continue
        text = str(value)
        if not text.strip():
            continue
        pairs.append((key, text))
    return urlencode(pairs)


def _normalize_filter(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class QueryState:
    limit: int = 50
    offset: int = 0
    state_filter: Optional[str] = None
    job_type_filter: Optional[str] = None
    text_filter: Optional[str] = None

    def __post_init__(self):
        if self.limit <= 0:
            raise ValueError(f"limit must be positive, got {self.limit}")
        if self.offset < 0 or self.offset % self.limit:
            raise ValueError(f"offset must be a non-negative multiple of {self.limit}, got {self.offset}")

    @property
    def page(self) -> int:
        return self.offset // self.limit + 1

    def reset(self):
        self.offset = 0

    def next_page(self):
        self.offset += self.limit

    def prev_page(self):
        self.offset = max(0, self.offset - self.limit)

    def go_to_page(self, page: int):
        self.offset = max(0, (page - 1) * self.limit)

    def set_state_filter(self, value: Optional[str]):
        self.state_filter = _normalize_filter(value)
        self.reset()

    def set_job_type_filter(self, value: Optional[str]):
        self.job_type_filter = _normalize_filter(value)
        self.reset()

    def set_text_filter(self, value: Optional[str]):
        self.text_filter = _normalize_filter(value)
        self.reset()

    def to_params(self) -> Dict[str, Any]:
        return {
            'limit': self.limit,
            'offset': self.offset,
            'state': self.state_filter,
            'jobType': self.job_type_filter,
            'q': self.text_filter
        }

    def query_string(self) -> str:
        return encode_query(self.to_params())

    def snapshot(self) -> "QueryState":
        return QueryState(
            limit=self.limit,
            offset=self.offset,
            state_filter=self.state_filter,
            job_type_filter=self.job_type_filter,
            text_filter=self.text_filter
        )
