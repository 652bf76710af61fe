import re
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional, Tuple

from .models import HistoryPoint

DEFAULT_CAPACITY = 120

# fromisoformat before 3.11 only takes three or six fractional digits
FRACTION_RE = re.compile(r'\.(\d+)')


def parse_timestamp(value: str) -> Optional[datetime]:
    if not value:
        return None
    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    text = FRACTION_RE.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), text)
    try:
        return datetime.fromisoformat(text).astimezone()
    except ValueError:
        return None


def iso_to_label(value: str) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return value
    return parsed.strftime('%H:%M:%S')


def iso_to_display(value: str) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return value
    return parsed.strftime('%Y-%m-%d %H:%M:%S')


class HistoryBuffer:
    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._points = deque(maxlen=capacity)

    def append(self, point: HistoryPoint):
        self._points.append(point)

    def points(self) -> List[HistoryPoint]:
        return list(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[HistoryPoint]:
        return iter(list(self._points))


@dataclass(frozen=True)
class ChartSeries:
    labels: Tuple[str, ...] = ()
    values: Tuple[int, ...] = ()
    name: str = "Total jobs"


def render_series(buffer: HistoryBuffer) -> ChartSeries:
    points = buffer.points()
    return ChartSeries(
        labels=tuple(iso_to_label(p.ts) for p in points),
        values=tuple(p.total for p in points)
    )
