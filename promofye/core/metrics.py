"""
Process-local counters for the /metrics endpoint.

Series are keyed by their label values and rendered in Prometheus text
format. Values reset when the process restarts (and between tests).
"""

from __future__ import annotations

import re
import threading
from typing import Dict, List, Optional, Sequence, Tuple

LabelValues = Tuple[str, ...]


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace("\"", "\\\"")


class Counter:
    """Monotonic counter with a fixed label set."""

    def __init__(self, name: str, help_text: str, label_names: Sequence[str] = ()):
        self.name = name
        self.help_text = help_text
        self.label_names = tuple(label_names)
        self._series: Dict[LabelValues, float] = {}
        self._lock = threading.Lock()

    def _key(self, labels: Optional[Dict[str, str]]) -> LabelValues:
        labels = labels or {}
        unknown = set(labels) - set(self.label_names)
        if unknown:
            raise ValueError(f"{self.name} has no label(s): {', '.join(sorted(unknown))}")
        return tuple(str(labels.get(name, "")) for name in self.label_names)

    def inc(self, labels: Optional[Dict[str, str]] = None, amount: float = 1.0) -> None:
        if amount < 0:
            raise ValueError("counters only go up")
        key = self._key(labels)
        with self._lock:
            self._series[key] = self._series.get(key, 0.0) + float(amount)

    def value(self, labels: Optional[Dict[str, str]] = None) -> float:
        key = self._key(labels)
        with self._lock:
            return self._series.get(key, 0.0)

    def render(self) -> List[str]:
        lines = [f"# HELP {self.name} {self.help_text}", f"# TYPE {self.name} counter"]
        with self._lock:
            series = sorted(self._series.items())
        for values, total in series:
            if self.label_names:
                pairs = ",".join(f'{name}="{_escape(v)}"' for name, v in zip(self.label_names, values))
                lines.append(f"{self.name}{{{pairs}}} {total}")
            else:
                lines.append(f"{self.name} {total}")
        return lines

    def reset(self) -> None:
        with self._lock:
            self._series.clear()


class MetricsRegistry:
    def __init__(self):
        self._counters: Dict[str, Counter] = {}
        self._lock = threading.Lock()

    def counter(self, name: str, help_text: str, label_names: Sequence[str] = ()) -> Counter:
        with self._lock:
            existing = self._counters.get(name)
            if existing is None:
                existing = self._counters[name] = Counter(name, help_text, label_names)
            return existing

    def export_prometheus(self) -> str:
        lines: List[str] = []
        for name in sorted(self._counters):
            lines.extend(self._counters[name].render())
        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        for counter in self._counters.values():
            counter.reset()


METRICS = MetricsRegistry()

http_requests_total = METRICS.counter(
    "http_requests_total", "HTTP requests by method, route and status", ["method", "path", "status"]
)
generations_total = METRICS.counter(
    "generations_total", "Image model calls by action and outcome (success, error, empty)", ["action", "outcome"]
)
usage_limit_block_total = METRICS.counter(
    "usage_limit_block_total", "Generations refused because the monthly allowance is used up", ["action"]
)
usage_log_failures_total = METRICS.counter(
    "usage_log_failures_total", "Successful generations whose usage row could not be written", ["action"]
)


_ID_SEGMENT = re.compile(r"^(\d+|[0-9a-fA-F]{8}-[0-9a-fA-F-]{27,})$")


def normalize_path(path: str) -> str:
    """Collapse numeric and UUID path segments to :id so history and admin routes share a series."""
    segments = [":id" if _ID_SEGMENT.match(s) else s for s in path.split("/") if s]
    return "/" + "/".join(segments)
