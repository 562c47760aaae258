"""
Repeated-request profiling.

`run_profile` issues requests one after another against a single endpoint and
folds each outcome into a `ProfileResults`. Only one latency sample per
successful request is kept, which is what the median needs.
"""

import logging, random, threading, time
from typing import Dict, List, Optional

from .base import DiscardSink, RequestExecutor
from .models import Endpoint, HTTPRequest, ResponseOutcome
from .quickselect import median

logger = logging.getLogger(__name__)


class ProfileResults:
    """Running statistics for one profile run."""

    def __init__(self):
        self.requests = 0
        self.failed_requests = 0
        self.fastest: Optional[float] = None
        self.slowest: Optional[float] = None
        self.mean_time = 0.0
        self.smallest_response: Optional[int] = None
        self.largest_response: Optional[int] = None
        self.status_counts: Dict[int, int] = {}
        self.request_times: List[float] = []
        self._median: Optional[float] = None
        self._median_current = False
        self._rng = random.Random()

    @property
    def samples(self) -> int:
        return len(self.request_times)

    @property
    def success_rate(self) -> float:
        """Percentage of requests that did not fail."""
        if self.requests == 0:
            return 0.0
        return 100.0 * (self.requests - self.failed_requests) / self.requests

    @property
    def median_time(self) -> Optional[float]:
        if not self._median_current:
            self._median = median(self.request_times, self._rng) if self.request_times else None
            self._median_current = True
        return self._median

    def record(self, status: int, elapsed: float, bytes_read: int):
        """Fold a completed request into the statistics."""
        self.requests += 1
        if status >= 400:
            self.failed_requests += 1

        self.request_times.append(elapsed)
        self._median_current = False
        # Online mean update
        self.mean_time += (elapsed - self.mean_time) / len(self.request_times)

        if self.fastest is None or elapsed < self.fastest:
            self.fastest = elapsed
        if self.slowest is None or elapsed > self.slowest:
            self.slowest = elapsed
        if self.smallest_response is None or bytes_read < self.smallest_response:
            self.smallest_response = bytes_read
        if self.largest_response is None or bytes_read > self.largest_response:
            self.largest_response = bytes_read

        self.status_counts[status] = self.status_counts.get(status, 0) + 1

    def record_failure(self):
        """Count a request that produced no usable response."""
        self.requests += 1
        self.failed_requests += 1

    def failed_status_counts(self) -> List[tuple]:
        return sorted((code, count) for code, count in self.status_counts.items() if code >= 400)

    def summary(self) -> Dict[str, object]:
        return {
            'requests': self.requests,
            'failed_requests': self.failed_requests,
            'success_rate': self.success_rate,
            'fastest_ms': _ms(self.fastest),
            'slowest_ms': _ms(self.slowest),
            'mean_ms': _ms(self.mean_time) if self.samples else None,
            'median_ms': _ms(self.median_time),
            'smallest_response_bytes': self.smallest_response,
            'largest_response_bytes': self.largest_response,
            'failed_status_codes': dict(self.failed_status_counts()),
        }

    def __str__(self) -> str:
        summary = self.summary()
        rows = [
            ("Requests:", f"{summary['requests']}"),
            ("Successful:", f"{summary['success_rate']:.2f}%"),
            ("Fastest request:", _fmt(summary['fastest_ms'], "ms")),
            ("Slowest request:", _fmt(summary['slowest_ms'], "ms")),
            ("Mean time:", _fmt(summary['mean_ms'], "ms")),
            ("Median time:", _fmt(summary['median_ms'], "ms")),
            ("Smallest response:", _fmt(summary['smallest_response_bytes'], "bytes")),
            ("Largest response:", _fmt(summary['largest_response_bytes'], "bytes")),
        ]
        failed = summary['failed_status_codes']
        if failed:
            rows.append(("Failed status codes:", ""))
            rows.extend((f"  {code}", f"{count}") for code, count in failed.items())

        width = max(len(label) for label, _ in rows) + 4
        return "\n".join(f"{label.ljust(width)}{value}".rstrip() for label, value in rows) + "\n"


def _ms(seconds: Optional[float]) -> Optional[float]:
    return None if seconds is None else seconds * 1000.0


def _fmt(value, unit: str) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:.2f} {unit}"
    return f"{value} {unit}"


def run_profile(repetitions: int, endpoint: Endpoint, headers: Optional[Dict[str, str]] = None,
                executor=None, stop_event: Optional[threading.Event] = None) -> ProfileResults:
    """
    Issue up to `repetitions` sequential requests and collect their statistics.

    `executor` is anything with an `execute(request, sink)` method returning a
    ResponseOutcome (a RequestExecutor by default). Setting `stop_event` ends
    the run before the next request; the results gathered so far are returned.
    """
    if repetitions < 1:
        raise ValueError(f"repetitions must be at least 1, got {repetitions}")
    executor = executor or RequestExecutor()
    results = ProfileResults()
    sink = DiscardSink()

    for i in range(repetitions):
        if stop_event is not None and stop_event.is_set():
            logger.info(f"Profile stopped after {i} of {repetitions} requests")
            break
        request = HTTPRequest(endpoint, dict(headers or {}))
        start = time.perf_counter()
        outcome: ResponseOutcome = executor.execute(request, sink)
        elapsed = time.perf_counter() - start

        if outcome.ok:
            results.record(outcome.status, elapsed, outcome.bytes_read)
        else:
            logger.debug(f"Request {i + 1}/{repetitions} to {endpoint.url} failed: {outcome.error}")
            results.record_failure()

    return results
