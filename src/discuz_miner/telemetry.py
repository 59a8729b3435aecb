"""
Response and extraction telemetry for the Discuz Forums Miner.

This module implements:
- Response classification (2xx/3xx/4xx/5xx counters)
- Retry exhaustion and obstacle tracking
- Counters for rows/posts skipped during extraction
"""

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class ResponseStats:
    """
    What the fetcher saw on the wire during one run.

    Filled in by ``ResilientFetcher``; the crawl command prints
    ``get_summary()`` when it finishes.
    """
    success_2xx: int = 0
    redirect_3xx: int = 0
    client_error_4xx: int = 0
    server_error_5xx: int = 0

    # Per exact status
    status_codes: Dict[int, int] = field(default_factory=lambda: defaultdict(int))

    retries: int = 0
    retry_exhausted: int = 0
    retry_reasons: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    # Keyed by ObstacleKind value
    obstacles: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record_response(self, status_code: int):
        self.status_codes[status_code] += 1

        if 200 <= status_code < 300:
            self.success_2xx += 1
        elif 300 <= status_code < 400:
            self.redirect_3xx += 1
        elif 400 <= status_code < 500:
            self.client_error_4xx += 1
        elif 500 <= status_code < 600:
            self.server_error_5xx += 1

    def record_retry(self):
        self.retries += 1

    def record_retry_exhausted(self, reason: str):
        """A URL that still failed after the last attempt; ``reason`` is the failure detail."""
        self.retry_exhausted += 1
        self.retry_reasons[reason] += 1

    def record_obstacle(self, kind: str):
        self.obstacles[kind] += 1

    def get_summary(self) -> str:
        """Multi-line report for stderr."""
        total = self.success_2xx + self.redirect_3xx + self.client_error_4xx + self.server_error_5xx

        summary = [
            f"Responses: {total}",
            f"  2xx: {self.success_2xx}",
            f"  3xx: {self.redirect_3xx}",
            f"  4xx: {self.client_error_4xx}",
            f"  5xx: {self.server_error_5xx}",
        ]

        if self.retries > 0:
            summary.append(f"Retries: {self.retries}")

        if self.retry_exhausted > 0:
            summary.append(f"Gave up: {self.retry_exhausted}")
            for reason, count in self.retry_reasons.items():
                summary.append(f"  {reason}: {count}")

        if self.obstacles:
            summary.append("Obstacles:")
            for kind, count in self.obstacles.items():
                summary.append(f"  {kind}: {count}")

        return "\n".join(summary)


class ExtractionStats:
    """
    Counters for items the Extraction Engine dropped.

    Parsing runs in worker threads, so increments take a lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.skipped_rows = 0
        self.skipped_posts = 0
        self.field_failures: Dict[str, int] = defaultdict(int)

    def record_skipped_row(self):
        with self._lock:
            self.skipped_rows += 1

    def record_skipped_post(self):
        with self._lock:
            self.skipped_posts += 1

    def record_field_failure(self, field_name: str):
        with self._lock:
            self.field_failures[field_name] += 1

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "skipped_rows": self.skipped_rows,
                "skipped_posts": self.skipped_posts,
                "field_failures": dict(self.field_failures),
            }
