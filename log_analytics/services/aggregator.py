"""
Aggregator Class - Computes the log analyses

This module folds a sequence of records into the six report analyses.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from log_analytics.config import AnalysisConfig
from log_analytics.errors import AnalysisCancelled
from log_analytics.models.data_models import (
    ANALYSIS_NAMES,
    STATUS_CODE_ANALYSIS,
    SUSPICIOUS_IPS,
    TOP_PAGES,
    TOTAL_REQUESTS,
    TRAFFIC_SOURCES,
    TRAFFIC_TREND,
    AggregationResult,
    RankedCounts,
    Record,
    StatusHistogram,
)
from log_analytics.utils.helpers import minute_bucket, rank_counts

logger = logging.getLogger(__name__)

# how many records a fold processes between cancellation checks
CANCEL_CHECK_INTERVAL = 1024


class Aggregator:
    """
    Aggregates records into report analyses.
    Responsibilities:
    - Count requests overall and per status code
    - Rank pages and traffic sources
    - Flag IPs with too many failed requests
    - Bucket traffic per minute
    - Run the analyses concurrently, each one independently cancellable

    Every analysis is a pure function of the records; none mutates shared
    state, so they can run in any order or in parallel.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()

    def _iter_checked(
        self, records: Sequence[Record], name: str, cancel: Optional[threading.Event]
    ) -> Iterable[Record]:
        for i, record in enumerate(records):
            if cancel is not None and i % CANCEL_CHECK_INTERVAL == 0 and cancel.is_set():
                raise AnalysisCancelled(name)
            yield record
        self._check(name, cancel)

    @staticmethod
    def _check(name: str, cancel: Optional[threading.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise AnalysisCancelled(name)

    def total_requests(
        self, records: Sequence[Record], cancel: Optional[threading.Event] = None
    ) -> int:
        self._check(TOTAL_REQUESTS, cancel)
        return len(records)

    def status_histogram(
        self, records: Sequence[Record], cancel: Optional[threading.Event] = None
    ) -> StatusHistogram:
        """Count requests per status code (keys ascending)"""
        by_status: Dict[int, int] = {}
        for r in self._iter_checked(records, STATUS_CODE_ANALYSIS, cancel):
            by_status[r.status] = by_status.get(r.status, 0) + 1
        return dict(sorted(by_status.items()))

    def top_pages(
        self,
        records: Sequence[Record],
        cancel: Optional[threading.Event] = None,
        limit: Optional[int] = None,
    ) -> RankedCounts:
        """Most visited URLs, ties kept in first-seen order"""
        k = self.config.top_k if limit is None else limit
        if k <= 0:
            return []

        buckets: Dict[str, int] = {}
        for r in self._iter_checked(records, TOP_PAGES, cancel):
            buckets[r.url] = buckets.get(r.url, 0) + 1

        self._check(TOP_PAGES, cancel)
        return rank_counts(buckets)[:k]

    def traffic_sources(
        self, records: Sequence[Record], cancel: Optional[threading.Event] = None
    ) -> RankedCounts:
        """Full user agent ranking"""
        agents: Dict[str, int] = {}
        for r in self._iter_checked(records, TRAFFIC_SOURCES, cancel):
            agents[r.user_agent] = agents.get(r.user_agent, 0) + 1

        self._check(TRAFFIC_SOURCES, cancel)
        return rank_counts(agents)

    def suspicious_ips(
        self,
        records: Sequence[Record],
        cancel: Optional[threading.Event] = None,
        threshold: Optional[int] = None,
    ) -> RankedCounts:
        """
        IPs whose failed request count is strictly above the threshold.
        Sorted by count descending, then ip ascending.
        """
        limit = self.config.suspicious_threshold if threshold is None else threshold
        failures = self.config.failure_statuses

        by_ip: Dict[str, int] = {}
        for r in self._iter_checked(records, SUSPICIOUS_IPS, cancel):
            if r.status in failures:
                by_ip[r.ip] = by_ip.get(r.ip, 0) + 1

        flagged = [(ip, n) for ip, n in by_ip.items() if n > limit]
        self._check(SUSPICIOUS_IPS, cancel)
        flagged.sort(key=lambda kv: (-kv[1], kv[0]))
        return flagged

    def traffic_trend(
        self, records: Sequence[Record], cancel: Optional[threading.Event] = None
    ) -> RankedCounts:
        """Requests per minute, ascending by minute"""
        prefix = self.config.minute_prefix_length

        per_minute: Dict[str, int] = {}
        for r in self._iter_checked(records, TRAFFIC_TREND, cancel):
            minute = minute_bucket(r.timestamp, prefix)
            per_minute[minute] = per_minute.get(minute, 0) + 1

        return sorted(per_minute.items())

    def analyses(self) -> Dict[str, Callable[..., AggregationResult]]:
        """Analysis name -> fold, in report order"""
        return {
            TOTAL_REQUESTS: self.total_requests,
            STATUS_CODE_ANALYSIS: self.status_histogram,
            TOP_PAGES: self.top_pages,
            TRAFFIC_SOURCES: self.traffic_sources,
            SUSPICIOUS_IPS: self.suspicious_ips,
            TRAFFIC_TREND: self.traffic_trend,
        }

    def run_all(
        self,
        records: Sequence[Record],
        names: Optional[Iterable[str]] = None,
        cancel_tokens: Optional[Mapping[str, threading.Event]] = None,
        max_workers: Optional[int] = None,
    ) -> Dict[str, AggregationResult]:
        """
        Fan the selected analyses out over a thread pool and collect them.
        A cancelled analysis is left out of the result; the others still
        complete.
        """
        folds = self.analyses()
        selected: List[str] = list(ANALYSIS_NAMES) if names is None else list(dict.fromkeys(names))
        unknown = [n for n in selected if n not in folds]
        if unknown:
            raise ValueError(f"unknown analysis: {', '.join(unknown)}")

        tokens = cancel_tokens or {}
        # records are shared read-only between workers
        frozen = tuple(records)
        results: Dict[str, AggregationResult] = {}
        if not selected:
            return results

        with ThreadPoolExecutor(max_workers=max_workers or len(selected)) as executor:
            futures = {
                name: executor.submit(folds[name], frozen, tokens.get(name))
                for name in selected
            }
            for name in ANALYSIS_NAMES:
                if name not in futures:
                    continue
                try:
                    results[name] = futures[name].result()
                except AnalysisCancelled:
                    logger.info("Analysis %s cancelled", name)
                    continue
                logger.debug("Analysis %s finished", name)

        return results
