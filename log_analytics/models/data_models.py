"""
Data Models (DTOs - Data Transfer Objects)

This module contains the record type, result shapes and status objects
used throughout the application.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from log_analytics.errors import ParseError

# Analysis names double as output target names
TOTAL_REQUESTS = "total_requests"
STATUS_CODE_ANALYSIS = "status_code_analysis"
TOP_PAGES = "top_pages"
TRAFFIC_SOURCES = "traffic_sources"
SUSPICIOUS_IPS = "suspicious_ips"
TRAFFIC_TREND = "traffic_trend"

ANALYSIS_NAMES: Tuple[str, ...] = (
    TOTAL_REQUESTS,
    STATUS_CODE_ANALYSIS,
    TOP_PAGES,
    TRAFFIC_SOURCES,
    SUSPICIOUS_IPS,
    TRAFFIC_TREND,
)

PARTITION_DIR = "partitioned"

StatusHistogram = Dict[int, int]
RankedCounts = List[Tuple[str, int]]
AggregationResult = Union[int, StatusHistogram, RankedCounts]


@dataclass(frozen=True)
class Record:
    """Represents a single access log entry"""
    ip: str
    timestamp: str
    url: str
    status: int
    user_agent: str

    def to_line(self, delimiter: str = ",") -> str:
        """Format back to the input column layout (no line ending)"""
        return delimiter.join(
            (self.ip, self.timestamp, self.url, str(self.status), self.user_agent)
        )


Partitions = Dict[int, List[Record]]


@dataclass
class ParseSummary:
    """Outcome of parsing a whole input stream"""
    records: List[Record] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


@dataclass
class HealthStatus:
    """Health check response"""
    status: str
    log_file_exists: bool
    path: str
    size_bytes: int
    total_lines: int
    latest_timestamp: Optional[str] = None
