"""
Configuration

Analysis options plus environment-driven settings for the API and CLI.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional

LOG_FILE_PATH = os.getenv("LOG_FILE", "./data/access_logs.csv")
OUTPUT_DIR = os.getenv("OUTPUT_DIR", "./output")

DEFAULT_FAILURE_STATUSES: FrozenSet[int] = frozenset({404, 500})


@dataclass(frozen=True)
class AnalysisConfig:
    """Options shared by the parser, aggregator and exporter"""
    delimiter: str = ","
    top_k: int = 3
    failure_statuses: FrozenSet[int] = field(default=DEFAULT_FAILURE_STATUSES)
    suspicious_threshold: int = 3
    minute_prefix_length: int = 16
    skip_header: bool = True

    def __post_init__(self) -> None:
        if not self.delimiter:
            raise ValueError("delimiter must not be empty")
        if self.top_k < 0:
            raise ValueError("top_k must be >= 0")
        if self.suspicious_threshold < 0:
            raise ValueError("suspicious_threshold must be >= 0")
        if self.minute_prefix_length <= 0:
            raise ValueError("minute_prefix_length must be > 0")
        # accept any iterable of codes, store an immutable set
        object.__setattr__(self, "failure_statuses", frozenset(int(s) for s in self.failure_statuses))


def _env_bool(value: str) -> bool:
    s = value.strip().lower()
    if s in ("true", "1", "yes"):
        return True
    if s in ("false", "0", "no"):
        return False
    raise ValueError(f"invalid boolean {value!r}")


def load_config(environ: Optional[Mapping[str, str]] = None) -> AnalysisConfig:
    """Build an AnalysisConfig from environment variables (unset -> default)"""
    env = os.environ if environ is None else environ
    kwargs = {}

    if env.get("LOG_DELIMITER"):
        kwargs["delimiter"] = env["LOG_DELIMITER"]
    if env.get("TOP_K"):
        kwargs["top_k"] = int(env["TOP_K"])
    if env.get("FAILURE_STATUSES"):
        kwargs["failure_statuses"] = frozenset(
            int(s) for s in env["FAILURE_STATUSES"].split(",") if s.strip()
        )
    if env.get("SUSPICIOUS_THRESHOLD"):
        kwargs["suspicious_threshold"] = int(env["SUSPICIOUS_THRESHOLD"])
    if env.get("MINUTE_PREFIX_LENGTH"):
        kwargs["minute_prefix_length"] = int(env["MINUTE_PREFIX_LENGTH"])
    if env.get("SKIP_HEADER"):
        kwargs["skip_header"] = _env_bool(env["SKIP_HEADER"])

    return AnalysisConfig(**kwargs)
