"""
Batch pipeline: read -> parse -> aggregate -> export.

Shared by the CLI and the HTTP API.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from log_analytics.config import AnalysisConfig
from log_analytics.errors import ExportError
from log_analytics.models.data_models import AggregationResult, ParseSummary
from log_analytics.services.aggregator import Aggregator
from log_analytics.services.exporter import ReportExporter
from log_analytics.services.parser import LogParser
from log_analytics.services.partitioner import partition_by_status
from log_analytics.services.storage import LogStore

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    summary: ParseSummary
    results: Dict[str, AggregationResult]
    written: List[str] = field(default_factory=list)


def load_records(store: LogStore, config: AnalysisConfig, strict: bool = False) -> ParseSummary:
    parser = LogParser(delimiter=config.delimiter, skip_header=config.skip_header)
    return parser.collect(store.read_lines(), strict=strict)


def run_batch(
    store: LogStore,
    output_dir: str,
    config: Optional[AnalysisConfig] = None,
    strict: bool = False,
    names: Optional[Iterable[str]] = None,
    write_partitions: bool = True,
) -> BatchResult:
    """
    Run the full batch job.
    Raises InputUnavailableError, ParseError (strict only) or ExportError.
    """
    config = config or AnalysisConfig()
    summary = load_records(store, config, strict=strict)
    results = Aggregator(config).run_all(summary.records, names=names)

    exporter = ReportExporter(output_dir, delimiter=config.delimiter)
    written: List[str] = []
    failures: List[ExportError] = []

    # analysis targets and partitions are independent; attempt both
    jobs = [lambda: exporter.export(results)]
    if write_partitions:
        jobs.append(lambda: exporter.export_partitions(partition_by_status(summary.records)))
    for job in jobs:
        try:
            written.extend(job())
        except ExportError as exc:
            failures.append(exc)

    if failures:
        targets = [t for exc in failures for t in exc.targets]
        raise ExportError(targets, reason=failures[0].reason)

    logger.info("Batch finished: %d records, %d targets written", len(summary.records), len(written))
    return BatchResult(summary=summary, results=results, written=written)
