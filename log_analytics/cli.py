import argparse
import logging
import sys

from log_analytics import config as settings
from log_analytics.config import AnalysisConfig, load_config
from log_analytics.errors import ExportError, InputUnavailableError, ParseError
from log_analytics.models.data_models import ANALYSIS_NAMES
from log_analytics.services.pipeline import run_batch
from log_analytics.services.storage import LogStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INPUT_UNAVAILABLE = 1
EXIT_PARSE_ERROR = 2
EXIT_EXPORT_FAILED = 3


# ---------------- CLI ----------------

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Batch analytics over delimited web server access logs"
    )
    try:
        # environment (LOG_DELIMITER, TOP_K, ...) seeds the defaults; flags win
        base = load_config()
    except ValueError as exc:
        parser.error(f"invalid environment configuration: {exc}")

    parser.add_argument("input", help="Log file (ip,timestamp,url,status,user_agent)")
    parser.add_argument("--output-dir", default=settings.OUTPUT_DIR)
    parser.add_argument("--delimiter", default=base.delimiter)
    parser.add_argument("--top-k", type=int, default=base.top_k)
    parser.add_argument(
        "--failure-status",
        type=int,
        action="append",
        dest="failure_statuses",
        help="Status counted as a failure (repeatable, default: FAILURE_STATUSES or 404 and 500)",
    )
    parser.add_argument("--threshold", type=int, default=base.suspicious_threshold,
                        help="Flag IPs with strictly more failures than this")
    parser.add_argument("--minute-prefix-length", type=int, default=base.minute_prefix_length)
    parser.add_argument("--no-header", action="store_true", default=not base.skip_header,
                        help="Never treat the first line as a header")
    parser.add_argument("--strict", action="store_true",
                        help="Abort on the first malformed line")
    parser.add_argument("--only", action="append", choices=ANALYSIS_NAMES,
                        help="Run only this analysis (repeatable)")
    parser.add_argument("--no-partitions", action="store_true",
                        help="Skip the partitioned/<status>/ output")
    parser.add_argument("--verbose", "-v", action="store_true")

    args = parser.parse_args(argv)
    if args.failure_statuses is None:
        args.failure_statuses = sorted(base.failure_statuses)
    return args


def build_config(args) -> AnalysisConfig:
    return AnalysisConfig(
        delimiter=args.delimiter,
        top_k=args.top_k,
        failure_statuses=args.failure_statuses,
        suspicious_threshold=args.threshold,
        minute_prefix_length=args.minute_prefix_length,
        skip_header=not args.no_header,
    )


# ---------------- Main ----------------

def main(argv=None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    try:
        config = build_config(args)
    except ValueError as exc:
        logger.error("Invalid option: %s", exc)
        return EXIT_PARSE_ERROR

    try:
        batch = run_batch(
            LogStore(args.input),
            args.output_dir,
            config=config,
            strict=args.strict,
            names=args.only,
            write_partitions=not args.no_partitions,
        )
    except InputUnavailableError as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_UNAVAILABLE
    except ParseError as exc:
        logger.error("Malformed input, aborting: %s", exc)
        return EXIT_PARSE_ERROR
    except ExportError as exc:
        logger.error("%s", exc)
        return EXIT_EXPORT_FAILED

    print(
        f"{len(batch.summary.records)} records, "
        f"{batch.summary.error_count} malformed lines skipped, "
        f"{len(batch.written)} targets written to {args.output_dir}"
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
