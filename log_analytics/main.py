from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from log_analytics import config as settings
from log_analytics.config import AnalysisConfig, load_config
from log_analytics.errors import ExportError, InputUnavailableError
from log_analytics.models.data_models import (
    STATUS_CODE_ANALYSIS,
    SUSPICIOUS_IPS,
    TOP_PAGES,
    TOTAL_REQUESTS,
    TRAFFIC_SOURCES,
    TRAFFIC_TREND,
    ParseSummary,
)
from log_analytics.services.aggregator import Aggregator
from log_analytics.services.parser import LogParser
from log_analytics.services.partitioner import partition_by_status
from log_analytics.services.pipeline import load_records, run_batch
from log_analytics.services.storage import LogStore
from log_analytics.utils.helpers import parse_ts

logger = logging.getLogger(__name__)

API_PREFIX = "/api"

# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────


def get_store() -> LogStore:
    return LogStore(settings.LOG_FILE_PATH)


def get_config() -> AnalysisConfig:
    try:
        return load_config()
    except ValueError as exc:
        raise HTTPException(status_code=500, detail=f"Invalid configuration: {exc}")


def load_summary(config: AnalysisConfig) -> ParseSummary:
    """Parse the stored log (malformed lines skipped); 404 when there is none"""
    try:
        return load_records(get_store(), config)
    except InputUnavailableError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


def ranked(rows: List, key_name: str) -> List[Dict[str, Any]]:
    return [{key_name: k, "count": n} for k, n in rows]


def get_latest_timestamp(summary: ParseSummary) -> Optional[str]:
    """Latest parseable record timestamp, ISO-8601"""
    latest = None
    for r in summary.records:
        ts = parse_ts(r.timestamp)
        if ts is not None and (latest is None or ts > latest):
            latest = ts
    return latest.isoformat() if latest else None


# ──────────────────────────────────────────────────────────────────────────────
# App
# ──────────────────────────────────────────────────────────────────────────────

app = FastAPI(title="Log Analytics (Access Log CSV → Reports)")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # dev OK; lock down in prod
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ──────────────────────────────────────────────────────────────────────────────
# Upload
# ──────────────────────────────────────────────────────────────────────────────


@app.post(f"{API_PREFIX}/upload-log")
async def upload_log_file(file: UploadFile = File(...)) -> Dict[str, Any]:
    """Accepts a delimited access log (ip,timestamp,url,status,user_agent). Overwrites."""
    content = await file.read()
    store = get_store()
    try:
        meta = store.save_upload(content)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return {"status": "ok", "path": store.stat().path, **meta}


# ──────────────────────────────────────────────────────────────────────────────
# Health
# ──────────────────────────────────────────────────────────────────────────────


@app.get(f"{API_PREFIX}/health")
def health() -> Dict[str, Any]:
    store = get_store()
    latest = None
    if store.exists():
        try:
            latest = get_latest_timestamp(load_records(store, get_config()))
        except InputUnavailableError:
            latest = None

    st = store.stat(latest_timestamp=latest)
    return {
        "status": st.status,
        "log_file": {
            "exists": st.log_file_exists,
            "path": st.path,
            "size_bytes": st.size_bytes,
            "total_lines": st.total_lines,
        },
        "latest_timestamp": st.latest_timestamp,
    }


# ──────────────────────────────────────────────────────────────────────────────
# Reports
# ──────────────────────────────────────────────────────────────────────────────


@app.get(f"{API_PREFIX}/report")
def report() -> Dict[str, Any]:
    config = get_config()
    summary = load_summary(config)
    results = Aggregator(config).run_all(summary.records)

    return {
        "report": {
            TOTAL_REQUESTS: results[TOTAL_REQUESTS],
            STATUS_CODE_ANALYSIS: {str(k): v for k, v in results[STATUS_CODE_ANALYSIS].items()},
            TOP_PAGES: ranked(results[TOP_PAGES], "url"),
            TRAFFIC_SOURCES: ranked(results[TRAFFIC_SOURCES], "user_agent"),
            SUSPICIOUS_IPS: ranked(results[SUSPICIOUS_IPS], "ip"),
            TRAFFIC_TREND: ranked(results[TRAFFIC_TREND], "minute"),
        },
        "malformed_lines": summary.error_count,
    }


@app.get(f"{API_PREFIX}/top-pages")
def top_pages(limit: Optional[int] = Query(None, ge=0, le=1000)) -> Dict[str, Any]:
    config = get_config()
    summary = load_summary(config)
    rows = Aggregator(config).top_pages(summary.records, limit=limit)
    return {TOP_PAGES: ranked(rows, "url")}


@app.get(f"{API_PREFIX}/suspicious-ips")
def suspicious_ips(threshold: Optional[int] = Query(None, ge=0)) -> Dict[str, Any]:
    config = get_config()
    summary = load_summary(config)
    rows = Aggregator(config).suspicious_ips(summary.records, threshold=threshold)
    return {
        "threshold": config.suspicious_threshold if threshold is None else threshold,
        "failure_statuses": sorted(config.failure_statuses),
        SUSPICIOUS_IPS: ranked(rows, "ip"),
    }


@app.get(f"{API_PREFIX}/traffic-trend")
def traffic_trend() -> Dict[str, Any]:
    config = get_config()
    summary = load_summary(config)
    rows = Aggregator(config).traffic_trend(summary.records)
    return {TRAFFIC_TREND: ranked(rows, "minute")}


@app.get(f"{API_PREFIX}/partitions")
def partitions() -> Dict[str, Any]:
    config = get_config()
    summary = load_summary(config)
    groups = partition_by_status(summary.records)
    return {"partitions": {str(status): len(records) for status, records in groups.items()}}


# ──────────────────────────────────────────────────────────────────────────────
# Malformed lines
# ──────────────────────────────────────────────────────────────────────────────


@app.get(f"{API_PREFIX}/errors")
def errors(limit: int = Query(20, ge=1, le=200)) -> Dict[str, Any]:
    config = get_config()
    parser = LogParser(delimiter=config.delimiter, skip_header=config.skip_header)

    out: List[Dict[str, Any]] = []
    try:
        for exc in parser.collect(get_store().read_lines()).errors[:limit]:
            out.append(
                {
                    "line_no": exc.line_no,
                    "error_type": type(exc).__name__,
                    "error_message": exc.message,
                    "line": exc.line,
                }
            )
    except InputUnavailableError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    return {"errors": out}


# ──────────────────────────────────────────────────────────────────────────────
# Batch export
# ──────────────────────────────────────────────────────────────────────────────


@app.post(f"{API_PREFIX}/export")
def export(partitioned: bool = Query(True)) -> Dict[str, Any]:
    config = get_config()
    try:
        batch = run_batch(
            get_store(), settings.OUTPUT_DIR, config=config, write_partitions=partitioned
        )
    except InputUnavailableError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ExportError as exc:
        logger.error("Export failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))

    return {
        "status": "ok",
        "records": len(batch.summary.records),
        "malformed_lines": batch.summary.error_count,
        "written": batch.written,
    }
