"""
ReportExporter Class - Writes analysis results and partitions to disk

Layout under the output directory:

    total_requests            single integer line
    status_code_analysis      status<TAB>count
    top_pages                 url<TAB>count
    traffic_sources           user_agent<TAB>count
    suspicious_ips            ip<TAB>count
    traffic_trend             minute<TAB>count
    partitioned/<status>/part-00000   raw records, header-free

Output is deterministic: same results in, same bytes out.
"""

import logging
import os
import shutil
import tempfile
from typing import Dict, List, Mapping, Optional, Set, Tuple

from log_analytics.errors import ExportError
from log_analytics.models.data_models import (
    PARTITION_DIR,
    TOTAL_REQUESTS,
    AggregationResult,
    Partitions,
)

logger = logging.getLogger(__name__)

PARTITION_FILE = "part-00000"
FILE_MODE = 0o666


def _current_umask() -> int:
    # os.umask can only be read by setting it
    mask = os.umask(0)
    os.umask(mask)
    return mask


class ReportExporter:
    """
    Writes each analysis to its own target.
    Responsibilities:
    - Format results as key<TAB>count text
    - Write each target atomically (temp file + rename)
    - Keep targets independent: one failure does not stop the others
    """

    def __init__(self, output_dir: str, delimiter: str = ","):
        self.output_dir = output_dir
        self.delimiter = delimiter

    @staticmethod
    def format_result(name: str, result: AggregationResult) -> str:
        """Render a result as newline-terminated text"""
        if name == TOTAL_REQUESTS:
            return f"{int(result)}\n"

        if isinstance(result, dict):
            rows = result.items()
        else:
            rows = result
        return "".join(f"{key}\t{count}\n" for key, count in rows)

    def export(self, results: Mapping[str, AggregationResult]) -> List[str]:
        """Write one file per named result; returns the written paths"""
        targets = [
            (name, os.path.join(self.output_dir, name), self.format_result(name, result))
            for name, result in results.items()
        ]
        return self._write_all(targets)

    def export_partitions(self, partitions: Partitions) -> List[str]:
        """
        Write raw records under partitioned/<status>/.
        Status directories left over from an earlier run are removed, so the
        tree always matches the current partitions.
        """
        failed = self._prune_partitions({str(status) for status in partitions})

        targets = []
        for status, records in partitions.items():
            name = f"{PARTITION_DIR}/{status}"
            path = os.path.join(self.output_dir, PARTITION_DIR, str(status), PARTITION_FILE)
            text = "".join(r.to_line(self.delimiter) + "\n" for r in records)
            targets.append((name, path, text))
        return self._write_all(targets, failed)

    def _prune_partitions(self, keep: Set[str]) -> Dict[str, str]:
        """Remove partition directories not in keep; returns failures by target"""
        root = os.path.join(self.output_dir, PARTITION_DIR)
        failed: Dict[str, str] = {}
        if not os.path.isdir(root):
            return failed

        for entry in sorted(os.listdir(root)):
            path = os.path.join(root, entry)
            if entry in keep or not os.path.isdir(path):
                continue
            try:
                shutil.rmtree(path)
            except OSError as exc:
                logger.error("Failed to remove stale partition %s: %s", path, exc)
                failed[f"{PARTITION_DIR}/{entry}"] = str(exc)
                continue
            logger.info("Removed stale partition %s", path)
        return failed

    def _write_all(
        self, targets: List[Tuple[str, str, str]], failed: Optional[Dict[str, str]] = None
    ) -> List[str]:
        written: List[str] = []
        failed = dict(failed or {})

        for name, path, text in targets:
            try:
                self._write_atomic(path, text)
            except OSError as exc:
                logger.error("Failed to write %s to %s: %s", name, path, exc)
                failed[name] = str(exc)
                continue
            logger.info("Wrote %s -> %s", name, path)
            written.append(path)

        if failed:
            first = next(iter(failed.values()))
            raise ExportError(failed.keys(), reason=first)
        return written

    @staticmethod
    def _write_atomic(path: str, text: str) -> None:
        """Write to a temp sibling, then rename over the target"""
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=parent, prefix=".tmp-")
        try:
            with open(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(text)
            # mkstemp creates 0600; give the file the usual umask-based mode
            os.chmod(tmp_path, FILE_MODE & ~_current_umask())
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
