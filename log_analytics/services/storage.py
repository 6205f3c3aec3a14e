"""
LogStore Class - Handles file I/O operations

This module manages the input log file: saving uploads, reading lines and
reporting file statistics.
"""

import codecs
import os
from typing import Any, Dict, Iterator, Optional

from log_analytics.errors import InputUnavailableError
from log_analytics.models.data_models import HealthStatus


class LogStore:
    """
    Manages log file storage and retrieval.
    Responsibilities:
    - Save uploaded log files
    - Read log file lines
    - Provide file statistics
    """

    def __init__(self, file_path: str):
        self.file_path = file_path

    def save_upload(self, content: bytes) -> Dict[str, Any]:
        """
        Save uploaded CSV log content (overwrites).
        Returns metadata about saved file
        """
        if not content:
            raise ValueError("Empty file content")

        if content.startswith(codecs.BOM_UTF8):
            content = content[len(codecs.BOM_UTF8):]
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError(f"Upload is not valid UTF-8: {exc}") from exc
        if not text.strip():
            raise ValueError("Empty file after decoding")

        self._ensure_parent_dir()
        with open(self.file_path, "w", encoding="utf-8", newline="\n") as f:
            f.write(text if text.endswith("\n") else text + "\n")

        line_count = sum(1 for ln in text.splitlines() if ln.strip())
        return {"mode": "csv", "written": line_count}

    def read_lines(self) -> Iterator[str]:
        """Iterator over raw lines in log file (line endings kept)"""
        try:
            with open(self.file_path, "r", encoding="utf-8-sig", newline="") as f:
                for line in f:
                    yield line
        except OSError as exc:
            raise InputUnavailableError(self.file_path, exc.strerror or str(exc)) from exc
        except UnicodeDecodeError as exc:
            raise InputUnavailableError(self.file_path, "not valid UTF-8") from exc

    def exists(self) -> bool:
        return os.path.isfile(self.file_path)

    def stat(self, latest_timestamp: Optional[str] = None) -> HealthStatus:
        """Get file statistics"""
        exists = self.exists()
        size_bytes = os.path.getsize(self.file_path) if exists else 0
        total_lines = 0

        if exists:
            try:
                total_lines = sum(1 for ln in self.read_lines() if ln.strip())
            except InputUnavailableError:
                total_lines = 0

        return HealthStatus(
            status="ok",
            log_file_exists=exists,
            path=os.path.abspath(self.file_path),
            size_bytes=size_bytes,
            total_lines=total_lines,
            latest_timestamp=latest_timestamp,
        )

    def _ensure_parent_dir(self) -> None:
        """Create parent directories if needed"""
        os.makedirs(os.path.dirname(os.path.abspath(self.file_path)), exist_ok=True)
