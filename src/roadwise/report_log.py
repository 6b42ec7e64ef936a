"""Append-only JSONL store for submitted civic reports."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from roadwise.models import CivicReport

logger = logging.getLogger(__name__)


class ReportLog:
	"""Append-only JSONL writer/reader for civic reports.

	One line per report; records are never rewritten. Writes are
	serialized via a lock.
	"""

	def __init__(self, path: Path) -> None:
		self._path = path
		self._lock = threading.Lock()

	@property
	def path(self) -> Path:
		return self._path

	def append(self, report: CivicReport) -> CivicReport:
		with self._lock:
			self._path.parent.mkdir(parents=True, exist_ok=True)
			with self._path.open("a", encoding="utf-8") as f:
				f.write(json.dumps(report.to_dict(), separators=(",", ":")) + "\n")
		logger.info("Stored report %s (%s) for %s", report.id, report.department, report.submitted_by)
		return report

	def _read_all(self) -> list[CivicReport]:
		if not self._path.exists():
			return []
		reports: list[CivicReport] = []
		with self._path.open(encoding="utf-8") as f:
			for lineno, line in enumerate(f, 1):
				line = line.strip()
				if not line:
					continue
				try:
					reports.append(CivicReport.from_dict(json.loads(line)))
				except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as exc:
					logger.warning("Skipping malformed report at %s:%d: %s", self._path, lineno, exc)
		return reports

	def for_user(self, user_id: str) -> list[CivicReport]:
		"""Reports submitted by ``user_id``, newest first."""
		reports = [r for r in self._read_all() if r.submitted_by == user_id]
		return sorted(reports, key=lambda r: r.created_at, reverse=True)
