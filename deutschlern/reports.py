"""
Persistence for completed listening quiz reports.

The whole list is stored under one key and replaced on every change:

- JsonFileReportBackend: a local JSON file (default)
- FirestoreReportBackend: document reports/deutschlern-reports
- MemoryReportBackend: nothing leaves the process (tests, no storage)

Reports are kept newest first.
"""

import json
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .config import Settings
from .logger import logger
from .models import QuizResult, Report

# Firebase imports - optional, reports fall back to the JSON file
try:
    import firebase_admin
    from firebase_admin import credentials, firestore
    FIREBASE_AVAILABLE = True
except ImportError:
    FIREBASE_AVAILABLE = False

STORAGE_KEY = "deutschlern-reports"
REPORTS_COLLECTION = "reports"


class ReportBackend:
    """Loads and saves the raw report list."""

    name = "base"

    def load(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def save(self, reports: List[Dict[str, Any]]) -> bool:
        raise NotImplementedError


class MemoryReportBackend(ReportBackend):
    name = "memory"

    def __init__(self, reports: Optional[List[Dict[str, Any]]] = None):
        self._data: Dict[str, List[Dict[str, Any]]] = {STORAGE_KEY: list(reports or [])}

    def load(self) -> List[Dict[str, Any]]:
        return list(self._data[STORAGE_KEY])

    def save(self, reports: List[Dict[str, Any]]) -> bool:
        self._data[STORAGE_KEY] = list(reports)
        return True


class JsonFileReportBackend(ReportBackend):
    """{"deutschlern-reports": [...]} in a single file."""

    name = "json"

    def __init__(self, path: str):
        self.path = path

    def load(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.path):
            logger.db(f"No reports file at {self.path}, starting empty")
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read reports from {self.path}: {e}")
            return []
        reports = data.get(STORAGE_KEY, []) if isinstance(data, dict) else []
        return reports if isinstance(reports, list) else []

    def save(self, reports: List[Dict[str, Any]]) -> bool:
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = f"{self.path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump({STORAGE_KEY: reports}, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
            return True
        except OSError as e:
            logger.error(f"Could not save reports to {self.path}: {e}")
            return False


class FirestoreReportBackend(ReportBackend):
    """The report list as one Firestore document."""

    name = "firestore"

    def __init__(self, credentials_path: Optional[str] = None, db: Any = None):
        self.credentials_path = credentials_path
        self.db = db

    def connect(self) -> bool:
        """Initialize the Firebase app. Returns False when Firestore is unusable."""
        if self.db is not None:
            return True

        if not FIREBASE_AVAILABLE:
            logger.warning("[DB] firebase-admin not installed, Firestore reports disabled")
            return False

        if not self.credentials_path:
            logger.warning("[DB] FIREBASE_CREDENTIALS_PATH not set")
            return False

        if not os.path.exists(self.credentials_path):
            logger.error(f"[DB] Credentials file not found at: {self.credentials_path}")
            return False

        try:
            logger.debug("[DB] Loading Firebase credentials...")
            cred = credentials.Certificate(self.credentials_path)
            if not firebase_admin._apps:
                firebase_admin.initialize_app(cred)
            self.db = firestore.client()
        except Exception as e:
            logger.error(f"[DB] Failed to initialize Firebase: {e}")
            return False

        logger.success("[DB] Firebase Firestore connected")
        return True

    def _document(self):
        return self.db.collection(REPORTS_COLLECTION).document(STORAGE_KEY)

    def load(self) -> List[Dict[str, Any]]:
        if self.db is None:
            return []
        try:
            doc = self._document().get()
        except Exception as e:
            logger.error(f"[DB] Error loading reports: {e}")
            return []
        if not doc.exists:
            return []
        reports = (doc.to_dict() or {}).get("items", [])
        return reports if isinstance(reports, list) else []

    def save(self, reports: List[Dict[str, Any]]) -> bool:
        if self.db is None:
            return False
        try:
            self._document().set({"items": reports})
            return True
        except Exception as e:
            logger.error(f"[DB] Error saving reports: {e}")
            return False


class ReportStore:
    """In-memory report list mirrored to a backend on every change."""

    def __init__(self, backend: ReportBackend):
        self.backend = backend
        self.has_new_report = False
        self._reports: List[Report] = []

        for raw in backend.load():
            try:
                self._reports.append(Report.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable report: {e}")
        logger.db(f"Loaded {len(self._reports)} report(s) from {backend.name} backend")

    def _persist(self) -> None:
        if self.backend.save([report.to_dict() for report in self._reports]):
            logger.db(f"Saved {len(self._reports)} report(s)")

    def add(
        self,
        title: str,
        level_id: str,
        score: int,
        total: int,
        results: Iterable[QuizResult],
    ) -> Report:
        report = Report(
            id=str(uuid.uuid4()),
            title=title,
            created_at=datetime.now(timezone.utc).isoformat(),
            level_id=level_id,
            score=score,
            total=total,
            results=list(results),
        )
        self._reports.insert(0, report)
        self.has_new_report = True
        logger.db(f"Report added: {title} ({score}/{total})")
        self._persist()
        return report

    def get(self, report_id: str) -> Optional[Report]:
        for report in self._reports:
            if report.id == report_id:
                return report
        return None

    def delete(self, report_ids: Iterable[str]) -> int:
        """Remove every report whose id is in report_ids. Returns how many."""
        doomed = set(report_ids)
        kept = [report for report in self._reports if report.id not in doomed]
        removed = len(self._reports) - len(kept)
        if removed:
            self._reports = kept
            self._persist()
        return removed

    def all(self) -> List[Report]:
        """Newest first."""
        return list(self._reports)

    def mark_as_read(self) -> None:
        self.has_new_report = False

    def __len__(self) -> int:
        return len(self._reports)


def open_report_store(settings: Settings) -> ReportStore:
    """Firestore when credentials are configured and usable, otherwise the JSON file."""
    if settings.firebase_credentials_path:
        firestore_backend = FirestoreReportBackend(settings.firebase_credentials_path)
        if firestore_backend.connect():
            return ReportStore(firestore_backend)
        logger.warning("Falling back to local reports file")
    return ReportStore(JsonFileReportBackend(settings.reports_path))
