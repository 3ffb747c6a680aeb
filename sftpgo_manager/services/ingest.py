"""
CSV ingestion for SFTPGo upload events.

Each upload event is handled by a detached task (one per event, unbounded):
the HTTP callback is acknowledged before ingestion starts and results are only
visible through the logs and the records table.

Expected CSV header (case-insensitive, any order): key, title, value and the
optional description, category columns.
"""
import asyncio
import codecs
import csv
import logging
import re
import threading
from typing import Any, Dict, Optional, Set

from ..db import SessionLocal
from ..errors import ObjectStoreError, RegistryError, TenantNotFound
from .registry import RegistryService
from .storage import ObjectStore

logger = logging.getLogger("sftpgo_manager.ingest")

REQUIRED_COLUMNS = ("key", "title", "value")

# plain ASCII decimal with optional exponent; no "_" separators, no inf/nan
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def parse_value(raw: str) -> float:
    if not _DECIMAL_RE.fullmatch(raw):
        raise ValueError(f"invalid decimal: {raw!r}")
    return float(raw)


def object_key(tenant_id: str, virtual_path: str) -> str:
    return f"{tenant_id}/{virtual_path.lstrip('/')}"


class IngestionWorker:

    def __init__(self, store: ObjectStore, session_factory=SessionLocal):
        self.store = store
        self.session_factory = session_factory
        self._tasks: Set[asyncio.Task] = set()

    # ----- scheduling -----

    def spawn(self, event: Dict[str, Any]) -> asyncio.Task:
        """Start ingestion for an event on the running loop; fire-and-forget"""
        loop = asyncio.get_running_loop()
        task = loop.create_task(asyncio.to_thread(self.process_upload_event, event))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("ingestion task crashed", exc_info=exc)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def drain(self):
        """Wait for every in-flight ingestion (used on shutdown)"""
        if self._tasks:
            logger.info("draining ingestion tasks", extra={"in_flight": len(self._tasks)})
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ----- processing -----

    def process_upload_event(self, event: Dict[str, Any]) -> int:
        """Ingest the uploaded CSV named by the event. Returns rows upserted."""
        username = event.get("username")
        virtual_path = event.get("virtual_path")

        if not isinstance(username, str) or not isinstance(virtual_path, str) or not username or not virtual_path:
            logger.warning("worker: missing username or virtual_path in event")
            return 0

        if not virtual_path.lower().endswith(".csv"):
            logger.info("worker: skipping non-CSV file", extra={"virtual_path": virtual_path})
            return 0

        with self.session_factory() as db:
            try:
                tenant = RegistryService.get_tenant_by_username(db, username)
            except RegistryError as e:
                level = logging.WARNING if isinstance(e, TenantNotFound) else logging.ERROR
                logger.log(level, "worker: tenant lookup failed", extra={"username": username, "error": str(e)})
                return 0

            tenant_id = tenant.tenant_id
            key = object_key(tenant_id, virtual_path)

            try:
                body = self.store.open(key)
            except ObjectStoreError as e:
                logger.error("worker: failed to get object", extra={"key": key, "error": str(e)})
                return 0

            try:
                count = self._ingest_stream(db, tenant_id, body)
            finally:
                body.close()

        logger.info("worker: processed records", extra={"tenant_id": tenant_id, "count": count, "key": key})
        return count

    def _ingest_stream(self, db, tenant_id: str, body) -> int:
        reader = csv.reader(codecs.getreader("utf-8-sig")(body))
        rows = (row for row in reader if row)

        try:
            header = next(rows)
        except StopIteration:
            logger.warning("worker: empty CSV file")
            return 0
        except (csv.Error, UnicodeDecodeError) as e:
            logger.error("worker: failed to read CSV header", extra={"error": str(e)})
            return 0

        col_index = {name.strip().lower(): i for i, name in enumerate(header)}
        for required in REQUIRED_COLUMNS:
            if required not in col_index:
                logger.error("worker: CSV missing required column", extra={"column": required})
                return 0

        desc_idx: Optional[int] = col_index.get("description")
        cat_idx: Optional[int] = col_index.get("category")

        count = 0
        row_num = 1
        while True:
            try:
                row = next(rows)
            except StopIteration:
                break
            except (csv.Error, UnicodeDecodeError) as e:
                logger.error("worker: CSV read error", extra={"row": row_num + 1, "error": str(e)})
                break
            row_num += 1

            if len(row) != len(header):
                logger.error("worker: wrong number of fields", extra={
                    "row": row_num,
                    "expected": len(header),
                    "got": len(row),
                })
                break

            record_key = row[col_index["key"]].strip()
            title = row[col_index["title"]].strip()
            description = row[desc_idx].strip() if desc_idx is not None else ""
            category = row[cat_idx].strip() if cat_idx is not None else ""

            raw_value = row[col_index["value"]].strip()
            try:
                value = parse_value(raw_value)
            except ValueError:
                logger.warning("worker: invalid value in row", extra={"row": row_num, "value": raw_value})
                continue

            try:
                RegistryService.upsert_record(db, tenant_id, record_key, title, description, category, value)
            except RegistryError as e:
                logger.error("worker: upsert record error", extra={"row": row_num, "error": str(e)})
                continue
            count += 1

        return count


_worker: Optional[IngestionWorker] = None
_worker_lock = threading.Lock()
_worker_checked = False


def get_ingest_worker() -> Optional[IngestionWorker]:
    """Process-wide worker, or None when S3 is not configured (FastAPI dependency)"""
    global _worker, _worker_checked
    with _worker_lock:
        if not _worker_checked:
            _worker_checked = True
            try:
                store = ObjectStore.from_config()
            except ValueError as e:
                logger.warning("worker init failed (CSV processing disabled)", extra={"error": str(e)})
                return None
            if store is None:
                logger.warning("S3_ENDPOINT not set, CSV processing disabled")
                return None
            _worker = IngestionWorker(store)
            logger.info("worker initialized, CSV processing enabled")
        return _worker
