# app/store/usage.py
import asyncio
import logging
import threading
from pathlib import Path
from typing import Optional

from app.models import UsageRecord

logger = logging.getLogger(__name__)

# -------------------- append-only per-day partitions -------------------------

class UsageRecorder:
    """
    Appends usage lines to <log_dir>/usage-YYYY-MM-DD.log (UTC day).

    Request handlers call notify(), which only enqueues. A dedicated writer
    task started with start() drains the queue. Write errors are logged and
    dropped; they never reach the request.
    """

    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)
        self._lock = threading.Lock()
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    def partition(self, day: str) -> Path:
        return self.log_dir / f"usage-{day}.log"

    def append(self, record: UsageRecord) -> None:
        """Write one whole line in a single call; safe across threads."""
        line = record.to_line()
        with self._lock:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with open(self.partition(record.day), "a", encoding="utf-8") as f:
                f.write(line)

    def _safe_append(self, record: UsageRecord) -> None:
        try:
            self.append(record)
        except OSError as e:
            logger.error("Dropping usage record %r: %s", record, e)

    def notify(self, record: UsageRecord) -> None:
        if self._queue is None:
            self._safe_append(record)
            return
        self._queue.put_nowait(record)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _writer(self) -> None:
        assert self._queue is not None
        while True:
            record = await self._queue.get()
            try:
                await asyncio.to_thread(self._safe_append, record)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._task = asyncio.create_task(self._writer(), name="usage-writer")

    async def stop(self) -> None:
        """Flush queued records and stop the writer task."""
        if self._queue is None or self._task is None:
            return
        await self._queue.join()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._queue = None
        self._task = None
