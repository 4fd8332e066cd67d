import asyncio
import logging
import threading
import time
from collections import defaultdict

from sqlalchemy import Engine
from sqlmodel import Session

from sitesearch import crud
from sitesearch.models import SiteStatus

logger = logging.getLogger(__name__)

STOPPED_BY_USER_MESSAGE = "Indexing stopped by user"


class SiteRegistry:
    """In-flight crawl tasks per site, used to stop a crawl and to detect its end."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._lock = threading.Lock()
        self._tasks: dict[int, set[asyncio.Task]] = defaultdict(set)

    def register(self, site_id: int, task: asyncio.Task) -> None:
        with self._lock:
            self._tasks[site_id].add(task)

    def deregister(self, site_id: int, task: asyncio.Task) -> int:
        """Forget a task and return how many tasks of the site are still running."""
        with self._lock:
            tasks = self._tasks.get(site_id)
            if tasks is None:
                return 0
            tasks.discard(task)
            remaining = len(tasks)
            if not remaining:
                del self._tasks[site_id]
            return remaining

    def active(self, site_id: int) -> list[asyncio.Task]:
        with self._lock:
            return list(self._tasks.get(site_id, ()))

    def active_count(self, site_id: int) -> int:
        with self._lock:
            return len(self._tasks.get(site_id, ()))

    def is_active(self, site_id: int) -> bool:
        return self.active_count(site_id) > 0

    async def stop(self, site_id: int, timeout: float) -> bool:
        """
        Mark the site FAILED, cancel its tasks and wait for them to finish.

        Returns True when every task finished within ``timeout`` seconds.
        """
        with Session(self.engine) as session:
            site = crud.get_site(session=session, site_id=site_id)
            if site is not None:
                crud.update_site_status(
                    session=session, site=site, status=SiteStatus.FAILED, error=STOPPED_BY_USER_MESSAGE
                )
                logger.info(f"[{site.url}] {STOPPED_BY_USER_MESSAGE}")

        tasks = self.active(site_id)
        current_loop = asyncio.get_running_loop()
        for task in tasks:
            task_loop = task.get_loop()
            if task_loop is current_loop:
                task.cancel()
            else:
                task_loop.call_soon_threadsafe(task.cancel)

        deadline = time.monotonic() + timeout
        while any(not task.done() for task in tasks) and time.monotonic() < deadline:
            await asyncio.sleep(0.05)

        pending = sum(1 for task in tasks if not task.done())
        if pending:
            logger.warning(f"Site {site_id}: {pending} tasks did not stop within {timeout}s")
        return pending == 0
