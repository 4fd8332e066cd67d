import asyncio
import logging
from typing import Protocol

from sqlalchemy import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from sitesearch import crud
from sitesearch.exceptions import IndexConsistencyError
from sitesearch.models import Page, SiteStatus
from sitesearch.morphology.lemmatizer import LemmaCollector
from sitesearch.morphology.maintainer import IndexMaintainer
from sitesearch.utils.html import visible_text
from sitesearch.worker_tasks.fetcher import FetchResult
from sitesearch.worker_tasks.links import canonicalize, relative_path
from sitesearch.worker_tasks.registry import SiteRegistry

logger = logging.getLogger(__name__)

ROOT_PATH = "/"
MAIN_PAGE_UNAVAILABLE_MESSAGE = "Main page of the site {url} is unavailable (status {code})"


class Fetcher(Protocol):
    async def fetch(self, url: str) -> FetchResult: ...


class CrawlRun:
    """
    One crawl of one site: the full link graph from the main page, or a
    single page re-index.

    Holds everything the page tasks of the run share: the claimed paths, the
    worker semaphore and the lock serializing index updates. Tasks are
    registered in the SiteRegistry and the run is over when the registry has
    no task left for the site.
    """

    def __init__(
        self,
        site_id: int,
        base_url: str,
        start_url: str,
        *,
        engine: Engine,
        registry: SiteRegistry,
        fetcher: Fetcher,
        collector: LemmaCollector,
        maintainer: IndexMaintainer,
        concurrency: int,
        single_page: bool = False,
    ):
        self.site_id = site_id
        self.base_url = base_url
        self.start_url = start_url
        self.engine = engine
        self.registry = registry
        self.fetcher = fetcher
        self.collector = collector
        self.maintainer = maintainer
        self.concurrency = concurrency
        self.single_page = single_page
        self.claimed: set[str] = set()

    async def run(self) -> None:
        self.semaphore = asyncio.Semaphore(self.concurrency)
        self.index_lock = asyncio.Lock()
        self.finished = asyncio.Event()

        mode = "page" if self.single_page else "site"
        logger.info(f"[{self.start_url}] {mode} indexing started")
        self.claimed.add(relative_path(self.start_url))
        self.spawn(self.start_url)
        await self.finished.wait()

    def spawn(self, url: str) -> asyncio.Task:
        task = asyncio.create_task(PageTask(self, url).run(), name=url)
        self.registry.register(self.site_id, task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        remaining = self.registry.deregister(self.site_id, task)
        try:
            self.finalize(task.get_name(), remaining)
        except Exception as e:
            logger.exception(f"[{task.get_name()}] could not update site status: {e}")
        finally:
            if remaining == 0:
                self.finished.set()

    def finalize(self, url: str, remaining: int) -> None:
        with Session(self.engine) as session:
            site = crud.get_site(session=session, site_id=self.site_id)
            if site is None:
                logger.error(f"[{url}] site {self.site_id} not found")
                return
            if site.status == SiteStatus.FAILED:
                if remaining == 0:
                    logger.warning(f"[{site.url}] indexing ended with FAILED status: {site.last_error}")
                return

            if remaining:
                crud.update_site_status(session=session, site=site, status=SiteStatus.INDEXING)
                logger.info(f"[{url}] page processed, active tasks for the site: {remaining}")
            else:
                crud.update_site_status(session=session, site=site, status=SiteStatus.INDEXED)
                logger.info(f"[{site.url}] site indexing finished")

    def site_is_indexing(self) -> bool:
        with Session(self.engine) as session:
            site = crud.get_site(session=session, site_id=self.site_id)
            return site is not None and site.status == SiteStatus.INDEXING

    def fail_site(self, error: str) -> None:
        with Session(self.engine) as session:
            site = crud.get_site(session=session, site_id=self.site_id)
            if site is not None:
                crud.update_site_status(session=session, site=site, status=SiteStatus.FAILED, error=error)
        logger.error(error)


class PageTask:
    """Fetches, stores and indexes one page, then forks tasks for its new links."""

    def __init__(self, crawl: CrawlRun, url: str):
        self.crawl = crawl
        self.url = url
        self.path = relative_path(url)

    async def run(self) -> None:
        try:
            async with self.crawl.semaphore:
                await self.process()
        except asyncio.CancelledError:
            logger.warning(f"[{self.url}] page task cancelled")
            raise
        except Exception as e:
            logger.exception(f"[{self.url}] page task failed: {e}")

    async def process(self) -> None:
        crawl = self.crawl
        logger.info(f"[{self.url}] processing page")

        if not crawl.site_is_indexing():
            logger.info(f"[{self.url}] site is no longer indexing, skipping")
            return

        with Session(crawl.engine) as session:
            existing = crud.get_page(session=session, site_id=crawl.site_id, path=self.path)
            existing_id = existing.id if existing else None

        if existing_id is not None:
            if not crawl.single_page:
                return
            if not await self.release(existing_id):
                return

        result = await crawl.fetcher.fetch(self.url)

        if not crawl.site_is_indexing():
            logger.info(f"[{self.url}] site stopped while the page was fetched")
            return

        page = self.save(result)
        if page is None:
            return

        if self.path == ROOT_PATH and result.code != 200:
            crawl.fail_site(MAIN_PAGE_UNAVAILABLE_MESSAGE.format(url=crawl.base_url, code=result.code))
            return

        if result.code < 400:
            await self.index(page, result.content)

        if not crawl.single_page and 200 <= result.code < 400:
            self.fork(result.links)

    async def release(self, page_id: int) -> bool:
        """Undo the index contribution of a stale page and delete it."""
        crawl = self.crawl
        try:
            async with crawl.index_lock:
                await crawl.maintainer.release_page(crawl.site_id, page_id)
        except IndexConsistencyError as e:
            logger.error(f"[{self.url}] could not release the previous page version: {e}")
            return False

        with Session(crawl.engine) as session:
            page = session.get(Page, page_id)
            if page is not None:
                crud.delete_page(session=session, page=page)
        return True

    def save(self, result: FetchResult) -> Page | None:
        with Session(self.crawl.engine) as session:
            page = Page(
                site_id=self.crawl.site_id,
                path=self.path,
                code=result.code,
                content=result.content,
            )
            session.add(page)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.info(f"[{self.url}] page already stored by another task")
                return None
            session.refresh(page)
            return page

    async def index(self, page: Page, content: str) -> None:
        crawl = self.crawl
        lemma_counts = crawl.collector.collect_lemmas(visible_text(content))
        try:
            async with crawl.index_lock:
                await crawl.maintainer.reindex_page(crawl.site_id, page.id, [], lemma_counts)
        except IndexConsistencyError as e:
            logger.error(f"[{self.url}] page stored but not indexed: {e}")

    def fork(self, links: list[str]) -> None:
        crawl = self.crawl
        found = {link for link in (canonicalize(href, crawl.base_url) for href in links) if link}

        with Session(crawl.engine) as session:
            known_paths = crud.get_page_paths(session=session, site_id=crawl.site_id)

        next_links = []
        for link in sorted(found):
            path = relative_path(link)
            if path in crawl.claimed or path in known_paths:
                continue
            crawl.claimed.add(path)
            next_links.append(link)

        logger.info(f"[{self.url}] found {len(found)} unique links, {len(next_links)} new")
        for link in next_links:
            crawl.spawn(link)
