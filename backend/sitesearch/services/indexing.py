import asyncio
import logging

from sqlalchemy import Engine
from sqlmodel import Session, select

from sitesearch import crud
from sitesearch.core.config import SiteConfig, settings
from sitesearch.exceptions import (
    IndexingAlreadyLaunchedError,
    IndexingNotLaunchedError,
    SiteNotConfiguredError,
)
from sitesearch.models import Site, SiteStatus
from sitesearch.morphology.lemmatizer import LemmaCollector
from sitesearch.morphology.maintainer import IndexMaintainer
from sitesearch.worker_tasks.crawler import CrawlRun, Fetcher
from sitesearch.worker_tasks.fetcher import PageFetcher
from sitesearch.worker_tasks.links import canonicalize, relative_path, same_site
from sitesearch.worker_tasks.registry import STOPPED_BY_USER_MESSAGE, SiteRegistry

logger = logging.getLogger(__name__)

SITE_NOT_CONFIGURED_MESSAGE = (
    "Site not configured: the page is outside of the sites listed in the configuration"
)
NO_SITES_CONFIGURED_MESSAGE = "Site not configured: the configuration lists no sites"
ALREADY_LAUNCHED_MESSAGE = "Indexing of the site {url} is already launched"
NOT_LAUNCHED_MESSAGE = "Indexing is not launched"


class IndexingService:
    """Entry point for starting, stopping and single-page indexing."""

    def __init__(
        self,
        engine: Engine,
        sites: list[SiteConfig],
        collector: LemmaCollector,
        fetcher: Fetcher | None = None,
        registry: SiteRegistry | None = None,
        maintainer: IndexMaintainer | None = None,
        concurrency: int | None = None,
        stop_timeout: float | None = None,
    ):
        self.engine = engine
        self.sites = sites
        self.collector = collector
        self.fetcher = fetcher or PageFetcher()
        self.registry = registry or SiteRegistry(engine)
        self.maintainer = maintainer or IndexMaintainer(engine)
        self.concurrency = concurrency or settings.CRAWL_CONCURRENCY
        self.stop_timeout = settings.CRAWL_STOP_TIMEOUT if stop_timeout is None else stop_timeout

    def find_site_config(self, url: str) -> SiteConfig:
        for site_config in self.sites:
            if same_site(url, site_config.base_url):
                return site_config
        logger.warning(f"[{url}] {SITE_NOT_CONFIGURED_MESSAGE}")
        raise SiteNotConfiguredError(SITE_NOT_CONFIGURED_MESSAGE)

    def start_crawl(self, site_url: str | None = None) -> list[CrawlRun]:
        """
        Recreate the sites to crawl and prepare their crawl runs.

        Every target site is checked before anything is modified, so a
        rejected request leaves the database untouched.
        """
        if site_url:
            targets = [self.find_site_config(site_url)]
        else:
            targets = list(self.sites)
        if not targets:
            raise SiteNotConfiguredError(NO_SITES_CONFIGURED_MESSAGE)

        with Session(self.engine) as session:
            for site_config in targets:
                self._ensure_not_indexing(session, site_config)

            runs = []
            for site_config in targets:
                for previous in session.exec(select(Site).where(Site.url == site_config.base_url)).all():
                    logger.info(f"[{previous.url}] removing results of the previous indexing")
                    crud.delete_site(session=session, site=previous)
                site = crud.create_site(session=session, site_config=site_config)
                logger.info(f"[{site.url}] indexing of the site \"{site.name}\" scheduled")
                runs.append(self._new_run(site, f"{site.url}/", single_page=False))
        return runs

    def index_single_page(self, url: str) -> CrawlRun:
        site_config = self.find_site_config(url)
        page_url = canonicalize(url, site_config.base_url)
        if page_url is None:
            raise SiteNotConfiguredError(SITE_NOT_CONFIGURED_MESSAGE)
        if relative_path(page_url) == "/":
            page_url = f"{site_config.base_url}/"

        with Session(self.engine) as session:
            self._ensure_not_indexing(session, site_config)
            site = crud.get_site_by_url(session=session, url=site_config.base_url)
            if site is None:
                site = crud.create_site(session=session, site_config=site_config)
            else:
                site.name = site_config.name
                site.mark_indexing()
                session.add(site)
                session.commit()
                session.refresh(site)
            logger.info(f"[{page_url}] page indexing scheduled")
            return self._new_run(site, page_url, single_page=True)

    async def stop_crawl(self) -> None:
        with Session(self.engine) as session:
            sites = crud.get_sites_by_status(session=session, status=SiteStatus.INDEXING)
            if not sites:
                logger.warning(NOT_LAUNCHED_MESSAGE)
                raise IndexingNotLaunchedError(NOT_LAUNCHED_MESSAGE)

            # sites left INDEXING without running tasks (e.g. after a restart)
            for site in sites:
                if not self.registry.is_active(site.id):
                    crud.update_site_status(
                        session=session, site=site, status=SiteStatus.FAILED, error=STOPPED_BY_USER_MESSAGE
                    )
            site_ids = [site.id for site in sites]

        for site_id in site_ids:
            if self.registry.is_active(site_id):
                await self.registry.stop(site_id, self.stop_timeout)

    async def run(self, runs: list[CrawlRun]) -> None:
        """Execute crawl runs concurrently and wait for all of them."""
        results = await asyncio.gather(*(crawl.run() for crawl in runs), return_exceptions=True)
        for crawl, result in zip(runs, results):
            if isinstance(result, BaseException):
                logger.error(f"[{crawl.start_url}] crawl run crashed: {result!r}")

    def _ensure_not_indexing(self, session: Session, site_config: SiteConfig) -> None:
        site = crud.get_site_by_url(session=session, url=site_config.base_url)
        if site is not None and site.status == SiteStatus.INDEXING:
            message = ALREADY_LAUNCHED_MESSAGE.format(url=site_config.base_url)
            logger.warning(message)
            raise IndexingAlreadyLaunchedError(message)

    def _new_run(self, site: Site, start_url: str, single_page: bool) -> CrawlRun:
        return CrawlRun(
            site.id,
            site.url,
            start_url,
            engine=self.engine,
            registry=self.registry,
            fetcher=self.fetcher,
            collector=self.collector,
            maintainer=self.maintainer,
            concurrency=self.concurrency,
            single_page=single_page,
        )
