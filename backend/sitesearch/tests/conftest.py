import asyncio
from collections.abc import Generator

import pytest
from sqlalchemy import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from sitesearch import models  # noqa: F401
from sitesearch.core.config import SiteConfig
from sitesearch.core.db import enable_sqlite_foreign_keys
from sitesearch.morphology.lemmatizer import LemmaCollector
from sitesearch.morphology.maintainer import IndexMaintainer
from sitesearch.services.indexing import IndexingService
from sitesearch.utils.html import extract_links
from sitesearch.worker_tasks.fetcher import FetchResult

SITE_URL = "https://www.example.com"


class FakeLemmatizer:
    """Tiny English morphology: plural 's' is dropped, a few irregular forms."""

    FUNCTION_WORDS = {"and", "or", "in", "on", "of", "to", "the", "a", "oh", "but", "with"}
    IRREGULAR = {"mice": "mouse", "ran": "run", "geese": "goose"}

    def is_valid_word(self, word: str) -> bool:
        return word.isalpha() and (len(word) > 1 or word == "a")

    def is_function_word(self, word: str) -> bool:
        return word in self.FUNCTION_WORDS

    def normal_forms(self, word: str) -> list[str]:
        if word in self.IRREGULAR:
            return [self.IRREGULAR[word]]
        if word.endswith("s") and len(word) > 3:
            return [word[:-1]]
        return [word]


def html_page(title: str, body: str, links: list[str] = ()) -> str:
    anchors = "".join(f'<a href="{href}"></a>' for href in links)
    return f"<html><head><title>{title}</title></head><body><p>{body}</p>{anchors}</body></html>"


class FakeFetcher:
    """Serves canned pages; unknown URLs answer 404, gated URLs wait for their event."""

    def __init__(self, pages: dict[str, tuple[int, str]] | None = None):
        self.pages = dict(pages or {})
        self.gates: dict[str, asyncio.Event] = {}
        self.started: list[str] = []

    def add(self, url: str, html: str, code: int = 200) -> None:
        self.pages[url] = (code, html)

    async def fetch(self, url: str) -> FetchResult:
        self.started.append(url)
        gate = self.gates.get(url)
        if gate is not None:
            await gate.wait()
        await asyncio.sleep(0)
        if url not in self.pages:
            return FetchResult(code=404)
        code, html = self.pages[url]
        return FetchResult(code=code, content=html, links=extract_links(html) if code < 400 else [])


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    SQLModel.metadata.create_all(test_engine)
    yield test_engine
    SQLModel.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def collector() -> LemmaCollector:
    return LemmaCollector(FakeLemmatizer())


@pytest.fixture
def maintainer(engine: Engine) -> IndexMaintainer:
    return IndexMaintainer(engine, retry_wait=0)


@pytest.fixture
def site_config() -> SiteConfig:
    return SiteConfig(url=SITE_URL, name="Example")


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def indexing_service(
    engine: Engine,
    collector: LemmaCollector,
    fetcher: FakeFetcher,
    maintainer: IndexMaintainer,
    site_config: SiteConfig,
) -> IndexingService:
    return IndexingService(
        engine,
        [site_config],
        collector,
        fetcher=fetcher,
        maintainer=maintainer,
        concurrency=4,
        stop_timeout=1.0,
    )

