import logging
from collections import defaultdict
from dataclasses import dataclass, field

from sqlmodel import Session, col, select

from sitesearch import crud
from sitesearch.core.config import settings
from sitesearch.models import Lemma, Page, Posting, SearchResult, SearchResultItem
from sitesearch.morphology.lemmatizer import LemmaCollector
from sitesearch.morphology.snippets import build_snippet
from sitesearch.utils.html import visible_text

logger = logging.getLogger(__name__)

EMPTY_QUERY_MESSAGE = "Empty search query"
UNRECOGNIZED_QUERY_MESSAGE = "Unable to recognize the search text"


@dataclass
class LemmaGroup:
    """All lemma rows sharing one value, possibly across several sites."""

    lemma: str
    frequency: int = 0
    ids: list[int] = field(default_factory=list)


def group_lemmas(rows: list[Lemma]) -> list[LemmaGroup]:
    """Group rows by value, rarest first. Query lemmas absent from the index have no group."""
    groups: dict[str, LemmaGroup] = {}
    for row in rows:
        group = groups.setdefault(row.lemma, LemmaGroup(row.lemma))
        group.frequency += row.frequency
        group.ids.append(row.id)
    return sorted(groups.values(), key=lambda group: (group.frequency, group.lemma))


def drop_frequent_lemmas(groups: list[LemmaGroup], percent: int) -> list[LemmaGroup]:
    """
    Drop lemmas found on too many pages to discriminate results.

    A lemma is frequent when its frequency is at least ``percent`` % of the
    summed frequency of all groups. When every lemma is frequent the rarest
    one is kept.
    """
    total = sum(group.frequency for group in groups)
    threshold = total * percent / 100
    frequent = [group for group in groups if group.frequency >= threshold]
    if not frequent:
        return groups
    if len(frequent) == len(groups):
        kept = groups[:1]
    else:
        kept = [group for group in groups if group not in frequent]
    dropped = ", ".join(group.lemma for group in groups if group not in kept)
    logger.info(f"Dropped frequent lemmas: {dropped}")
    return kept


class QueryEngine:
    def __init__(
        self,
        collector: LemmaCollector,
        frequency_percent: int | None = None,
        default_limit: int | None = None,
    ):
        self.collector = collector
        self.frequency_percent = frequency_percent or settings.SEARCH_FREQUENCY_PERCENT
        self.default_limit = default_limit or settings.SEARCH_DEFAULT_LIMIT

    def search(
        self,
        session: Session,
        query: str,
        site: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> SearchResult:
        limit = self.default_limit if limit is None else limit
        logger.info(f"Searching \"{query}\" on {site or 'all sites'} with offset {offset} and limit {limit}")

        if not query or not query.strip():
            return self._failure(EMPTY_QUERY_MESSAGE)

        query_lemmas = self.collector.lemma_set(query)
        if not query_lemmas:
            return self._failure(UNRECOGNIZED_QUERY_MESSAGE)

        site_id = None
        if site:
            site_row = crud.get_site_by_url(session=session, url=site.rstrip("/"))
            if site_row is None:
                logger.info(f"[{site}] site is not indexed, nothing found")
                return SearchResult(result=True)
            site_id = site_row.id

        rows = crud.get_lemmas_by_values(session=session, values=query_lemmas, site_id=site_id)
        groups = group_lemmas(rows)
        if not groups:
            logger.info("None of the query lemmas is indexed, 0 results")
            return SearchResult(result=True)
        if len(query_lemmas) > 2:
            groups = drop_frequent_lemmas(groups, self.frequency_percent)
        logger.info(f"Lemmas used for the search: {', '.join(group.lemma for group in groups)}")

        page_ids = self.intersect_pages(session, groups)
        if not page_ids:
            logger.info("Search finished, 0 results")
            return SearchResult(result=True)

        lemma_ids = [lemma_id for group in groups for lemma_id in group.ids]
        relevance = self.relevance(session, lemma_ids, page_ids)
        max_relevance = max(relevance.values())
        ranked = sorted(page_ids, key=lambda page_id: (-relevance[page_id], page_id))

        data = []
        lemma_values = {group.lemma for group in groups}
        for page_id in ranked[offset : offset + limit]:
            page = session.get(Page, page_id)
            if page is None:
                continue
            data.append(self.render(page, lemma_values, relevance[page_id] / max_relevance))

        logger.info(f"Search finished, {len(ranked)} results")
        return SearchResult(result=True, count=len(ranked), data=data)

    @staticmethod
    def intersect_pages(session: Session, groups: list[LemmaGroup]) -> set[int]:
        """Pages containing every lemma, starting from the rarest one."""
        pages: set[int] | None = None
        for group in groups:
            if not group.ids:
                return set()
            found = set(
                session.exec(select(Posting.page_id).where(col(Posting.lemma_id).in_(group.ids))).all()
            )
            pages = found if pages is None else pages & found
            if not pages:
                return set()
        return pages or set()

    @staticmethod
    def relevance(session: Session, lemma_ids: list[int], page_ids: set[int]) -> dict[int, float]:
        """Absolute relevance: sum of the lemma ranks of each page."""
        absolute: dict[int, float] = defaultdict(float)
        for posting in crud.get_postings(session=session, lemma_ids=lemma_ids, page_ids=page_ids):
            absolute[posting.page_id] += posting.rank
        return {page_id: absolute[page_id] for page_id in page_ids}

    def render(self, page: Page, lemmas: set[str], relevance: float) -> SearchResultItem:
        return SearchResultItem(
            site=page.site.url,
            siteName=page.site.name,
            uri=page.path,
            title=page.title,
            snippet=build_snippet(visible_text(page.content), lemmas, self.collector),
            relevance=relevance,
        )

    @staticmethod
    def _failure(error: str) -> SearchResult:
        logger.info(f"Search failed: {error}")
        return SearchResult.failure(error)
