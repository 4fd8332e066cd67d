import logging
from collections.abc import Iterable, Mapping

from sqlalchemy import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlmodel import Session, col, delete, select, update
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from sitesearch import crud
from sitesearch.exceptions import IndexConsistencyError
from sitesearch.models import Lemma, Posting

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_WAIT_SECONDS = 0.2


class IndexMaintainer:
    """
    Keeps lemma frequencies and page postings consistent.

    A lemma's frequency is the number of postings that reference it. Every
    change is applied in a single transaction with atomic
    ``frequency = frequency +/- 1`` statements; a conflicting concurrent
    writer makes the whole transaction roll back and run again.
    """

    def __init__(self, engine: Engine, max_attempts: int = MAX_ATTEMPTS, retry_wait: float = RETRY_WAIT_SECONDS):
        self.engine = engine
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait

    async def reindex_page(
        self,
        site_id: int,
        page_id: int,
        previous_lemma_ids: Iterable[int],
        new_lemma_counts: Mapping[str, int],
    ) -> int:
        """
        Replace the postings of a page.

        Args:
            site_id: site owning the page and its lemmas
            page_id: page being (re)indexed
            previous_lemma_ids: lemma ids the page was indexed under before
            new_lemma_counts: lemma value -> occurrences on the page now

        Returns:
            Number of lemmas that were new to the site

        Raises:
            IndexConsistencyError: storage kept failing, nothing was applied
        """
        previous = set(previous_lemma_ids)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.retry_wait),
            retry=retry_if_exception_type((IntegrityError, OperationalError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return self._apply(site_id, page_id, previous, new_lemma_counts)
        except RetryError as e:
            raise IndexConsistencyError(
                f"Could not index page {page_id} after {self.max_attempts} attempts"
            ) from e.last_attempt.exception()
        except SQLAlchemyError as e:
            raise IndexConsistencyError(f"Could not index page {page_id}: {e}") from e
        return 0

    async def release_page(self, site_id: int, page_id: int) -> list[int]:
        """Drop the postings of a page and decrement the lemmas it referenced."""
        with Session(self.engine) as session:
            lemma_ids = crud.get_page_lemma_ids(session=session, page_id=page_id)
        await self.reindex_page(site_id, page_id, lemma_ids, {})
        return lemma_ids

    def _apply(
        self,
        site_id: int,
        page_id: int,
        previous_lemma_ids: set[int],
        new_lemma_counts: Mapping[str, int],
    ) -> int:
        with Session(self.engine) as session:
            try:
                session.exec(delete(Posting).where(Posting.page_id == page_id))
                self._decrement_or_remove(session, previous_lemma_ids)
                new_count = self._write_postings(session, site_id, page_id, new_lemma_counts)
                session.commit()
            except Exception:
                session.rollback()
                raise

        if previous_lemma_ids:
            logger.info(f"Released {len(previous_lemma_ids)} lemmas of page {page_id} (site {site_id})")
        if new_lemma_counts:
            logger.info(
                f"Indexed {len(new_lemma_counts)} lemmas of page {page_id} (site {site_id}), "
                f"{new_count} new to the site"
            )
        return new_count

    @staticmethod
    def _decrement_or_remove(session: Session, lemma_ids: set[int]) -> None:
        if not lemma_ids:
            return
        session.exec(
            update(Lemma)
            .where(col(Lemma.id).in_(lemma_ids))
            .values(frequency=Lemma.frequency - 1)
        )
        session.exec(delete(Lemma).where(col(Lemma.id).in_(lemma_ids), col(Lemma.frequency) < 1))

    @staticmethod
    def _write_postings(
        session: Session, site_id: int, page_id: int, lemma_counts: Mapping[str, int]
    ) -> int:
        if not lemma_counts:
            return 0

        existing = session.exec(
            select(Lemma.lemma, Lemma.id).where(
                Lemma.site_id == site_id, col(Lemma.lemma).in_(list(lemma_counts))
            )
        ).all()
        lemma_ids = {value: lemma_id for value, lemma_id in existing}

        if lemma_ids:
            session.exec(
                update(Lemma)
                .where(col(Lemma.id).in_(list(lemma_ids.values())))
                .values(frequency=Lemma.frequency + 1)
            )

        new_lemmas = [
            Lemma(site_id=site_id, lemma=value, frequency=1)
            for value in lemma_counts
            if value not in lemma_ids
        ]
        session.add_all(new_lemmas)
        session.flush()
        lemma_ids.update({lemma.lemma: lemma.id for lemma in new_lemmas})

        session.add_all(
            Posting(page_id=page_id, lemma_id=lemma_ids[value], rank=count)
            for value, count in lemma_counts.items()
        )
        session.flush()
        return len(new_lemmas)
