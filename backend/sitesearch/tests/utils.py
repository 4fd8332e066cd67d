from sqlalchemy import Engine
from sqlmodel import Session, func, select

from sitesearch.models import Lemma, Page, Posting, Site


def assert_frequency_invariant(engine: Engine) -> None:
    """Every lemma frequency equals the number of postings referencing it."""
    with Session(engine) as session:
        for lemma in session.exec(select(Lemma)).all():
            postings = session.exec(
                select(func.count()).select_from(Posting).where(Posting.lemma_id == lemma.id)
            ).one()
            assert lemma.frequency == postings, lemma.lemma
            assert lemma.frequency >= 1


def get_site(engine: Engine, url: str) -> Site | None:
    with Session(engine) as session:
        return session.exec(select(Site).where(Site.url == url)).first()


def get_pages(engine: Engine, site_id: int) -> dict[str, Page]:
    with Session(engine) as session:
        return {page.path: page for page in session.exec(select(Page).where(Page.site_id == site_id)).all()}


def lemma_frequencies(engine: Engine, site_id: int | None = None) -> dict[str, int]:
    with Session(engine) as session:
        statement = select(Lemma)
        if site_id is not None:
            statement = statement.where(Lemma.site_id == site_id)
        return {lemma.lemma: lemma.frequency for lemma in session.exec(statement).all()}
