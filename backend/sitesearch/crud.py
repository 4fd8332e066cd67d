from collections.abc import Iterable

from sqlmodel import Session, col, delete, func, select

from sitesearch.core.config import SiteConfig
from sitesearch.models import Lemma, Page, Posting, Site, SiteStatus


def get_site(*, session: Session, site_id: int) -> Site | None:
    return session.get(Site, site_id)


def get_site_by_url(*, session: Session, url: str) -> Site | None:
    statement = select(Site).where(Site.url == url).order_by(col(Site.id).desc())
    return session.exec(statement).first()


def get_sites_by_status(*, session: Session, status: SiteStatus) -> list[Site]:
    return list(session.exec(select(Site).where(Site.status == status)).all())


def create_site(*, session: Session, site_config: SiteConfig) -> Site:
    db_obj = Site(url=site_config.base_url, name=site_config.name)
    db_obj.mark_indexing()
    session.add(db_obj)
    session.commit()
    session.refresh(db_obj)
    return db_obj


def delete_site(*, session: Session, site: Site) -> None:
    """Remove a site with its pages, lemmas and postings."""
    page_ids = select(Page.id).where(Page.site_id == site.id)
    session.exec(delete(Posting).where(col(Posting.page_id).in_(page_ids)))
    session.exec(delete(Lemma).where(Lemma.site_id == site.id))
    session.exec(delete(Page).where(Page.site_id == site.id))
    session.exec(delete(Site).where(Site.id == site.id))
    session.commit()


def update_site_status(
    *, session: Session, site: Site, status: SiteStatus, error: str | None = None
) -> Site:
    if status == SiteStatus.FAILED:
        site.mark_failed(error)
    elif status == SiteStatus.INDEXED:
        site.mark_indexed()
    else:
        site.touch()
    session.add(site)
    session.commit()
    session.refresh(site)
    return site


def get_page(*, session: Session, site_id: int, path: str) -> Page | None:
    statement = select(Page).where(Page.site_id == site_id, Page.path == path)
    return session.exec(statement).first()


def get_page_paths(*, session: Session, site_id: int) -> set[str]:
    return set(session.exec(select(Page.path).where(Page.site_id == site_id)).all())


def delete_page(*, session: Session, page: Page) -> None:
    session.exec(delete(Posting).where(Posting.page_id == page.id))
    session.exec(delete(Page).where(Page.id == page.id))
    session.commit()


def get_page_lemma_ids(*, session: Session, page_id: int) -> list[int]:
    statement = select(Posting.lemma_id).where(Posting.page_id == page_id)
    return list(session.exec(statement).all())


def get_lemmas_by_values(
    *, session: Session, values: Iterable[str], site_id: int | None = None
) -> list[Lemma]:
    statement = select(Lemma).where(col(Lemma.lemma).in_(list(values)))
    if site_id is not None:
        statement = statement.where(Lemma.site_id == site_id)
    statement = statement.order_by(col(Lemma.frequency).asc(), col(Lemma.id).asc())
    return list(session.exec(statement).all())


def get_postings(
    *, session: Session, lemma_ids: Iterable[int], page_ids: Iterable[int] | None = None
) -> list[Posting]:
    statement = select(Posting).where(col(Posting.lemma_id).in_(list(lemma_ids)))
    if page_ids is not None:
        statement = statement.where(col(Posting.page_id).in_(list(page_ids)))
    return list(session.exec(statement).all())


def count_pages(*, session: Session, site_id: int) -> int:
    statement = select(func.count()).select_from(Page).where(Page.site_id == site_id)
    return session.exec(statement).one()


def count_lemmas(*, session: Session, site_id: int) -> int:
    statement = select(func.count()).select_from(Lemma).where(Lemma.site_id == site_id)
    return session.exec(statement).one()
