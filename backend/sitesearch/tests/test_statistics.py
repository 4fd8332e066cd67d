import time
from datetime import datetime, timezone

from sqlalchemy import Engine
from sqlmodel import Session

from sitesearch import crud
from sitesearch.core.config import SiteConfig
from sitesearch.models import SiteStatus
from sitesearch.services.statistics import epoch_seconds, get_statistics


def test_site_status_time_is_utc(engine: Engine, site_config: SiteConfig) -> None:
    before = time.time()
    with Session(engine) as session:
        site = crud.create_site(session=session, site_config=site_config)
        crud.update_site_status(session=session, site=site, status=SiteStatus.INDEXED)

    with Session(engine) as session:
        response = get_statistics(session=session, sites=[site_config])

    (detail,) = response.statistics.detailed
    assert detail.status == "INDEXED"
    assert before - 1 <= detail.statusTime <= time.time() + 1


def test_status_change_keeps_timezone(engine: Engine, site_config: SiteConfig) -> None:
    with Session(engine) as session:
        site = crud.create_site(session=session, site_config=site_config)
        site.mark_failed("boom")
        assert site.status_time.tzinfo is not None
        session.add(site)
        session.commit()
        session.refresh(site)
        assert site.last_error == "boom"


def test_unindexed_site_is_reported_failed(engine: Engine, site_config: SiteConfig) -> None:
    with Session(engine) as session:
        response = get_statistics(session=session, sites=[site_config])

    assert response.statistics.total.sites == 1
    assert response.statistics.total.indexing is False
    (detail,) = response.statistics.detailed
    assert detail.status == "FAILED"
    assert detail.pages == 0
    assert detail.lemmas == 0


def test_epoch_seconds_reads_naive_values_as_utc() -> None:
    aware = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert epoch_seconds(aware.replace(tzinfo=None)) == epoch_seconds(aware) == 1714564800
