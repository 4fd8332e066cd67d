from datetime import datetime, timezone

from sqlmodel import Session

from sitesearch import crud
from sitesearch.core.config import SiteConfig
from sitesearch.models import (
    DetailedStatisticsItem,
    SiteStatus,
    StatisticsData,
    StatisticsResponse,
    TotalStatistics,
)
from sitesearch.models.site import utc_now


def epoch_seconds(moment: datetime) -> int:
    # SQLite hands stored timestamps back without their UTC offset
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


def get_statistics(*, session: Session, sites: list[SiteConfig]) -> StatisticsResponse:
    """Page and lemma counts with the indexing status of every configured site."""
    total = TotalStatistics(sites=len(sites))
    detailed = []

    for site_config in sites:
        site = crud.get_site_by_url(session=session, url=site_config.base_url)
        if site is None:
            item = DetailedStatisticsItem(
                url=site_config.base_url,
                name=site_config.name,
                status=SiteStatus.FAILED.value,
                statusTime=epoch_seconds(utc_now()),
            )
        else:
            item = DetailedStatisticsItem(
                url=site.url,
                name=site_config.name,
                status=site.status.value,
                statusTime=epoch_seconds(site.status_time),
                error=(site.last_error or "") if site.status == SiteStatus.FAILED else "",
                pages=crud.count_pages(session=session, site_id=site.id),
                lemmas=crud.count_lemmas(session=session, site_id=site.id),
            )
            total.indexing = total.indexing or site.status == SiteStatus.INDEXING

        total.pages += item.pages
        total.lemmas += item.lemmas
        detailed.append(item)

    return StatisticsResponse(statistics=StatisticsData(total=total, detailed=detailed))
