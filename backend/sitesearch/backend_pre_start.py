import logging

from sqlalchemy import Engine
from sqlmodel import Session, select
from tenacity import after_log, before_log, retry, stop_after_attempt, wait_fixed

from sitesearch.core.config import SiteConfig, settings
from sitesearch.core.db import engine
from sitesearch.worker_tasks.links import ALLOWED_SCHEMES

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

max_tries = 60 * 5  # 5 minutes
wait_seconds = 1


@retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before=before_log(logger, logging.INFO),
    after=after_log(logger, logging.WARN),
)
def wait_for_db(db_engine: Engine) -> None:
    with Session(db_engine) as session:
        session.exec(select(1))


def check_sites(sites: list[SiteConfig]) -> list[str]:
    """Problems in the configured site list, one message per problem."""
    problems = []
    if not sites:
        problems.append("SITES is empty, startIndexing will be rejected")

    seen: set[str] = set()
    for site in sites:
        scheme = site.base_url.partition("://")[0].lower()
        if scheme not in ALLOWED_SCHEMES:
            problems.append(f"[{site.url}] only http and https sites can be crawled")
        if site.base_url in seen:
            problems.append(f"[{site.url}] configured more than once")
        seen.add(site.base_url)
    return problems


def main() -> None:
    logger.info("Waiting for the database")
    wait_for_db(engine)

    problems = check_sites(settings.SITES)
    for problem in problems:
        logger.warning(problem)
    logger.info(f"Service ready, {len(settings.SITES)} sites configured, {len(problems)} problems")


if __name__ == "__main__":
    main()
