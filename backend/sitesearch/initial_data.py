import logging

from sqlmodel import Session

from sitesearch.core.config import settings
from sitesearch.core.db import engine, init_db

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init() -> None:
    with Session(engine) as session:
        init_db(session)


def main() -> None:
    logger.info("Creating index tables")
    init()
    logger.info(f"Index tables created, {len(settings.SITES)} sites configured")


if __name__ == "__main__":
    main()
