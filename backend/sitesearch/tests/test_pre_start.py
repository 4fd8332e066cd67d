from sqlalchemy import Engine

from sitesearch.backend_pre_start import check_sites, wait_for_db
from sitesearch.core.config import SiteConfig


def test_wait_for_db(engine: Engine) -> None:
    wait_for_db(engine)


def test_check_sites_accepts_valid_list(site_config: SiteConfig) -> None:
    assert check_sites([site_config, SiteConfig(url="http://www.other.com/", name="Other")]) == []


def test_check_sites_reports_problems(site_config: SiteConfig) -> None:
    problems = check_sites(
        [
            site_config,
            SiteConfig(url=f"{site_config.url}/", name="Again"),
            SiteConfig(url="ftp://files.example.com", name="Files"),
        ]
    )

    assert len(problems) == 2
    assert "more than once" in problems[0]
    assert "http and https" in problems[1]


def test_check_sites_reports_empty_list() -> None:
    assert check_sites([]) == ["SITES is empty, startIndexing will be rejected"]
