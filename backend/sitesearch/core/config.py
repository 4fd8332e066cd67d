from typing import Annotated, Any, Literal

from pydantic import AnyUrl, BaseModel, BeforeValidator, HttpUrl, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",")]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class SiteConfig(BaseModel):
    """A site the crawler is allowed to index."""

    url: str
    name: str

    @property
    def base_url(self) -> str:
        # stored without the trailing slash, paths are appended to it
        return self.url.rstrip("/")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )
    API_V1_STR: str = "/api"
    PROJECT_NAME: str = "sitesearch"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    SENTRY_DSN: HttpUrl | None = None

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    SQLALCHEMY_DATABASE_URI: str = "sqlite:///./sitesearch.db"

    # Sites to crawl, e.g. SITES='[{"url": "https://www.example.com", "name": "Example"}]'
    SITES: list[SiteConfig] = []

    # Crawl orchestration
    CRAWL_CONCURRENCY: int = 8
    CRAWL_STOP_TIMEOUT: float = 3.0

    # Page fetcher
    FETCH_TIMEOUT: float = 10.0
    FETCH_RETRIES: int = 3
    FETCH_RETRY_WAIT: float = 1.0
    FETCH_DELAY_MIN: float = 0.5
    FETCH_DELAY_MAX: float = 1.5
    USER_AGENT: str = "SitesearchBot/1.0"
    REFERER: str = "http://www.google.com"

    # Query engine
    SEARCH_FREQUENCY_PERCENT: int = 20
    SEARCH_DEFAULT_LIMIT: int = 10


settings = Settings()  # type: ignore
