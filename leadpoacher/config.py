from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    app_name: str = 'leadpoacher'
    app_version: str = '1.0.0'
    log_level: str = 'INFO'

    user_agent: str = (
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
        '(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36'
    )
    name_fetch_user_agent: str = 'Mozilla/5.0 (compatible; LeadPoacher/1.0)'

    # HTML search endpoint, no API key required
    search_url: str = 'https://html.duckduckgo.com/html/'
    search_timeout_seconds: float = 10.0
    max_search_results: int = Field(default=15, ge=1, le=50)

    request_timeout_seconds: float = 10.0
    name_fetch_timeout_seconds: float = 5.0
    page_delay_seconds: float = 1.0
    worker_concurrency: int = Field(default=1, ge=1)

    # Domains handed to discovery per job; 0 disables discovery and the privacy crawl
    domain_budget: int = 500
    job_dedupe_window_seconds: int = 300

    enable_static_list: bool = True
    enable_api_discovery: bool = False
    enable_web_crawling: bool = False
    max_domains_per_source: int = 500
    max_domains_per_seed: int = 100
    crawl_delay_seconds: float = 1.0
    respect_robots_txt: bool = True
    min_business_confidence: float = Field(default=0.3, ge=0.0, le=1.0)

    commoncrawl_index_url: str = 'https://index.commoncrawl.org/CC-MAIN-2024-10-index'
    commoncrawl_url_pattern: str = '*.de'

    # Optional domain-intelligence provider returning {"domains": [...]}
    domain_api_url: str | None = None
    domain_api_key: str | None = None


@lru_cache
def get_settings() -> Settings:
    return Settings()
