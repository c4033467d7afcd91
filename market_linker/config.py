from __future__ import annotations

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(ValueError):
    pass


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db: str = Field(default="market_linker", alias="MONGODB_DB")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    polymarket_enabled: bool = Field(default=True, alias="POLYMARKET_ENABLED")
    polymarket_gamma_base_url: str = Field(
        default="https://gamma-api.polymarket.com", alias="POLYMARKET_GAMMA_BASE_URL"
    )
    polymarket_limit: int = Field(default=2000, alias="POLYMARKET_LIMIT")

    kalshi_enabled: bool = Field(default=True, alias="KALSHI_ENABLED")
    kalshi_base_url: str = Field(default="https://api.elections.kalshi.com/trade-api/v2", alias="KALSHI_BASE_URL")
    kalshi_limit: int = Field(default=2000, alias="KALSHI_LIMIT")

    http_timeout_seconds: int = Field(default=15, alias="HTTP_TIMEOUT_SECONDS")
    http_max_attempts: int = Field(default=5, alias="HTTP_MAX_ATTEMPTS")
    http_base_delay_seconds: float = Field(default=1.0, alias="HTTP_BASE_DELAY_SECONDS")
    http_max_delay_seconds: float = Field(default=60.0, alias="HTTP_MAX_DELAY_SECONDS")

    topics: str = Field(default="crypto_daily,macro", alias="MATCH_TOPICS")
    left_venue: str = Field(default="polymarket", alias="MATCH_LEFT_VENUE")
    right_venue: str = Field(default="kalshi", alias="MATCH_RIGHT_VENUE")
    match_lookback_hours: int = Field(default=24 * 14, alias="MATCH_LOOKBACK_HOURS")
    match_limit_left: int = Field(default=500, alias="MATCH_LIMIT_LEFT")
    match_limit_right: int = Field(default=5000, alias="MATCH_LIMIT_RIGHT")
    match_min_score: float = Field(default=0.60, alias="MATCH_MIN_SCORE")
    match_max_per_left: int = Field(default=5, alias="MATCH_MAX_PER_LEFT")
    match_max_per_right: int = Field(default=5, alias="MATCH_MAX_PER_RIGHT")

    bracket_max_groups_per_left: int = Field(default=3, alias="BRACKET_MAX_GROUPS_PER_LEFT")
    bracket_max_lines_per_group: int = Field(default=1, alias="BRACKET_MAX_LINES_PER_GROUP")
    bracket_strategy: str = Field(default="best_score", alias="BRACKET_STRATEGY")

    confirm_limit: int = Field(default=500, alias="CONFIRM_LIMIT")
    reject_limit: int = Field(default=2000, alias="REJECT_LIMIT")
    reject_min_age_hours: float = Field(default=24.0, alias="REJECT_MIN_AGE_HOURS")

    watchlist_max_total: int = Field(default=2000, alias="WATCHLIST_MAX_TOTAL")
    watchlist_max_per_venue: int = Field(default=1000, alias="WATCHLIST_MAX_PER_VENUE")
    watchlist_min_score_safe_crypto_daily: float = Field(default=0.90, alias="WATCHLIST_MIN_SCORE_SAFE_CRYPTO_DAILY")
    watchlist_min_score_safe_intraday: float = Field(default=0.92, alias="WATCHLIST_MIN_SCORE_SAFE_INTRADAY")
    watchlist_min_score_safe_macro: float = Field(default=0.88, alias="WATCHLIST_MIN_SCORE_SAFE_MACRO")
    watchlist_min_score_suggested: float = Field(default=0.85, alias="WATCHLIST_MIN_SCORE_SUGGESTED")
    watchlist_max_top_suggested: int = Field(default=500, alias="WATCHLIST_MAX_TOP_SUGGESTED")

    freshness_minutes: int = Field(default=5, alias="FRESHNESS_MINUTES")
    write_chunk_size: int = Field(default=500, alias="WRITE_CHUNK_SIZE")

    def topic_list(self) -> list[str]:
        return [t.strip() for t in self.topics.split(",") if t.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
