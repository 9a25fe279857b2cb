"""
backend/oddscache/config.py

Purpose:
    Central settings loading plus the refresh policy derived from it.
    Values are read once at import time and are not hot-reloaded.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from dataclasses import dataclass
from pathlib import Path

from pydantic_settings import BaseSettings

from oddscache.utils import split_csv

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"

_DEFAULT_PLAYER_PROP_MARKETS = ",".join([
    "player_pass_tds", "player_pass_yds", "player_pass_completions",
    "player_pass_attempts", "player_pass_interceptions", "player_pass_longest_completion",
    "player_rush_yds", "player_rush_attempts", "player_rush_longest",
    "player_receptions", "player_reception_yds", "player_reception_longest",
    "player_anytime_td", "player_first_td", "player_last_td",
])


class Settings(BaseSettings):
    ODDS_API_KEY: str
    MONGO_URI: str
    MONGO_DB: str = "oddscache"
    LOG_LEVEL: str = "INFO"

    # Upstream provider
    THEODDSAPI_BASE_URL: str = "https://api.the-odds-api.com/v4"
    THEODDSAPI_RATE_LIMIT_RPM: int = 600  # ~100ms spacing between per-event calls
    ODDS_API_TIMEOUT_SECONDS: float = 15.0
    # Retries apply to per-event player-prop calls only; listing and main lines are never retried.
    ODDS_PLAYER_PROPS_MAX_RETRIES: int = 0

    # Tracked sport and markets
    ODDS_SPORT_KEY: str = "americanfootball_nfl"
    ODDS_REGIONS: str = "us,us_dfs"
    ODDS_FORMAT: str = "american"
    ODDS_BOOKMAKERS: str = "draftkings,fanduel,betmgm,caesars,prizepicks,underdog,draftkings_pick6"
    ODDS_MAIN_LINE_MARKETS: str = "h2h,spreads,totals"
    ODDS_PLAYER_PROP_MARKETS: str = _DEFAULT_PLAYER_PROP_MARKETS

    # Freshness policy
    ODDS_MAIN_LINES_TTL_SECONDS: int = 120
    ODDS_PLAYER_PROPS_TTL_SECONDS: int = 90
    ODDS_REFRESH_INTERVAL_SECONDS: int = 60
    ODDS_PLAYER_PROPS_CONCURRENCY: int = 1

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }


settings = Settings()


@dataclass(frozen=True)
class RefreshPolicy:
    """What one deployment tracks and how long each tier stays fresh."""

    sport_key: str
    bookmakers: tuple[str, ...]
    main_line_markets: tuple[str, ...]
    player_prop_markets: tuple[str, ...]
    main_lines_ttl_seconds: int = 120
    player_props_ttl_seconds: int = 90
    interval_seconds: int = 60
    regions: str = "us"
    odds_format: str = "american"
    player_props_concurrency: int = 1
    player_props_rpm: int = 600

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "RefreshPolicy":
        s = source or settings
        return cls(
            sport_key=s.ODDS_SPORT_KEY,
            bookmakers=tuple(split_csv(s.ODDS_BOOKMAKERS)),
            main_line_markets=tuple(split_csv(s.ODDS_MAIN_LINE_MARKETS)),
            player_prop_markets=tuple(split_csv(s.ODDS_PLAYER_PROP_MARKETS)),
            main_lines_ttl_seconds=s.ODDS_MAIN_LINES_TTL_SECONDS,
            player_props_ttl_seconds=s.ODDS_PLAYER_PROPS_TTL_SECONDS,
            interval_seconds=s.ODDS_REFRESH_INTERVAL_SECONDS,
            regions=s.ODDS_REGIONS,
            odds_format=s.ODDS_FORMAT,
            player_props_concurrency=max(1, s.ODDS_PLAYER_PROPS_CONCURRENCY),
            player_props_rpm=s.THEODDSAPI_RATE_LIMIT_RPM,
        )

    def ttl_for(self, tier: str) -> int:
        if tier == "player_prop":
            return self.player_props_ttl_seconds
        return self.main_lines_ttl_seconds
