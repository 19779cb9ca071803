"""Highlightly football adapter (secondary provider, via RapidAPI).

Endpoints used:
- GET /leagues?countryCode={code}&season={season}
- GET /teams?leagueId={league_id}&season={season}
- GET /players?teamId={team_id}
- GET /matches?leagueId={league_id}&season={season}
"""
from typing import Any, Dict, List, Optional

from sportsync.core.config import Settings, settings as default_settings
from sportsync.core.logging import get_logger
from sportsync.models.canonical import SECONDARY_PROVIDER
from sportsync.services.core.rate_limiter import SlidingWindowRateLimiter
from sportsync.services.sync.adapters.base_adapter import ProviderAdapter
from sportsync.services.sync.normalizers import highlightly

logger = get_logger(__name__)


class HighlightlyAdapter(ProviderAdapter):
    """Fetch and normalize Highlightly payloads."""

    provider = SECONDARY_PROVIDER
    normalizers = highlightly.NORMALIZERS

    def __init__(self, *args: Any, country_code: str = "KR", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.country_code = country_code

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None, **kwargs: Any) -> "HighlightlyAdapter":
        config = config or default_settings
        limiter = SlidingWindowRateLimiter(
            max_requests=config.HIGHLIGHTLY_RATE_LIMIT_REQUESTS,
            window_seconds=config.HIGHLIGHTLY_RATE_LIMIT_WINDOW,
            name=SECONDARY_PROVIDER,
        )
        return cls(
            base_url=config.HIGHLIGHTLY_BASE_URL,
            headers={
                "x-rapidapi-key": config.HIGHLIGHTLY_API_KEY,
                "x-rapidapi-host": config.HIGHLIGHTLY_RAPIDAPI_HOST,
            },
            rate_limiter=limiter,
            timeout=config.PROVIDER_TIMEOUT,
            country_code=config.HIGHLIGHTLY_COUNTRY_CODE,
            **kwargs,
        )

    async def fetch_leagues(self, season: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"countryCode": self.country_code}
        if season:
            params["season"] = season
        return await self.get_list("/leagues", params)

    async def fetch_teams(self, league_id: str, season: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"leagueId": league_id}
        if season:
            params["season"] = season
        return await self.get_list("/teams", params)

    async def fetch_players(self, team_id: str) -> List[Dict[str, Any]]:
        return await self.get_list("/players", {"teamId": team_id})

    async def fetch_fixtures(self, league_id: str, season: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"leagueId": league_id}
        if season:
            params["season"] = season
        return await self.get_list("/matches", params)
