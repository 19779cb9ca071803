"""API-Football v3 adapter (primary provider, system of record).

Endpoints used:
- GET /leagues?id={league_id}&season={season}
- GET /teams?league={league_id}&season={season}
- GET /players/squads?team={team_id}
- GET /fixtures?league={league_id}&season={season}
- GET /fixtures/events?fixture={fixture_id}
"""
from typing import Any, Dict, List, Optional

from sportsync.core.config import Settings, settings as default_settings
from sportsync.core.logging import get_logger
from sportsync.models.canonical import PRIMARY_PROVIDER
from sportsync.services.core.rate_limiter import SlidingWindowRateLimiter
from sportsync.services.sync.adapters.base_adapter import ProviderAdapter
from sportsync.services.sync.exceptions import ProviderError
from sportsync.services.sync.normalizers import api_football

logger = get_logger(__name__)


class ApiFootballAdapter(ProviderAdapter):
    """Fetch and normalize API-Football payloads."""

    provider = PRIMARY_PROVIDER
    normalizers = api_football.NORMALIZERS

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None, **kwargs: Any) -> "ApiFootballAdapter":
        config = config or default_settings
        limiter = SlidingWindowRateLimiter(
            max_requests=config.API_FOOTBALL_RATE_LIMIT_REQUESTS,
            window_seconds=config.API_FOOTBALL_RATE_LIMIT_WINDOW,
            name=PRIMARY_PROVIDER,
        )
        return cls(
            base_url=config.API_FOOTBALL_BASE_URL,
            headers={"x-apisports-key": config.API_FOOTBALL_KEY},
            rate_limiter=limiter,
            timeout=config.PROVIDER_TIMEOUT,
            **kwargs,
        )

    def check_body(self, body: Any) -> None:
        """API-Football answers 200 with an ``errors`` object for bad keys or quota."""
        if not isinstance(body, dict):
            return
        errors = body.get("errors")
        if errors:
            raise ProviderError(self.provider, 200, str(errors))

    async def fetch_leagues(self, league_ids: List[int], season: Optional[int] = None) -> List[Dict[str, Any]]:
        payloads: List[Dict[str, Any]] = []
        for league_id in league_ids:
            params: Dict[str, Any] = {"id": league_id}
            if season:
                params["season"] = season
            payloads.extend(await self.get_list("/leagues", params))
        return payloads

    async def fetch_teams(self, league_id: int, season: int) -> List[Dict[str, Any]]:
        return await self.get_list("/teams", {"league": league_id, "season": season})

    async def fetch_players(self, team_id: int) -> List[Dict[str, Any]]:
        """Squad entries for a team (``response[0].players``)."""
        squads = await self.get_list("/players/squads", {"team": team_id})
        players: List[Dict[str, Any]] = []
        for squad in squads:
            players.extend(squad.get("players") or [])
        return players

    async def fetch_fixtures(self, league_id: int, season: int) -> List[Dict[str, Any]]:
        return await self.get_list("/fixtures", {"league": league_id, "season": season})

    async def fetch_events(self, fixture_id: int) -> List[Dict[str, Any]]:
        return await self.get_list("/fixtures/events", {"fixture": fixture_id})
