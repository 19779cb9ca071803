"""Tests for provider adapters.

Test Strategy:
1. Test endpoints, params and auth headers per provider (httpx.MockTransport)
2. Test 5xx / transport errors are retried, then surface as ProviderError
3. Test 429 waits for Retry-After without consuming an attempt
4. Test 4xx and API-Football body errors fail immediately
"""
from typing import List

import httpx
import pytest
from tenacity import wait_none

from sportsync.services.sync.adapters.api_football_adapter import ApiFootballAdapter
from sportsync.services.sync.adapters.highlightly_adapter import HighlightlyAdapter
from sportsync.services.sync.exceptions import ProviderError


class Recorder:
    """MockTransport handler that replays scripted responses and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def make_adapter(cls, recorder, sleeps=None, **kwargs):
    async def fake_sleep(seconds):
        if sleeps is not None:
            sleeps.append(seconds)

    return cls(
        base_url="https://provider.test",
        headers={"x-apisports-key": "secret"},
        client=httpx.AsyncClient(transport=httpx.MockTransport(recorder)),
        retry_wait=wait_none(),
        sleep=fake_sleep,
        **kwargs,
    )


class TestApiFootballAdapter:
    """Tests for the primary provider adapter."""

    # Endpoints
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_fetch_teams(self):
        """Should call /teams with league and season and return the response list."""
        recorder = Recorder(httpx.Response(200, json={"errors": [], "response": [{"team": {"id": 1}}]}))
        adapter = make_adapter(ApiFootballAdapter, recorder)

        teams = await adapter.fetch_teams(292, 2025)

        assert teams == [{"team": {"id": 1}}]
        request = recorder.requests[0]
        assert request.url.path == "/teams"
        assert request.url.params["league"] == "292"
        assert request.url.params["season"] == "2025"
        assert request.headers["x-apisports-key"] == "secret"

    @pytest.mark.asyncio
    async def test_fetch_players_flattens_squads(self):
        """Should flatten response[].players from /players/squads."""
        body = {"errors": [], "response": [{"team": {"id": 2762}, "players": [{"id": 1}, {"id": 2}]}]}
        adapter = make_adapter(ApiFootballAdapter, Recorder(httpx.Response(200, json=body)))

        assert await adapter.fetch_players(2762) == [{"id": 1}, {"id": 2}]

    @pytest.mark.asyncio
    async def test_fetch_leagues_one_request_per_id(self):
        """Should request each league id separately."""
        recorder = Recorder(httpx.Response(200, json={"errors": [], "response": [{"league": {"id": 1}}]}))
        adapter = make_adapter(ApiFootballAdapter, recorder)

        leagues = await adapter.fetch_leagues([292, 293], 2025)

        assert len(leagues) == 2
        assert [r.url.params["id"] for r in recorder.requests] == ["292", "293"]

    # Errors
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_body_errors(self):
        """Should raise when API-Football reports errors inside a 200 body."""
        body = {"errors": {"token": "Error/Missing application key"}, "response": []}
        adapter = make_adapter(ApiFootballAdapter, Recorder(httpx.Response(200, json=body)))

        with pytest.raises(ProviderError) as exc:
            await adapter.fetch_teams(292, 2025)
        assert exc.value.status == 200

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        """Should retry 5xx answers and return the eventual success."""
        recorder = Recorder(
            httpx.Response(503, text="unavailable"),
            httpx.Response(502, text="bad gateway"),
            httpx.Response(200, json={"errors": [], "response": []}),
        )
        adapter = make_adapter(ApiFootballAdapter, recorder)

        assert await adapter.fetch_fixtures(292, 2025) == []
        assert len(recorder.requests) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        """Should surface a ProviderError after exhausting attempts."""
        recorder = Recorder(httpx.Response(500, text="boom"))
        adapter = make_adapter(ApiFootballAdapter, recorder)

        with pytest.raises(ProviderError) as exc:
            await adapter.fetch_fixtures(292, 2025)
        assert exc.value.status == 500
        assert len(recorder.requests) == 3

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self):
        """Should retry transport errors and wrap the last one in ProviderError."""
        recorder = Recorder(httpx.ConnectError("connection refused"))
        adapter = make_adapter(ApiFootballAdapter, recorder)

        with pytest.raises(ProviderError) as exc:
            await adapter.fetch_events(1001)
        assert exc.value.status is None
        assert len(recorder.requests) == 3

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        """Should fail immediately on 4xx answers."""
        recorder = Recorder(httpx.Response(403, text="forbidden"))
        adapter = make_adapter(ApiFootballAdapter, recorder)

        with pytest.raises(ProviderError) as exc:
            await adapter.fetch_teams(292, 2025)
        assert exc.value.status == 403
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_rate_limited_waits_retry_after(self):
        """Should sleep for Retry-After on 429 and then succeed."""
        sleeps = []
        recorder = Recorder(
            httpx.Response(429, headers={"Retry-After": "2"}),
            httpx.Response(200, json={"errors": [], "response": [{"id": 1}]}),
        )
        adapter = make_adapter(ApiFootballAdapter, recorder, sleeps=sleeps, max_attempts=1)

        assert await adapter.fetch_events(1001) == [{"id": 1}]
        assert sleeps == [2.0]

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """Should raise ProviderError for a body that is not JSON."""
        adapter = make_adapter(ApiFootballAdapter, Recorder(httpx.Response(200, text="<html>")))

        with pytest.raises(ProviderError):
            await adapter.fetch_teams(292, 2025)


class TestHighlightlyAdapter:
    """Tests for the secondary provider adapter."""

    @pytest.mark.asyncio
    async def test_fetch_leagues_by_country(self):
        """Should filter leagues by the configured country code."""
        recorder = Recorder(httpx.Response(200, json={"data": [{"id": 84182, "name": "K League 1"}]}))
        adapter = make_adapter(HighlightlyAdapter, recorder, country_code="KR")

        leagues = await adapter.fetch_leagues(2025)

        assert leagues == [{"id": 84182, "name": "K League 1"}]
        assert recorder.requests[0].url.params["countryCode"] == "KR"

    @pytest.mark.asyncio
    async def test_fetch_fixtures_uses_matches(self):
        """Should read matches from /matches?leagueId=..."""
        recorder = Recorder(httpx.Response(200, json={"data": []}))
        adapter = make_adapter(HighlightlyAdapter, recorder)

        await adapter.fetch_fixtures("84182", 2025)

        request = recorder.requests[0]
        assert request.url.path == "/matches"
        assert request.url.params["leagueId"] == "84182"

    def test_normalize_dispatch(self):
        """Should dispatch to the provider normalizer and reject unsupported kinds."""
        adapter = HighlightlyAdapter(base_url="https://provider.test")
        team = adapter.normalize("team", {"id": 7, "name": "Jeonbuk Motors"})
        assert team.provider == "highlightly"
        records, errors = adapter.normalize_many("team", [{"id": 7, "name": "Jeonbuk Motors"}, {"name": "x"}])
        assert len(records) == 1 and len(errors) == 1
