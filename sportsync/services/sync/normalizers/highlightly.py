"""
Normalizer for Highlightly football payloads (secondary provider).

Highlightly field names drift between endpoints and API versions, so most
fields accept more than one spelling (``logo``/``logoUrl``,
``homeTeam``/``home_team``, ``number``/``shirtNumber`` ...). Records never
carry a canonical id; the orchestrator binds them through the matcher.
"""
from typing import Any, Dict, Optional

from sportsync.models.canonical import (
    SECONDARY_PROVIDER,
    CanonicalFixture,
    CanonicalLeague,
    CanonicalPlayer,
    CanonicalTeam,
)
from sportsync.services.sync.exceptions import MalformedPayloadError
from sportsync.services.sync.normalizers.base import dig, first_present, require, to_int, to_str
from sportsync.utils.timezone import parse_provider_datetime

PROVIDER = SECONDARY_PROVIDER


def _country_name(payload: Dict[str, Any]) -> Optional[str]:
    country = payload.get("country")
    if isinstance(country, dict):
        return to_str(country.get("name"))
    return to_str(first_present(payload.get("countryName"), country))


def _country_code(payload: Dict[str, Any]) -> Optional[str]:
    return to_str(first_present(dig(payload, "country", "code"), payload.get("countryCode")))


def normalize_league(payload: Dict[str, Any]) -> CanonicalLeague:
    league_id = require(payload.get("id"), "league", PROVIDER, None, "id")
    name = require(to_str(payload.get("name")), "league", PROVIDER, league_id, "name")

    record = CanonicalLeague(
        provider=PROVIDER,
        provider_id=str(league_id),
        name=name,
        country=_country_name(payload),
        country_code=_country_code(payload),
        logo=to_str(first_present(payload.get("logo"), payload.get("logoUrl"))),
        season=to_int(first_present(dig(payload, "currentSeason", "year"), payload.get("season"))),
    )
    record.record_source()
    return record


def normalize_team(payload: Dict[str, Any], league_id: Optional[int] = None) -> CanonicalTeam:
    team_id = require(payload.get("id"), "team", PROVIDER, None, "id")
    name = require(to_str(payload.get("name")), "team", PROVIDER, team_id, "name")

    record = CanonicalTeam(
        provider=PROVIDER,
        provider_id=str(team_id),
        name=name,
        short_name=to_str(first_present(payload.get("shortName"), payload.get("code"))),
        code=to_str(first_present(payload.get("code"), payload.get("shortName"))),
        country=_country_name(payload),
        founded=to_int(payload.get("founded")),
        logo=to_str(first_present(payload.get("logo"), payload.get("logoUrl"))),
        venue_name=to_str(first_present(dig(payload, "venue", "name"), payload.get("venueName"))),
        league_id=league_id,
    )
    record.record_source()
    return record


def normalize_player(payload: Dict[str, Any], team_id: Optional[int] = None) -> CanonicalPlayer:
    player_id = require(payload.get("id"), "player", PROVIDER, None, "id")
    firstname = to_str(payload.get("firstName"))
    lastname = to_str(payload.get("lastName"))
    name = to_str(payload.get("name")) or to_str(f"{firstname or ''} {lastname or ''}")
    name = require(name, "player", PROVIDER, player_id, "name")

    record = CanonicalPlayer(
        provider=PROVIDER,
        provider_id=str(player_id),
        name=name,
        firstname=firstname,
        lastname=lastname,
        position=to_str(payload.get("position")),
        jersey_number=to_int(first_present(payload.get("number"), payload.get("shirtNumber"))),
        nationality=to_str(first_present(payload.get("nationality"), _country_name(payload))),
        age=to_int(payload.get("age")),
        photo=to_str(first_present(payload.get("photo"), payload.get("image"))),
        team_id=team_id,
    )
    record.record_source()
    return record


def _side(payload: Dict[str, Any], camel: str, snake: str, flat_id: str) -> Dict[str, Any]:
    team = first_present(payload.get(camel), payload.get(snake))
    if isinstance(team, dict):
        return {"id": team.get("id"), "name": team.get("name")}
    return {"id": payload.get(flat_id), "name": None}


def normalize_fixture(payload: Dict[str, Any]) -> CanonicalFixture:
    match_id = require(payload.get("id"), "fixture", PROVIDER, None, "id")
    home = _side(payload, "homeTeam", "home_team", "homeTeamId")
    away = _side(payload, "awayTeam", "away_team", "awayTeamId")
    if home["id"] is None and not home["name"]:
        raise MalformedPayloadError("fixture", PROVIDER, match_id, "missing home team")
    if away["id"] is None and not away["name"]:
        raise MalformedPayloadError("fixture", PROVIDER, match_id, "missing away team")

    try:
        kickoff = parse_provider_datetime(first_present(payload.get("matchDate"), payload.get("date")))
    except ValueError as e:
        raise MalformedPayloadError("fixture", PROVIDER, match_id, f"bad date: {e}")

    status = payload.get("status")
    if isinstance(status, dict):
        status = first_present(status.get("short"), status.get("description"))

    league_id = first_present(dig(payload, "league", "id"), payload.get("leagueId"))
    record = CanonicalFixture(
        provider=PROVIDER,
        provider_id=str(match_id),
        home_team_id=str(home["id"]) if home["id"] is not None else None,
        away_team_id=str(away["id"]) if away["id"] is not None else None,
        home_team_name=to_str(home["name"]),
        away_team_name=to_str(away["name"]),
        kickoff_at=kickoff,
        status=to_str(status),
        home_goals=to_int(first_present(payload.get("homeScore"), dig(payload, "score", "home"))),
        away_goals=to_int(first_present(payload.get("awayScore"), dig(payload, "score", "away"))),
        league_id=str(league_id) if league_id is not None else None,
        season=to_int(payload.get("season")),
        round=to_str(first_present(payload.get("round"), payload.get("matchday"))),
        venue_name=to_str(first_present(dig(payload, "venue", "name"), payload.get("venueName"))),
    )
    record.record_source()
    return record


NORMALIZERS = {
    "league": normalize_league,
    "team": normalize_team,
    "player": normalize_player,
    "fixture": normalize_fixture,
}
