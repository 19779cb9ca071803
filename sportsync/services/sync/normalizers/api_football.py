"""
Normalizer for API-Football v3 payloads (primary provider).

api_football is the system of record: its ids double as canonical ids, so
every record it produces carries ``id = int(provider_id)``.

Payload shapes (one element of ``response``):
- league:  {league: {id, name, type, logo}, country: {name, code}, seasons: [{year, current}]}
- team:    {team: {id, name, code, country, founded, logo}, venue: {name}}
- player:  {player: {id, name, firstname, lastname, age, nationality, photo},
            statistics: [{team: {id}, games: {position, number}}]}
  or squad entry {id, name, age, number, position, photo}
- fixture: {fixture: {id, date, status: {short}, venue: {name}},
            league: {id, season, round}, teams: {home: {id, name}, away: {id, name}},
            goals: {home, away}}
- event:   {time: {elapsed, extra}, team: {id}, player: {id}, assist: {id},
            type, detail, comments}
"""
from typing import Any, Dict, Optional

from sportsync.models.canonical import (
    PRIMARY_PROVIDER,
    CanonicalEvent,
    CanonicalFixture,
    CanonicalLeague,
    CanonicalPlayer,
    CanonicalTeam,
)
from sportsync.services.sync.exceptions import MalformedPayloadError
from sportsync.services.sync.normalizers.base import dig, first_present, require, to_int, to_str
from sportsync.services.sync.utils.name_normalizer import extract_player_name_parts
from sportsync.utils.timezone import parse_provider_datetime

PROVIDER = PRIMARY_PROVIDER


def _current_season(seasons: Any) -> Optional[int]:
    """Season flagged ``current``, else the latest listed."""
    if not isinstance(seasons, list) or not seasons:
        return None
    for season in seasons:
        if isinstance(season, dict) and season.get("current"):
            return to_int(season.get("year"))
    years = [to_int(s.get("year")) for s in seasons if isinstance(s, dict)]
    years = [y for y in years if y is not None]
    return max(years) if years else None


def normalize_league(payload: Dict[str, Any], season: Optional[int] = None) -> CanonicalLeague:
    league_id = to_int(require(dig(payload, "league", "id"), "league", PROVIDER, None, "league.id"))
    name = require(to_str(dig(payload, "league", "name")), "league", PROVIDER, league_id, "league.name")

    record = CanonicalLeague(
        provider=PROVIDER,
        provider_id=str(league_id),
        name=name,
        country=to_str(dig(payload, "country", "name")),
        country_code=to_str(dig(payload, "country", "code")),
        logo=to_str(dig(payload, "league", "logo")),
        season=season or _current_season(payload.get("seasons")),
        type=to_str(dig(payload, "league", "type")),
        id=league_id,
    )
    record.record_source()
    return record


def normalize_team(payload: Dict[str, Any], league_id: Optional[int] = None) -> CanonicalTeam:
    team_id = to_int(require(dig(payload, "team", "id"), "team", PROVIDER, None, "team.id"))
    name = require(to_str(dig(payload, "team", "name")), "team", PROVIDER, team_id, "team.name")
    code = to_str(dig(payload, "team", "code"))

    record = CanonicalTeam(
        provider=PROVIDER,
        provider_id=str(team_id),
        name=name,
        short_name=code,  # api_football has no separate short name
        code=code,
        country=to_str(dig(payload, "team", "country")),
        founded=to_int(dig(payload, "team", "founded")),
        logo=to_str(dig(payload, "team", "logo")),
        venue_name=to_str(dig(payload, "venue", "name")),
        league_id=league_id,
        id=team_id,
    )
    record.record_source()
    return record


def normalize_player(payload: Dict[str, Any], team_id: Optional[int] = None) -> CanonicalPlayer:
    """Accepts both /players entries and /players/squads entries."""
    if isinstance(payload.get("player"), dict):
        details = payload["player"]
        statistics = payload.get("statistics") or [{}]
        games = dig(statistics[0], "games", default={}) if statistics else {}
        position = games.get("position")
        number = games.get("number")
        if team_id is None and statistics:
            team_id = to_int(dig(statistics[0], "team", "id"))
    else:
        details = payload
        position = payload.get("position")
        number = payload.get("number")

    player_id = to_int(require(details.get("id"), "player", PROVIDER, None, "player.id"))
    name = require(to_str(details.get("name")), "player", PROVIDER, player_id, "player.name")

    firstname = to_str(details.get("firstname"))
    lastname = to_str(details.get("lastname"))
    if firstname is None and lastname is None:
        first, last = extract_player_name_parts(name)
        firstname, lastname = to_str(first), to_str(last)

    record = CanonicalPlayer(
        provider=PROVIDER,
        provider_id=str(player_id),
        name=name,
        firstname=firstname,
        lastname=lastname,
        position=to_str(position),
        jersey_number=to_int(number),
        nationality=to_str(details.get("nationality")),
        age=to_int(details.get("age")),
        photo=to_str(details.get("photo")),
        team_id=team_id,
        id=player_id,
    )
    record.record_source()
    return record


def normalize_fixture(payload: Dict[str, Any]) -> CanonicalFixture:
    fixture_id = to_int(require(dig(payload, "fixture", "id"), "fixture", PROVIDER, None, "fixture.id"))
    home_id = require(dig(payload, "teams", "home", "id"), "fixture", PROVIDER, fixture_id, "teams.home.id")
    away_id = require(dig(payload, "teams", "away", "id"), "fixture", PROVIDER, fixture_id, "teams.away.id")

    try:
        kickoff = parse_provider_datetime(dig(payload, "fixture", "date"))
    except ValueError as e:
        raise MalformedPayloadError("fixture", PROVIDER, fixture_id, f"bad fixture.date: {e}")

    league_id = dig(payload, "league", "id")
    record = CanonicalFixture(
        provider=PROVIDER,
        provider_id=str(fixture_id),
        home_team_id=str(home_id),
        away_team_id=str(away_id),
        home_team_name=to_str(dig(payload, "teams", "home", "name")),
        away_team_name=to_str(dig(payload, "teams", "away", "name")),
        kickoff_at=kickoff,
        status=to_str(dig(payload, "fixture", "status", "short")),
        home_goals=to_int(dig(payload, "goals", "home")),
        away_goals=to_int(dig(payload, "goals", "away")),
        league_id=str(league_id) if league_id is not None else None,
        season=to_int(dig(payload, "league", "season")),
        round=to_str(dig(payload, "league", "round")),
        venue_name=to_str(dig(payload, "fixture", "venue", "name")),
        id=fixture_id,
    )
    record.record_source()
    return record


def normalize_event(payload: Dict[str, Any], fixture_id: Optional[int] = None) -> CanonicalEvent:
    fixture_id = to_int(first_present(fixture_id, dig(payload, "fixture", "id")))
    require(fixture_id, "event", PROVIDER, None, "fixture id")
    event_type = require(to_str(payload.get("type")), "event", PROVIDER, fixture_id, "type")

    return CanonicalEvent(
        provider=PROVIDER,
        fixture_id=fixture_id,
        type=event_type,
        team_id=to_int(dig(payload, "team", "id")),
        player_id=to_int(dig(payload, "player", "id")),
        assist_player_id=to_int(dig(payload, "assist", "id")),
        elapsed=to_int(dig(payload, "time", "elapsed")),
        extra=to_int(dig(payload, "time", "extra")),
        detail=to_str(payload.get("detail")),
        comments=to_str(payload.get("comments")),
    )


NORMALIZERS = {
    "league": normalize_league,
    "team": normalize_team,
    "player": normalize_player,
    "fixture": normalize_fixture,
    "event": normalize_event,
}
