"""Shared pytest fixtures for sportsync tests."""
import sys
from pathlib import Path
from datetime import datetime
from typing import Any, Dict, Generator, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    from sportsync.models.models import Base

    # One connection shared by every session of the test
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(bind=engine)
    session = TestSessionLocal()

    yield session

    session.close()
    engine.dispose()


# ─── Row factories ──────────────────────────────────────────────────────────

def create_player(
    db: Session,
    id: int,
    team_id: int,
    jersey_number: Optional[int],
    position: str = "Midfielder",
    name: Optional[str] = None,
):
    """Insert a canonical player row."""
    from sportsync.models.models import Player

    now = datetime.utcnow()
    player = Player(
        id=id,
        team_id=team_id,
        name=name or f"Player {id}",
        position=position,
        jersey_number=jersey_number,
        created_at=now,
        updated_at=now,
    )
    db.add(player)
    db.commit()
    return player


def create_event(db: Session, id: int, fixture_id: int, **fields):
    """Insert an event row with an explicit id."""
    from sportsync.models.models import Event

    values = {
        "team_id": 5,
        "player_id": 99,
        "assist_player_id": None,
        "elapsed": 23,
        "extra": None,
        "type": "Goal",
        "detail": None,
        "comments": None,
    }
    values.update(fields)
    event = Event(id=id, fixture_id=fixture_id, created_at=datetime.utcnow(), **values)
    db.add(event)
    db.commit()
    return event


def create_mapping(
    db: Session,
    entity_type: str,
    provider_a_id: Any,
    provider_b_id: Any,
    confidence: float = 0.95,
    entity_name: str = "",
):
    """Insert a mapping registry row directly."""
    from sportsync.models.models import ApiIdMapping

    now = datetime.utcnow()
    mapping = ApiIdMapping(
        entity_type=entity_type,
        provider_a_id=str(provider_a_id),
        provider_b_id=str(provider_b_id),
        entity_name=entity_name,
        mapping_confidence=confidence,
        verified_at=now,
        created_at=now,
        updated_at=now,
    )
    db.add(mapping)
    db.commit()
    return mapping


# ─── Provider payloads ──────────────────────────────────────────────────────

def api_football_league(league_id: int, name: str, country: str = "South-Korea") -> Dict[str, Any]:
    return {
        "league": {"id": league_id, "name": name, "type": "League", "logo": None},
        "country": {"name": country, "code": "KR"},
        "seasons": [{"year": 2024, "current": False}, {"year": 2025, "current": True}],
    }


def api_football_team(team_id: int, name: str, code: Optional[str] = None, country: str = "South-Korea") -> Dict[str, Any]:
    return {
        "team": {"id": team_id, "name": name, "code": code, "country": country, "founded": None, "logo": None},
        "venue": {"name": None},
    }


def api_football_squad_player(player_id: int, name: str, number: Optional[int], position: str) -> Dict[str, Any]:
    return {"id": player_id, "name": name, "age": 27, "number": number, "position": position, "photo": None}


def api_football_fixture(
    fixture_id: int,
    home: tuple,
    away: tuple,
    date: str = "2025-03-01T05:00:00+00:00",
    league_id: int = 292,
) -> Dict[str, Any]:
    return {
        "fixture": {"id": fixture_id, "date": date, "status": {"short": "FT"}, "venue": {"name": None}},
        "league": {"id": league_id, "season": 2025, "round": None},
        "teams": {"home": {"id": home[0], "name": home[1]}, "away": {"id": away[0], "name": away[1]}},
        "goals": {"home": 1, "away": 0},
    }


def api_football_event(elapsed: int = 23, **overrides) -> Dict[str, Any]:
    payload = {
        "time": {"elapsed": elapsed, "extra": None},
        "team": {"id": 5},
        "player": {"id": 99},
        "assist": {"id": None},
        "type": "Goal",
        "detail": "Normal Goal",
        "comments": None,
    }
    payload.update(overrides)
    return payload


def highlightly_league(league_id: int, name: str, country: str = "South Korea") -> Dict[str, Any]:
    return {"id": league_id, "name": name, "logo": f"https://img.test/l/{league_id}.png",
            "country": {"name": country, "code": "KR"}}


def highlightly_team(team_id: int, name: str, country: str = "South Korea", **extra) -> Dict[str, Any]:
    payload = {"id": team_id, "name": name, "country": {"name": country}}
    payload.update(extra)
    return payload


def highlightly_player(player_id: int, name: str, number: Optional[int] = None, position: Optional[str] = None,
                       **extra) -> Dict[str, Any]:
    payload = {"id": player_id, "name": name, "number": number, "position": position}
    payload.update(extra)
    return payload


def highlightly_match(match_id: int, home: tuple, away: tuple, date: str = "2025-03-01T05:00:00Z") -> Dict[str, Any]:
    return {
        "id": match_id,
        "homeTeam": {"id": home[0], "name": home[1]},
        "awayTeam": {"id": away[0], "name": away[1]},
        "matchDate": date,
        "state": {"description": "Finished"},
        "venue": {"name": "Jeonju World Cup Stadium"},
    }


# ─── Orchestrator wiring ────────────────────────────────────────────────────

@pytest.fixture
def primary_adapter():
    """api_football adapter with no network access; tests replace fetch_* with AsyncMocks."""
    from sportsync.services.sync.adapters.api_football_adapter import ApiFootballAdapter
    return ApiFootballAdapter(base_url="https://api-football.test")


@pytest.fixture
def secondary_adapter():
    """highlightly adapter with no network access; tests replace fetch_* with AsyncMocks."""
    from sportsync.services.sync.adapters.highlightly_adapter import HighlightlyAdapter
    return HighlightlyAdapter(base_url="https://highlightly.test")


async def no_sleep(seconds: float) -> None:
    return None


def mapping_rows(db: Session, entity_type: Optional[str] = None) -> List[Any]:
    from sportsync.models.models import ApiIdMapping

    query = db.query(ApiIdMapping)
    if entity_type:
        query = query.filter(ApiIdMapping.entity_type == entity_type)
    return query.order_by(ApiIdMapping.id).all()
