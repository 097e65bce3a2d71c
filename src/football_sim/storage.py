from __future__ import annotations

import json
import logging
import shutil
from dataclasses import asdict
from datetime import date
from pathlib import Path
from typing import Any

from .config import MATCH_HISTORY_LIMIT, NEWS_LIMIT, SAVE_VERSION, TRANSFER_HISTORY_LIMIT
from .history import BoundedHistory
from .models import (
    CareerRecord,
    Club,
    Competition,
    Fixture,
    GameState,
    MatchEvent,
    MatchRecord,
    NewsItem,
    Player,
    SeasonStats,
    StandingEntry,
    TransferOffer,
    TransferRecord,
)

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Cannot serialise {type(value).__name__}.")


def _date(value: Any) -> date | None:
    if not value:
        return None
    return date.fromisoformat(str(value))


def serialize_state(state: GameState) -> dict[str, Any]:
    return {
        "user_club_id": state.user_club_id,
        "manager_name": state.manager_name,
        "current_date": state.current_date.isoformat(),
        "season": state.season,
        "season_complete": state.season_complete,
        "clubs": [asdict(club) for club in state.clubs.values()],
        "players": [asdict(player) for player in state.players.values()],
        "competitions": [
            {
                "competition_id": comp.competition_id,
                "name": comp.name,
                "kind": comp.kind,
                "country": comp.country,
                "tier": comp.tier,
                "team_ids": list(comp.team_ids),
                "standings": [asdict(entry) for entry in comp.standings.values()],
            }
            for comp in state.competitions.values()
        ],
        "fixtures": [asdict(fixture) for fixture in state.fixtures],
        "offers": [asdict(offer) for offer in state.offers],
        "match_history": [asdict(record) for record in state.match_history],
        "transfer_history": [asdict(record) for record in state.transfer_history],
        "news": [asdict(item) for item in state.news],
    }


def _deserialize_player(raw: dict[str, Any]) -> Player:
    player = Player(
        player_id=str(raw["player_id"]),
        name=str(raw["name"]),
        position=str(raw["position"]),
        skill=int(raw["skill"]),
        age=int(raw.get("age", 25)),
        potential=int(raw.get("potential", 0)),
        club_id=raw.get("club_id"),
        nationality=str(raw.get("nationality", "Unknown")),
        alt_positions=list(raw.get("alt_positions", [])),
        condition=str(raw.get("condition", "MID")),
        wage=int(raw.get("wage", 10_000)),
        contract_expiry=str(raw.get("contract_expiry", "2026-06-30")),
        transfer_status=str(raw.get("transfer_status", "AVAILABLE")),
        market_value=int(raw.get("market_value", 0)),
        release_clause=raw.get("release_clause"),
        season_stats=SeasonStats(**raw.get("season_stats", {})),
        career=[CareerRecord(**row) for row in raw.get("career", [])],
        injured_until=_date(raw.get("injured_until")),
        suspended_until=_date(raw.get("suspended_until")),
        suspension_reason=raw.get("suspension_reason"),
    )
    return player


def _deserialize_fixture(raw: dict[str, Any]) -> Fixture:
    return Fixture(
        fixture_id=str(raw["fixture_id"]),
        competition_id=str(raw["competition_id"]),
        matchday=int(raw["matchday"]),
        match_date=_date(raw["match_date"]),
        home_club_id=str(raw["home_club_id"]),
        away_club_id=str(raw["away_club_id"]),
        status=str(raw.get("status", "SCHEDULED")),
        home_score=raw.get("home_score"),
        away_score=raw.get("away_score"),
    )


def _deserialize_match_record(raw: dict[str, Any]) -> MatchRecord:
    return MatchRecord(
        match_date=_date(raw["match_date"]),
        home_club_id=str(raw["home_club_id"]),
        away_club_id=str(raw["away_club_id"]),
        home_score=int(raw["home_score"]),
        away_score=int(raw["away_score"]),
        fixture_id=raw.get("fixture_id"),
        competition_id=raw.get("competition_id"),
        events=[MatchEvent(**row) for row in raw.get("events", [])],
    )


def deserialize_state(raw: dict[str, Any]) -> GameState:
    clubs = {str(row["club_id"]): Club(**row) for row in raw.get("clubs", [])}
    players = {p.player_id: p for p in (_deserialize_player(row) for row in raw.get("players", []))}
    competitions: dict[str, Competition] = {}
    for row in raw.get("competitions", []):
        standings = {str(e["club_id"]): StandingEntry(**e) for e in row.get("standings", [])}
        competitions[str(row["competition_id"])] = Competition(
            competition_id=str(row["competition_id"]),
            name=str(row["name"]),
            kind=str(row.get("kind", "LEAGUE")),
            country=str(row.get("country", "")),
            tier=int(row.get("tier", 1)),
            team_ids=[str(cid) for cid in row.get("team_ids", [])],
            standings=standings,
        )

    offers = [
        TransferOffer(
            offer_id=str(row["offer_id"]),
            player_id=str(row["player_id"]),
            from_club_id=str(row["from_club_id"]),
            amount=int(row["amount"]),
            created=_date(row["created"]),
            expires=_date(row["expires"]),
            status=str(row.get("status", "PENDING")),
        )
        for row in raw.get("offers", [])
    ]
    transfers = [
        TransferRecord(**{**row, "transfer_date": _date(row["transfer_date"])})
        for row in raw.get("transfer_history", [])
    ]
    news = [NewsItem(**{**row, "news_date": _date(row["news_date"])}) for row in raw.get("news", [])]

    return GameState(
        user_club_id=str(raw["user_club_id"]),
        manager_name=str(raw.get("manager_name", "Manager")),
        clubs=clubs,
        players=players,
        competitions=competitions,
        fixtures=[_deserialize_fixture(row) for row in raw.get("fixtures", [])],
        offers=offers,
        current_date=_date(raw["current_date"]),
        season=str(raw["season"]),
        season_complete=bool(raw.get("season_complete", False)),
        match_history=BoundedHistory(
            MATCH_HISTORY_LIMIT,
            (_deserialize_match_record(row) for row in raw.get("match_history", [])),
        ),
        transfer_history=BoundedHistory(TRANSFER_HISTORY_LIMIT, transfers),
        news=BoundedHistory(NEWS_LIMIT, news),
    )


class SaveStore:
    """Single JSON save slot with a rolling ``.bak`` copy of the previous write."""

    SAVE_VERSION = SAVE_VERSION

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.last_load_error: str = ""

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> GameState | None:
        self.last_load_error = ""
        if not self.path.exists():
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            self.last_load_error = f"Failed to load save file ({exc}); starting a new game."
            return None
        if not isinstance(raw, dict):
            self.last_load_error = "Save file has invalid format; starting a new game."
            return None

        if "save_version" in raw:
            version = int(raw.get("save_version", 1) or 1)
            if version > self.SAVE_VERSION:
                self.last_load_error = (
                    f"Unsupported save version {version}; app supports up to {self.SAVE_VERSION}."
                )
                return None
            payload = raw.get("state")
        else:
            # Unversioned saves stored the state at the top level.
            payload = raw
        if not isinstance(payload, dict):
            self.last_load_error = "Save file payload is invalid; starting a new game."
            return None
        try:
            return deserialize_state(payload)
        except (KeyError, TypeError, ValueError) as exc:
            self.last_load_error = f"Save file payload is invalid ({exc}); starting a new game."
            logger.warning("Could not restore save %s: %s", self.path, exc)
            return None

    def save(self, state: GameState) -> None:
        payload = {
            "save_version": self.SAVE_VERSION,
            "state": serialize_state(state),
        }
        self._write_json_with_backup(self.path, payload)

    def delete(self) -> None:
        for path in (self.path, self.path.with_suffix(self.path.suffix + ".bak")):
            if path.exists():
                path.unlink()

    def _write_json_with_backup(self, path: Path, payload: Any, *, with_backup: bool = True) -> None:
        if with_backup and path.exists():
            backup = path.with_suffix(path.suffix + ".bak")
            try:
                shutil.copy2(path, backup)
            except OSError as exc:
                logger.warning("Could not back up %s: %s", path, exc)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, default=_json_default), encoding="utf-8")
