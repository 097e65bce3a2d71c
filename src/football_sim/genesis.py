"""Build a playable world from a raw master database.

The master database is a JSON object with ``clubs``, ``players`` and
``competitions`` arrays. Records are validated one by one: recoverable
problems are replaced by defaults and reported as warnings, records that
cannot be repaired are dropped. Only an unreadable source is fatal.
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError, ValidationInfo, field_validator

from .config import (
    DEFAULT_FORMATION,
    DEFAULT_SEASON,
    FORMATIONS,
    GAME_START_DATE,
    MIN_SQUAD_SIZE,
    SQUAD_FILL_PLAN,
)
from .development import calculate_market_value, calculate_wage
from .models import (
    COMPETITION_KINDS,
    CONDITION_ARROWS,
    POSITIONS,
    TRANSFER_STATUSES,
    Club,
    Competition,
    Fixture,
    GameState,
    Player,
    clamp_rating,
)
from .names import NameGenerator
from .schedule import build_league_fixtures
from .season import season_kickoff
from .standings import new_table

logger = logging.getLogger(__name__)

CONDITION_ALIASES = {"STABLE": "MID"}
STATUS_ALIASES = {"UNAVAILABLE": "UNTOUCHABLE", "TRANSFERABLE": "LISTED", "LOAN": "LOAN_LISTED"}


class GenesisError(Exception):
    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors) or "Master database could not be loaded.")
        self.errors = list(errors)


def _warn(info: ValidationInfo, message: str) -> None:
    if isinstance(info.context, dict):
        info.context.setdefault("warnings", []).append(message)


def _record_label(info: ValidationInfo) -> str:
    return str(info.data.get("id") or info.data.get("name") or "record")


class RawPlayer(BaseModel):
    id: str
    name: str = "Unknown Player"
    age: int = 25
    nationality: str = "Unknown"
    position: str = "MID"
    alt_positions: list[str] = Field(default_factory=list)
    skill: int = 50
    potential: int | None = None
    condition: str = "MID"
    club_id: str | None = None
    wage: int | None = None
    contract_expiry: str = "2026-06-30"
    transfer_status: str = "AVAILABLE"
    market_value: int | None = None
    release_clause: int | None = None

    @field_validator("id", "club_id", mode="before")
    @classmethod
    def _text_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> Any:
        if value is None or not str(value).strip():
            return "Unknown Player"
        return str(value).strip()

    @field_validator("nationality", "contract_expiry", mode="before")
    @classmethod
    def _optional_text(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return str(value)

    @field_validator("age", "skill", "potential", "wage", "market_value", "release_clause", mode="before")
    @classmethod
    def _round_numbers(cls, value: Any) -> Any:
        if isinstance(value, float):
            return int(round(value))
        return value

    @field_validator("skill", mode="after")
    @classmethod
    def _clamp_skill(cls, value: int, info: ValidationInfo) -> int:
        clamped = clamp_rating(value)
        if clamped != value:
            _warn(info, f"Player {_record_label(info)}: skill {value} clamped to {clamped}.")
        return clamped

    @field_validator("potential", mode="after")
    @classmethod
    def _clamp_potential(cls, value: int | None) -> int | None:
        if value is None:
            return None
        return clamp_rating(value)

    @field_validator("position", mode="before")
    @classmethod
    def _position(cls, value: Any, info: ValidationInfo) -> str:
        text = str(value or "").strip().upper()
        if text in POSITIONS:
            return text
        _warn(info, f"Player {_record_label(info)}: unknown position {value!r}, using MID.")
        return "MID"

    @field_validator("alt_positions", mode="before")
    @classmethod
    def _alt_positions(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(v).upper() for v in value if str(v).upper() in POSITIONS]

    @field_validator("condition", mode="before")
    @classmethod
    def _condition(cls, value: Any) -> str:
        text = str(value or "").strip().upper()
        text = CONDITION_ALIASES.get(text, text)
        return text if text in CONDITION_ARROWS else "MID"

    @field_validator("transfer_status", mode="before")
    @classmethod
    def _transfer_status(cls, value: Any, info: ValidationInfo) -> str:
        text = str(value or "AVAILABLE").strip().upper()
        text = STATUS_ALIASES.get(text, text)
        if text in TRANSFER_STATUSES:
            return text
        _warn(info, f"Player {_record_label(info)}: unknown transfer status {value!r}, using AVAILABLE.")
        return "AVAILABLE"


class RawClub(BaseModel):
    id: str
    name: str
    short_code: str = ""
    country: str = ""
    tier: int = 3
    reputation: int = 50
    budget: int = 1_000_000
    wage_budget: int | None = None
    stadium: str = ""
    stadium_capacity: int = 20_000
    league_id: str | None = None
    rival_club_ids: list[str] = Field(default_factory=list)
    preferred_formation: str = DEFAULT_FORMATION

    @field_validator("id", "league_id", mode="before")
    @classmethod
    def _text_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("budget", "wage_budget", "reputation", "tier", "stadium_capacity", mode="before")
    @classmethod
    def _round_numbers(cls, value: Any) -> Any:
        if isinstance(value, float):
            return int(round(value))
        return value

    @field_validator("reputation", mode="after")
    @classmethod
    def _clamp_reputation(cls, value: int) -> int:
        return max(0, min(100, value))

    @field_validator("tier", mode="after")
    @classmethod
    def _clamp_tier(cls, value: int) -> int:
        return max(1, min(5, value))

    @field_validator("budget", mode="after")
    @classmethod
    def _non_negative_budget(cls, value: int, info: ValidationInfo) -> int:
        if value < 0:
            _warn(info, f"Club {_record_label(info)}: negative budget reset to 0.")
            return 0
        return value

    @field_validator("preferred_formation", mode="before")
    @classmethod
    def _formation(cls, value: Any) -> str:
        text = str(value or "")
        return text if text in FORMATIONS else DEFAULT_FORMATION


class RawCompetition(BaseModel):
    id: str
    name: str
    kind: str = Field(default="LEAGUE", validation_alias=AliasChoices("kind", "type"))
    country: str = ""
    tier: int = 1
    team_ids: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _text_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("kind", mode="before")
    @classmethod
    def _kind(cls, value: Any) -> str:
        text = str(value or "LEAGUE").strip().upper()
        return text if text in COMPETITION_KINDS else "LEAGUE"

    @field_validator("team_ids", mode="before")
    @classmethod
    def _team_ids(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(v) for v in value]


@dataclass(slots=True)
class GenesisResult:
    success: bool
    clubs: dict[str, Club] = field(default_factory=dict)
    players: dict[str, Player] = field(default_factory=dict)
    competitions: dict[str, Competition] = field(default_factory=dict)
    fixtures: list[Fixture] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _read_source(source: str | Path | dict[str, Any]) -> tuple[dict[str, Any] | None, str]:
    if isinstance(source, dict):
        return source, ""
    try:
        raw = json.loads(Path(source).read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        return None, f"Failed to read master database ({exc})."
    if not isinstance(raw, dict):
        return None, "Master database must be a JSON object."
    return raw, ""


def _records(raw: dict[str, Any], key: str, warnings: list[str]) -> list[Any]:
    value = raw.get(key)
    if isinstance(value, list):
        return value
    warnings.append(f"Master database has no valid '{key}' array; using an empty list.")
    return []


def _validation_summary(exc: ValidationError) -> str:
    return ", ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())


def _build_club(raw: RawClub) -> Club:
    return Club(
        club_id=raw.id,
        name=raw.name,
        short_code=raw.short_code,
        country=raw.country,
        tier=raw.tier,
        reputation=raw.reputation,
        budget=raw.budget,
        wage_budget=raw.wage_budget if raw.wage_budget is not None else int(raw.budget * 0.015),
        stadium=raw.stadium,
        stadium_capacity=raw.stadium_capacity,
        league_id=raw.league_id,
        rival_club_ids=list(raw.rival_club_ids),
        preferred_formation=raw.preferred_formation,
    )


def _build_player(raw: RawPlayer) -> Player:
    potential = raw.potential if raw.potential is not None else raw.skill
    player = Player(
        player_id=raw.id,
        name=raw.name,
        position=raw.position,
        skill=raw.skill,
        age=max(15, min(45, raw.age)),
        potential=potential,
        club_id=raw.club_id,
        nationality=raw.nationality,
        alt_positions=list(raw.alt_positions),
        condition=raw.condition,
        contract_expiry=raw.contract_expiry,
        transfer_status=raw.transfer_status,
        release_clause=raw.release_clause if raw.release_clause and raw.release_clause > 0 else None,
    )
    player.market_value = (
        raw.market_value
        if raw.market_value is not None and raw.market_value > 0
        else calculate_market_value(player.skill, player.age, player.potential)
    )
    player.wage = raw.wage if raw.wage is not None and raw.wage > 0 else player.skill * 1000
    return player


def _fill_squad(club: Club, squad: list[Player], names: NameGenerator) -> list[Player]:
    """Generate players until ``club`` has a full matchday squad."""
    rng = random.Random(f"{club.club_id}:squad")
    counts = {pos: sum(1 for p in squad if p.position == pos) for pos in POSITIONS}
    needed: list[str] = []
    for position, target in SQUAD_FILL_PLAN:
        needed.extend([position] * max(0, target - counts.get(position, 0)))
    while len(squad) + len(needed) < MIN_SQUAD_SIZE:
        needed.append("MID")

    low = max(1, club.reputation - 25)
    high = max(low, min(99, club.reputation + 5))
    generated: list[Player] = []
    for idx, position in enumerate(needed, start=1):
        skill = rng.randint(low, high)
        age = rng.randint(18, 33)
        potential = min(99, skill + (rng.randint(0, 15) if age <= 23 else rng.randint(0, 3)))
        player = Player(
            player_id=f"gen_{club.club_id}_{idx}",
            name=names.next_name(),
            position=position,
            skill=skill,
            age=age,
            potential=potential,
            club_id=club.club_id,
            nationality=club.country or "Unknown",
        )
        player.market_value = calculate_market_value(player.skill, player.age, player.potential)
        player.wage = calculate_wage(player)
        generated.append(player)
    return generated


def load_master_database(
    source: str | Path | dict[str, Any],
    start_date: date = GAME_START_DATE,
) -> GenesisResult:
    raw, error = _read_source(source)
    if raw is None:
        logger.error("Genesis failed: %s", error)
        return GenesisResult(success=False, errors=[error])

    warnings: list[str] = []
    context: dict[str, Any] = {"warnings": warnings}

    clubs: dict[str, Club] = {}
    for item in _records(raw, "clubs", warnings):
        try:
            parsed = RawClub.model_validate(item, context=context)
        except ValidationError as exc:
            warnings.append(f"Dropped club record: {_validation_summary(exc)}")
            continue
        if parsed.id in clubs:
            warnings.append(f"Duplicate club id {parsed.id}; keeping the first record.")
            continue
        clubs[parsed.id] = _build_club(parsed)

    players: dict[str, Player] = {}
    for item in _records(raw, "players", warnings):
        try:
            parsed = RawPlayer.model_validate(item, context=context)
        except ValidationError as exc:
            warnings.append(f"Dropped player record: {_validation_summary(exc)}")
            continue
        if parsed.id in players:
            warnings.append(f"Duplicate player id {parsed.id}; keeping the first record.")
            continue
        player = _build_player(parsed)
        if player.club_id is not None and player.club_id not in clubs:
            warnings.append(f"Player {player.player_id} references unknown club {player.club_id}; now a free agent.")
            player.club_id = None
        players[player.player_id] = player

    competitions: dict[str, Competition] = {}
    for item in _records(raw, "competitions", warnings):
        try:
            parsed = RawCompetition.model_validate(item, context=context)
        except ValidationError as exc:
            warnings.append(f"Dropped competition record: {_validation_summary(exc)}")
            continue
        team_ids: list[str] = []
        for club_id in parsed.team_ids:
            if club_id not in clubs:
                warnings.append(f"Competition {parsed.id} references unknown club {club_id}; skipped.")
            elif club_id not in team_ids:
                team_ids.append(club_id)
        comp = Competition(
            competition_id=parsed.id,
            name=parsed.name,
            kind=parsed.kind,
            country=parsed.country,
            tier=parsed.tier,
            team_ids=team_ids,
        )
        if comp.is_league:
            comp.standings = new_table(team_ids)
            for club_id in team_ids:
                if clubs[club_id].league_id is None:
                    clubs[club_id].league_id = comp.competition_id
        competitions[comp.competition_id] = comp

    names = NameGenerator(seed=f"genesis:{len(clubs)}:{len(players)}")
    names.reserve([p.name for p in players.values()])
    for club in clubs.values():
        squad = [p for p in players.values() if p.club_id == club.club_id]
        if len(squad) >= MIN_SQUAD_SIZE:
            continue
        generated = _fill_squad(club, squad, names)
        for player in generated:
            players[player.player_id] = player
        warnings.append(f"Club {club.club_id} had {len(squad)} players; generated {len(generated)} more.")

    kickoff = season_kickoff(start_date.year)
    fixtures: list[Fixture] = []
    for comp in competitions.values():
        if comp.is_league:
            fixtures.extend(build_league_fixtures(comp.competition_id, comp.team_ids, kickoff))

    for message in warnings:
        logger.warning("Genesis: %s", message)
    return GenesisResult(
        success=True,
        clubs=clubs,
        players=players,
        competitions=competitions,
        fixtures=fixtures,
        warnings=warnings,
    )


def new_game(
    result: GenesisResult,
    user_club_id: str,
    manager_name: str = "Manager",
    start_date: date = GAME_START_DATE,
    season: str = DEFAULT_SEASON,
) -> GameState:
    if not result.success:
        raise GenesisError(result.errors)
    if user_club_id not in result.clubs:
        raise GenesisError([f"Unknown user club {user_club_id}."])
    return GameState(
        user_club_id=user_club_id,
        manager_name=manager_name,
        clubs=result.clubs,
        players=result.players,
        competitions=result.competitions,
        fixtures=result.fixtures,
        current_date=start_date,
        season=season,
    )
