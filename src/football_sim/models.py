from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import ClassVar
from uuid import uuid4

from .config import (
    DEFAULT_FORMATION,
    DEFAULT_SEASON,
    FORM_LENGTH,
    GAME_START_DATE,
    MATCH_HISTORY_LIMIT,
    NEWS_LIMIT,
    TRANSFER_HISTORY_LIMIT,
)
from .history import BoundedHistory

POSITIONS = ("GK", "DEF", "MID", "FWD")
CONDITION_ARROWS = ("UP", "SLIGHT_UP", "MID", "SLIGHT_DOWN", "DOWN")
TRANSFER_STATUSES = ("AVAILABLE", "LISTED", "LOAN_LISTED", "UNTOUCHABLE")
FIXTURE_STATUSES = ("SCHEDULED", "LIVE", "FINISHED")
OFFER_STATUSES = ("PENDING", "ACCEPTED", "REJECTED")
SUSPENSION_REASONS = ("RED_CARD", "ACCUMULATED_YELLOWS")
COMPETITION_KINDS = ("LEAGUE", "KNOCKOUT")
EVENT_KINDS = ("GOAL", "YELLOW", "RED", "INJURY", "SUBSTITUTION")
NEWS_KINDS = ("RESULT", "INJURY", "TRANSFER", "OFFER", "SEASON")


def clamp_rating(value: float, low: int = 1, high: int = 99) -> int:
    return int(max(low, min(high, round(value))))


@dataclass(slots=True)
class SeasonStats:
    goals: int = 0
    assists: int = 0
    clean_sheets: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    appearances: int = 0
    avg_rating: float = 6.5


@dataclass(slots=True)
class CareerRecord:
    season: str
    club_id: str
    club_name: str
    appearances: int
    goals: int
    assists: int
    clean_sheets: int = 0
    avg_rating: float = 6.5


@dataclass(slots=True)
class Player:
    name: str
    position: str
    skill: int
    age: int = 25
    potential: int = 0
    club_id: str | None = None
    nationality: str = "Unknown"
    alt_positions: list[str] = field(default_factory=list)
    condition: str = "MID"
    wage: int = 10_000
    contract_expiry: str = "2026-06-30"
    transfer_status: str = "AVAILABLE"
    market_value: int = 0
    release_clause: int | None = None
    player_id: str = field(default_factory=lambda: uuid4().hex)
    season_stats: SeasonStats = field(default_factory=SeasonStats)
    career: list[CareerRecord] = field(default_factory=list)
    injured_until: date | None = None
    suspended_until: date | None = None
    suspension_reason: str | None = None

    def __post_init__(self) -> None:
        if self.position not in POSITIONS:
            raise ValueError(f"Unknown position '{self.position}' for {self.name}.")
        if self.transfer_status not in TRANSFER_STATUSES:
            raise ValueError(f"Unknown transfer status '{self.transfer_status}' for {self.name}.")
        self.skill = clamp_rating(self.skill)
        self.potential = clamp_rating(max(self.potential, self.skill))

    @property
    def is_free_agent(self) -> bool:
        return self.club_id is None

    # Injuries and bans still apply on their end date.
    def is_injured(self, on: date) -> bool:
        return self.injured_until is not None and self.injured_until >= on

    def is_suspended(self, on: date) -> bool:
        return self.suspended_until is not None and self.suspended_until >= on

    def is_available(self, on: date) -> bool:
        return not self.is_injured(on) and not self.is_suspended(on)


@dataclass(slots=True)
class Club:
    name: str
    club_id: str = field(default_factory=lambda: uuid4().hex)
    short_code: str = ""
    country: str = ""
    tier: int = 3
    reputation: int = 50
    budget: int = 1_000_000
    wage_budget: int = 15_000
    stadium: str = ""
    stadium_capacity: int = 20_000
    league_id: str | None = None
    rival_club_ids: list[str] = field(default_factory=list)
    preferred_formation: str = DEFAULT_FORMATION

    def __post_init__(self) -> None:
        if not self.short_code:
            self.short_code = self.name.replace(" ", "")[:3].upper()
        if not self.stadium:
            self.stadium = f"{self.name} Stadium"


@dataclass(slots=True)
class StandingEntry:
    club_id: str
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: int = 0
    form: list[str] = field(default_factory=list)

    @property
    def goal_diff(self) -> int:
        return self.goals_for - self.goals_against

    def register_result(self, goals_for: int, goals_against: int) -> None:
        self.played += 1
        self.goals_for += goals_for
        self.goals_against += goals_against
        if goals_for > goals_against:
            self.won += 1
            self.points += 3
            result = "W"
        elif goals_for == goals_against:
            self.drawn += 1
            self.points += 1
            result = "D"
        else:
            self.lost += 1
            result = "L"
        # Most recent first.
        self.form.insert(0, result)
        del self.form[FORM_LENGTH:]

    def reset(self) -> None:
        self.played = self.won = self.drawn = self.lost = 0
        self.goals_for = self.goals_against = self.points = 0
        self.form = []


@dataclass(slots=True)
class Competition:
    competition_id: str
    name: str
    kind: str = "LEAGUE"
    country: str = ""
    tier: int = 1
    team_ids: list[str] = field(default_factory=list)
    standings: dict[str, StandingEntry] = field(default_factory=dict)

    @property
    def is_league(self) -> bool:
        return self.kind == "LEAGUE"


@dataclass(slots=True)
class Fixture:
    fixture_id: str
    competition_id: str
    matchday: int
    match_date: date
    home_club_id: str
    away_club_id: str
    status: str = "SCHEDULED"
    home_score: int | None = None
    away_score: int | None = None

    TRANSITIONS: ClassVar[dict[str, frozenset[str]]] = {
        "SCHEDULED": frozenset({"LIVE", "FINISHED"}),
        "LIVE": frozenset({"FINISHED"}),
        "FINISHED": frozenset(),
    }

    def __post_init__(self) -> None:
        if self.home_club_id == self.away_club_id:
            raise ValueError(f"Fixture {self.fixture_id} pairs {self.home_club_id} with itself.")

    @property
    def is_finished(self) -> bool:
        return self.status == "FINISHED"

    def involves(self, club_id: str) -> bool:
        return club_id in (self.home_club_id, self.away_club_id)

    def advance_status(self, status: str) -> None:
        if status not in self.TRANSITIONS.get(self.status, frozenset()):
            raise ValueError(f"Fixture {self.fixture_id} cannot move from {self.status} to {status}.")
        self.status = status

    def finish(self, home_score: int, away_score: int) -> None:
        self.advance_status("FINISHED")
        self.home_score = home_score
        self.away_score = away_score


@dataclass(slots=True)
class TransferOffer:
    player_id: str
    from_club_id: str
    amount: int
    created: date
    expires: date
    offer_id: str = field(default_factory=lambda: f"offer_{uuid4().hex[:12]}")
    status: str = "PENDING"

    def is_live(self, on: date) -> bool:
        return self.status == "PENDING" and self.expires >= on

    def resolve(self, status: str) -> None:
        if self.status != "PENDING" or status not in ("ACCEPTED", "REJECTED"):
            raise ValueError(f"Offer {self.offer_id} cannot move from {self.status} to {status}.")
        self.status = status


@dataclass(slots=True)
class TransferRecord:
    player_id: str
    player_name: str
    from_club_id: str | None
    to_club_id: str
    fee: int
    transfer_date: date
    via_release_clause: bool = False


@dataclass(slots=True)
class MatchEvent:
    kind: str
    minute: int
    player_id: str
    side: str
    assister_id: str | None = None
    injury_weeks: int | None = None


@dataclass(slots=True)
class MatchResult:
    home_score: int
    away_score: int
    events: list[MatchEvent] = field(default_factory=list)
    home_lineup: list[str] = field(default_factory=list)
    away_lineup: list[str] = field(default_factory=list)
    home_subs: list[str] = field(default_factory=list)
    away_subs: list[str] = field(default_factory=list)


@dataclass(slots=True)
class MatchRecord:
    match_date: date
    home_club_id: str
    away_club_id: str
    home_score: int
    away_score: int
    fixture_id: str | None = None
    competition_id: str | None = None
    events: list[MatchEvent] = field(default_factory=list)


@dataclass(slots=True)
class NewsItem:
    kind: str
    headline: str
    body: str
    news_date: date
    club_id: str | None = None
    news_id: str = field(default_factory=lambda: uuid4().hex)


@dataclass(slots=True)
class GameState:
    user_club_id: str
    clubs: dict[str, Club]
    players: dict[str, Player]
    competitions: dict[str, Competition]
    fixtures: list[Fixture] = field(default_factory=list)
    offers: list[TransferOffer] = field(default_factory=list)
    manager_name: str = "Manager"
    current_date: date = GAME_START_DATE
    season: str = DEFAULT_SEASON
    season_complete: bool = False
    match_history: BoundedHistory = field(default_factory=lambda: BoundedHistory(MATCH_HISTORY_LIMIT))
    transfer_history: BoundedHistory = field(default_factory=lambda: BoundedHistory(TRANSFER_HISTORY_LIMIT))
    news: BoundedHistory = field(default_factory=lambda: BoundedHistory(NEWS_LIMIT))

    def squad(self, club_id: str) -> list[Player]:
        return [p for p in self.players.values() if p.club_id == club_id]

    def league_fixtures(self) -> list[Fixture]:
        leagues = {cid for cid, comp in self.competitions.items() if comp.is_league}
        return [f for f in self.fixtures if f.competition_id in leagues]
