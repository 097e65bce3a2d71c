"""Static simulation configuration constants."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

SAVE_VERSION = 1

# Calendar months (1-based) in which clubs may trade players.
TRANSFER_WINDOW_MONTHS: frozenset[int] = frozenset({7, 8, 1})

GAME_START_DATE = date(2024, 7, 1)
DEFAULT_SEASON = "2024-2025"
SEASON_KICKOFF = (8, 17)
SEASON_ROLLOVER = (7, 1)

DAYS_PER_MATCHDAY = 7
# Form-drift weeks are counted from this date.
WEEK_EPOCH = date(1970, 1, 1)
SUSPENSION_DAYS = 7
YELLOW_CARD_SUSPENSION_EVERY = 5
INJURY_NEWS_MIN_WEEKS = 3
FORM_LENGTH = 5

MATCH_HISTORY_LIMIT = 500
NEWS_LIMIT = 50
TRANSFER_HISTORY_LIMIT = 500
CAREER_HISTORY_LIMIT = 10
MATCH_HISTORY_CARRYOVER = 50

MIN_SQUAD_SIZE = 18
MIN_MATCH_PLAYERS = 11
SQUAD_FILL_PLAN: tuple[tuple[str, int], ...] = (("GK", 2), ("DEF", 5), ("MID", 6), ("FWD", 5))

CPU_OFFER_CHANCE = 0.15
CPU_OFFER_VALUE_RANGE = (0.70, 1.10)
CPU_OFFER_LIFETIME_DAYS = 14
WEEKLY_FORM_CHANGE_CHANCE = 0.20

DEFAULT_FORMATION = "4-3-3"
DEFAULT_TACTIC = "BALANCED"
TACTICS = ("DEFENSIVE", "BALANCED", "ATTACKING")

FORMATIONS: dict[str, dict[str, int]] = {
    "4-3-3": {"GK": 1, "DEF": 4, "MID": 3, "FWD": 3},
    "4-4-2": {"GK": 1, "DEF": 4, "MID": 4, "FWD": 2},
    "4-2-3-1": {"GK": 1, "DEF": 4, "MID": 5, "FWD": 1},
    "3-5-2": {"GK": 1, "DEF": 3, "MID": 5, "FWD": 2},
    "5-3-2": {"GK": 1, "DEF": 5, "MID": 3, "FWD": 2},
}


@dataclass(frozen=True, slots=True)
class NegotiationPolicy:
    """Tunable constants used when a club and a player weigh a transfer bid.

    Ratio bands are ``(minimum offer/value ratio, probability)`` pairs checked
    top-down; the floor applies when no band matches.
    """

    listed_bands: tuple[tuple[float, float], ...] = ((0.8, 0.9), (0.6, 0.6))
    listed_floor: float = 0.2
    untouchable_bands: tuple[tuple[float, float], ...] = ((2.0, 0.1),)
    untouchable_floor: float = 0.0
    default_bands: tuple[tuple[float, float], ...] = ((1.2, 0.9), (1.0, 0.7), (0.8, 0.4))
    default_floor: float = 0.1

    elite_skill: int = 85
    elite_skill_factor: float = 0.7
    star_skill: int = 80
    star_skill_factor: float = 0.85
    prospect_max_age: int = 23
    prospect_min_potential: int = 85
    prospect_factor: float = 0.6
    reputation_gap: int = 20
    stronger_buyer_factor: float = 1.2
    weaker_buyer_factor: float = 0.7
    low_offer_ratio: float = 0.7

    base_interest: int = 50
    reputation_interest_bands: tuple[tuple[int, int], ...] = (
        (20, 40),
        (10, 25),
        (0, 10),
        (-10, -10),
        (-20, -25),
    )
    reputation_interest_floor: int = -40
    talent_max_age: int = 23
    talent_min_potential: int = 80
    big_club_reputation: int = 75
    talent_interest_delta: int = -20
    star_interest_delta: int = -15
    star_premium_ratio: float = 1.3
    star_premium_delta: int = 10
    veteran_age: int = 30
    veteran_interest_delta: int = 15
    listed_interest_delta: int = 25
    loan_listed_interest_delta: int = 15
    min_interest: int = 5
    max_interest: int = 95
    step_back_gap: int = -15
    unconvinced_gap: int = -10


DEFAULT_NEGOTIATION_POLICY = NegotiationPolicy()
