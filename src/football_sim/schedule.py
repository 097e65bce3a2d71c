from __future__ import annotations

import random
from datetime import date, timedelta
from typing import Iterable

from .config import DAYS_PER_MATCHDAY
from .models import Fixture

BYE = "BYE"


def competition_seed(competition_id: str) -> int:
    return sum(ord(ch) for ch in competition_id)


def next_saturday(start: date) -> date:
    """Return ``start`` if it is a Saturday, otherwise the following Saturday."""
    return start + timedelta(days=(5 - start.weekday()) % 7)


def _single_round_days(team_ids: list[str]) -> list[list[tuple[str, str]]]:
    """Build one full round-robin split into matchdays."""
    if len(team_ids) < 2:
        return []

    # Circle method: the last slot stays fixed, the others rotate one step per round.
    slots = list(team_ids)
    if len(slots) % 2 == 1:
        slots.append(BYE)

    size = len(slots)
    rounds: list[list[tuple[str, str]]] = []
    for round_idx in range(size - 1):
        day_games: list[tuple[str, str]] = []
        for match_idx in range(size // 2):
            home_idx = (round_idx + match_idx) % (size - 1)
            away_idx = (size - 1 - match_idx + round_idx) % (size - 1)
            if match_idx == 0:
                away_idx = size - 1
            home, away = slots[home_idx], slots[away_idx]
            if BYE in (home, away):
                continue
            # Alternate site orientation by round to avoid long home/away streaks.
            if round_idx % 2 == 1:
                home, away = away, home
            day_games.append((home, away))
        rounds.append(day_games)
    return rounds


def build_league_fixtures(
    competition_id: str,
    team_ids: Iterable[str],
    start_date: date,
) -> list[Fixture]:
    """Double round-robin: every pair meets once at each ground.

    Team order is shuffled with a seed derived from the competition id, so the
    same inputs always produce the same calendar.
    """
    teams = list(team_ids)
    if len(teams) < 2:
        return []
    random.Random(competition_seed(competition_id)).shuffle(teams)

    first_half = _single_round_days(teams)
    rounds_per_half = len(first_half)
    kickoff = next_saturday(start_date)

    fixtures: list[Fixture] = []

    def _add(matchday: int, home: str, away: str) -> None:
        fixtures.append(
            Fixture(
                fixture_id=f"fix_{competition_id}_{len(fixtures) + 1}",
                competition_id=competition_id,
                matchday=matchday,
                match_date=kickoff + timedelta(days=DAYS_PER_MATCHDAY * (matchday - 1)),
                home_club_id=home,
                away_club_id=away,
            )
        )

    for round_idx, day in enumerate(first_half):
        for home, away in day:
            _add(round_idx + 1, home, away)
    for round_idx, day in enumerate(first_half):
        for home, away in day:
            _add(round_idx + 1 + rounds_per_half, away, home)
    return fixtures


def matchday_fixtures(fixtures: Iterable[Fixture], competition_id: str, matchday: int) -> list[Fixture]:
    return [f for f in fixtures if f.competition_id == competition_id and f.matchday == matchday]


def next_fixture_for_club(fixtures: Iterable[Fixture], club_id: str, on: date | None = None) -> Fixture | None:
    pending = [f for f in fixtures if f.involves(club_id) and not f.is_finished and (on is None or f.match_date >= on)]
    if not pending:
        return None
    return min(pending, key=lambda f: (f.match_date, f.matchday))


def upcoming_fixtures(fixtures: Iterable[Fixture], club_id: str, limit: int = 5, on: date | None = None) -> list[Fixture]:
    pending = sorted(
        (f for f in fixtures if f.involves(club_id) and not f.is_finished and (on is None or f.match_date >= on)),
        key=lambda f: (f.match_date, f.matchday),
    )
    return pending[: max(0, limit)]


def recent_results(fixtures: Iterable[Fixture], club_id: str, limit: int = 5) -> list[Fixture]:
    """Finished fixtures for ``club_id``, newest first."""
    played = sorted(
        (f for f in fixtures if f.involves(club_id) and f.is_finished),
        key=lambda f: (f.match_date, f.matchday),
        reverse=True,
    )
    return played[: max(0, limit)]
