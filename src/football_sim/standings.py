from __future__ import annotations

from typing import Iterable

from .models import Competition, StandingEntry


def new_table(team_ids: Iterable[str]) -> dict[str, StandingEntry]:
    return {club_id: StandingEntry(club_id=club_id) for club_id in team_ids}


def apply_result(
    home_entry: StandingEntry,
    away_entry: StandingEntry,
    home_score: int,
    away_score: int,
) -> None:
    """Apply one final score to both table rows.

    Callers must only do this once per fixture; the orchestrator guarantees it
    by gating on the fixture's FINISHED transition.
    """
    if home_score < 0 or away_score < 0:
        raise ValueError("Scores cannot be negative.")
    home_entry.register_result(home_score, away_score)
    away_entry.register_result(away_score, home_score)


def sorted_table(competition: Competition) -> list[StandingEntry]:
    return sorted(
        competition.standings.values(),
        key=lambda e: (-e.points, -e.goal_diff, -e.goals_for, e.club_id),
    )


def table_position(competition: Competition, club_id: str) -> int | None:
    for idx, entry in enumerate(sorted_table(competition), start=1):
        if entry.club_id == club_id:
            return idx
    return None


def reset_table(competition: Competition) -> None:
    for club_id in competition.team_ids:
        entry = competition.standings.get(club_id)
        if entry is None:
            competition.standings[club_id] = StandingEntry(club_id=club_id)
        else:
            entry.reset()
