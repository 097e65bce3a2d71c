from __future__ import annotations

import logging
import random
from datetime import date
from typing import Any, Iterable

from .config import CAREER_HISTORY_LIMIT, MATCH_HISTORY_CARRYOVER, SEASON_KICKOFF, SEASON_ROLLOVER, WEEK_EPOCH
from .development import develop_player
from .models import CareerRecord, Fixture, GameState, NewsItem, Player, SeasonStats
from .schedule import build_league_fixtures, next_saturday
from .standings import reset_table, sorted_table, table_position

logger = logging.getLogger(__name__)


def clear_expired_statuses(players: Iterable[Player], on: date) -> int:
    """Lift injuries and suspensions ending on or before ``on``."""
    cleared = 0
    for player in players:
        if player.injured_until is not None and player.injured_until <= on:
            player.injured_until = None
            cleared += 1
        if player.suspended_until is not None and player.suspended_until <= on:
            player.suspended_until = None
            player.suspension_reason = None
            cleared += 1
    return cleared


def is_season_complete(league_fixtures: Iterable[Fixture]) -> bool:
    fixtures = list(league_fixtures)
    return bool(fixtures) and all(f.is_finished for f in fixtures)


def next_season_label(season: str) -> str:
    try:
        start_year = int(season.split("-")[0])
    except ValueError:
        raise ValueError(f"Season label '{season}' is not in YYYY-YYYY form.") from None
    return f"{start_year + 1}-{start_year + 2}"


def rollover_date(current: date) -> date:
    month, day = SEASON_ROLLOVER
    candidate = date(current.year, month, day)
    if candidate <= current:
        candidate = date(current.year + 1, month, day)
    return candidate


def season_kickoff(year: int) -> date:
    month, day = SEASON_KICKOFF
    return next_saturday(date(year, month, day))


def weeks_crossed(start: date, end: date) -> int:
    """Number of week boundaries passed moving the clock from ``start`` to ``end``."""
    return max(0, (end - WEEK_EPOCH).days // 7 - (start - WEEK_EPOCH).days // 7)


def _record_career(state: GameState) -> int:
    recorded = 0
    for player in state.players.values():
        stats = player.season_stats
        if stats.appearances <= 0 or player.is_free_agent:
            continue
        club = state.clubs.get(player.club_id)
        player.career.append(
            CareerRecord(
                season=state.season,
                club_id=player.club_id,
                club_name=club.name if club is not None else player.club_id,
                appearances=stats.appearances,
                goals=stats.goals,
                assists=stats.assists,
                clean_sheets=stats.clean_sheets,
                avg_rating=stats.avg_rating,
            )
        )
        del player.career[:-CAREER_HISTORY_LIMIT]
        recorded += 1
    return recorded


def top_scorers(players: Iterable[Player], limit: int = 10) -> list[Player]:
    scorers = [p for p in players if p.season_stats.goals > 0]
    scorers.sort(key=lambda p: (-p.season_stats.goals, -p.season_stats.assists, p.name))
    return scorers[:limit]


def season_summary(state: GameState) -> dict[str, Any]:
    """Final-table snapshot shown before the close season begins."""
    champions: dict[str, str | None] = {}
    user_position: int | None = None
    user_league: str | None = None
    for comp in state.competitions.values():
        if not comp.is_league:
            continue
        table = sorted_table(comp)
        champions[comp.competition_id] = table[0].club_id if table else None
        if state.user_club_id in comp.standings:
            user_league = comp.competition_id
            user_position = table_position(comp, state.user_club_id)
    return {
        "season": state.season,
        "complete": state.season_complete,
        "champions": champions,
        "user_league": user_league,
        "user_position": user_position,
        "top_scorers": [
            {
                "player_id": p.player_id,
                "name": p.name,
                "club_id": p.club_id,
                "goals": p.season_stats.goals,
                "assists": p.season_stats.assists,
            }
            for p in top_scorers(state.players.values())
        ],
    }


def start_new_season(state: GameState, rng: random.Random) -> dict[str, Any]:
    """Close the current season and set up the next one in place."""
    finished_season = state.season
    summary = season_summary(state)
    careers = _record_career(state)

    for player in state.players.values():
        player.season_stats = SeasonStats()
        player.injured_until = None
        player.suspended_until = None
        player.suspension_reason = None
        develop_player(player, rng)

    state.current_date = rollover_date(state.current_date)
    state.season = next_season_label(finished_season)
    kickoff = season_kickoff(state.current_date.year)

    fixtures: list[Fixture] = []
    for comp in state.competitions.values():
        if not comp.is_league:
            continue
        reset_table(comp)
        fixtures.extend(build_league_fixtures(comp.competition_id, comp.team_ids, kickoff))
    state.fixtures = fixtures
    state.offers = [o for o in state.offers if o.status != "PENDING"]
    state.match_history.trim(MATCH_HISTORY_CARRYOVER)
    state.season_complete = False
    state.news.append(
        NewsItem(
            kind="SEASON",
            headline=f"Season {state.season} begins",
            body=f"The {finished_season} season is over. The new campaign kicks off on {kickoff.isoformat()}.",
            news_date=state.current_date,
        )
    )
    logger.info(
        "Season rollover %s -> %s: %d fixtures, %d career records",
        finished_season,
        state.season,
        len(fixtures),
        careers,
    )
    return {
        "ok": True,
        "previous_season": finished_season,
        "season": state.season,
        "date": state.current_date.isoformat(),
        "kickoff": kickoff.isoformat(),
        "fixtures": len(fixtures),
        "summary": summary,
    }
