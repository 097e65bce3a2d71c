import random
from datetime import date

import pytest

from football_sim.league import SeasonSimulator
from football_sim.models import CareerRecord, Club, Fixture, GameState, Player, TransferOffer
from football_sim.season import (
    clear_expired_statuses,
    is_season_complete,
    next_season_label,
    rollover_date,
    season_kickoff,
    season_summary,
    start_new_season,
    weeks_crossed,
)


def _sim(team_count: int = 4) -> SeasonSimulator:
    clubs = [{"id": f"c{idx}", "name": f"Club {idx}", "reputation": 55 + idx} for idx in range(team_count)]
    database = {
        "clubs": clubs,
        "players": [],
        "competitions": [{"id": "liga", "name": "Liga", "team_ids": [c["id"] for c in clubs]}],
    }
    return SeasonSimulator.from_master_database(database, "c0", seed=4)


def test_season_labels_and_dates() -> None:
    assert next_season_label("2024-2025") == "2025-2026"
    with pytest.raises(ValueError):
        next_season_label("last season")
    assert rollover_date(date(2025, 5, 20)) == date(2025, 7, 1)
    assert rollover_date(date(2024, 7, 1)) == date(2025, 7, 1)
    # 17 August 2025 is a Sunday.
    assert season_kickoff(2025) == date(2025, 8, 23)
    assert season_kickoff(2024) == date(2024, 8, 17)


def test_week_boundaries_ignore_step_size() -> None:
    # Weeks turn over on Thursdays.
    assert weeks_crossed(date(2024, 7, 3), date(2024, 7, 4)) == 1
    assert weeks_crossed(date(2024, 7, 4), date(2024, 7, 10)) == 0
    assert weeks_crossed(date(2024, 7, 4), date(2024, 7, 11)) == 1
    assert weeks_crossed(date(2024, 7, 1), date(2024, 7, 29)) == 4
    assert weeks_crossed(date(2024, 7, 29), date(2024, 7, 1)) == 0


def test_clear_expired_statuses() -> None:
    today = date(2024, 9, 14)
    healed = Player(name="Healed", position="DEF", skill=60, injured_until=today)
    still_out = Player(name="Out", position="DEF", skill=60, injured_until=date(2024, 9, 21))
    banned = Player(
        name="Banned", position="MID", skill=60, suspended_until=date(2024, 9, 1), suspension_reason="RED_CARD"
    )

    assert clear_expired_statuses([healed, still_out, banned], today) == 2
    assert healed.injured_until is None
    assert still_out.injured_until == date(2024, 9, 21)
    assert banned.suspended_until is None
    assert banned.suspension_reason is None


def test_status_applies_through_end_date() -> None:
    player = Player(name="Hurt", position="FWD", skill=70, injured_until=date(2024, 9, 14))
    assert not player.is_available(date(2024, 9, 14))
    assert player.is_available(date(2024, 9, 15))


def test_season_completion_needs_league_fixtures() -> None:
    assert not is_season_complete([])
    fixture = Fixture("f1", "liga", 1, date(2024, 8, 17), "a", "b")
    assert not is_season_complete([fixture])
    fixture.finish(1, 0)
    assert is_season_complete([fixture])


def test_new_season_requires_finished_season() -> None:
    sim = _sim()
    with pytest.raises(ValueError):
        sim.start_new_season()


def test_rollover_resets_the_world() -> None:
    sim = _sim()
    sim.simulate_matchdays(20)
    assert sim.season_complete
    veteran = max(sim.state.players.values(), key=lambda p: p.season_stats.appearances)
    age_before = veteran.age
    appearances = veteran.season_stats.appearances
    summary_before = sim.summary()

    result = sim.start_new_season()

    assert result["previous_season"] == "2024-2025"
    assert result["season"] == sim.state.season == "2025-2026"
    assert sim.current_date == date(2025, 7, 1)
    assert result["kickoff"] == "2025-08-23"
    assert result["fixtures"] == 12
    assert result["summary"]["champions"] == summary_before["champions"]
    assert not sim.season_complete
    assert all(f.status == "SCHEDULED" for f in sim.state.fixtures)
    assert min(f.match_date for f in sim.state.fixtures) == date(2025, 8, 23)
    assert all(e.played == 0 and e.points == 0 for e in sim.standings_table("liga"))
    assert veteran.age == age_before + 1
    assert veteran.season_stats.appearances == 0
    assert veteran.career[-1].season == "2024-2025"
    assert veteran.career[-1].appearances == appearances
    assert all(p.injured_until is None and p.suspended_until is None for p in sim.state.players.values())
    assert sim.state.news.recent(1)[0].kind == "SEASON"


def test_season_summary_reports_user_position() -> None:
    sim = _sim()
    sim.simulate_matchdays(20)
    summary = season_summary(sim.state)
    assert summary["complete"]
    assert summary["user_league"] == "liga"
    assert 1 <= summary["user_position"] <= 4
    assert summary["champions"]["liga"] == sim.standings_table("liga")[0].club_id
    goals = [row["goals"] for row in summary["top_scorers"]]
    assert goals == sorted(goals, reverse=True)


def test_career_history_is_capped() -> None:
    club = Club(name="Old Club", club_id="old")
    player = Player(name="Journeyman", position="MID", skill=60, age=29, club_id="old")
    player.career = [CareerRecord(f"{2010 + i}-{2011 + i}", "old", "Old Club", 30, 2, 1) for i in range(10)]
    player.season_stats.appearances = 12
    state = GameState(
        user_club_id="old",
        clubs={"old": club},
        players={player.player_id: player},
        competitions={},
        current_date=date(2025, 5, 31),
    )

    start_new_season(state, random.Random(1))

    assert len(player.career) == 10
    assert player.career[0].season == "2011-2012"
    assert player.career[-1].season == "2024-2025"
    assert player.career[-1].appearances == 12


def test_pending_offers_dropped_at_rollover() -> None:
    sim = _sim()
    sim.simulate_matchdays(20)
    own = sim.user_squad()[0]
    sim.state.offers.append(
        TransferOffer(player_id=own.player_id, from_club_id="c1", amount=1, created=sim.current_date, expires=date(2026, 1, 1))
    )
    sim.start_new_season()
    assert sim.state.offers == []
