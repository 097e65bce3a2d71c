import random
from datetime import date

import pytest

from football_sim.models import Competition, Fixture, StandingEntry
from football_sim.standings import apply_result, new_table, reset_table, sorted_table, table_position


def test_win_draw_loss_points() -> None:
    home = StandingEntry(club_id="a")
    away = StandingEntry(club_id="b")
    apply_result(home, away, 3, 1)
    assert (home.played, home.won, home.points, home.goal_diff) == (1, 1, 3, 2)
    assert (away.played, away.lost, away.points, away.goal_diff) == (1, 1, 0, -2)

    apply_result(home, away, 0, 0)
    assert home.drawn == away.drawn == 1
    assert home.points == 4
    assert away.points == 1
    assert home.form == ["D", "W"]
    assert away.form == ["D", "L"]


def test_form_keeps_last_five_most_recent_first() -> None:
    entry = StandingEntry(club_id="a")
    other = StandingEntry(club_id="b")
    for goals in (1, 1, 1, 1, 0, 0):
        apply_result(entry, other, goals, 0)
    assert entry.form == ["D", "D", "W", "W", "W"]


def test_table_totals_are_conserved() -> None:
    rng = random.Random(5)
    table = new_table([f"c{i}" for i in range(6)])
    ids = list(table)
    results = 0
    for _ in range(40):
        home, away = rng.sample(ids, 2)
        apply_result(table[home], table[away], rng.randint(0, 4), rng.randint(0, 4))
        results += 1

    entries = table.values()
    assert sum(e.goals_for for e in entries) == sum(e.goals_against for e in entries)
    assert sum(e.played for e in entries) == 2 * results
    for entry in entries:
        assert entry.played == entry.won + entry.drawn + entry.lost
    wins = sum(e.won for e in entries)
    draws = sum(e.drawn for e in entries)
    assert sum(e.points for e in entries) == 3 * wins + draws


def test_negative_score_rejected() -> None:
    with pytest.raises(ValueError):
        apply_result(StandingEntry(club_id="a"), StandingEntry(club_id="b"), -1, 0)


def test_table_order_and_reset() -> None:
    comp = Competition(competition_id="liga", name="Liga", team_ids=["a", "b", "c"])
    comp.standings = new_table(comp.team_ids)
    apply_result(comp.standings["a"], comp.standings["b"], 1, 0)
    apply_result(comp.standings["c"], comp.standings["b"], 3, 0)
    assert [e.club_id for e in sorted_table(comp)] == ["c", "a", "b"]
    assert table_position(comp, "a") == 2
    assert table_position(comp, "missing") is None

    reset_table(comp)
    assert all(e.played == 0 and e.points == 0 and e.form == [] for e in comp.standings.values())


def test_fixture_status_is_one_way() -> None:
    fixture = Fixture("f1", "liga", 1, date(2024, 8, 17), "a", "b")
    fixture.advance_status("LIVE")
    fixture.finish(2, 0)
    assert fixture.is_finished
    with pytest.raises(ValueError):
        fixture.advance_status("SCHEDULED")
    with pytest.raises(ValueError):
        fixture.finish(3, 0)


def test_fixture_rejects_self_pairing() -> None:
    with pytest.raises(ValueError):
        Fixture("f1", "liga", 1, date(2024, 8, 17), "a", "a")
