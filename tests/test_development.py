import random
from datetime import date

from football_sim.development import (
    apply_weekly_form,
    calculate_market_value,
    calculate_wage,
    develop_player,
    next_form_arrow,
    transfer_wage,
)
from football_sim.engine import MatchTeam, select_match_squad, simulate_match
from football_sim.models import CONDITION_ARROWS, Player


def _squad(club_id: str, positions: dict[str, int], skill: int = 70) -> list[Player]:
    players = []
    for position, count in positions.items():
        for idx in range(count):
            players.append(
                Player(
                    name=f"{club_id} {position} {idx}",
                    position=position,
                    skill=skill + idx,
                    club_id=club_id,
                    player_id=f"{club_id}_{position}_{idx}",
                )
            )
    return players


def test_market_value_favours_young_high_potential() -> None:
    prospect = calculate_market_value(75, 20, 90)
    peak = calculate_market_value(75, 27, 75)
    veteran = calculate_market_value(75, 34, 75)
    assert prospect > peak > veteran
    assert peak % 50_000 == 0
    assert calculate_market_value(90, 27, 90) > calculate_market_value(70, 27, 70)


def test_wage_formulas() -> None:
    player = Player(name="Paid", position="MID", skill=80, market_value=20_000_000)
    assert calculate_wage(player) == 168_000
    assert transfer_wage(player) == 180_000


def test_development_keeps_ratings_in_range() -> None:
    rng = random.Random(3)
    young = Player(name="Young", position="FWD", skill=98, age=19, potential=99)
    old = Player(name="Old", position="DEF", skill=3, age=37, potential=3)
    for _ in range(10):
        develop_player(young, rng)
        develop_player(old, rng)
    assert young.age == 29
    assert 1 <= young.skill <= 99
    assert young.potential >= young.skill
    assert old.skill >= 1
    assert old.condition in CONDITION_ARROWS


def test_youngsters_grow_and_veterans_decline() -> None:
    rng = random.Random(12)
    young = Player(name="Young", position="MID", skill=60, age=19, potential=85)
    veteran = Player(name="Veteran", position="MID", skill=80, age=33, potential=80)
    develop_player(young, rng)
    develop_player(veteran, rng)
    assert young.skill > 60
    assert veteran.skill < 80
    assert veteran.market_value == calculate_market_value(veteran.skill, 34, veteran.potential)


def test_weekly_form_drift() -> None:
    rng = random.Random(5)
    players = [Player(name=f"P{i}", position="MID", skill=60) for i in range(200)]
    changed = apply_weekly_form(players, rng)
    assert 0 < changed < 100
    assert all(p.condition in CONDITION_ARROWS for p in players)
    assert next_form_arrow("SIDEWAYS", rng) == "MID"


def test_select_squad_needs_eleven_available() -> None:
    today = date(2024, 8, 17)
    squad = _squad("a", {"GK": 1, "DEF": 4, "MID": 3, "FWD": 3})
    assert select_match_squad("a", squad, today) is not None
    squad[0].injured_until = today
    assert select_match_squad("a", squad, today) is None


def test_select_squad_follows_formation() -> None:
    today = date(2024, 8, 17)
    squad = _squad("a", {"GK": 2, "DEF": 6, "MID": 6, "FWD": 4})
    team = select_match_squad("a", squad, today, formation="4-4-2", tactic="ATTACKING")
    positions = [p.position for p in team.players]
    assert len(team.players) == 11
    assert positions.count("GK") == 1
    assert positions.count("DEF") == 4
    assert positions.count("MID") == 4
    assert positions.count("FWD") == 2
    # Best forwards start.
    assert {p.player_id for p in team.players if p.position == "FWD"} == {"a_FWD_3", "a_FWD_2"}
    assert len(team.bench) == 7
    assert team.tactic == "ATTACKING"


def test_select_squad_tops_up_short_lines() -> None:
    squad = _squad("a", {"GK": 1, "DEF": 2, "MID": 8, "FWD": 1})
    team = select_match_squad("a", squad, date(2024, 8, 17), formation="5-3-2")
    assert len(team.players) == 11


def test_simulated_match_is_consistent() -> None:
    today = date(2024, 8, 17)
    plan = {"GK": 2, "DEF": 6, "MID": 6, "FWD": 4}
    home = select_match_squad("h", _squad("h", plan, skill=75), today)
    away = select_match_squad("a", _squad("a", plan, skill=65), today)

    result = simulate_match(home, away, random.Random(42))
    again = simulate_match(home, away, random.Random(42))

    goals = [e for e in result.events if e.kind == "GOAL"]
    assert sum(1 for e in goals if e.side == "home") == result.home_score
    assert sum(1 for e in goals if e.side == "away") == result.away_score
    assert len(result.home_lineup) == len(result.away_lineup) == 11
    assert len(result.home_subs) <= 5
    assert (result.home_score, result.away_score) == (again.home_score, again.away_score)
    minutes = [e.minute for e in result.events]
    assert minutes == sorted(minutes)


def test_stronger_side_wins_more_often() -> None:
    today = date(2024, 8, 17)
    plan = {"GK": 2, "DEF": 6, "MID": 6, "FWD": 4}
    strong = select_match_squad("s", _squad("s", plan, skill=85), today)
    weak = select_match_squad("w", _squad("w", plan, skill=45), today)
    rng = random.Random(9)
    wins = losses = 0
    for _ in range(200):
        result = simulate_match(strong, weak, rng)
        wins += result.home_score > result.away_score
        losses += result.home_score < result.away_score
    assert wins > losses * 3
    assert isinstance(strong, MatchTeam)
