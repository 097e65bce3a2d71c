import json
from datetime import date

import pytest

from football_sim.app import DEFAULT_USER_CLUB, build_default_database
from football_sim.config import MIN_SQUAD_SIZE
from football_sim.development import calculate_market_value, calculate_wage
from football_sim.genesis import GenesisError, load_master_database, new_game


def _database() -> dict:
    return {
        "clubs": [
            {"id": "rm", "name": "Real Test", "reputation": 85, "budget": 100_000_000, "preferred_formation": "4-4-2"},
            {"id": "at", "name": "Atlético Test", "budget": -5, "preferred_formation": "9-0-1"},
            {"id": 7, "name": "Numbered FC", "reputation": 140.6},
            {"name": "No Id"},
        ],
        "players": [
            {"id": "p1", "name": "Complete", "club_id": "rm", "position": "FWD", "skill": 88, "age": 24,
             "potential": 92, "wage": 150_000, "market_value": 80_000_000, "transfer_status": "UNAVAILABLE",
             "condition": "STABLE"},
            {"id": "p2", "name": "Sparse", "club_id": "rm"},
            {"id": "p3", "club_id": "rm", "position": "winger", "skill": 120, "nationality": None},
            {"id": "p4", "name": "Lost Soul", "club_id": "ghost", "skill": 60.4},
            {"id": "p1", "name": "Duplicate"},
            "not a record",
        ],
        "competitions": [
            {"id": "liga", "name": "Liga Test", "type": "league", "team_ids": ["rm", "at", "7", "missing"]},
        ],
    }


def test_defaults_fill_missing_fields() -> None:
    result = load_master_database(_database())
    assert result.success

    sparse = result.players["p2"]
    assert sparse.skill == 50
    assert sparse.potential == 50
    assert sparse.age == 25
    assert sparse.condition == "MID"
    assert sparse.wage == 50 * 1000
    assert sparse.market_value == calculate_market_value(50, 25, 50)

    complete = result.players["p1"]
    assert complete.transfer_status == "UNTOUCHABLE"
    assert complete.condition == "MID"
    assert complete.wage == 150_000
    assert complete.market_value == 80_000_000


def test_clamps_and_aliases_are_reported() -> None:
    result = load_master_database(_database())
    odd = result.players["p3"]
    assert odd.skill == 99
    assert odd.position == "MID"
    assert odd.nationality == "Unknown"
    assert result.players["p4"].skill == 60

    assert result.clubs["at"].budget == 0
    assert result.clubs["at"].reputation == 50
    assert result.clubs["at"].preferred_formation == "4-3-3"
    assert result.clubs["rm"].preferred_formation == "4-4-2"
    assert result.clubs["7"].reputation == 100

    text = "\n".join(result.warnings)
    assert "skill 120 clamped to 99" in text
    assert "unknown position 'winger'" in text
    assert "negative budget" in text
    assert "Duplicate player id p1" in text
    assert "Dropped club record" in text
    assert "Dropped player record" in text


def test_unknown_references_are_dropped() -> None:
    result = load_master_database(_database())
    assert result.players["p4"].club_id is None
    assert result.competitions["liga"].team_ids == ["rm", "at", "7"]
    assert result.competitions["liga"].kind == "LEAGUE"
    assert "references unknown club ghost" in "\n".join(result.warnings)


def test_squads_are_padded_and_fixtures_built() -> None:
    result = load_master_database(_database())
    for club_id in ("rm", "at", "7"):
        squad = [p for p in result.players.values() if p.club_id == club_id]
        assert len(squad) >= MIN_SQUAD_SIZE
        assert sum(1 for p in squad if p.position == "GK") >= 2
    assert set(result.competitions["liga"].standings) == {"rm", "at", "7"}
    assert all(club.league_id == "liga" for club in result.clubs.values())
    # Three clubs, a bye every matchday.
    assert len(result.fixtures) == 6
    assert min(f.match_date for f in result.fixtures) == date(2024, 8, 17)
    names = [p.name for p in result.players.values()]
    assert len(names) == len(set(names))
    generated = [p for p in result.players.values() if p.player_id.startswith("gen_")]
    assert generated
    assert all(p.wage == calculate_wage(p) for p in generated)


def test_missing_arrays_are_warnings() -> None:
    result = load_master_database({"clubs": {"not": "a list"}})
    assert result.success
    assert result.clubs == {}
    assert len([w for w in result.warnings if "no valid" in w]) == 3


def test_unreadable_file_is_fatal(tmp_path) -> None:
    broken = tmp_path / "master.json"
    broken.write_text("{not json", encoding="utf-8")
    result = load_master_database(broken)
    assert not result.success
    assert result.errors

    listed = tmp_path / "list.json"
    listed.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    assert not load_master_database(listed).success
    assert not load_master_database(tmp_path / "missing.json").success

    with pytest.raises(GenesisError):
        new_game(result, "rm")


def test_loads_from_file(tmp_path) -> None:
    path = tmp_path / "master.json"
    path.write_text(json.dumps(_database()), encoding="utf-8")
    result = load_master_database(path)
    assert result.success
    assert "p1" in result.players


def test_new_game_checks_user_club() -> None:
    result = load_master_database(_database())
    state = new_game(result, "rm", manager_name="Ana")
    assert state.user_club_id == "rm"
    assert state.manager_name == "Ana"
    assert state.season == "2024-2025"
    with pytest.raises(GenesisError):
        new_game(result, "nobody")


def test_default_database_loads_cleanly() -> None:
    result = load_master_database(build_default_database())
    assert result.success
    assert result.warnings == []
    assert DEFAULT_USER_CLUB in result.clubs
    assert {c.competition_id for c in result.competitions.values()} == {"primera", "segunda"}
    # 8 clubs and 7 clubs, both fourteen matchdays.
    assert len(result.fixtures) == 8 * 7 + 7 * 6
    assert max(f.matchday for f in result.fixtures) == 14
    statuses = {p.transfer_status for p in result.players.values()}
    assert {"LISTED", "LOAN_LISTED", "UNTOUCHABLE", "AVAILABLE"} <= statuses
