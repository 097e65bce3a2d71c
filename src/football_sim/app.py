from __future__ import annotations

import random
from typing import Any, Iterable

from .league import SeasonSimulator
from .models import Player
from .names import NameGenerator

DEFAULT_USER_CLUB = "pd_sevilla_norte"

PLAYER_NATIONALITIES: tuple[tuple[str, float], ...] = (
    ("Spain", 0.55),
    ("Argentina", 0.10),
    ("Brazil", 0.07),
    ("Portugal", 0.06),
    ("France", 0.06),
    ("Uruguay", 0.04),
    ("Italy", 0.04),
    ("England", 0.04),
    ("Colombia", 0.04),
)

# (competition id, name, tier, clubs as (id, name, reputation, budget, formation))
LEAGUES: tuple[tuple[str, str, int, tuple[tuple[str, str, int, int, str], ...]], ...] = (
    (
        "primera",
        "Primera División",
        1,
        (
            ("pd_madrid_real", "Real Madrid Capital", 92, 180_000_000, "4-3-3"),
            ("pd_barcelona", "Barcelona Atlètic", 90, 150_000_000, "4-3-3"),
            ("pd_atletico", "Atlético Manzanares", 84, 90_000_000, "4-4-2"),
            ("pd_sevilla_norte", "Sevilla Norte", 74, 40_000_000, "4-2-3-1"),
            ("pd_valencia", "Valencia Turia", 72, 35_000_000, "4-4-2"),
            ("pd_bilbao", "Bilbao Athletic", 71, 30_000_000, "4-3-3"),
            ("pd_sociedad", "Real Sociedad Donostia", 73, 38_000_000, "4-3-3"),
            ("pd_betis", "Betis Heliópolis", 70, 28_000_000, "4-2-3-1"),
        ),
    ),
    (
        "segunda",
        "Segunda División",
        2,
        (
            ("sd_zaragoza", "Real Zaragoza Ebro", 58, 9_000_000, "4-4-2"),
            ("sd_oviedo", "Oviedo Carbayón", 55, 7_000_000, "4-4-2"),
            ("sd_gijon", "Sporting Gijón Mar", 57, 8_000_000, "4-3-3"),
            ("sd_racing", "Racing Santander", 54, 6_000_000, "5-3-2"),
            ("sd_malaga", "Málaga Costa", 59, 10_000_000, "4-2-3-1"),
            ("sd_cadiz", "Cádiz Bahía", 53, 5_000_000, "3-5-2"),
            ("sd_elche", "Elche Palmeral", 52, 5_500_000, "4-4-2"),
        ),
    ),
)

SQUAD_PLAN: tuple[tuple[str, int], ...] = (("GK", 2), ("DEF", 7), ("MID", 7), ("FWD", 5))


def _sample_quality(rng: random.Random, tier_plan: list[tuple[float, float, float]]) -> float:
    roll = rng.random()
    cumulative = 0.0
    for weight, low, high in tier_plan:
        cumulative += weight
        if roll <= cumulative:
            return rng.uniform(low, high)
    return rng.uniform(tier_plan[-1][1], tier_plan[-1][2])


def _sample_nationality(rng: random.Random) -> str:
    roll = rng.random()
    cumulative = 0.0
    for country, weight in PLAYER_NATIONALITIES:
        cumulative += weight
        if roll <= cumulative:
            return country
    return PLAYER_NATIONALITIES[0][0]


def _make_squad(club_id: str, reputation: int, name_gen: NameGenerator) -> list[dict[str, Any]]:
    rng = random.Random(f"{club_id}:{reputation}")
    # Few stars, a solid core and some depth, centred on the club's reputation.
    tiers = [(0.10, 8.0, 14.0), (0.30, 0.0, 8.0), (0.40, -8.0, 0.0), (0.20, -18.0, -8.0)]
    squad: list[dict[str, Any]] = []
    for position, count in SQUAD_PLAN:
        for _idx in range(count):
            skill = int(round(max(30.0, min(95.0, reputation - 4 + _sample_quality(rng, tiers)))))
            age = rng.randint(18, 34)
            growth = rng.randint(4, 18) if age <= 23 else (rng.randint(0, 4) if age <= 28 else 0)
            squad.append(
                {
                    "id": f"{club_id}_{len(squad) + 1:02d}",
                    "name": name_gen.next_name(),
                    "age": age,
                    "nationality": _sample_nationality(rng),
                    "position": position,
                    "skill": skill,
                    "potential": min(99, skill + growth),
                    "condition": rng.choice(["UP", "SLIGHT_UP", "MID", "MID", "MID", "SLIGHT_DOWN", "DOWN"]),
                    "club_id": club_id,
                    "contract_expiry": f"{rng.randint(2025, 2029)}-06-30",
                }
            )

    # The best player is protected; a couple of fringe players are on the market.
    squad.sort(key=lambda row: row["skill"], reverse=True)
    squad[0]["transfer_status"] = "UNTOUCHABLE" if reputation >= 80 else "AVAILABLE"
    if reputation < 80:
        squad[0]["release_clause"] = 5_000_000 + reputation * 100_000
    for row in squad[-3:-1]:
        row["transfer_status"] = "LISTED"
    squad[-1]["transfer_status"] = "LOAN_LISTED"
    return squad


def build_default_database() -> dict[str, Any]:
    """Deterministic two-division master database used for new games and tests."""
    name_gen = NameGenerator(seed=2024)
    clubs: list[dict[str, Any]] = []
    players: list[dict[str, Any]] = []
    competitions: list[dict[str, Any]] = []
    for comp_id, comp_name, tier, entries in LEAGUES:
        team_ids: list[str] = []
        for club_id, club_name, reputation, budget, formation in entries:
            stadium_rng = random.Random(f"stadium:{club_id}")
            clubs.append(
                {
                    "id": club_id,
                    "name": club_name,
                    "country": "Spain",
                    "tier": tier,
                    "reputation": reputation,
                    "budget": budget,
                    "stadium_capacity": stadium_rng.randint(12_000, 81_000) if tier == 1 else stadium_rng.randint(8_000, 30_000),
                    "league_id": comp_id,
                    "preferred_formation": formation,
                }
            )
            players.extend(_make_squad(club_id, reputation, name_gen))
            team_ids.append(club_id)
        competitions.append(
            {"id": comp_id, "name": comp_name, "kind": "LEAGUE", "country": "Spain", "tier": tier, "team_ids": team_ids}
        )
    return {"clubs": clubs, "players": players, "competitions": competitions}


def format_standings(simulator: SeasonSimulator, competition_id: str | None = None) -> str:
    lines = ["Pos Club                      P  W  D  L  GF  GA  GD Pts Form"]
    for idx, entry in enumerate(simulator.standings_table(competition_id), start=1):
        club = simulator.get_club(entry.club_id)
        name = club.name if club is not None else entry.club_id
        lines.append(
            f"{idx:>3} {name:<24} {entry.played:>2} {entry.won:>2} {entry.drawn:>2} {entry.lost:>2}"
            f" {entry.goals_for:>3} {entry.goals_against:>3} {entry.goal_diff:>3} {entry.points:>3} {''.join(entry.form)}"
        )
    return "\n".join(lines)


def format_player_stats(players: Iterable[Player], title: str, limit: int = 20) -> str:
    lines = [title, "Player                    Age Pos Skl Apps  G  A  YC RC"]
    for player in list(players)[:limit]:
        stats = player.season_stats
        lines.append(
            f"{player.name:<24} {player.age:>4} {player.position:<3} {player.skill:>3} {stats.appearances:>4}"
            f" {stats.goals:>2} {stats.assists:>2} {stats.yellow_cards:>3} {stats.red_cards:>2}"
        )
    return "\n".join(lines)
