from __future__ import annotations

import random
from typing import Iterable

from .config import WEEKLY_FORM_CHANGE_CHANCE
from .models import Player, clamp_rating

YOUTH_MAX_AGE = 23
PEAK_START_AGE = 24
PEAK_END_AGE = 30
VETERAN_START_AGE = 31

# (threshold, arrow) pairs per current arrow; the last arrow is the fallback.
FORM_TRANSITIONS: dict[str, tuple[tuple[float, str], ...]] = {
    "UP": ((0.4, "SLIGHT_UP"), (0.7, "UP"), (1.0, "MID")),
    "SLIGHT_UP": ((0.25, "UP"), (0.5, "MID"), (1.0, "SLIGHT_UP")),
    "MID": ((0.2, "SLIGHT_UP"), (0.4, "SLIGHT_DOWN"), (1.0, "MID")),
    "SLIGHT_DOWN": ((0.25, "DOWN"), (0.5, "MID"), (1.0, "SLIGHT_DOWN")),
    "DOWN": ((0.4, "SLIGHT_DOWN"), (0.7, "DOWN"), (1.0, "MID")),
}

NEW_SEASON_FORM: tuple[tuple[float, str], ...] = (
    (0.10, "UP"),
    (0.25, "SLIGHT_UP"),
    (0.75, "MID"),
    (0.90, "SLIGHT_DOWN"),
    (1.00, "DOWN"),
)


def _pick_band(roll: float, bands: tuple[tuple[float, str], ...]) -> str:
    for threshold, arrow in bands:
        if roll < threshold:
            return arrow
    return bands[-1][1]


def calculate_market_value(skill: int, age: int, potential: int) -> int:
    base_value = pow(skill, 2.5) * 100
    if age <= 21:
        age_mod = 1.3 + (potential - skill) * 0.02
    elif age <= 25:
        age_mod = 1.2
    elif age <= 28:
        age_mod = 1.0
    elif age <= 30:
        age_mod = 0.8
    elif age <= 33:
        age_mod = 0.5
    else:
        age_mod = 0.2

    potential_bonus = 1.0
    if age <= YOUTH_MAX_AGE and potential >= 85:
        potential_bonus = 1.0 + (potential - 80) * 0.03
    return int(round(base_value * age_mod * potential_bonus / 50_000)) * 50_000


def calculate_wage(player: Player) -> int:
    premium = 1.5 if player.skill >= 85 else (1.2 if player.skill >= 75 else 1.0)
    return int(round(player.market_value * 0.007 * premium / 1000)) * 1000


def transfer_wage(player: Player) -> int:
    """Wage offered by a buying club when a deal goes through."""
    return int(round((player.skill * 2000 + player.market_value * 0.001) / 1000)) * 1000


def skill_change(player: Player, rng: random.Random) -> int:
    gap = player.potential - player.skill
    if player.age <= YOUTH_MAX_AGE:
        base_growth = rng.random() * 2 + 1
        bonus = rng.random() * 2 if gap > 10 else rng.random()
        return round(base_growth + bonus)
    if PEAK_START_AGE <= player.age <= PEAK_END_AGE:
        if gap > 5 and rng.random() < 0.3:
            return round(rng.random() * 2)
        return 0
    years_over_peak = player.age - PEAK_END_AGE
    return -round(1 + years_over_peak // 2 + rng.random() * 2)


def develop_player(player: Player, rng: random.Random) -> None:
    """One close-season step: age, skill, value and a fresh form arrow."""
    player.age += 1
    player.skill = clamp_rating(player.skill + skill_change(player, rng))
    player.potential = clamp_rating(max(player.potential, player.skill))
    player.market_value = calculate_market_value(player.skill, player.age, player.potential)
    player.condition = _pick_band(rng.random(), NEW_SEASON_FORM)


def next_form_arrow(current: str, rng: random.Random) -> str:
    bands = FORM_TRANSITIONS.get(current)
    if bands is None:
        return "MID"
    return _pick_band(rng.random(), bands)


def apply_weekly_form(players: Iterable[Player], rng: random.Random) -> int:
    changed = 0
    for player in players:
        if rng.random() < WEEKLY_FORM_CHANGE_CHANCE:
            arrow = next_form_arrow(player.condition, rng)
            if arrow != player.condition:
                changed += 1
            player.condition = arrow
    return changed
