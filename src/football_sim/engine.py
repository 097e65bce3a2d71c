from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Iterable

from .config import DEFAULT_FORMATION, DEFAULT_TACTIC, FORMATIONS, MIN_MATCH_PLAYERS
from .models import MatchEvent, MatchResult, Player

MATCH_MINUTES = 90
HOME_ADVANTAGE = 0.10
BASE_EXPECTED_GOALS = 1.30
MAX_SUBSTITUTIONS = 5
BENCH_SIZE = 7

TACTIC_EFFECTS: dict[str, dict[str, float]] = {
    "DEFENSIVE": {"attack": 0.85, "defense": 1.15},
    "BALANCED": {"attack": 1.00, "defense": 1.00},
    "ATTACKING": {"attack": 1.15, "defense": 0.85},
}

FORM_MODIFIERS: dict[str, float] = {
    "UP": 1.10,
    "SLIGHT_UP": 1.05,
    "MID": 1.00,
    "SLIGHT_DOWN": 0.95,
    "DOWN": 0.90,
}

SCORER_WEIGHTS = {"GK": 0.05, "DEF": 1.0, "MID": 3.0, "FWD": 6.0}
ASSIST_WEIGHTS = {"GK": 0.2, "DEF": 1.5, "MID": 4.0, "FWD": 3.0}
CARD_WEIGHTS = {"GK": 1.0, "DEF": 40.0, "MID": 35.0, "FWD": 20.0}

# Injury length in weeks: cumulative probability per band.
INJURY_WEEKS: tuple[tuple[float, int], ...] = ((0.50, 1), (0.75, 2), (0.90, 3), (0.97, 4))


@dataclass(slots=True)
class MatchTeam:
    club_id: str
    players: list[Player]
    bench: list[Player] = field(default_factory=list)
    formation: str = DEFAULT_FORMATION
    tactic: str = DEFAULT_TACTIC


MatchGenerator = Callable[[MatchTeam, MatchTeam, random.Random], MatchResult]


def select_match_squad(
    club_id: str,
    squad: Iterable[Player],
    on: date,
    formation: str = DEFAULT_FORMATION,
    tactic: str = DEFAULT_TACTIC,
) -> MatchTeam | None:
    """Pick the best available XI for ``formation``; None if fewer than eleven can play."""
    available = sorted(
        (p for p in squad if p.is_available(on)),
        key=lambda p: (-p.skill, p.player_id),
    )
    if len(available) < MIN_MATCH_PLAYERS:
        return None

    needs = FORMATIONS.get(formation, FORMATIONS[DEFAULT_FORMATION])
    chosen: list[Player] = []
    chosen_ids: set[str] = set()
    for position, count in needs.items():
        for player in [p for p in available if p.position == position][:count]:
            chosen.append(player)
            chosen_ids.add(player.player_id)
    # Short in a line: best remaining players fill the gaps.
    for player in available:
        if len(chosen) >= MIN_MATCH_PLAYERS:
            break
        if player.player_id not in chosen_ids:
            chosen.append(player)
            chosen_ids.add(player.player_id)

    bench = [p for p in available if p.player_id not in chosen_ids][:BENCH_SIZE]
    return MatchTeam(
        club_id=club_id,
        players=chosen,
        bench=bench,
        formation=formation if formation in FORMATIONS else DEFAULT_FORMATION,
        tactic=tactic if tactic in TACTIC_EFFECTS else DEFAULT_TACTIC,
    )


def _avg(values: list[float], fallback: float) -> float:
    if not values:
        return fallback
    return sum(values) / len(values)


def _team_power(team: MatchTeam) -> tuple[float, float]:
    def line(position: str) -> list[float]:
        return [p.skill * FORM_MODIFIERS.get(p.condition, 1.0) for p in team.players if p.position == position]

    overall = _avg([p.skill for p in team.players], 50.0)
    gk = _avg(line("GK"), overall * 0.6)
    defense = _avg(line("DEF"), overall)
    mid = _avg(line("MID"), overall)
    fwd = _avg(line("FWD"), overall)
    effect = TACTIC_EFFECTS.get(team.tactic, TACTIC_EFFECTS[DEFAULT_TACTIC])
    attack = (fwd * 0.50 + mid * 0.35 + defense * 0.15) * effect["attack"]
    resist = (gk * 0.30 + defense * 0.45 + mid * 0.25) * effect["defense"]
    return attack, resist


def _expected_goals(attack: float, defense: float) -> float:
    ratio = attack / max(1.0, defense)
    return max(0.25, min(3.8, BASE_EXPECTED_GOALS * ratio ** 1.6))


def _minute_modifier(minute: int) -> float:
    if minute <= 5:
        return 0.6
    if 41 <= minute <= 45 or minute >= 86:
        return 1.25
    return 1.0


def _choose_weighted(players: list[Player], weights: list[float], rng: random.Random) -> Player:
    if not players:
        raise ValueError("No players available for weighted selection.")
    return rng.choices(players, weights=weights, k=1)[0]


def _sample_injury_weeks(rng: random.Random) -> int:
    roll = rng.random()
    for threshold, weeks in INJURY_WEEKS:
        if roll < threshold:
            return weeks
    return rng.randint(5, 7)


@dataclass(slots=True)
class _SideState:
    team: MatchTeam
    side: str
    on_pitch: list[Player]
    bench: list[Player]
    subs_in: list[str] = field(default_factory=list)
    booked: set[str] = field(default_factory=set)

    def substitute(self, leaving: Player, minute: int, events: list[MatchEvent]) -> None:
        if leaving in self.on_pitch:
            self.on_pitch.remove(leaving)
        if not self.bench or len(self.subs_in) >= MAX_SUBSTITUTIONS:
            return
        same_line = [p for p in self.bench if p.position == leaving.position]
        incoming = same_line[0] if same_line else self.bench[0]
        self.bench.remove(incoming)
        self.on_pitch.append(incoming)
        self.subs_in.append(incoming.player_id)
        events.append(MatchEvent(kind="SUBSTITUTION", minute=minute, player_id=incoming.player_id, side=self.side))


def _score_goal(state: _SideState, minute: int, rng: random.Random) -> MatchEvent | None:
    if not state.on_pitch:
        return None
    scorer = _choose_weighted(
        state.on_pitch,
        [SCORER_WEIGHTS.get(p.position, 1.0) * max(1, p.skill) / 50.0 for p in state.on_pitch],
        rng,
    )
    assister: Player | None = None
    others = [p for p in state.on_pitch if p is not scorer]
    if others and rng.random() < 0.65:
        assister = _choose_weighted(
            others,
            [ASSIST_WEIGHTS.get(p.position, 1.0) * max(1, p.skill) / 50.0 for p in others],
            rng,
        )
    return MatchEvent(
        kind="GOAL",
        minute=minute,
        player_id=scorer.player_id,
        side=state.side,
        assister_id=assister.player_id if assister is not None else None,
    )


def simulate_match(home: MatchTeam, away: MatchTeam, rng: random.Random) -> MatchResult:
    """Default minute-by-minute generator used for every unattended fixture."""
    home_attack, home_defense = _team_power(home)
    away_attack, away_defense = _team_power(away)
    rates = {
        "home": _expected_goals(home_attack * (1.0 + HOME_ADVANTAGE), away_defense) / MATCH_MINUTES,
        "away": _expected_goals(away_attack, home_defense * (1.0 + HOME_ADVANTAGE / 2)) / MATCH_MINUTES,
    }
    sides = {
        "home": _SideState(team=home, side="home", on_pitch=list(home.players), bench=list(home.bench)),
        "away": _SideState(team=away, side="away", on_pitch=list(away.players), bench=list(away.bench)),
    }
    score = {"home": 0, "away": 0}
    events: list[MatchEvent] = []

    for minute in range(1, MATCH_MINUTES + 1):
        modifier = _minute_modifier(minute)
        for side_name in ("home", "away"):
            state = sides[side_name]
            # Fewer players on the pitch means fewer chances.
            strength = len(state.on_pitch) / MIN_MATCH_PLAYERS
            if rng.random() < rates[side_name] * modifier * strength:
                goal = _score_goal(state, minute, rng)
                if goal is not None:
                    score[side_name] += 1
                    events.append(goal)

        if rng.random() < (0.008 if minute > 60 else 0.005):
            state = sides["home" if rng.random() < 0.5 else "away"]
            if state.on_pitch:
                player = _choose_weighted(
                    state.on_pitch,
                    [CARD_WEIGHTS.get(p.position, 10.0) for p in state.on_pitch],
                    rng,
                )
                if player.player_id in state.booked or rng.random() < 0.05:
                    if player.player_id in state.booked:
                        events.append(MatchEvent(kind="YELLOW", minute=minute, player_id=player.player_id, side=state.side))
                    events.append(MatchEvent(kind="RED", minute=minute, player_id=player.player_id, side=state.side))
                    state.on_pitch.remove(player)
                else:
                    state.booked.add(player.player_id)
                    events.append(MatchEvent(kind="YELLOW", minute=minute, player_id=player.player_id, side=state.side))

        if rng.random() < 0.003:
            state = sides["home" if rng.random() < 0.5 else "away"]
            if state.on_pitch:
                player = state.on_pitch[rng.randrange(len(state.on_pitch))]
                events.append(
                    MatchEvent(
                        kind="INJURY",
                        minute=minute,
                        player_id=player.player_id,
                        side=state.side,
                        injury_weeks=_sample_injury_weeks(rng),
                    )
                )
                state.substitute(player, minute, events)

        if minute in (60, 70, 80):
            for state in sides.values():
                if state.bench and rng.random() < 0.6:
                    tired = min(
                        (p for p in state.on_pitch if p.position != "GK"),
                        key=lambda p: p.skill,
                        default=None,
                    )
                    if tired is not None:
                        state.substitute(tired, minute, events)

    return MatchResult(
        home_score=score["home"],
        away_score=score["away"],
        events=events,
        home_lineup=[p.player_id for p in home.players],
        away_lineup=[p.player_id for p in away.players],
        home_subs=list(sides["home"].subs_in),
        away_subs=list(sides["away"].subs_in),
    )
