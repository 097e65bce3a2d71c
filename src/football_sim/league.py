from __future__ import annotations

import copy
import logging
import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import Any

from .config import (
    DAYS_PER_MATCHDAY,
    DEFAULT_NEGOTIATION_POLICY,
    DEFAULT_TACTIC,
    INJURY_NEWS_MIN_WEEKS,
    SUSPENSION_DAYS,
    TACTICS,
    YELLOW_CARD_SUSPENSION_EVERY,
    NegotiationPolicy,
)
from .development import apply_weekly_form
from .engine import MatchGenerator, MatchTeam, select_match_squad, simulate_match
from .genesis import GenesisError, load_master_database, new_game
from .models import (
    TRANSFER_STATUSES,
    Club,
    Fixture,
    GameState,
    MatchRecord,
    MatchResult,
    NewsItem,
    Player,
    StandingEntry,
)
from .schedule import matchday_fixtures, next_fixture_for_club, upcoming_fixtures
from .season import clear_expired_statuses, is_season_complete, season_summary, start_new_season, weeks_crossed
from .standings import apply_result, sorted_table
from .transfers import OfferOutcome, TransferMarket

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MatchdaySummary:
    applied: bool
    new_date: date
    fixture_id: str | None = None
    competition_id: str | None = None
    matchday: int | None = None
    home_club_id: str | None = None
    away_club_id: str | None = None
    home_score: int | None = None
    away_score: int | None = None
    cascaded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    offers: list[str] = field(default_factory=list)
    season_complete: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "applied": self.applied,
            "date": self.new_date.isoformat(),
            "fixture_id": self.fixture_id,
            "competition_id": self.competition_id,
            "matchday": self.matchday,
            "home_club_id": self.home_club_id,
            "away_club_id": self.away_club_id,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "cascaded": list(self.cascaded),
            "skipped": list(self.skipped),
            "offers": list(self.offers),
            "season_complete": self.season_complete,
        }


class SeasonSimulator:
    """Owns one save's world state and advances it a matchday at a time."""

    def __init__(
        self,
        state: GameState,
        seed: int | None = None,
        generator: MatchGenerator = simulate_match,
        policy: NegotiationPolicy = DEFAULT_NEGOTIATION_POLICY,
    ) -> None:
        self.state = state
        self._rng = random.Random(seed)
        self.generator = generator
        self.market = TransferMarket(state, self._rng, policy)

    @classmethod
    def from_master_database(
        cls,
        source: str | Path | dict[str, Any],
        user_club_id: str,
        manager_name: str = "Manager",
        **kwargs: Any,
    ) -> "SeasonSimulator":
        result = load_master_database(source)
        if not result.success:
            raise GenesisError(result.errors)
        return cls(new_game(result, user_club_id, manager_name=manager_name), **kwargs)

    # -- queries -----------------------------------------------------------

    @property
    def current_date(self) -> date:
        return self.state.current_date

    @property
    def season_complete(self) -> bool:
        return self.state.season_complete

    def user_club(self) -> Club:
        return self.state.clubs[self.state.user_club_id]

    def get_club(self, club_id: str) -> Club | None:
        return self.state.clubs.get(club_id)

    def get_player(self, player_id: str) -> Player | None:
        return self.state.players.get(player_id)

    def user_squad(self) -> list[Player]:
        return sorted(self.state.squad(self.state.user_club_id), key=lambda p: (p.position, -p.skill, p.name))

    def user_league_id(self) -> str | None:
        for comp in self.state.competitions.values():
            if comp.is_league and self.state.user_club_id in comp.team_ids:
                return comp.competition_id
        return None

    def standings_table(self, competition_id: str | None = None) -> list[StandingEntry]:
        comp_id = competition_id or self.user_league_id()
        comp = self.state.competitions.get(comp_id) if comp_id else None
        if comp is None:
            raise KeyError(f"Unknown competition {comp_id}.")
        return sorted_table(comp)

    def league_fixtures(self, competition_id: str) -> list[Fixture]:
        return sorted(
            (f for f in self.state.fixtures if f.competition_id == competition_id),
            key=lambda f: (f.matchday, f.fixture_id),
        )

    def next_match(self) -> Fixture | None:
        return next_fixture_for_club(self.state.fixtures, self.state.user_club_id, on=self.state.current_date)

    def upcoming_fixtures(self, limit: int = 5) -> list[Fixture]:
        return upcoming_fixtures(self.state.fixtures, self.state.user_club_id, limit=limit, on=self.state.current_date)

    def summary(self) -> dict[str, Any]:
        return season_summary(self.state)

    def season_over(self) -> bool:
        """True once every league fixture is finished or none is left that can still be played."""
        if self.state.season_complete:
            return True
        return bool(self.state.league_fixtures()) and self.next_match() is None and self._next_cpu_fixture() is None

    # -- user actions ------------------------------------------------------

    def update_transfer_status(self, player_id: str, status: str) -> Player:
        player = self.state.players.get(player_id)
        if player is None:
            raise KeyError(f"Unknown player {player_id}.")
        if player.club_id != self.state.user_club_id:
            raise ValueError("Only players from your club can be listed.")
        status = status.upper()
        if status not in TRANSFER_STATUSES:
            raise ValueError(f"Unknown transfer status '{status}'.")
        player.transfer_status = status
        return player

    def make_offer(self, player_id: str, amount: int) -> OfferOutcome:
        return self.market.make_offer(player_id, amount)

    def sell_player(self, player_id: str, buyer_club_id: str, amount: int) -> bool:
        return self.market.sell_player(player_id, buyer_club_id, amount)

    def respond_to_offer(self, offer_id: str, accept: bool) -> OfferOutcome:
        return self.market.respond_to_offer(offer_id, accept)

    def start_new_season(self) -> dict[str, Any]:
        if not self.season_over():
            raise ValueError("The current season is still in progress.")
        return start_new_season(self.state, self._rng)

    # -- matchday processing -----------------------------------------------

    def _snapshot(self) -> GameState:
        return copy.deepcopy(self.state)

    def _restore(self, snapshot: GameState) -> None:
        self.state = snapshot
        self.market.state = snapshot

    def process_match_result(
        self,
        home_club_id: str,
        away_club_id: str,
        result: MatchResult,
        competition_id: str | None = None,
    ) -> MatchdaySummary:
        """Apply one finished match, cascade its matchday and move the clock on.

        Runs against a snapshot: if anything fails the world is put back
        exactly as it was and the error is re-raised.
        """
        snapshot = self._snapshot()
        try:
            return self._process_match_result(home_club_id, away_club_id, result, competition_id)
        except Exception:
            self._restore(snapshot)
            raise

    def _find_fixture(self, competition_id: str, home_club_id: str, away_club_id: str) -> Fixture | None:
        candidates = [
            f
            for f in self.state.fixtures
            if f.competition_id == competition_id
            and f.home_club_id == home_club_id
            and f.away_club_id == away_club_id
        ]
        if not candidates:
            return None
        pending = [f for f in candidates if not f.is_finished]
        if pending:
            return min(pending, key=lambda f: f.matchday)
        return candidates[0]

    def _process_match_result(
        self,
        home_club_id: str,
        away_club_id: str,
        result: MatchResult,
        competition_id: str | None,
    ) -> MatchdaySummary:
        state = self.state
        for club_id in (home_club_id, away_club_id):
            if club_id not in state.clubs:
                raise KeyError(f"Unknown club {club_id}.")

        fixture: Fixture | None = None
        if competition_id is not None:
            if competition_id not in state.competitions:
                raise KeyError(f"Unknown competition {competition_id}.")
            fixture = self._find_fixture(competition_id, home_club_id, away_club_id)
            if fixture is None:
                raise ValueError(f"No fixture {home_club_id} v {away_club_id} in {competition_id}.")
            if fixture.is_finished:
                # Results are applied once; a replayed fixture changes nothing.
                return MatchdaySummary(
                    applied=False,
                    new_date=state.current_date,
                    fixture_id=fixture.fixture_id,
                    competition_id=competition_id,
                    matchday=fixture.matchday,
                    home_club_id=home_club_id,
                    away_club_id=away_club_id,
                    home_score=fixture.home_score,
                    away_score=fixture.away_score,
                    season_complete=state.season_complete,
                )

        self._apply_match(home_club_id, away_club_id, result, fixture, headline=True)

        cascaded: list[str] = []
        skipped: list[str] = []
        if fixture is not None:
            cascaded, skipped = self._cascade(fixture.matchday)

        new_date = self._advance_clock(DAYS_PER_MATCHDAY)
        offers = self.market.generate_cpu_offers(new_date)
        state.season_complete = is_season_complete(state.league_fixtures())

        logger.info(
            "Matchday %s processed: %s %d-%d %s, %d cascaded, %d skipped",
            fixture.matchday if fixture else "-",
            home_club_id,
            result.home_score,
            result.away_score,
            away_club_id,
            len(cascaded),
            len(skipped),
        )
        return MatchdaySummary(
            applied=True,
            new_date=new_date,
            fixture_id=fixture.fixture_id if fixture else None,
            competition_id=competition_id,
            matchday=fixture.matchday if fixture else None,
            home_club_id=home_club_id,
            away_club_id=away_club_id,
            home_score=result.home_score,
            away_score=result.away_score,
            cascaded=cascaded,
            skipped=skipped,
            offers=[o.offer_id for o in offers],
            season_complete=state.season_complete,
        )

    def _apply_match(
        self,
        home_club_id: str,
        away_club_id: str,
        result: MatchResult,
        fixture: Fixture | None,
        headline: bool,
    ) -> None:
        state = self.state
        on = state.current_date
        players = state.players
        long_injuries: list[tuple[Player, int]] = []

        for event in result.events:
            player = players.get(event.player_id)
            if player is None:
                continue
            stats = player.season_stats
            if event.kind == "GOAL":
                stats.goals += 1
                assister = players.get(event.assister_id) if event.assister_id else None
                if assister is not None:
                    assister.season_stats.assists += 1
            elif event.kind == "YELLOW":
                stats.yellow_cards += 1
                if stats.yellow_cards % YELLOW_CARD_SUSPENSION_EVERY == 0:
                    player.suspended_until = on + timedelta(days=SUSPENSION_DAYS)
                    player.suspension_reason = "ACCUMULATED_YELLOWS"
            elif event.kind == "RED":
                stats.red_cards += 1
                player.suspended_until = on + timedelta(days=SUSPENSION_DAYS)
                player.suspension_reason = "RED_CARD"
            elif event.kind == "INJURY" and event.injury_weeks:
                player.injured_until = on + timedelta(weeks=event.injury_weeks)
                if event.injury_weeks >= INJURY_NEWS_MIN_WEEKS:
                    long_injuries.append((player, event.injury_weeks))

        appeared = set(result.home_lineup) | set(result.home_subs) | set(result.away_lineup) | set(result.away_subs)
        for player_id in appeared:
            player = players.get(player_id)
            if player is not None:
                player.season_stats.appearances += 1
        for lineup, conceded in ((result.home_lineup, result.away_score), (result.away_lineup, result.home_score)):
            if conceded != 0:
                continue
            keeper = next((players[pid] for pid in lineup if pid in players and players[pid].position == "GK"), None)
            if keeper is not None:
                keeper.season_stats.clean_sheets += 1

        if fixture is not None:
            comp = state.competitions[fixture.competition_id]
            if comp.is_league:
                apply_result(
                    comp.standings.setdefault(home_club_id, StandingEntry(club_id=home_club_id)),
                    comp.standings.setdefault(away_club_id, StandingEntry(club_id=away_club_id)),
                    result.home_score,
                    result.away_score,
                )

        state.match_history.append(
            MatchRecord(
                match_date=on,
                home_club_id=home_club_id,
                away_club_id=away_club_id,
                home_score=result.home_score,
                away_score=result.away_score,
                fixture_id=fixture.fixture_id if fixture else None,
                competition_id=fixture.competition_id if fixture else None,
                events=list(result.events),
            )
        )

        if headline:
            self._result_news(home_club_id, away_club_id, result)
            for player, weeks in long_injuries:
                state.news.append(
                    NewsItem(
                        kind="INJURY",
                        headline=f"{player.name} out for {weeks} weeks",
                        body=f"{player.name} picked up an injury and is expected back on {player.injured_until.isoformat()}.",
                        news_date=on,
                        club_id=player.club_id,
                    )
                )

        if fixture is not None:
            fixture.finish(result.home_score, result.away_score)

    def _result_news(self, home_club_id: str, away_club_id: str, result: MatchResult) -> None:
        state = self.state
        user_id = state.user_club_id
        if user_id not in (home_club_id, away_club_id):
            return
        home = state.clubs[home_club_id]
        away = state.clubs[away_club_id]
        user_goals, other_goals = (
            (result.home_score, result.away_score) if user_id == home_club_id else (result.away_score, result.home_score)
        )
        opponent = away if user_id == home_club_id else home
        if user_goals > other_goals:
            headline = f"Victory over {opponent.name}"
        elif user_goals < other_goals:
            headline = f"Defeat against {opponent.name}"
        else:
            headline = f"Draw with {opponent.name}"
        state.news.append(
            NewsItem(
                kind="RESULT",
                headline=headline,
                body=f"{home.name} {result.home_score}-{result.away_score} {away.name}",
                news_date=state.current_date,
                club_id=user_id,
            )
        )

    def _cascade(self, matchday: int) -> tuple[list[str], list[str]]:
        """Play every other scheduled fixture of ``matchday`` across all competitions."""
        state = self.state
        on = state.current_date
        cascaded: list[str] = []
        skipped: list[str] = []
        for comp in state.competitions.values():
            for fixture in matchday_fixtures(state.fixtures, comp.competition_id, matchday):
                if fixture.status != "SCHEDULED" or fixture.involves(state.user_club_id):
                    continue
                home_team = self._match_team(fixture.home_club_id, on)
                away_team = self._match_team(fixture.away_club_id, on)
                if home_team is None or away_team is None:
                    logger.debug("Skipping %s: not enough available players", fixture.fixture_id)
                    skipped.append(fixture.fixture_id)
                    continue
                result = self.generator(home_team, away_team, self._rng)
                self._apply_match(fixture.home_club_id, fixture.away_club_id, result, fixture, headline=False)
                cascaded.append(fixture.fixture_id)
        return cascaded, skipped

    def _match_team(self, club_id: str, on: date, tactic: str = DEFAULT_TACTIC) -> MatchTeam | None:
        club = self.state.clubs[club_id]
        return select_match_squad(club_id, self.state.squad(club_id), on, formation=club.preferred_formation, tactic=tactic)

    def _advance_clock(self, days: int) -> date:
        state = self.state
        new_date = state.current_date + timedelta(days=days)
        # Statuses ending before the new date no longer cover any match.
        clear_expired_statuses(state.players.values(), new_date - timedelta(days=1))
        for _week in range(weeks_crossed(state.current_date, new_date)):
            apply_weekly_form(state.players.values(), self._rng)
        state.current_date = new_date
        return new_date

    def advance_days(self, days: int) -> date:
        if days < 1:
            raise ValueError("Days to advance must be positive.")
        snapshot = self._snapshot()
        try:
            new_date = self._advance_clock(days)
        except Exception:
            self._restore(snapshot)
            raise
        return new_date

    def _next_cpu_fixture(self) -> Fixture | None:
        state = self.state
        pending = [
            f
            for f in state.fixtures
            if f.status == "SCHEDULED"
            and not f.involves(state.user_club_id)
            and f.match_date >= state.current_date
        ]
        if not pending:
            return None
        return min(pending, key=lambda f: (f.match_date, f.matchday))

    def _play_cpu_matchday(self, fixture: Fixture, user_skipped: bool = False) -> MatchdaySummary:
        """Matchday played without the user's club: a bye, a finished league, or a user fixture that cannot be fielded."""
        state = self.state
        if fixture.match_date > state.current_date:
            state.current_date = fixture.match_date
        cascaded, skipped = self._cascade(fixture.matchday)
        if user_skipped:
            skipped.insert(0, fixture.fixture_id)
        new_date = self._advance_clock(DAYS_PER_MATCHDAY)
        offers = self.market.generate_cpu_offers(new_date)
        state.season_complete = is_season_complete(state.league_fixtures())
        logger.info("Matchday %d played without the user's club: %d fixtures", fixture.matchday, len(cascaded))
        return MatchdaySummary(
            applied=True,
            new_date=new_date,
            matchday=fixture.matchday,
            cascaded=cascaded,
            skipped=skipped,
            offers=[o.offer_id for o in offers],
            season_complete=state.season_complete,
        )

    def play_next_match(self, tactic: str = DEFAULT_TACTIC) -> MatchdaySummary | None:
        """Play the next matchday: the user's fixture through the generator, then the cascade."""
        tactic = tactic.upper()
        if tactic not in TACTICS:
            raise ValueError(f"Unknown tactic '{tactic}'.")
        fixture = self.next_match()
        other = self._next_cpu_fixture()
        if fixture is None and other is None:
            return None

        snapshot = self._snapshot()
        try:
            if fixture is None or (other is not None and other.match_date < fixture.match_date):
                return self._play_cpu_matchday(other)

            state = self.state
            if fixture.match_date > state.current_date:
                state.current_date = fixture.match_date
                clear_expired_statuses(state.players.values(), fixture.match_date - timedelta(days=1))
            user_id = state.user_club_id
            home_team = self._match_team(
                fixture.home_club_id,
                fixture.match_date,
                tactic if fixture.home_club_id == user_id else DEFAULT_TACTIC,
            )
            away_team = self._match_team(
                fixture.away_club_id,
                fixture.match_date,
                tactic if fixture.away_club_id == user_id else DEFAULT_TACTIC,
            )
            if home_team is None or away_team is None:
                logger.debug("Skipping %s: not enough available players", fixture.fixture_id)
                return self._play_cpu_matchday(fixture, user_skipped=True)
            result = self.generator(home_team, away_team, self._rng)
            return self._process_match_result(fixture.home_club_id, fixture.away_club_id, result, fixture.competition_id)
        except Exception:
            self._restore(snapshot)
            raise

    def simulate_matchdays(self, count: int, tactic: str = DEFAULT_TACTIC) -> list[MatchdaySummary]:
        """Play up to ``count`` whole matchdays; stops early once the season is over."""
        summaries: list[MatchdaySummary] = []
        for _ in range(max(0, count)):
            if self.state.season_complete:
                break
            summary = self.play_next_match(tactic=tactic)
            if summary is None:
                break
            summaries.append(summary)
        return summaries
