from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .app import DEFAULT_USER_CLUB, build_default_database
from .config import DEFAULT_TACTIC, TACTICS
from .league import SeasonSimulator
from .models import TRANSFER_STATUSES, Club, Fixture, NewsItem, Player, StandingEntry, TransferOffer
from .storage import SaveStore
from .transfers import is_transfer_window_open

logger = logging.getLogger(__name__)


class OfferSelection(BaseModel):
    player_id: str
    amount: int


class SaleSelection(BaseModel):
    player_id: str
    buyer_club_id: str
    amount: int


class StatusSelection(BaseModel):
    player_id: str
    status: str


class OfferResponseSelection(BaseModel):
    offer_id: str
    accept: bool


class AdvanceSelection(BaseModel):
    matchdays: int = 1
    tactic: str = DEFAULT_TACTIC


class AdvanceDaysSelection(BaseModel):
    days: int = 1


class NewGameSelection(BaseModel):
    club_id: str = DEFAULT_USER_CLUB
    manager_name: str = "Manager"


class SimService:
    def __init__(self, data_root: str | Path | None = None, seed: int | None = None) -> None:
        self.data_root = Path(data_root) if data_root is not None else Path(__file__).resolve().parents[2]
        self.seed = seed
        self.store = SaveStore(self.data_root / "career_save.json")
        self.last_load_error = ""
        self._lock = Lock()
        if not self._load_saved_state():
            self._init_fresh_state()

    def _init_fresh_state(self, club_id: str = DEFAULT_USER_CLUB, manager_name: str = "Manager") -> None:
        self.simulator = SeasonSimulator.from_master_database(
            build_default_database(),
            club_id,
            manager_name=manager_name,
            seed=self.seed,
        )

    def _load_saved_state(self) -> bool:
        state = self.store.load()
        self.last_load_error = self.store.last_load_error
        if state is None:
            if self.last_load_error:
                logger.warning(self.last_load_error)
            return False
        self.simulator = SeasonSimulator(state, seed=self.seed)
        return True

    def _save(self) -> None:
        self.store.save(self.simulator.state)

    # -- row builders --------------------------------------------------------

    def _club_name(self, club_id: str | None) -> str:
        if club_id is None:
            return "Free agent"
        club = self.simulator.get_club(club_id)
        return club.name if club is not None else club_id

    def _club_row(self, club: Club) -> dict[str, Any]:
        return {
            "club_id": club.club_id,
            "name": club.name,
            "short_code": club.short_code,
            "country": club.country,
            "tier": club.tier,
            "reputation": club.reputation,
            "budget": club.budget,
            "wage_budget": club.wage_budget,
            "stadium": club.stadium,
            "stadium_capacity": club.stadium_capacity,
            "league_id": club.league_id,
            "formation": club.preferred_formation,
        }

    def _player_row(self, player: Player) -> dict[str, Any]:
        on = self.simulator.current_date
        stats = player.season_stats
        return {
            "player_id": player.player_id,
            "name": player.name,
            "age": player.age,
            "nationality": player.nationality,
            "position": player.position,
            "skill": player.skill,
            "potential": player.potential,
            "condition": player.condition,
            "club_id": player.club_id,
            "club": self._club_name(player.club_id),
            "wage": player.wage,
            "market_value": player.market_value,
            "release_clause": player.release_clause,
            "transfer_status": player.transfer_status,
            "available": player.is_available(on),
            "injured_until": player.injured_until.isoformat() if player.injured_until else None,
            "suspended_until": player.suspended_until.isoformat() if player.suspended_until else None,
            "suspension_reason": player.suspension_reason,
            "appearances": stats.appearances,
            "goals": stats.goals,
            "assists": stats.assists,
            "clean_sheets": stats.clean_sheets,
            "yellow_cards": stats.yellow_cards,
            "red_cards": stats.red_cards,
        }

    def _fixture_row(self, fixture: Fixture) -> dict[str, Any]:
        return {
            "fixture_id": fixture.fixture_id,
            "competition_id": fixture.competition_id,
            "matchday": fixture.matchday,
            "date": fixture.match_date.isoformat(),
            "home_club_id": fixture.home_club_id,
            "home": self._club_name(fixture.home_club_id),
            "away_club_id": fixture.away_club_id,
            "away": self._club_name(fixture.away_club_id),
            "status": fixture.status,
            "home_score": fixture.home_score,
            "away_score": fixture.away_score,
        }

    def _standing_row(self, rank: int, entry: StandingEntry) -> dict[str, Any]:
        return {
            "rank": rank,
            "club_id": entry.club_id,
            "club": self._club_name(entry.club_id),
            "played": entry.played,
            "won": entry.won,
            "drawn": entry.drawn,
            "lost": entry.lost,
            "goals_for": entry.goals_for,
            "goals_against": entry.goals_against,
            "goal_diff": entry.goal_diff,
            "points": entry.points,
            "form": "".join(entry.form),
        }

    def _offer_row(self, offer: TransferOffer) -> dict[str, Any]:
        player = self.simulator.get_player(offer.player_id)
        return {
            "offer_id": offer.offer_id,
            "player_id": offer.player_id,
            "player": player.name if player is not None else offer.player_id,
            "from_club_id": offer.from_club_id,
            "from_club": self._club_name(offer.from_club_id),
            "amount": offer.amount,
            "created": offer.created.isoformat(),
            "expires": offer.expires.isoformat(),
            "status": offer.status,
        }

    def _news_row(self, item: NewsItem) -> dict[str, Any]:
        return {
            "news_id": item.news_id,
            "kind": item.kind,
            "headline": item.headline,
            "body": item.body,
            "date": item.news_date.isoformat(),
            "club_id": item.club_id,
        }

    # -- reads ---------------------------------------------------------------

    def meta(self) -> dict[str, Any]:
        state = self.simulator.state
        next_fixture = self.simulator.next_match()
        return {
            "manager": state.manager_name,
            "user_club": self._club_row(self.simulator.user_club()),
            "date": state.current_date.isoformat(),
            "season": state.season,
            "season_complete": state.season_complete,
            "transfer_window_open": is_transfer_window_open(state.current_date),
            "next_match": self._fixture_row(next_fixture) if next_fixture is not None else None,
            "competitions": [
                {"competition_id": c.competition_id, "name": c.name, "kind": c.kind, "tier": c.tier}
                for c in state.competitions.values()
            ],
            "tactics": list(TACTICS),
            "load_error": self.last_load_error,
        }

    def clubs(self, competition_id: str | None = None) -> list[dict[str, Any]]:
        clubs = self.simulator.state.clubs.values()
        if competition_id is not None:
            comp = self.simulator.state.competitions.get(competition_id)
            if comp is None:
                raise HTTPException(status_code=404, detail="Competition not found")
            clubs = [c for c in clubs if c.club_id in comp.team_ids]
        return [self._club_row(c) for c in sorted(clubs, key=lambda c: c.name)]

    def standings(self, competition_id: str | None = None) -> dict[str, Any]:
        try:
            table = self.simulator.standings_table(competition_id)
        except KeyError:
            raise HTTPException(status_code=404, detail="Competition not found")
        comp_id = competition_id or self.simulator.user_league_id()
        return {
            "competition_id": comp_id,
            "rows": [self._standing_row(rank, entry) for rank, entry in enumerate(table, start=1)],
        }

    def fixtures(self, competition_id: str | None = None, club_id: str | None = None) -> list[dict[str, Any]]:
        comp_id = competition_id or self.simulator.user_league_id()
        if comp_id not in self.simulator.state.competitions:
            raise HTTPException(status_code=404, detail="Competition not found")
        rows = self.simulator.league_fixtures(comp_id)
        if club_id is not None:
            rows = [f for f in rows if f.involves(club_id)]
        return [self._fixture_row(f) for f in rows]

    def squad(self, club_id: str | None = None) -> list[dict[str, Any]]:
        target = club_id or self.simulator.state.user_club_id
        if self.simulator.get_club(target) is None:
            raise HTTPException(status_code=404, detail="Club not found")
        players = sorted(self.simulator.state.squad(target), key=lambda p: (p.position, -p.skill, p.name))
        return [self._player_row(p) for p in players]

    def player(self, player_id: str) -> dict[str, Any]:
        player = self.simulator.get_player(player_id)
        if player is None:
            raise HTTPException(status_code=404, detail="Player not found")
        row = self._player_row(player)
        row["career"] = [
            {
                "season": record.season,
                "club": record.club_name,
                "appearances": record.appearances,
                "goals": record.goals,
                "assists": record.assists,
                "clean_sheets": record.clean_sheets,
            }
            for record in player.career
        ]
        return row

    def transfer_list(self) -> list[dict[str, Any]]:
        user_id = self.simulator.state.user_club_id
        players = [
            p
            for p in self.simulator.state.players.values()
            if p.club_id != user_id and p.transfer_status in {"LISTED", "LOAN_LISTED"}
        ]
        return [self._player_row(p) for p in sorted(players, key=lambda p: -p.skill)]

    def transfer_history(self, limit: int = 20) -> list[dict[str, Any]]:
        return [
            {
                "player_id": r.player_id,
                "player": r.player_name,
                "from_club": self._club_name(r.from_club_id),
                "to_club": self._club_name(r.to_club_id),
                "fee": r.fee,
                "date": r.transfer_date.isoformat(),
            }
            for r in self.simulator.state.transfer_history.recent(limit)
        ]

    def offers(self) -> list[dict[str, Any]]:
        return [self._offer_row(o) for o in self.simulator.market.pending_offers()]

    def news(self, limit: int = 20) -> list[dict[str, Any]]:
        return [self._news_row(item) for item in self.simulator.state.news.recent(limit)]

    def season_summary(self) -> dict[str, Any]:
        return self.simulator.summary()

    # -- writes --------------------------------------------------------------

    def advance(self, matchdays: int = 1, tactic: str = DEFAULT_TACTIC) -> dict[str, Any]:
        if matchdays < 1:
            raise HTTPException(status_code=400, detail="matchdays must be at least 1")
        if tactic.upper() not in TACTICS:
            raise HTTPException(status_code=400, detail="Invalid tactic")
        try:
            summaries = self.simulator.simulate_matchdays(matchdays, tactic=tactic)
        finally:
            # Whole matchdays that completed before a failure are kept.
            self._save()
        return {
            "ok": True,
            "played": len(summaries),
            "matchdays": [s.to_dict() for s in summaries],
            "date": self.simulator.current_date.isoformat(),
            "season_complete": self.simulator.season_complete,
        }

    def advance_days(self, days: int) -> dict[str, Any]:
        if days < 1:
            raise HTTPException(status_code=400, detail="days must be at least 1")
        new_date = self.simulator.advance_days(days)
        self._save()
        return {"ok": True, "date": new_date.isoformat()}

    def make_offer(self, player_id: str, amount: int) -> dict[str, Any]:
        if self.simulator.get_player(player_id) is None:
            raise HTTPException(status_code=404, detail="Player not found")
        outcome = self.simulator.make_offer(player_id, amount)
        if outcome.success:
            self._save()
        return outcome.to_dict()

    def sell_player(self, player_id: str, buyer_club_id: str, amount: int) -> dict[str, Any]:
        if self.simulator.get_player(player_id) is None:
            raise HTTPException(status_code=404, detail="Player not found")
        if self.simulator.get_club(buyer_club_id) is None:
            raise HTTPException(status_code=404, detail="Club not found")
        sold = self.simulator.sell_player(player_id, buyer_club_id, amount)
        if sold:
            self._save()
        return {"ok": sold}

    def update_transfer_status(self, player_id: str, status: str) -> dict[str, Any]:
        if status.upper() not in TRANSFER_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid transfer status")
        try:
            player = self.simulator.update_transfer_status(player_id, status)
        except KeyError:
            raise HTTPException(status_code=404, detail="Player not found")
        except ValueError as exc:
            raise HTTPException(status_code=403, detail=str(exc))
        self._save()
        return {"ok": True, "player": self._player_row(player)}

    def respond_to_offer(self, offer_id: str, accept: bool) -> dict[str, Any]:
        outcome = self.simulator.respond_to_offer(offer_id, accept)
        self._save()
        return outcome.to_dict()

    def start_new_season(self) -> dict[str, Any]:
        try:
            result = self.simulator.start_new_season()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        self._save()
        return result

    def reset(self, club_id: str = DEFAULT_USER_CLUB, manager_name: str = "Manager") -> dict[str, Any]:
        database = build_default_database()
        if club_id not in {row["id"] for row in database["clubs"]}:
            raise HTTPException(status_code=404, detail="Club not found")
        self.store.delete()
        self.last_load_error = ""
        self._init_fresh_state(club_id=club_id, manager_name=manager_name)
        self._save()
        return {"ok": True, "club_id": club_id, "date": self.simulator.current_date.isoformat()}


service = SimService()
app = FastAPI(title="Football Sim API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/meta")
def meta() -> dict[str, Any]:
    with service._lock:
        return service.meta()


@app.get("/api/clubs")
def clubs(competition: str | None = None) -> list[dict[str, Any]]:
    with service._lock:
        return service.clubs(competition_id=competition)


@app.get("/api/standings")
def standings(competition: str | None = None) -> dict[str, Any]:
    with service._lock:
        return service.standings(competition_id=competition)


@app.get("/api/fixtures")
def fixtures(competition: str | None = None, club: str | None = None) -> list[dict[str, Any]]:
    with service._lock:
        return service.fixtures(competition_id=competition, club_id=club)


@app.get("/api/squad")
def squad(club: str | None = None) -> list[dict[str, Any]]:
    with service._lock:
        return service.squad(club_id=club)


@app.get("/api/players/{player_id}")
def player(player_id: str) -> dict[str, Any]:
    with service._lock:
        return service.player(player_id)


@app.post("/api/advance")
def advance(payload: AdvanceSelection) -> dict[str, Any]:
    with service._lock:
        return service.advance(matchdays=payload.matchdays, tactic=payload.tactic)


@app.post("/api/advance-days")
def advance_days(payload: AdvanceDaysSelection) -> dict[str, Any]:
    with service._lock:
        return service.advance_days(payload.days)


@app.get("/api/transfers")
def transfer_list() -> list[dict[str, Any]]:
    with service._lock:
        return service.transfer_list()


@app.get("/api/transfers/history")
def transfer_history(limit: int = 20) -> list[dict[str, Any]]:
    with service._lock:
        return service.transfer_history(limit=limit)


@app.post("/api/transfers/offer")
def make_offer(payload: OfferSelection) -> dict[str, Any]:
    with service._lock:
        return service.make_offer(payload.player_id, payload.amount)


@app.post("/api/transfers/sell")
def sell_player(payload: SaleSelection) -> dict[str, Any]:
    with service._lock:
        return service.sell_player(payload.player_id, payload.buyer_club_id, payload.amount)


@app.post("/api/transfers/status")
def update_transfer_status(payload: StatusSelection) -> dict[str, Any]:
    with service._lock:
        return service.update_transfer_status(payload.player_id, payload.status)


@app.get("/api/offers")
def offers() -> list[dict[str, Any]]:
    with service._lock:
        return service.offers()


@app.post("/api/offers/respond")
def respond_to_offer(payload: OfferResponseSelection) -> dict[str, Any]:
    with service._lock:
        return service.respond_to_offer(payload.offer_id, payload.accept)


@app.get("/api/news")
def news(limit: int = 20) -> list[dict[str, Any]]:
    with service._lock:
        return service.news(limit=limit)


@app.get("/api/season/summary")
def season_summary() -> dict[str, Any]:
    with service._lock:
        return service.season_summary()


@app.post("/api/season/new")
def start_new_season() -> dict[str, Any]:
    with service._lock:
        return service.start_new_season()


@app.post("/api/reset")
def reset(payload: NewGameSelection) -> dict[str, Any]:
    with service._lock:
        return service.reset(club_id=payload.club_id, manager_name=payload.manager_name)
