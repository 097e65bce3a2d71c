from datetime import date

import pytest
from fastapi.testclient import TestClient

from football_sim import api
from football_sim.app import DEFAULT_USER_CLUB


@pytest.fixture
def client(tmp_path, monkeypatch) -> TestClient:
    monkeypatch.setattr(api, "service", api.SimService(data_root=tmp_path, seed=17))
    return TestClient(api.app)


def test_health(client) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_meta_and_reads(client) -> None:
    meta = client.get("/api/meta").json()
    assert meta["user_club"]["club_id"] == DEFAULT_USER_CLUB
    assert meta["date"] == "2024-07-01"
    assert meta["transfer_window_open"] is True
    assert meta["next_match"]["matchday"] == 1

    table = client.get("/api/standings").json()
    assert table["competition_id"] == "primera"
    assert len(table["rows"]) == 8
    assert client.get("/api/standings", params={"competition": "segunda"}).json()["rows"][0]["played"] == 0

    squad = client.get("/api/squad").json()
    assert len(squad) >= 18
    player = client.get(f"/api/players/{squad[0]['player_id']}").json()
    assert player["club_id"] == DEFAULT_USER_CLUB
    assert player["career"] == []

    assert len(client.get("/api/clubs", params={"competition": "segunda"}).json()) == 7
    assert len(client.get("/api/fixtures").json()) == 56
    assert client.get("/api/transfers").json()


def test_unknown_ids_are_404(client) -> None:
    assert client.get("/api/players/nobody").status_code == 404
    assert client.get("/api/standings", params={"competition": "cup"}).status_code == 404
    assert client.get("/api/squad", params={"club": "ghost"}).status_code == 404
    response = client.post("/api/transfers/offer", json={"player_id": "nobody", "amount": 1})
    assert response.status_code == 404


def test_advance_plays_matchdays_and_saves(client, tmp_path) -> None:
    response = client.post("/api/advance", json={"matchdays": 2})
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["played"] == 2
    assert body["date"] == "2024-08-31"
    assert (tmp_path / "career_save.json").exists()

    table = client.get("/api/standings").json()["rows"]
    assert all(row["played"] == 2 for row in table)
    assert client.get("/api/news").json()

    reloaded = api.SimService(data_root=tmp_path, seed=17)
    assert reloaded.simulator.current_date.isoformat() == "2024-08-31"


def test_bad_inputs_are_400(client) -> None:
    assert client.post("/api/advance", json={"matchdays": 1, "tactic": "PARK_THE_BUS"}).status_code == 400
    assert client.post("/api/advance", json={"matchdays": 0}).status_code == 400
    assert client.post("/api/advance-days", json={"days": 0}).status_code == 400
    squad = client.get("/api/squad").json()
    response = client.post("/api/transfers/status", json={"player_id": squad[0]["player_id"], "status": "MAYBE"})
    assert response.status_code == 400
    assert client.post("/api/season/new").status_code == 400


def test_failed_negotiation_is_a_normal_response(client) -> None:
    rivals = client.get("/api/squad", params={"club": "pd_barcelona"}).json()
    target = rivals[0]
    response = client.post("/api/transfers/offer", json={"player_id": target["player_id"], "amount": 10**12})
    assert response.status_code == 200
    assert response.json()["success"] is False
    assert response.json()["message"] == "Insufficient budget for this offer."


def test_listing_and_selling(client) -> None:
    squad = client.get("/api/squad").json()
    player_id = squad[-1]["player_id"]

    listed = client.post("/api/transfers/status", json={"player_id": player_id, "status": "LISTED"}).json()
    assert listed["player"]["transfer_status"] == "LISTED"

    sold = client.post(
        "/api/transfers/sell",
        json={"player_id": player_id, "buyer_club_id": "sd_malaga", "amount": 500_000},
    ).json()
    assert sold == {"ok": True}
    assert client.get(f"/api/players/{player_id}").json()["club_id"] == "sd_malaga"
    history = client.get("/api/transfers/history").json()
    assert history[0]["player_id"] == player_id
    assert history[0]["fee"] == 500_000


def test_offer_response_for_unknown_offer(client) -> None:
    assert isinstance(client.get("/api/offers").json(), list)
    body = client.post("/api/offers/respond", json={"offer_id": "offer_nope", "accept": True}).json()
    assert body["success"] is False


def test_advance_days_and_reset(client, tmp_path) -> None:
    assert client.post("/api/advance-days", json={"days": 10}).json()["date"] == "2024-07-11"
    assert client.get("/api/season/summary").json()["complete"] is False

    body = client.post("/api/reset", json={"club_id": "sd_cadiz", "manager_name": "Ana"}).json()
    assert body == {"ok": True, "club_id": "sd_cadiz", "date": "2024-07-01"}
    meta = client.get("/api/meta").json()
    assert meta["user_club"]["club_id"] == "sd_cadiz"
    assert meta["manager"] == "Ana"
    assert client.post("/api/reset", json={"club_id": "ghost"}).status_code == 404


def test_advance_with_short_squad_keeps_the_season_moving(client) -> None:
    for player in api.service.simulator.user_squad()[10:]:
        player.injured_until = date(2030, 1, 1)

    first = client.post("/api/advance", json={"matchdays": 1})
    assert first.status_code == 200
    body = first.json()
    assert body["played"] == 1
    assert body["date"] == "2024-08-24"
    skipped = body["matchdays"][0]["skipped"]
    assert skipped

    second = client.post("/api/advance", json={"matchdays": 1})
    assert second.status_code == 200
    assert second.json()["date"] == "2024-08-31"
    fixtures = {f["fixture_id"]: f for f in client.get("/api/fixtures").json()}
    assert fixtures[skipped[0]]["status"] == "SCHEDULED"
