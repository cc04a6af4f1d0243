"""
Tests for the HTTP API.
"""

from fastapi.testclient import TestClient

from mock_data import sample_payload

from tournament_scheduler.main import app
from tournament_scheduler.services.rules_registry import RULES_REGISTRY
from tournament_scheduler.services.strategies import OPTIMIZATION_STRATEGIES

client = TestClient(app)


def test_health():
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_root_lists_endpoints():
    response = client.get("/")
    assert response.status_code == 200
    assert "optimize" in response.json()["endpoints"]


def test_list_rules_and_strategies():
    rules = client.get("/api/rules").json()["rules"]
    strategies = client.get("/api/strategies").json()["strategies"]

    assert {r["id"] for r in rules} == set(RULES_REGISTRY)
    assert {s["id"] for s in strategies} == set(OPTIMIZATION_STRATEGIES)


def test_evaluate_schedule():
    players, matches = sample_payload()
    response = client.post("/api/schedule/evaluate", json={"players": players, "matches": matches})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["total_matches"] == len(matches)
    assert data["total_violations"] == len(data["violations"])
    # Team A does setup and plays right after
    assert any("setup" in v["description"] for v in data["violations"])


def test_evaluate_with_rule_configuration():
    players, matches = sample_payload()
    response = client.post("/api/schedule/evaluate", json={
        "players": players,
        "matches": matches,
        "rules": [{"id": "avoid_playing_after_setup", "priority": 7}],
    })

    assert response.status_code == 200
    data = response.json()
    assert data["score"] == 7
    assert [v["priority"] for v in data["violations"]] == [7]


def test_evaluate_unknown_team_is_bad_request():
    players, matches = sample_payload()
    matches[1]["team2"] = "Nobody"
    response = client.post("/api/schedule/evaluate", json={"players": players, "matches": matches})

    assert response.status_code == 400
    assert "Nobody" in response.json()["detail"]


def test_evaluate_unknown_rule_is_bad_request():
    players, matches = sample_payload()
    response = client.post("/api/schedule/evaluate", json={
        "players": players, "matches": matches, "rules": [{"id": "no_such_rule"}]
    })
    assert response.status_code == 400


def test_optimize_schedule():
    players, matches = sample_payload()
    response = client.post("/api/schedule/optimize", json={
        "players": players,
        "matches": matches,
        "iterations": 30,
        "strategy": "simulated-annealing",
        "seed": 1,
    })

    assert response.status_code == 200
    data = response.json()
    assert data["strategy"] == "simulated-annealing"
    assert data["score"] <= data["original_score"]


def test_optimize_unknown_strategy_is_bad_request():
    players, matches = sample_payload()
    response = client.post("/api/schedule/optimize", json={
        "players": players, "matches": matches, "iterations": 1, "strategy": "hill-climbing"
    })
    assert response.status_code == 400


def test_optimize_with_no_rules_scores_zero():
    players, matches = sample_payload()
    evaluated = client.post("/api/schedule/evaluate", json={
        "players": players, "matches": matches, "rules": []
    }).json()
    optimized = client.post("/api/schedule/optimize", json={
        "players": players, "matches": matches, "rules": [], "iterations": 5, "seed": 1
    }).json()

    assert evaluated["score"] == 0
    assert optimized["original_score"] == 0
    assert optimized["score"] == 0
