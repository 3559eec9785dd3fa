import datetime

import chess
import pytest
from fastapi.testclient import TestClient

from chessfocus import games, llm
from chessfocus.errors import (
    LLMCallFailure,
    NoGamesFound,
    RemoteNotFound,
    RemoteRateLimited,
    RemoteUnavailable,
)
from chessfocus.main import app
from chessfocus.models import Platform, RatingPoint

GAME_REPORT = {
    "summary": "White sacrificed too early.",
    "analyzedSide": "White",
    "result": "1-0",
    "mistakes": [{
        "moveNumber": 6,
        "movePlayed": "Nxf7",
        "category": "mistake",
        "explanation": "Unsound.",
        "bestSuggestion": "d4",
    }],
}

OPPONENT_REPORT = {
    "globalSummary": "Plays the same openings every game.",
    "mainWeaknesses": ["time trouble"],
}


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def llm_reply(monkeypatch):
    state = {"reply": GAME_REPORT, "prompts": []}

    async def fake(system, prompt):
        state["prompts"].append(prompt)
        if isinstance(state["reply"], Exception):
            raise state["reply"]
        return state["reply"]

    monkeypatch.setattr(llm, "request_json_completion", fake)
    return state


@pytest.fixture
def upstream(monkeypatch):
    state = {"games": ["1. e4 e5 *"], "history": [], "calls": []}

    async def fetch_user_games(platform, username, count, client=None):
        state["calls"].append((platform, username, count))
        if isinstance(state["games"], Exception):
            raise state["games"]
        return state["games"]

    async def fetch_rating_history(platform, username, client=None):
        return state["history"]

    async def fetch_game_pgn(link, client=None):
        if isinstance(state["games"], Exception):
            raise state["games"]
        return state["games"][0]

    monkeypatch.setattr(games, "fetch_user_games", fetch_user_games)
    monkeypatch.setattr(games, "fetch_rating_history", fetch_rating_history)
    monkeypatch.setattr(games, "fetch_game_pgn", fetch_game_pgn)
    return state


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["version"] == "1.0.0"


class TestGameAnalyze:
    def test_pasted_pgn(self, client, llm_reply, sample_pgn):
        response = client.post("/api/game-analyze", json={"sourceType": "pgn", "pgn": sample_pgn})
        assert response.status_code == 200
        body = response.json()
        assert body["pgn"] == sample_pgn
        assert body["report"]["summary"] == "White sacrificed too early."
        assert body["report"]["keyMoments"] == []
        assert sample_pgn in llm_reply["prompts"][0]

    def test_non_finite_evaluation_change_is_dropped(self, client, llm_reply, sample_pgn):
        llm_reply["reply"] = {**GAME_REPORT, "keyMoments": [
            {"moveNumber": 4, "description": "Knight jumps in.", "evaluationChange": "inf"},
            {"moveNumber": 6, "description": "The sacrifice.", "evaluationChange": -150},
        ]}
        response = client.post("/api/game-analyze", json={"sourceType": "pgn", "pgn": sample_pgn})
        assert response.status_code == 200
        assert response.json()["report"]["keyMoments"] == [
            {"moveNumber": 6, "description": "The sacrifice.", "evaluationChange": -150},
        ]

    def test_link(self, client, llm_reply, upstream):
        response = client.post("/api/game-analyze", json={"sourceType": "url", "link": "lichess.org/abcd1234"})
        assert response.status_code == 200
        assert response.json()["pgn"] == "1. e4 e5 *"

    def test_link_fetch_failure(self, client, llm_reply, upstream):
        upstream["games"] = RemoteNotFound("Lichess game abcd1234: not found (404)")
        response = client.post("/api/game-analyze", json={"sourceType": "url", "link": "lichess.org/abcd1234"})
        assert response.status_code == 400
        assert "not found" in response.json()["error"]
        assert llm_reply["prompts"] == []

    @pytest.mark.parametrize("body", [
        {"sourceType": "pgn", "pgn": "   "},
        {"sourceType": "url"},
        {"sourceType": "pgn", "pgn": '[Event "No moves"]'},
        {"sourceType": "fen", "pgn": "1. e4"},
        {},
    ])
    def test_bad_input(self, client, llm_reply, body):
        response = client.post("/api/game-analyze", json=body)
        assert response.status_code == 400
        assert response.json()["error"]
        assert llm_reply["prompts"] == []

    def test_llm_failure(self, client, llm_reply, sample_pgn):
        llm_reply["reply"] = LLMCallFailure("Invalid OpenAI API key.", reason=LLMCallFailure.INVALID_KEY)
        response = client.post("/api/game-analyze", json={"sourceType": "pgn", "pgn": sample_pgn})
        assert response.status_code == 500
        assert response.json() == {"error": "Invalid OpenAI API key."}

    def test_incomplete_report(self, client, llm_reply, sample_pgn):
        llm_reply["reply"] = {"summary": "no side, no result"}
        response = client.post("/api/game-analyze", json={"sourceType": "pgn", "pgn": sample_pgn})
        assert response.status_code == 500


class TestOpponentAnalyze:
    @pytest.mark.parametrize("max_games, expected", [(None, 10), (1, 3), (50, 20), (7, 7)])
    def test_game_count_is_clamped(self, client, llm_reply, upstream, max_games, expected):
        llm_reply["reply"] = OPPONENT_REPORT
        response = client.post("/api/opponent-analyze", json={
            "platform": "lichess", "username": "someone", "maxGames": max_games,
        })
        assert response.status_code == 200
        assert upstream["calls"] == [(Platform.LICHESS, "someone", expected)]

    def test_platform_and_profile_link(self, client, llm_reply, upstream):
        llm_reply["reply"] = OPPONENT_REPORT
        client.post("/api/opponent-analyze", json={
            "platform": "chesscom", "username": "https://www.chess.com/member/hikaru",
        })
        client.post("/api/opponent-analyze", json={"platform": "fics", "username": "x"})
        assert upstream["calls"][0][:2] == (Platform.CHESSCOM, "hikaru")
        assert upstream["calls"][1][0] == Platform.LICHESS

    def test_elo_history(self, client, llm_reply, upstream):
        llm_reply["reply"] = OPPONENT_REPORT
        body = client.post("/api/opponent-analyze", json={"username": "someone"}).json()
        assert body["eloHistory"] is None
        assert body["report"]["globalSummary"] == OPPONENT_REPORT["globalSummary"]

        upstream["history"] = [RatingPoint(date=datetime.date(2024, 1, 1), rating=1500, variant="blitz")]
        body = client.post("/api/opponent-analyze", json={"username": "someone"}).json()
        assert body["eloHistory"] == [{"date": "2024-01-01", "rating": 1500, "variant": "blitz"}]

    def test_games_are_sent_to_the_model(self, client, llm_reply, upstream):
        llm_reply["reply"] = OPPONENT_REPORT
        upstream["games"] = ["1. e4 e5 *", "1. d4 d5 *"]
        client.post("/api/opponent-analyze", json={"username": "someone"})
        assert "---PGN---\n1. d4 d5 *" in llm_reply["prompts"][0]

    @pytest.mark.parametrize("error, status", [
        (RemoteNotFound("404"), 400),
        (NoGamesFound("none"), 400),
        (RemoteRateLimited("429"), 502),
        (RemoteUnavailable("500"), 502),
    ])
    def test_upstream_errors(self, client, llm_reply, upstream, error, status):
        upstream["games"] = error
        response = client.post("/api/opponent-analyze", json={"username": "someone"})
        assert response.status_code == status
        assert response.json()["error"]

    def test_empty_username(self, client, llm_reply, upstream):
        response = client.post("/api/opponent-analyze", json={"username": "  "})
        assert response.status_code == 400
        assert upstream["calls"] == []

    def test_llm_failure(self, client, llm_reply, upstream):
        llm_reply["reply"] = LLMCallFailure("Rate limit reached.", reason=LLMCallFailure.RATE_LIMITED)
        response = client.post("/api/opponent-analyze", json={"username": "someone"})
        assert response.status_code == 500


class TestReplay:
    def test_mistake_selection(self, client, sample_pgn):
        response = client.post("/api/replay", json={
            "pgn": sample_pgn,
            "selection": {"type": "mistake", "mistake": GAME_REPORT["mistakes"][0]},
            "showSolution": True,
        })
        assert response.status_code == 200
        body = response.json()
        assert body["bestMove"] == "d4"
        assert [(a["fromSquare"], a["toSquare"], a["semanticColor"]) for a in body["annotations"]] == [
            ("g5", "f7", "playedBad"),
            ("d2", "d4", "suggestedGood"),
        ]

    def test_key_moment_selection(self, client, sample_pgn):
        response = client.post("/api/replay", json={
            "pgn": sample_pgn,
            "selection": {"type": "keyMoment", "keyMoment": {
                "moveNumber": 1, "description": "Opening", "evaluationChange": 20,
            }},
        })
        body = response.json()
        assert body["fen"] == chess.STARTING_FEN
        assert body["highlights"] == {"e2": "keyPositive", "e4": "keyPositive"}

    def test_ply_selection(self, client, sample_pgn):
        response = client.post("/api/replay", json={
            "pgn": sample_pgn,
            "selection": {"type": "ply", "ply": 10},
            "mistakes": GAME_REPORT["mistakes"],
        })
        colors = [a["semanticColor"] for a in response.json()["annotations"]]
        assert colors == ["playedBad", "threat"]

    def test_missing_selection_payload(self, client, sample_pgn):
        response = client.post("/api/replay", json={"pgn": sample_pgn, "selection": {"type": "mistake"}})
        assert response.status_code == 400


def test_exercise_move(client):
    exercise = {
        "title": "Mate in one",
        "description": "d",
        "exerciseType": "tactic",
        "estimatedLevel": "beginner",
        "positionFen": chess.STARTING_FEN,
        "solution": ["Qxf7#"],
        "moveVariants": [{"move": "Qxf7#", "isBest": True}],
    }
    response = client.post("/api/exercise-move", json={"exercise": exercise, "move": "Qxf7#"})
    assert response.status_code == 200
    assert response.json()["correct"] is True
    assert response.json()["completed"] is True
