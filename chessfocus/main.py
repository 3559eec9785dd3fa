import logging
from typing import List, Literal, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from chessfocus import config, games, llm, prompts
from chessfocus.annotations import key_moment_view, mistake_view, ply_view
from chessfocus.errors import (
    ChessFocusError,
    InvalidInputError,
    LLMCallFailure,
    LLMResponseInvalid,
    NoGamesFound,
    RemoteError,
    RemoteNotFound,
)
from chessfocus.exercises import evaluate_exercise_move
from chessfocus.identifier import normalize_username
from chessfocus.models import (
    BoardView,
    ExerciseFeedback,
    KeyMoment,
    Mistake,
    OpponentExercise,
    Platform,
)
from chessfocus.pgn_parser import parse_game_record
from chessfocus.report_schema import validate_game_report, validate_opponent_report

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

app = FastAPI(title="ChessFocus API", version=VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"Invalid request: {location or 'body'}: {errors[0].get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


class GameAnalyzeRequest(BaseModel):
    sourceType: Literal["pgn", "url"]
    pgn: Optional[str] = None
    link: Optional[str] = None


class OpponentAnalyzeRequest(BaseModel):
    platform: Optional[str] = None
    username: Optional[str] = None
    maxGames: Optional[int] = None


class ReplaySelection(BaseModel):
    type: Literal["mistake", "keyMoment", "ply"]
    mistake: Optional[Mistake] = None
    keyMoment: Optional[KeyMoment] = None
    ply: Optional[int] = None


class ReplayRequest(BaseModel):
    pgn: str
    selection: ReplaySelection
    mistakes: List[Mistake] = []
    showSolution: bool = False


class ExerciseMoveRequest(BaseModel):
    exercise: OpponentExercise
    move: str


def clamp_game_count(value: Optional[int]) -> int:
    count = value or config.OPPONENT_DEFAULT_GAMES
    return min(max(count, config.OPPONENT_MIN_GAMES), config.OPPONENT_MAX_GAMES)


async def _analyze(system: str, prompt: str) -> dict:
    try:
        return await llm.request_json_completion(system, prompt)
    except (LLMCallFailure, LLMResponseInvalid) as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/game-analyze")
async def game_analyze(request: GameAnalyzeRequest):
    """Coaching report for one game, pasted or fetched from a link."""
    if request.sourceType == "pgn":
        pgn = (request.pgn or "").strip()
        if not pgn:
            raise HTTPException(status_code=400, detail="PGN is required")
    else:
        link = (request.link or "").strip()
        if not link:
            raise HTTPException(status_code=400, detail="Game link is required")
        logger.info("Fetching game from link: %s", link[:100])
        try:
            pgn = await games.fetch_game_pgn(link)
        except ChessFocusError as e:
            logger.warning("Game fetch failed: %s: %s", type(e).__name__, e)
            raise HTTPException(status_code=400, detail=str(e))

    try:
        game = parse_game_record(pgn)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not game.moves:
        raise HTTPException(status_code=400, detail="The PGN contains no moves")

    payload = await _analyze(prompts.GAME_SYSTEM, prompts.build_game_prompt(pgn))
    try:
        report = validate_game_report(payload)
    except LLMResponseInvalid as e:
        logger.error("Invalid game report: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    logger.info("Game report ready: %d mistakes, %d key moments",
                len(report.mistakes), len(report.keyMoments))
    return {"report": report.model_dump(), "pgn": pgn}


@app.post("/api/opponent-analyze")
async def opponent_analyze(request: OpponentAnalyzeRequest):
    """Style report for a player, from their most recent games."""
    platform = games.parse_platform(request.platform)
    try:
        username = normalize_username(platform, request.username or "")
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    count = clamp_game_count(request.maxGames)
    site = "Chess.com" if platform == Platform.CHESSCOM else "Lichess"

    try:
        pgns = await games.fetch_user_games(platform, username, count)
    except RemoteNotFound:
        raise HTTPException(status_code=400, detail="Player not found or no public games on this platform.")
    except NoGamesFound:
        raise HTTPException(status_code=400, detail="No games found for this user.")
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RemoteError as e:
        logger.error("%s error: %s: %s", site, type(e).__name__, e)
        raise HTTPException(status_code=502, detail=f"Error while fetching games from {site}.")

    elo_history = await games.fetch_rating_history(platform, username)

    payload = await _analyze(prompts.OPPONENT_SYSTEM, prompts.build_opponent_prompt(pgns))
    try:
        report = validate_opponent_report(payload)
    except LLMResponseInvalid as e:
        logger.error("Invalid opponent report: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "report": report.model_dump(),
        "eloHistory": [point.model_dump(mode="json") for point in elo_history] or None,
    }


@app.post("/api/replay", response_model=BoardView)
async def replay_board(request: ReplayRequest):
    """Board, arrows and highlights for one selection of a report."""
    try:
        game = parse_game_record(request.pgn)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    selection = request.selection
    if selection.type == "mistake":
        if selection.mistake is None:
            raise HTTPException(status_code=400, detail="selection.mistake is required")
        return mistake_view(game, selection.mistake, request.showSolution)
    if selection.type == "keyMoment":
        if selection.keyMoment is None:
            raise HTTPException(status_code=400, detail="selection.keyMoment is required")
        return key_moment_view(game, selection.keyMoment)

    if selection.ply is None:
        raise HTTPException(status_code=400, detail="selection.ply is required")
    return ply_view(game, selection.ply, request.mistakes, request.showSolution)


@app.post("/api/exercise-move", response_model=ExerciseFeedback)
async def exercise_move(request: ExerciseMoveRequest):
    if not request.move.strip():
        raise HTTPException(status_code=400, detail="Move is required")
    return evaluate_exercise_move(request.exercise, request.move)


@app.get("/")
async def root():
    return {"message": "ChessFocus API", "version": VERSION}
