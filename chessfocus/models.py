import datetime
import math
from enum import Enum
from typing import Dict, List, Literal, Optional

import chess
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Platform(str, Enum):
    LICHESS = "lichess"
    CHESSCOM = "chesscom"
    UNKNOWN = "unknown"


class LinkKind(str, Enum):
    GAME = "game"
    USER = "user"


class GameIdentifier(BaseModel):
    """Result of classifying a user-entered link, ID or username."""
    model_config = ConfigDict(frozen=True)

    platform: Platform
    kind: Optional[LinkKind] = None
    id: Optional[str] = None  # game ID or username
    url: Optional[str] = None  # normalized link (scheme added)


class Player(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    rating: Optional[int] = None


class GameRecord(BaseModel):
    """One fetched or pasted game. Never mutated after parsing."""
    model_config = ConfigDict(frozen=True)

    raw_pgn: str
    moves: List[str]  # SAN tokens, in movetext order
    result_tag: str = "*"
    white: Player = Player(username="Unknown")
    black: Player = Player(username="Unknown")
    opening: Optional[str] = None
    starting_fen: str = chess.STARTING_FEN


class RatingPoint(BaseModel):
    date: datetime.date
    rating: int
    variant: str  # lower-case time control: bullet, blitz, rapid, classical, daily...


# --- report payloads (camelCase, as exchanged with the LLM and the browser) ---

MistakeCategory = Literal["inaccuracy", "mistake", "blunder"]
ExerciseType = Literal["tactic", "endgame", "opening", "strategy"]
EstimatedLevel = Literal["beginner", "intermediate", "advanced"]


def _lower(value):
    return value.strip().lower() if isinstance(value, str) else value


class KeyMoment(BaseModel):
    moveNumber: int = Field(gt=0)
    description: str
    evaluationChange: int = 0  # centipawns, positive = good for the analyzed side

    @field_validator("evaluationChange", mode="before")
    @classmethod
    def _centipawns(cls, value):
        if value is None:
            return 0
        if isinstance(value, str):
            value = float(value.strip().replace(",", "."))
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError("evaluationChange must be finite")
            return int(round(value))
        return value


class Mistake(BaseModel):
    moveNumber: int = Field(gt=0)
    movePlayed: str
    category: MistakeCategory
    explanation: str
    bestSuggestion: Optional[str] = None
    bestSuggestionExplanation: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value):
        return _lower(value)


class Exercise(BaseModel):
    title: str
    description: str
    exerciseType: ExerciseType
    estimatedLevel: EstimatedLevel

    @field_validator("exerciseType", "estimatedLevel", mode="before")
    @classmethod
    def _enums(cls, value):
        return _lower(value)


class GameReport(BaseModel):
    summary: str
    analyzedSide: Literal["White", "Black"]
    result: Literal["1-0", "0-1", "1/2-1/2"]
    keyMoments: List[KeyMoment] = []
    mistakes: List[Mistake] = []
    recommendedExercises: List[Exercise] = []


class FrequentError(BaseModel):
    theme: str
    description: str
    howToPunish: str


class MoveVariant(BaseModel):
    move: str
    isBest: bool
    explanation: Optional[str] = None
    opponentResponse: Optional[str] = None


class OpponentExercise(Exercise):
    positionFen: str
    solution: List[str] = []
    hint: str = ""
    weaknessExploited: str = ""
    moveVariants: List[MoveVariant] = []
    opponentMoves: List[str] = []

    # null from the model means "not given"
    @field_validator("hint", "weaknessExploited", mode="before")
    @classmethod
    def _text(cls, value):
        return "" if value is None else value

    @field_validator("solution", "opponentMoves", "moveVariants", mode="before")
    @classmethod
    def _list(cls, value):
        return [] if value is None else value


class OpponentReport(BaseModel):
    globalSummary: str
    mainWeaknesses: List[str] = []
    mainStrengths: List[str] = []
    frequentErrors: List[FrequentError] = []
    recommendedExercises: List[OpponentExercise] = []


# --- board annotation ---

class SemanticColor(str, Enum):
    PLAYED_BAD = "playedBad"
    SUGGESTED_GOOD = "suggestedGood"
    KEY_POSITIVE = "keyPositive"
    KEY_NEGATIVE = "keyNegative"
    THREAT = "threat"


class Annotation(BaseModel):
    model_config = ConfigDict(frozen=True)

    fromSquare: str
    toSquare: str
    semanticColor: SemanticColor


class ReplayAnomaly(BaseModel):
    model_config = ConfigDict(frozen=True)

    ply: int  # zero-based
    san: str
    reason: str


class BoardView(BaseModel):
    """What the board component needs to draw one selection."""
    fen: str
    annotations: List[Annotation] = []
    highlights: Dict[str, SemanticColor] = {}
    bestMove: Optional[str] = None
    anomalies: List[ReplayAnomaly] = []


class ExerciseFeedback(BaseModel):
    correct: Optional[bool] = None
    variant: Optional[MoveVariant] = None
    opponentResponse: Optional[str] = None
    completed: bool = False
    message: str
