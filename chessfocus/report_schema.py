"""Validate and coerce the JSON reports returned by the LLM.

The model is an untrusted source: top-level scalars are required, arrays
default to empty, and each array element is checked on its own so one bad
element is dropped instead of failing the whole report.
"""
import logging
from typing import Any, List, Type, TypeVar

import chess
from pydantic import BaseModel, ValidationError

from chessfocus.errors import LLMResponseInvalid
from chessfocus.models import (
    Exercise,
    FrequentError,
    GameReport,
    KeyMoment,
    Mistake,
    OpponentExercise,
    OpponentReport,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

SIDES = {"white": "White", "black": "Black"}
RESULTS = {"1-0": "1-0", "0-1": "0-1", "1/2-1/2": "1/2-1/2", "½-½": "1/2-1/2"}


def _elements(payload: dict, key: str, model: Type[M]) -> List[M]:
    raw = payload.get(key)
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning("Report field %s is not a list, defaulting to []", key)
        return []

    valid = []
    for index, element in enumerate(raw):
        try:
            valid.append(model.model_validate(element))
        except ValidationError as e:
            logger.warning("Dropping %s[%d]: %d validation error(s)", key, index, e.error_count())
    return valid


def _strings(payload: dict, key: str) -> List[str]:
    raw = payload.get(key)
    if not isinstance(raw, list):
        return []
    return [item.strip() for item in raw if isinstance(item, str) and item.strip()]


def _required_text(payload: dict, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise LLMResponseInvalid(f"Invalid report structure: missing '{key}'")
    return value.strip()


def _as_object(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise LLMResponseInvalid("Invalid report structure: expected a JSON object")
    return payload


def validate_game_report(payload: Any) -> GameReport:
    payload = _as_object(payload)

    summary = _required_text(payload, "summary")
    side = SIDES.get(_required_text(payload, "analyzedSide").lower())
    result = RESULTS.get(_required_text(payload, "result").replace(" ", ""))
    if side is None:
        raise LLMResponseInvalid("Invalid report structure: analyzedSide must be White or Black")
    if result is None:
        raise LLMResponseInvalid("Invalid report structure: result must be 1-0, 0-1 or 1/2-1/2")

    return GameReport(
        summary=summary,
        analyzedSide=side,
        result=result,
        keyMoments=_elements(payload, "keyMoments", KeyMoment),
        mistakes=_elements(payload, "mistakes", Mistake),
        recommendedExercises=_elements(payload, "recommendedExercises", Exercise),
    )


def _valid_fen(fen: str) -> bool:
    try:
        chess.Board(fen)
    except ValueError:
        return False
    return True


def _opponent_exercises(payload: dict) -> List[OpponentExercise]:
    exercises = []
    for exercise in _elements(payload, "recommendedExercises", OpponentExercise):
        if not _valid_fen(exercise.positionFen):
            logger.warning("Dropping exercise %r: invalid positionFen", exercise.title)
            continue
        exercises.append(exercise)
    return exercises


def validate_opponent_report(payload: Any) -> OpponentReport:
    payload = _as_object(payload)

    if "globalSummary" not in payload and "summary" in payload:
        payload = {**payload, "globalSummary": payload["summary"]}

    return OpponentReport(
        globalSummary=_required_text(payload, "globalSummary"),
        mainWeaknesses=_strings(payload, "mainWeaknesses"),
        mainStrengths=_strings(payload, "mainStrengths"),
        frequentErrors=_elements(payload, "frequentErrors", FrequentError),
        recommendedExercises=_opponent_exercises(payload),
    )

