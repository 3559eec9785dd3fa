"""Feedback for one move played in an interactive opponent exercise."""
import re
from typing import Optional

from chessfocus.models import ExerciseFeedback, MoveVariant, OpponentExercise

MOVE_MARKS = re.compile(r'[+#=]')


def _normalize(san: str) -> str:
    return MOVE_MARKS.sub("", san.strip().lower())


def find_variant(exercise: OpponentExercise, san: str) -> Optional[MoveVariant]:
    """The stored variant matching a played move.

    An exact match wins. Otherwise either text containing the other counts
    as a match, so "Nf3" can match a variant written "f3".
    """
    played = _normalize(san)
    if not played:
        return None

    for variant in exercise.moveVariants:
        if _normalize(variant.move) == played:
            return variant
    for variant in exercise.moveVariants:
        stored = _normalize(variant.move)
        if stored and (played in stored or stored in played):
            return variant
    return None


def _completes(exercise: OpponentExercise, san: str) -> bool:
    played = _normalize(san)
    for index, move in enumerate(exercise.solution):
        if _normalize(move) == played:
            return index == len(exercise.solution) - 1
    return False


def evaluate_exercise_move(exercise: OpponentExercise, san: str) -> ExerciseFeedback:
    variant = find_variant(exercise, san)

    if variant is not None:
        if not variant.isBest:
            return ExerciseFeedback(
                correct=False,
                variant=variant,
                message=variant.explanation or "Not the best move. The opponent can reply well.",
            )
        if variant.opponentResponse:
            return ExerciseFeedback(
                correct=True,
                variant=variant,
                opponentResponse=variant.opponentResponse,
                message=variant.explanation or "Excellent move! You exploit the opponent's weakness.",
            )
        if _completes(exercise, san):
            return ExerciseFeedback(
                correct=True,
                variant=variant,
                completed=True,
                message="Well done! You completed the exercise by exploiting the opponent's weakness.",
            )
        return ExerciseFeedback(
            correct=True,
            variant=variant,
            message=variant.explanation or "Excellent move! You exploit the opponent's weakness.",
        )

    if exercise.solution:
        if _normalize(exercise.solution[0]) == _normalize(san):
            return ExerciseFeedback(correct=True, message="Good move! Keep going.")
        return ExerciseFeedback(correct=False, message="Not the best move to exploit the weakness.")

    return ExerciseFeedback(correct=None, message="Valid move")
