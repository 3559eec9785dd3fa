"""Arrows and square highlights for a selected mistake, key moment or ply.

Every view is recomputed from the GameRecord on each call; the browser
never keeps a board between selections.
"""
import logging
from typing import Dict, List, Optional

import chess

from chessfocus.models import (
    Annotation,
    BoardView,
    GameRecord,
    KeyMoment,
    Mistake,
    SemanticColor,
)
from chessfocus.replay import (
    BoardState,
    locate_move,
    ply_indices,
    replay,
    resolve_suggestion,
)

logger = logging.getLogger(__name__)


def _arrow(move: chess.Move, color: SemanticColor) -> Annotation:
    return Annotation(
        fromSquare=chess.square_name(move.from_square),
        toSquare=chess.square_name(move.to_square),
        semanticColor=color,
    )


def threats_against(state: BoardState, played_move: chess.Move) -> List[Annotation]:
    """Enemy pieces that can legally capture on the destination of `played_move`."""
    board = state.board()
    if played_move not in board.legal_moves:
        return []
    board.push(played_move)

    target = played_move.to_square
    mover = not board.turn
    attackers = {m.from_square for m in board.legal_moves if m.to_square == target}

    threats = []
    for square in chess.SQUARES:
        piece = board.piece_at(square)
        if piece is None or piece.color == mover or square not in attackers:
            continue
        threats.append(Annotation(
            fromSquare=chess.square_name(square),
            toSquare=chess.square_name(target),
            semanticColor=SemanticColor.THREAT,
        ))
    return threats


def annotate(
    state: BoardState,
    played_move: Optional[chess.Move],
    suggested_move: Optional[chess.Move] = None,
    evaluation_sign: Optional[int] = None,
    include_threats: bool = False,
) -> List[Annotation]:
    """Arrows for one move played from `state`.

    Without `evaluation_sign` the move is a mistake (playedBad); with it, a
    key moment coloured by the sign. Pass `suggested_move` only when the
    solution should be shown.
    """
    if played_move is None:
        return []

    if evaluation_sign is None:
        color = SemanticColor.PLAYED_BAD
    elif evaluation_sign > 0:
        color = SemanticColor.KEY_POSITIVE
    else:
        color = SemanticColor.KEY_NEGATIVE

    annotations = [_arrow(played_move, color)]
    if include_threats:
        annotations.extend(threats_against(state, played_move))
    if suggested_move is not None:
        annotations.append(_arrow(suggested_move, SemanticColor.SUGGESTED_GOOD))
    return annotations


def square_highlights(annotations: List[Annotation]) -> Dict[str, SemanticColor]:
    """Origin and destination squares of every arrow; threats are arrows only."""
    highlights: Dict[str, SemanticColor] = {}
    for annotation in annotations:
        if annotation.semanticColor == SemanticColor.THREAT:
            continue
        highlights[annotation.fromSquare] = annotation.semanticColor
        highlights[annotation.toSquare] = annotation.semanticColor
    return highlights


def _view(state: BoardState, annotations: List[Annotation], best_move: Optional[str] = None) -> BoardView:
    return BoardView(
        fen=state.fen,
        annotations=annotations,
        highlights=square_highlights(annotations),
        bestMove=best_move,
        anomalies=list(state.anomalies),
    )


def _fallback_view(game: GameRecord, move_number: int) -> BoardView:
    # unresolvable move number: show the nearest position, no arrows
    return _view(replay(game, ply_indices(move_number)[0]), [])


def _best_move(state: BoardState, suggestion: Optional[str]):
    move = resolve_suggestion(state, suggestion)
    if move is None:
        if suggestion:
            logger.info("Unresolvable best move suggestion: %r", suggestion)
        return None, None
    return move, state.board().san(move)


def mistake_view(game: GameRecord, mistake: Mistake, show_solution: bool = False) -> BoardView:
    """Board before the mistake, the mistake arrow, and the solution if asked."""
    located = locate_move(game, mistake.moveNumber, mistake.movePlayed)
    if located is None:
        return _fallback_view(game, mistake.moveNumber)

    best, best_san = _best_move(located.before, mistake.bestSuggestion)
    annotations = annotate(located.before, located.move, best if show_solution else None)
    return _view(located.before, annotations, best_san)


def key_moment_view(game: GameRecord, key_moment: KeyMoment) -> BoardView:
    located = locate_move(game, key_moment.moveNumber)
    if located is None:
        return _fallback_view(game, key_moment.moveNumber)

    annotations = annotate(located.before, located.move, evaluation_sign=key_moment.evaluationChange)
    return _view(located.before, annotations)


def ply_view(
    game: GameRecord,
    ply: int,
    mistakes: List[Mistake],
    show_solution: bool = False,
) -> BoardView:
    """Move-by-move navigation: the position after `ply`, with threat arrows
    when that ply is one of the reported mistakes.
    """
    current = replay(game, ply + 1)
    if ply < 0 or ply >= len(game.moves):
        return _view(current, [])

    move_number = ply // 2 + 1
    for mistake in mistakes:
        if mistake.moveNumber != move_number:
            continue
        located = locate_move(game, move_number, mistake.movePlayed)
        if located is None or located.ply != ply:
            continue

        best, best_san = _best_move(located.before, mistake.bestSuggestion)
        annotations = annotate(
            located.before,
            located.move,
            best if show_solution else None,
            include_threats=True,
        )
        return _view(current, annotations, best_san)

    return _view(current, [])
