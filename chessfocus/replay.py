"""Rebuild board positions from a GameRecord's SAN tokens.

Every position is computed by replaying from the starting position; no
board object is kept between calls. Move number n (standard numbering)
covers plies 2(n-1) (White) and 2(n-1)+1 (Black).
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

import chess

from chessfocus.models import GameRecord, ReplayAnomaly

logger = logging.getLogger(__name__)


SAN_DECORATIONS = re.compile(r'[+#!?]')
SUGGESTION_LABEL = re.compile(r'^(?:best|better|meilleur|solution)(?:\s+move)?\s*:?\s*', re.IGNORECASE)
TRAILING_GLYPHS = re.compile(r'[!?]+$')
SQUARE = re.compile(r'[a-h][1-8]')


@dataclass(frozen=True)
class BoardState:
    fen: str
    plies_applied: int  # tokens consumed, skipped ones included
    anomalies: Tuple[ReplayAnomaly, ...] = ()

    def board(self) -> chess.Board:
        """A fresh, caller-owned board for this position."""
        return chess.Board(self.fen)


@dataclass(frozen=True)
class LocatedMove:
    ply: int
    san: str
    move: chess.Move
    before: BoardState

    @property
    def from_square(self) -> str:
        return chess.square_name(self.move.from_square)

    @property
    def to_square(self) -> str:
        return chess.square_name(self.move.to_square)


def ply_indices(move_number: int) -> Tuple[int, int]:
    """Zero-based (White ply, Black ply) of a move number."""
    white_ply = 2 * (move_number - 1)
    return white_ply, white_ply + 1


def normalize_san(san: str) -> str:
    return SAN_DECORATIONS.sub("", san.strip()).replace("0", "O")


def parse_move(board: chess.Board, san: str) -> Optional[chess.Move]:
    try:
        # the null move "--" is falsy
        return board.parse_san(san) or None
    except ValueError:
        return None


def replay(game: GameRecord, ply_count: int) -> BoardState:
    """Position after the first `ply_count` tokens.

    A token that does not apply is recorded as an anomaly and skipped.
    """
    board = chess.Board(game.starting_fen)
    count = max(0, min(ply_count, len(game.moves)))
    anomalies: List[ReplayAnomaly] = []

    for ply, san in enumerate(game.moves[:count]):
        try:
            board.push_san(san)
        except ValueError as e:
            logger.warning("Replay anomaly at ply %d (%s): %s", ply, san, e)
            anomalies.append(ReplayAnomaly(ply=ply, san=san, reason=str(e) or type(e).__name__))

    return BoardState(fen=board.fen(), plies_applied=count, anomalies=tuple(anomalies))


def _has_move(game: GameRecord, move_number: int) -> bool:
    return move_number >= 1 and ply_indices(move_number)[0] < len(game.moves)


def position_before_move(game: GameRecord, move_number: int) -> Optional[BoardState]:
    """Position just before White's n-th move, or None if there is no such move."""
    if not _has_move(game, move_number):
        return None
    return replay(game, ply_indices(move_number)[0])


def position_after_move(game: GameRecord, move_number: int) -> Optional[BoardState]:
    """Position after White's and Black's n-th moves (as far as they exist)."""
    if not _has_move(game, move_number):
        return None
    return replay(game, 2 * move_number)


def locate_move(
    game: GameRecord,
    move_number: int,
    played_san: Optional[str] = None,
) -> Optional[LocatedMove]:
    """Find which ply of move `move_number` was played, and its squares.

    White's ply is assumed unless `played_san` names Black's recorded
    token, or only parses in the position before Black's ply.
    """
    if not _has_move(game, move_number):
        return None

    plies = [p for p in ply_indices(move_number) if p < len(game.moves)]
    ply, san = plies[0], game.moves[plies[0]]

    if played_san and played_san.strip():
        wanted = normalize_san(played_san)
        matching = [p for p in plies if normalize_san(game.moves[p]) == wanted]
        if matching:
            ply, san = matching[0], game.moves[matching[0]]
        else:
            for candidate in plies:
                if parse_move(replay(game, candidate).board(), played_san.strip()):
                    ply, san = candidate, game.moves[candidate]
                    break

    before = replay(game, ply)
    move = parse_move(before.board(), san)
    if move is None:
        logger.info("Move %d (%s) does not resolve in its position", move_number, san)
        return None
    return LocatedMove(ply=ply, san=san, move=move, before=before)


def resolve_suggestion(state: BoardState, text: Optional[str]) -> Optional[chess.Move]:
    """Best effort parse of a free-text move suggestion.

    1. the text verbatim; 2. without a leading label, as written, in lower
    and upper case; 3. any legal move landing on the last square named in
    the text, first by origin in file-major, rank-ascending order.
    """
    if not text or not text.strip():
        return None

    board = state.board()
    move = parse_move(board, text.strip())
    if move:
        return move

    clean = TRAILING_GLYPHS.sub("", SUGGESTION_LABEL.sub("", text.strip()).strip())
    for candidate in (clean, clean.lower(), clean.upper()):
        if candidate:
            move = parse_move(board, candidate)
            if move:
                return move

    squares = SQUARE.findall(clean)
    if not squares:
        return None
    target = chess.parse_square(squares[-1])

    landing = [m for m in board.legal_moves if m.to_square == target]
    if not landing:
        return None
    return min(landing, key=lambda m: (
        chess.square_file(m.from_square),
        chess.square_rank(m.from_square),
        m.promotion != chess.QUEEN,
    ))
