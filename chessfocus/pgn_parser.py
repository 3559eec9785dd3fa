"""Turn PGN text into a GameRecord (headers plus the raw SAN token list)."""
import io
import logging
import re
from typing import List, Optional

import chess
import chess.pgn

from chessfocus.errors import InvalidInputError
from chessfocus.models import GameRecord, Player

logger = logging.getLogger(__name__)


RESULTS = {"1-0", "0-1", "1/2-1/2"}
RESULT_TOKENS = RESULTS | {"*", "½-½"}

TAG_PAIR = re.compile(r'\[\w+\s+"[^"]*"\]')
MOVE_NUMBER_MARKER = re.compile(r'(?:^|\s)1\.\s*(?:[a-hKQRBN]|O-O)')

COMMENT = re.compile(r'\{[^}]*\}')
LINE_COMMENT = re.compile(r';[^\n]*')
VARIATION = re.compile(r'\([^()]*\)')
NAG = re.compile(r'\$\d+')
NEXT_GAME = re.compile(r"\n\s*\n(?=\s*\[Event\s)")
MOVE_NUMBER_PREFIX = re.compile(r'^\d+\.+')
GLYPHS = re.compile(r'[!?]+$')
SAN_TOKEN = re.compile(
    r'^(?:O-O(?:-O)?|0-0(?:-0)?|[KQRBN]?[a-h]?[1-8]?x?[a-h][1-8](?:=?[QRBN])?)[+#]?$'
)


def looks_like_pgn(text: Optional[str]) -> bool:
    """True for text carrying a PGN tag pair or a `1.` move-number marker."""
    if not text or not text.strip():
        return False
    stripped = text.lstrip()
    if stripped.startswith("<"):
        # an HTML page, not a PGN export
        return False
    return bool(TAG_PAIR.search(text) or MOVE_NUMBER_MARKER.search(text))


def _movetext(pgn: str) -> str:
    # tag lines start with '[', everything else is movetext
    lines = [line.strip() for line in pgn.splitlines()]
    # newlines kept: a ';' comment runs to the end of its line
    text = "\n".join(line for line in lines if line and not line.startswith("["))

    text = COMMENT.sub(" ", text)
    text = LINE_COMMENT.sub(" ", text)
    # variations may nest: peel innermost first
    previous = None
    while previous != text:
        previous = text
        text = VARIATION.sub(" ", text)
    return NAG.sub(" ", text)


def parse_pgn_moves(pgn: str) -> List[str]:
    """SAN tokens of the main line, in order.

    Tokens are kept even when they are illegal in the position they would be
    played in; the replay engine decides what to do with them.
    """
    moves = []
    for token in _movetext(pgn).split():
        token = MOVE_NUMBER_PREFIX.sub("", token)
        if not token or token in RESULT_TOKENS:
            continue
        token = GLYPHS.sub("", token)
        if SAN_TOKEN.match(token):
            moves.append(token)
    return moves


def _rating(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value and value != "?" else None
    except ValueError:
        return None


def _name(value: Optional[str]) -> str:
    return value if value and value != "?" else "Unknown"


def _starting_fen(fen: Optional[str]) -> str:
    if not fen:
        return chess.STARTING_FEN
    try:
        return chess.Board(fen).fen()
    except ValueError:
        logger.warning("Ignoring invalid FEN header: %s", fen)
        return chess.STARTING_FEN


def parse_game_record(pgn: str) -> GameRecord:
    """Build the GameRecord for one PGN text (the first game if several)."""
    if not pgn or not pgn.strip():
        raise InvalidInputError("PGN is empty")

    # only the first game of a multi-game paste
    pgn = NEXT_GAME.split(pgn.strip(), maxsplit=1)[0].strip()
    headers = chess.pgn.read_headers(io.StringIO(pgn)) or chess.pgn.Headers()

    result = headers.get("Result", "*")
    moves = parse_pgn_moves(pgn)
    logger.info("Parsed %d move tokens from PGN", len(moves))

    return GameRecord(
        raw_pgn=pgn,
        moves=moves,
        result_tag=result if result in RESULTS else "*",
        white=Player(username=_name(headers.get("White")), rating=_rating(headers.get("WhiteElo"))),
        black=Player(username=_name(headers.get("Black")), rating=_rating(headers.get("BlackElo"))),
        opening=headers.get("Opening"),
        starting_fen=_starting_fen(headers.get("FEN")),
    )
