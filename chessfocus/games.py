"""Route classified identifiers to the right platform client."""
import logging
from typing import List, Optional

import httpx

from chessfocus import chesscom_api, lichess_api
from chessfocus.errors import InvalidInputError
from chessfocus.identifier import classify
from chessfocus.models import LinkKind, Platform, RatingPoint

logger = logging.getLogger(__name__)


def parse_platform(value: Optional[str]) -> Platform:
    """'chesscom' selects Chess.com; anything else falls back to Lichess."""
    if isinstance(value, str) and value.strip().lower() in ("chesscom", "chess.com"):
        return Platform.CHESSCOM
    return Platform.LICHESS


async def fetch_game_pgn(link: str, client: Optional[httpx.AsyncClient] = None) -> str:
    """PGN text for a user-entered game link or bare Lichess ID."""
    identifier = classify(link)
    logger.info("Classified %r as %s/%s", link[:100], identifier.platform.value,
                identifier.kind.value if identifier.kind else None)

    if identifier.platform == Platform.UNKNOWN:
        raise InvalidInputError(
            f"Invalid URL: \"{link[:50]}\" is not recognized as a Lichess or Chess.com game link."
        )
    if identifier.kind != LinkKind.GAME:
        raise InvalidInputError(
            "This link points to a player profile, not a game. "
            "Use the opponent analysis to study a player."
        )

    if identifier.platform == Platform.LICHESS:
        return await lichess_api.fetch_game_pgn(identifier.id, client=client)
    return await chesscom_api.fetch_game_pgn(identifier.id, identifier.url, client=client)


async def fetch_user_games(
    platform: Platform,
    username: str,
    count: int,
    client: Optional[httpx.AsyncClient] = None,
) -> List[str]:
    if platform == Platform.CHESSCOM:
        return await chesscom_api.fetch_user_games(username, count, client=client)
    return await lichess_api.fetch_user_games(username, count, client=client)


async def fetch_rating_history(
    platform: Platform,
    username: str,
    client: Optional[httpx.AsyncClient] = None,
) -> List[RatingPoint]:
    if platform == Platform.CHESSCOM:
        return await chesscom_api.fetch_rating_history(username, client=client)
    return await lichess_api.fetch_rating_history(username, client=client)
