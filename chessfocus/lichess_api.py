import datetime
import json
import logging
from typing import List, Optional
from urllib.parse import quote

import httpx

from chessfocus.config import LICHESS_API_TOKEN
from chessfocus.errors import (
    MalformedUpstreamResponse,
    NoGamesFound,
    RemoteError,
    check_response,
    transport_error,
)
from chessfocus.models import RatingPoint
from chessfocus.pgn_parser import looks_like_pgn
from chessfocus.upstream import client_scope, get

logger = logging.getLogger(__name__)


LICHESS_BASE = "https://lichess.org"
LICHESS_API_BASE = f"{LICHESS_BASE}/api"


def get_auth_headers() -> dict:
    """Bearer header when a Lichess token is configured."""
    headers = {}
    if LICHESS_API_TOKEN:
        headers["Authorization"] = f"Bearer {LICHESS_API_TOKEN}"
    return headers


def export_game_id(game_id: str) -> str:
    """Game part of an ID: player links carry 4 extra characters (12 total)."""
    return game_id[:8]


async def fetch_game_pgn(game_id: str, client: Optional[httpx.AsyncClient] = None) -> str:
    """Lichess PGN export for one game. No fallback: a bad answer is final."""
    game_id = export_game_id(game_id)
    url = f"{LICHESS_BASE}/game/export/{game_id}"
    headers = {"Accept": "application/x-chess-pgn", **get_auth_headers()}
    params = {"moves": "true", "pgnInJson": "false", "clocks": "false", "evals": "false"}

    logger.info("Fetching Lichess game from: %s", url)
    async with client_scope(client) as http:
        response = await get(http, url, f"Lichess game {game_id}", headers=headers, params=params)

    pgn = response.text
    if not pgn or not pgn.strip():
        raise MalformedUpstreamResponse(f"Lichess returned an empty PGN for game {game_id}")
    if not looks_like_pgn(pgn):
        raise MalformedUpstreamResponse(f"Lichess answer for game {game_id} is not a PGN")

    logger.info("Fetched Lichess PGN (length: %d)", len(pgn))
    return pgn.strip()


def _pgn_from_record(line: str) -> Optional[str]:
    record = json.loads(line)
    if not isinstance(record, dict):
        return None
    pgn = record.get("pgn")
    if isinstance(pgn, str) and pgn.strip():
        return pgn.strip()
    return None


async def fetch_user_games(
    username: str,
    count: int,
    client: Optional[httpx.AsyncClient] = None,
) -> List[str]:
    """Most recent games of a user, newest first, at most `count` PGNs.

    The endpoint streams one JSON record per line; a malformed record is
    skipped rather than failing the batch.
    """
    normalized = username.strip().lower()
    url = f"{LICHESS_API_BASE}/games/user/{quote(normalized)}"
    params = {"max": count, "pgnInJson": "true", "clocks": "false", "evals": "false"}
    headers = {"Accept": "application/x-ndjson", **get_auth_headers()}
    what = f"Lichess games of {normalized}"

    games: List[str] = []
    async with client_scope(client) as http:
        try:
            async with http.stream("GET", url, params=params, headers=headers) as response:
                if not response.is_success:
                    await response.aread()
                    check_response(response, what)

                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        pgn = _pgn_from_record(line)
                    except ValueError:
                        logger.warning("Skipping malformed Lichess game record: %s", line[:100])
                        continue
                    if pgn:
                        games.append(pgn)
                    if len(games) >= count:
                        break
        except httpx.HTTPError as e:
            raise transport_error(e, what) from e

    if not games:
        raise NoGamesFound(f"No games found for Lichess user {normalized}")

    logger.info("Collected %d Lichess games for %s", len(games), normalized)
    return games[:count]


def _rating_points(history) -> List[RatingPoint]:
    points = []
    for variant in history:
        name = (variant.get("name") or "classical").lower()
        for point in variant.get("points") or []:
            # [year, month (0-based), day, rating]; days are folded to the 1st
            if not isinstance(point, list) or len(point) < 4:
                continue
            year, month, _day, rating = point[:4]
            try:
                points.append(RatingPoint(
                    date=datetime.date(int(year), int(month) + 1, 1),
                    rating=int(rating),
                    variant=name,
                ))
            except (TypeError, ValueError):
                logger.warning("Skipping malformed %s rating point: %r", name, point)
    return sorted(points, key=lambda p: p.date)


async def fetch_rating_history(
    username: str,
    client: Optional[httpx.AsyncClient] = None,
) -> List[RatingPoint]:
    """Monthly rating history per variant; empty on any failure."""
    normalized = username.strip().lower()
    url = f"{LICHESS_API_BASE}/user/{quote(normalized)}/rating-history"

    try:
        async with client_scope(client) as http:
            response = await get(
                http, url, f"Lichess rating history of {normalized}",
                headers={"Accept": "application/json", **get_auth_headers()},
            )
        history = response.json()
        if not isinstance(history, list):
            raise MalformedUpstreamResponse("rating history is not a list")
        return _rating_points(history)
    except (RemoteError, ValueError, TypeError, AttributeError) as e:
        logger.warning("Error fetching Lichess rating history for %s: %s", normalized, e)
        return []
