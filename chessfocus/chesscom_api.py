import asyncio
import datetime
import html as html_module
import json
import logging
import re
from typing import List, Optional
from urllib.parse import quote

import httpx

from chessfocus.config import CHESSCOM_MAX_ARCHIVES
from chessfocus.errors import (
    MalformedUpstreamResponse,
    NoGamesFound,
    RemoteError,
    RemoteUnavailable,
)
from chessfocus.models import RatingPoint
from chessfocus.pgn_parser import looks_like_pgn
from chessfocus.upstream import client_scope, get

logger = logging.getLogger(__name__)


CHESSCOM_BASE = "https://www.chess.com"
CHESSCOM_API_BASE = "https://api.chess.com/pub"

PGN_ACCEPT = "application/x-chess-pgn, text/plain, */*"
HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
JSON_ACCEPT = "application/json"

# script assignments holding a JSON object with a "pgn" key
GAME_DATA_PREFIXES = [
    re.compile(r'window\.gameData\s*=\s*(?=\{)'),
    re.compile(r'window\.gameAnalysis\s*=\s*(?=\{)'),
    re.compile(r'gameData\s*:\s*(?=\{)'),
]
JSON_PGN_STRING = re.compile(r'"pgn"\s*:\s*"((?:[^"\\]|\\.)*)"')
QUOTED_PGN_STRING = re.compile(r"'pgn'\s*:\s*'((?:[^'\\]|\\.)*)'")
DATA_PGN_ATTRIBUTE = re.compile(r'data-pgn="([^"]+)"')
PGN_TAG_BLOCK = re.compile(r'\[Event\s+"[^"]*"\](?:\s*\[\w+\s+"[^"]*"\])*(?:\s*1\.[^<\[]*)?')

STATS_VARIANTS = {
    "chess_daily": "daily",
    "chess_rapid": "rapid",
    "chess_blitz": "blitz",
    "chess_bullet": "bullet",
}


def _unescape_js(value: str) -> str:
    return value.replace("\\n", "\n").replace('\\"', '"').replace("\\'", "'")


def _decode_json_string(value: str) -> str:
    try:
        return json.loads(f'"{value}"')
    except ValueError:
        return _unescape_js(value)


def _pgn_in_object(data) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    candidates = [data.get("pgn")]
    if isinstance(data.get("game"), dict):
        candidates.append(data["game"].get("pgn"))
    for candidate in candidates:
        if isinstance(candidate, str) and looks_like_pgn(candidate):
            return candidate
    return None


def extract_pgn_from_html(page: str) -> Optional[str]:
    """Find a PGN embedded in a Chess.com game page.

    Tries the script-data objects first, then quoted "pgn" strings, then a
    data attribute, and finally scans the markup for a raw tag block.
    """
    decoder = json.JSONDecoder()
    for prefix in GAME_DATA_PREFIXES:
        for match in prefix.finditer(page):
            try:
                data, _ = decoder.raw_decode(page, match.end())
            except ValueError:
                continue
            pgn = _pgn_in_object(data)
            if pgn:
                logger.info("Found PGN in embedded game data object")
                return html_module.unescape(pgn).strip()

    string_patterns = [
        (JSON_PGN_STRING, _decode_json_string),
        (QUOTED_PGN_STRING, _unescape_js),
        (DATA_PGN_ATTRIBUTE, html_module.unescape),
    ]
    for pattern, decode in string_patterns:
        for match in pattern.finditer(page):
            candidate = html_module.unescape(decode(match.group(1)))
            if looks_like_pgn(candidate):
                logger.info("Found PGN in string format using pattern: %s", pattern.pattern[:30])
                return candidate.strip()

    # last resort: a tag block sitting directly in the markup
    match = PGN_TAG_BLOCK.search(html_module.unescape(page))
    if match:
        candidate = match.group(0).strip()
        if len(candidate) > 50:
            logger.info("Found PGN directly in HTML")
            return candidate
    return None


async def _try_text(http: httpx.AsyncClient, url: str, what: str, accept: str) -> Optional[str]:
    logger.info("Trying %s: %s", what, url)
    try:
        response = await get(http, url, what, headers={"Accept": accept})
    except RemoteError as e:
        logger.info("%s failed: %s", what, e)
        return None
    return response.text


async def fetch_game_pgn(
    game_id: str,
    game_url: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """PGN of one Chess.com game.

    No single endpoint works for every game type, so four strategies are
    tried in order: export endpoint, download endpoint, the game page's
    embedded data, and the page URL with /pgn appended.
    """
    game_url = (game_url or f"{CHESSCOM_BASE}/game/live/{game_id}").strip()

    async with client_scope(client) as http:
        endpoints = [
            ("export endpoint", f"{CHESSCOM_BASE}/game/export/{game_id}"),
            ("download endpoint", f"{CHESSCOM_BASE}/game/download/{game_id}"),
        ]
        for what, url in endpoints:
            text = await _try_text(http, url, what, PGN_ACCEPT)
            if looks_like_pgn(text):
                logger.info("Successfully fetched PGN from %s", what)
                return text.strip()

        page = await _try_text(http, game_url, "game page", HTML_ACCEPT)
        if page:
            pgn = extract_pgn_from_html(page)
            if pgn:
                return pgn

        pgn_url = game_url if game_url.endswith("/pgn") else f"{game_url.rstrip('/')}/pgn"
        text = await _try_text(http, pgn_url, "direct PGN URL", PGN_ACCEPT)
        if looks_like_pgn(text):
            logger.info("Successfully fetched PGN from direct URL")
            return text.strip()

    raise RemoteUnavailable(
        f"Could not retrieve the PGN from Chess.com. The game ID is {game_id}, "
        "but none of the methods worked. Copy the PGN from the Chess.com game page "
        "(\"Download PGN\" button) and paste it in the PGN tab."
    )


async def _fetch_archive(http: httpx.AsyncClient, archive_url: str) -> List[str]:
    """PGNs of one monthly archive, in listed order; [] if the month fails."""
    try:
        response = await get(http, archive_url, "Chess.com archive", headers={"Accept": JSON_ACCEPT})
        games = response.json().get("games") or []
    except (RemoteError, ValueError, AttributeError) as e:
        logger.warning("Failed to fetch archive %s: %s", archive_url, e)
        return []

    pgns = []
    for game in games:
        pgn = game.get("pgn") if isinstance(game, dict) else None
        if isinstance(pgn, str) and pgn.strip():
            pgns.append(pgn.strip())
    return pgns


async def fetch_user_games(
    username: str,
    count: int,
    client: Optional[httpx.AsyncClient] = None,
) -> List[str]:
    """Most recent games of a user, at most `count` PGNs.

    Only the newest monthly archives are scanned, most recent month first.
    """
    normalized = username.strip().lower()
    url = f"{CHESSCOM_API_BASE}/player/{quote(normalized)}/games/archives"

    async with client_scope(client) as http:
        response = await get(http, url, f"Chess.com archives of {normalized}", headers={"Accept": JSON_ACCEPT})
        try:
            archives = response.json().get("archives") or []
        except (ValueError, AttributeError) as e:
            raise MalformedUpstreamResponse(f"Unexpected Chess.com archives answer: {e}") from e

        archives = [a for a in archives if isinstance(a, str)]
        if not archives:
            raise NoGamesFound(f"No games found for Chess.com user {normalized}")

        recent = list(reversed(archives[-CHESSCOM_MAX_ARCHIVES:]))
        per_archive = await asyncio.gather(*[_fetch_archive(http, a) for a in recent])

    games: List[str] = []
    for pgns in per_archive:
        for pgn in pgns:
            if len(games) >= count:
                break
            games.append(pgn)

    if not games:
        raise NoGamesFound(f"No games found for Chess.com user {normalized}")

    logger.info("Collected %d Chess.com games for %s", len(games), normalized)
    return games


async def fetch_rating_history(
    username: str,
    client: Optional[httpx.AsyncClient] = None,
) -> List[RatingPoint]:
    """Current rating per time control, dated today.

    Chess.com exposes no history, only the latest value; empty on failure.
    """
    normalized = username.strip().lower()
    url = f"{CHESSCOM_API_BASE}/player/{quote(normalized)}/stats"

    try:
        async with client_scope(client) as http:
            response = await get(http, url, f"Chess.com stats of {normalized}", headers={"Accept": JSON_ACCEPT})
        stats = response.json()
        if not isinstance(stats, dict):
            raise MalformedUpstreamResponse("stats answer is not an object")

        today = datetime.date.today()
        points = []
        for key, variant in STATS_VARIANTS.items():
            rating = ((stats.get(key) or {}).get("last") or {}).get("rating")
            if rating:
                points.append(RatingPoint(date=today, rating=int(rating), variant=variant))
        return points
    except (RemoteError, ValueError, TypeError, AttributeError) as e:
        logger.warning("Error fetching Chess.com ratings for %s: %s", normalized, e)
        return []
