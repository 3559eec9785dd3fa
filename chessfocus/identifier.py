"""Classify user-entered game links, bare IDs and profile links."""
import logging
import re
from typing import List
from urllib.parse import urlsplit

from chessfocus.errors import InvalidInputError
from chessfocus.models import GameIdentifier, LinkKind, Platform

logger = logging.getLogger(__name__)


LICHESS_HOST = "lichess.org"
CHESSCOM_HOST = "chess.com"

# Lichess game IDs are 8 characters; player URLs append 4 more (12 total)
LICHESS_GAME_ID = re.compile(r"^[a-zA-Z0-9]{8,}$")
CHESSCOM_GAME_ID = re.compile(r"^\d+$")

# first path segments that are Lichess pages, never game IDs
LICHESS_RESERVED_PATHS = {
    "game", "export", "api", "study", "training", "black", "white", "analysis",
    "tournament", "broadcast", "practice", "learn", "insights", "streamer",
    "coordinate", "variant", "paste", "editor", "puzzle", "storm", "racer",
}

CHESSCOM_GAME_KINDS = {"live", "daily", "view"}

UNKNOWN = GameIdentifier(platform=Platform.UNKNOWN)


def _host_matches(host: str, domain: str) -> bool:
    host = host.lower()
    return host == domain or host.endswith("." + domain)


def _path_parts(path: str) -> List[str]:
    return [part for part in path.split("/") if part]


def normalize_url(text: str) -> str:
    """Prepend https:// when the scheme is missing."""
    text = text.strip()
    if not text.startswith(("http://", "https://")):
        text = "https://" + text
    return text


def _classify_lichess(parts: List[str], url: str) -> GameIdentifier:
    if len(parts) >= 2 and parts[0] == "@":
        return GameIdentifier(platform=Platform.LICHESS, kind=LinkKind.USER, id=parts[1], url=url)

    if not parts:
        return UNKNOWN

    game_id = parts[0]
    if game_id.lower() in LICHESS_RESERVED_PATHS or not LICHESS_GAME_ID.match(game_id):
        return UNKNOWN
    return GameIdentifier(platform=Platform.LICHESS, kind=LinkKind.GAME, id=game_id, url=url)


def _classify_chesscom(parts: List[str], url: str) -> GameIdentifier:
    # /game/live/{id}, /game/daily/{id}, /game/view/{id}
    # /analysis/game/live/{id}
    game_id = None
    if len(parts) >= 3 and parts[0] == "game" and parts[1] in CHESSCOM_GAME_KINDS:
        game_id = parts[2]
    elif len(parts) >= 4 and parts[0] == "analysis" and parts[1] == "game" and parts[2] == "live":
        game_id = parts[3]
    elif len(parts) >= 2 and parts[0] == "member":
        return GameIdentifier(platform=Platform.CHESSCOM, kind=LinkKind.USER, id=parts[1], url=url)

    if game_id and CHESSCOM_GAME_ID.match(game_id):
        return GameIdentifier(platform=Platform.CHESSCOM, kind=LinkKind.GAME, id=game_id, url=url)
    return UNKNOWN


def classify(text: str) -> GameIdentifier:
    """Decide which platform (and which kind of page) a user string names.

    Unknown is a user-facing validation problem for callers, not a
    condition to retry.
    """
    if not text or not text.strip():
        return UNKNOWN

    raw = text.strip()

    # bare Lichess game ID, no host at all
    if LICHESS_GAME_ID.match(raw):
        return GameIdentifier(
            platform=Platform.LICHESS,
            kind=LinkKind.GAME,
            id=raw,
            url=f"https://{LICHESS_HOST}/{raw}",
        )

    url = normalize_url(raw)
    try:
        parsed = urlsplit(url)
        host = parsed.hostname or ""
    except ValueError:
        logger.info("Could not parse %r as a URL", raw)
        return UNKNOWN

    parts = _path_parts(parsed.path)
    if _host_matches(host, LICHESS_HOST):
        return _classify_lichess(parts, url)
    if _host_matches(host, CHESSCOM_HOST):
        return _classify_chesscom(parts, url)
    return UNKNOWN


def normalize_username(platform: Platform, text: str) -> str:
    """Accept a bare username or a profile link of the same platform."""
    if not text or not text.strip():
        raise InvalidInputError("Username is required and must be non-empty")

    raw = text.strip()
    if "/" in raw or "." in raw:
        identifier = classify(raw)
        if identifier.kind == LinkKind.USER and identifier.platform == platform:
            return identifier.id
        if "/" in raw:
            raise InvalidInputError(f"'{raw[:50]}' is not a {platform.value} profile link")
    return raw
