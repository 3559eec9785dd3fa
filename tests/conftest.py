import asyncio

import httpx
import pytest

from chessfocus.pgn_parser import parse_game_record

# Fried Liver: 6.Nxf7 Kxf7, twelve plies
SAMPLE_PGN = """[Event "Casual game"]
[Site "https://lichess.org/abcd1234"]
[White "alice"]
[Black "bob"]
[WhiteElo "1500"]
[BlackElo "1480"]
[Result "1-0"]
[Opening "Italian Game: Two Knights Defense, Fried Liver Attack"]

1. e4 e5 2. Nf3 Nc6 3. Bc4 Nf6 4. Ng5 d5 5. exd5 Nxd5 6. Nxf7 Kxf7 1-0"""


@pytest.fixture
def sample_pgn():
    return SAMPLE_PGN


@pytest.fixture
def sample_game():
    return parse_game_record(SAMPLE_PGN)


@pytest.fixture
def run_mocked():
    """Run `make_coro(client)` against an httpx client served by `handler`."""

    def run(handler, make_coro):
        async def main():
            transport = httpx.MockTransport(handler)
            async with httpx.AsyncClient(transport=transport) as client:
                return await make_coro(client)

        return asyncio.run(main())

    return run
