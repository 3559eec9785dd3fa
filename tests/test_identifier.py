import pytest

from chessfocus.errors import InvalidInputError
from chessfocus.identifier import classify, normalize_username
from chessfocus.models import LinkKind, Platform


@pytest.mark.parametrize("url", [
    "https://www.chess.com/game/live/123456789",
    "https://www.chess.com/game/daily/123456789",
    "https://www.chess.com/analysis/game/live/123456789",
    "https://www.chess.com/game/view/123456789",
    "chess.com/game/live/123456789?tab=review",
])
def test_chesscom_game_shapes(url):
    identifier = classify(url)
    assert identifier.platform == Platform.CHESSCOM
    assert identifier.kind == LinkKind.GAME
    assert identifier.id == "123456789"


@pytest.mark.parametrize("url", [
    "https://www.chess.com/games/archive/hikaru",
    "https://www.chess.com/game/live/not-a-number",
    "https://www.chess.com/analysis/game/daily/123456789",
    "https://www.chess.com/",
])
def test_other_chesscom_paths_are_unknown(url):
    assert classify(url).platform == Platform.UNKNOWN


def test_bare_lichess_id():
    identifier = classify("abcd1234")
    assert identifier.platform == Platform.LICHESS
    assert identifier.kind == LinkKind.GAME
    assert identifier.id == "abcd1234"
    assert identifier.url == "https://lichess.org/abcd1234"


def test_lichess_link_without_scheme():
    identifier = classify("lichess.org/abcd1234")
    assert identifier.platform == Platform.LICHESS
    assert identifier.kind == LinkKind.GAME
    assert identifier.id == "abcd1234"
    assert identifier.url == "https://lichess.org/abcd1234"


def test_lichess_player_link_keeps_full_id():
    identifier = classify("https://lichess.org/abcd1234wxyz/black")
    assert identifier.id == "abcd1234wxyz"


def test_lichess_subdomain():
    assert classify("https://fr.lichess.org/abcd1234").platform == Platform.LICHESS


@pytest.mark.parametrize("url", [
    "https://lichess.org/study/abcdefgh",
    "https://lichess.org/training",
    "https://lichess.org/abc",
    "https://example.com/abcd1234",
    "https://notlichess.org/abcd1234",
    "short",
    "",
    "   ",
])
def test_unknown_inputs(url):
    assert classify(url).platform == Platform.UNKNOWN


def test_profile_links():
    lichess = classify("https://lichess.org/@/DrNykterstein")
    assert (lichess.platform, lichess.kind, lichess.id) == (Platform.LICHESS, LinkKind.USER, "DrNykterstein")

    chesscom = classify("https://www.chess.com/member/hikaru")
    assert (chesscom.platform, chesscom.kind, chesscom.id) == (Platform.CHESSCOM, LinkKind.USER, "hikaru")


class TestNormalizeUsername:
    def test_bare_username(self):
        assert normalize_username(Platform.LICHESS, "  Magnus ") == "Magnus"

    def test_profile_link(self):
        assert normalize_username(Platform.LICHESS, "https://lichess.org/@/foo") == "foo"
        assert normalize_username(Platform.CHESSCOM, "chess.com/member/hikaru") == "hikaru"

    def test_other_platform_link_is_rejected(self):
        with pytest.raises(InvalidInputError):
            normalize_username(Platform.LICHESS, "https://www.chess.com/member/hikaru")

    def test_empty(self):
        with pytest.raises(InvalidInputError):
            normalize_username(Platform.CHESSCOM, "  ")
