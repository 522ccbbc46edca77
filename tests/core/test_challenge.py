import pytest

from walletgate.core.challenge import build_challenge, parse_challenge
from walletgate.core.errors import InvalidInputError

ADDRESS = "0x19E7E376E7C213B7E7e7e46cc70A5dD086DAff2A"


class TestBuildChallenge:
    """Test cases for challenge formatting"""

    def test_exact_text(self):
        challenge = build_challenge(ADDRESS, 1, "abc123def456", project="Cheshire")

        assert challenge.text == (
            "Sign this message to authenticate with Cheshire.\n\n"
            f"Address: {ADDRESS}\n"
            "Chain ID: 1\n"
            "Nonce: abc123def456"
        )

    def test_address_casing_is_kept(self):
        challenge = build_challenge(ADDRESS, 1, "abc123def456")

        assert challenge.address == ADDRESS
        assert f"Address: {ADDRESS}\n" in challenge.text

    def test_deterministic(self):
        assert build_challenge(ADDRESS, 5, "abcdefgh1").text == build_challenge(ADDRESS, 5, "abcdefgh1").text

    @pytest.mark.parametrize("address", ["", "0x123", "19E7E376E7C213B7E7e7e46cc70A5dD086DAff2A", None])
    def test_invalid_address(self, address):
        with pytest.raises(InvalidInputError):
            build_challenge(address, 1, "abcdefgh")

    @pytest.mark.parametrize("nonce", ["", "short", "has space in it", "abc-def-ghi"])
    def test_invalid_nonce(self, nonce):
        with pytest.raises(InvalidInputError):
            build_challenge(ADDRESS, 1, nonce)

    @pytest.mark.parametrize("chain_id", [0, -1, True, "1"])
    def test_invalid_chain_id(self, chain_id):
        with pytest.raises(InvalidInputError):
            build_challenge(ADDRESS, chain_id, "abcdefgh")


class TestParseChallenge:
    """Test cases for reading a submitted challenge back"""

    def test_parse_issued_text(self):
        issued = build_challenge(ADDRESS, 137, "0123456789abcdef")

        parsed = parse_challenge(issued.text)

        assert parsed == issued

    def test_parse_other_project_rejected(self):
        text = build_challenge(ADDRESS, 1, "abcdefgh", project="Elsewhere").text

        with pytest.raises(InvalidInputError):
            parse_challenge(text)

    def test_parse_trailing_newline_rejected(self):
        text = build_challenge(ADDRESS, 1, "abcdefgh").text + "\n"

        with pytest.raises(InvalidInputError):
            parse_challenge(text)

    def test_parse_leading_zero_chain_rejected(self):
        text = build_challenge(ADDRESS, 1, "abcdefgh").text.replace("Chain ID: 1", "Chain ID: 01")

        with pytest.raises(InvalidInputError):
            parse_challenge(text)

    @pytest.mark.parametrize("text", ["", "hello world", None])
    def test_parse_garbage(self, text):
        with pytest.raises(InvalidInputError):
            parse_challenge(text)
