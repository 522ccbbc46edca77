"""
Challenge Message

The challenge is the exact text a wallet is asked to sign. It binds the
account address, the chain id and a server nonce:

    Sign this message to authenticate with Cheshire.

    Address: 0xAbC...
    Chain ID: 1
    Nonce: 9f2c...

build_challenge() formats it, parse_challenge() reads the fields back so the
server can rebuild the text and compare it with what the client submitted.
"""

import re
from dataclasses import dataclass

from walletgate.core.config import settings
from walletgate.core.errors import InvalidInputError
from walletgate.core.evm_auth import ADDRESS_PATTERN, NONCE_PATTERN


CHALLENGE_TEMPLATE = (
    "Sign this message to authenticate with {project}.\n\n"
    "Address: {address}\n"
    "Chain ID: {chain_id}\n"
    "Nonce: {nonce}"
)

CHALLENGE_RE = re.compile(
    r"^Sign this message to authenticate with (?P<project>.+)\.\n\n"
    r"Address: (?P<address>0x[a-fA-F0-9]{40})\n"
    r"Chain ID: (?P<chain_id>\d+)\n"
    r"Nonce: (?P<nonce>[A-Za-z0-9]+)$"
)


@dataclass(frozen=True)
class ChallengeMessage:
    address: str
    chain_id: int
    nonce: str
    text: str


def build_challenge(address: str, chain_id: int, nonce: str, project: str | None = None) -> ChallengeMessage:
    """
    Format the challenge for address/chain_id/nonce.

    The inputs are embedded verbatim (the address keeps its casing) so the
    signed text can be re-derived later.

    Raises:
        InvalidInputError: malformed address, missing/malformed nonce or bad chain id
    """
    address = (address or "").strip()
    if not ADDRESS_PATTERN.match(address):
        raise InvalidInputError("Invalid wallet address format")
    if not nonce:
        raise InvalidInputError("Nonce is required")
    if not NONCE_PATTERN.match(nonce):
        raise InvalidInputError("Invalid nonce format")
    if isinstance(chain_id, bool) or not isinstance(chain_id, int) or chain_id <= 0:
        raise InvalidInputError("Invalid chain id")

    text = CHALLENGE_TEMPLATE.format(
        project=project or settings.PROJECT_NAME,
        address=address,
        chain_id=chain_id,
        nonce=nonce,
    )
    return ChallengeMessage(address=address, chain_id=chain_id, nonce=nonce, text=text)


def parse_challenge(text: str, project: str | None = None) -> ChallengeMessage:
    """
    Read a submitted challenge back into its fields.

    The message is rebuilt from the parsed fields and must match the submitted
    text exactly; anything else is not a challenge this server issued.
    """
    match = CHALLENGE_RE.match(text or "")
    if not match:
        raise InvalidInputError("Invalid message format - could not extract address")

    rebuilt = build_challenge(
        match.group("address"),
        int(match.group("chain_id")),
        match.group("nonce"),
        project=project,
    )
    if rebuilt.text != text:
        raise InvalidInputError("Invalid message format")
    return rebuilt
