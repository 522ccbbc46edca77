"""
Wallet connector interface consumed by the auth state machine.

The wallet library owns the connected address and the signing key; the state
machine only asks it to sign a challenge and, on an account switch, to forget
whatever it persisted locally.
"""

from typing import Iterable, Optional, Protocol

from eth_account import Account
from eth_account.messages import encode_defunct

from walletgate.client.storage import KeyValueStorage
from walletgate.core.config import settings

WALLET_KEY_MARKERS = ("rainbow", "wallet", "wagmi", "walletconnect")


class WalletConnector(Protocol):
    chain_id: int

    async def sign_message(self, message: str) -> str: ...

    def purge_local_state(self) -> None: ...


def purge_wallet_keys(storage: KeyValueStorage, markers: Iterable[str] = WALLET_KEY_MARKERS) -> int:
    """Remove every storage key that belongs to the wallet library."""
    removed = 0
    for key in list(storage.keys()):
        if any(marker in key for marker in markers):
            storage.remove(key)
            removed += 1
    return removed


class LocalAccountWallet:
    """WalletConnector backed by an in-process eth_account key."""

    def __init__(
        self,
        private_key: Optional[str] = None,
        chain_id: Optional[int] = None,
        storage: Optional[KeyValueStorage] = None,
    ):
        self.account = Account.from_key(private_key) if private_key else Account.create()
        self.chain_id = chain_id or settings.CHAIN_ID
        self.storage = storage

    @property
    def address(self) -> str:
        return self.account.address

    async def sign_message(self, message: str) -> str:
        signed = self.account.sign_message(encode_defunct(text=message))
        return "0x" + signed.signature.hex().removeprefix("0x")

    def purge_local_state(self) -> None:
        if self.storage is not None:
            purge_wallet_keys(self.storage)
