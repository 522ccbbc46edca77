"""
Client authentication state machine.

Owns the client view of the session and reacts to wallet events:

    DISCONNECTED -> CONNECTING (wallet reported an address)
                 -> CHECKING_USER -> NEEDS_SETUP | READY
    READY        -> SIGNING_IN -> AUTHENTICATED
    any          -> DISCONNECTED (wallet disconnected or switched account)

server_error is orthogonal: set by any network failure, cleared by the next
successful call.

Races between "check user", "sign in" and wallet events are resolved by an
identity epoch. Every identity change bumps it; a response that arrives for an
older epoch is dropped. Only one sign-in can run at a time (is_authenticating).

Instances are plain objects: build one per application (or per test) and pass
it where it is needed.
"""

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol

from walletgate.client.api_client import AuthApiClient, UserStatus
from walletgate.client.session_cache import CredentialKeeper, SessionCache
from walletgate.client.wallet import WalletConnector
from walletgate.core.challenge import build_challenge
from walletgate.core.errors import (
    InvalidInputError,
    NetworkError,
    ProfileRequiredError,
    Unauthenticated,
    WalletAuthError,
)

logger = logging.getLogger(__name__)


class AuthPhase(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CHECKING_USER = "checking_user"
    NEEDS_SETUP = "needs_setup"
    READY = "ready"
    SIGNING_IN = "signing_in"
    AUTHENTICATED = "authenticated"


class AuthFailure(str, Enum):
    SETUP_REQUIRED = "setup_required"
    SIGNIN_FAILED = "signin_failed"
    SERVICE_UNAVAILABLE = "service_unavailable"


FAILURE_MESSAGES: Dict[AuthFailure, str] = {
    AuthFailure.SETUP_REQUIRED: "Please complete your profile setup first.",
    AuthFailure.SIGNIN_FAILED: "Sign in failed. Please sign the message with the connected wallet and try again.",
    AuthFailure.SERVICE_UNAVAILABLE: "The service is unavailable right now. Please try again later.",
}


class RouteDecision(str, Enum):
    ALLOW = "allow"
    LOADING = "loading"
    REDIRECT_HOME = "redirect_home"
    REDIRECT_SETUP = "redirect_setup"
    REDIRECT_APP = "redirect_app"


@dataclass(frozen=True)
class AuthState:
    phase: AuthPhase = AuthPhase.DISCONNECTED
    is_authenticated: bool = False
    is_authenticating: bool = False
    user_address: Optional[str] = None
    user_exists: bool = False
    is_checking_user: bool = False
    server_error: bool = False
    last_failure: Optional[AuthFailure] = None
    last_cache_check: float = 0


class Navigator(Protocol):
    def navigate(self, path: str) -> None: ...

    def reinitialize(self) -> None: ...


class LoggingNavigator:
    """Navigator for hosts without routes; records what would have happened."""

    def __init__(self) -> None:
        self.history: List[str] = []

    def navigate(self, path: str) -> None:
        logger.info("navigate to %s", path)
        self.history.append(f"navigate:{path}")

    def reinitialize(self) -> None:
        logger.info("reinitializing identity state")
        self.history.append("reinitialize")


Listener = Callable[[AuthState], None]


class AuthStateMachine:
    LANDING_PATH = "/"

    def __init__(
        self,
        api: AuthApiClient,
        wallet: WalletConnector,
        cache: SessionCache,
        credentials: CredentialKeeper,
        navigator: Optional[Navigator] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.api = api
        self.wallet = wallet
        self.cache = cache
        self.credentials = credentials
        self.navigator = navigator or LoggingNavigator()
        self.clock = clock

        self._state = AuthState()
        self._listeners: List[Listener] = []
        self._epoch = 0
        self._wallet_address: Optional[str] = None
        self._token: Optional[str] = None

    # ---------- observation ---------------------------------------------------
    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def wallet_address(self) -> Optional[str]:
        return self._wallet_address

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        logger.debug("auth state -> %s", self._state.phase.value)
        for listener in list(self._listeners):
            listener(self._state)

    def _is_current(self, epoch: int, address: Optional[str] = None) -> bool:
        if epoch != self._epoch:
            return False
        if address is not None and (self._wallet_address or "").lower() != address.lower():
            return False
        return True

    def _bump_epoch(self) -> int:
        self._epoch += 1
        return self._epoch

    def _connected_phase(self) -> AuthPhase:
        if self._wallet_address is None:
            return AuthPhase.DISCONNECTED
        if self._state.user_exists:
            return AuthPhase.READY
        return AuthPhase.CONNECTING

    # ---------- startup -------------------------------------------------------
    async def initialize(self) -> AuthState:
        """
        Restore the session at process start.

        Cache first: a fresh snapshot backed by a stored, unexpired credential
        is trusted without any network call. Otherwise a stored credential is
        re-verified with /auth/me.
        """
        now = self.clock()
        token = self.credentials.load()
        entry = self.cache.read()

        if token and entry and entry.authenticated and entry.address == self._token_address(token):
            logger.debug("using cached auth status (no server call)")
            self._token = token
            self._set(
                phase=AuthPhase.AUTHENTICATED,
                is_authenticated=True,
                is_authenticating=False,
                is_checking_user=False,
                user_address=entry.address,
                user_exists=entry.profile_exists,
                server_error=False,
                last_cache_check=now,
            )
            return self._state

        if not token:
            self.cache.clear()
            self._set(
                phase=self._connected_phase(),
                is_authenticated=False,
                user_address=None,
                last_cache_check=now,
            )
            return self._state

        await self._revalidate(token)
        return self._state

    def _token_address(self, token: str) -> Optional[str]:
        address = self.credentials.address_of(token)
        return address.lower() if address else None

    async def _revalidate(self, token: str) -> bool:
        """Ask the server whether token is still good and refresh the cache."""
        epoch = self._epoch
        self._set(is_authenticating=True)
        try:
            address = await self.api.me(token)
        except Unauthenticated:
            if self._is_current(epoch):
                logger.info("stored credential rejected by server")
                self._drop_local_session()
            return False
        except NetworkError:
            if self._is_current(epoch):
                self._set(
                    is_authenticating=False,
                    server_error=True,
                    last_failure=AuthFailure.SERVICE_UNAVAILABLE,
                    last_cache_check=self.clock(),
                )
            return False

        if not self._is_current(epoch):
            return False

        address = address.lower()
        self._token = token
        self.cache.write(True, address, True)
        self._set(
            phase=AuthPhase.AUTHENTICATED,
            is_authenticated=True,
            is_authenticating=False,
            user_address=address,
            user_exists=True,
            server_error=False,
            last_failure=None,
            last_cache_check=self.clock(),
        )
        return True

    async def refresh_if_stale(self) -> AuthState:
        """Re-verify an authenticated session once its cache snapshot has aged out."""
        if not self._state.is_authenticated or self._state.is_authenticating:
            return self._state
        if self.cache.read() is not None:
            return self._state

        token = self.credentials.load()
        if token is None:
            self._drop_local_session()
            return self._state
        logger.debug("auth cache expired, refreshing auth status")
        await self._revalidate(token)
        return self._state

    # ---------- wallet events -------------------------------------------------
    async def handle_wallet_update(self, address: Optional[str]) -> AuthState:
        """
        Apply what the wallet library reports: an address, or None when disconnected.
        """
        previous = self._wallet_address

        if not address:
            if previous is None and not self._state.is_authenticated:
                return self._state
            logger.info("wallet disconnected - logging out")
            was_authenticated = self._state.is_authenticated
            self._wallet_address = None
            await self.sign_out()
            if was_authenticated:
                self.navigator.navigate(self.LANDING_PATH)
            return self._state

        if previous is not None:
            if previous.lower() == address.lower():
                return self._state
            await self._handle_address_change(previous, address)
            return self._state

        self._wallet_address = address
        if self._state.is_authenticated:
            if self._state.user_address == address.lower():
                return self._state
            # restored session belongs to another account
            await self._handle_address_change(self._state.user_address or "", address)
            return self._state

        self._set(phase=AuthPhase.CONNECTING)
        logger.debug("wallet connected, checking user status for setup flow")
        await self.check_user_status(address)
        return self._state

    async def _handle_address_change(self, previous: str, address: str) -> None:
        logger.info("wallet address changed from %s to %s", previous, address)
        self._wallet_address = None
        await self.sign_out()
        self.wallet.purge_local_state()
        self.navigator.reinitialize()

    # ---------- profile check -------------------------------------------------
    async def check_user_status(self, address: str, force: bool = False) -> Optional[UserStatus]:
        """
        Ask whether address has a profile.

        A cached positive answer for the same address is reused unless force is
        set; a negative one is always re-checked since setup may have finished.
        """
        address_lc = address.lower()
        if not force:
            entry = self.cache.read()
            if entry and entry.address == address_lc and entry.profile_exists:
                self._set(
                    user_exists=True,
                    is_checking_user=False,
                    phase=AuthPhase.AUTHENTICATED if self._state.is_authenticated else AuthPhase.READY,
                )
                return UserStatus(exists=True, needs_setup=False, address=address_lc)

        epoch = self._epoch
        self._set(is_checking_user=True, phase=AuthPhase.CHECKING_USER)
        try:
            status = await self.api.check_user(address)
        except WalletAuthError as e:
            if self._is_current(epoch, address):
                logger.warning("failed to check user status: %s", e.message)
                self._set(
                    is_checking_user=False,
                    server_error=True,
                    last_failure=AuthFailure.SERVICE_UNAVAILABLE,
                    phase=self._connected_phase(),
                )
            return None

        if not self._is_current(epoch, address):
            logger.debug("dropping user status for %s, identity changed", address_lc)
            return None

        self.cache.write(self._state.is_authenticated, address_lc, status.exists)
        if self._state.is_authenticated:
            phase = AuthPhase.AUTHENTICATED
        elif status.exists:
            phase = AuthPhase.READY
        else:
            phase = AuthPhase.NEEDS_SETUP
        self._set(
            user_exists=status.exists,
            is_checking_user=False,
            server_error=False,
            last_failure=None if status.exists else AuthFailure.SETUP_REQUIRED,
            phase=phase,
            last_cache_check=self.clock(),
        )
        return status

    # ---------- sign in / out -------------------------------------------------
    async def sign_in(self) -> bool:
        """
        nonce -> challenge -> wallet signature -> /auth/signin.

        Returns True once authenticated. Does nothing while another sign-in
        is in flight.
        """
        if self._state.is_authenticating:
            logger.debug("sign-in already in progress")
            return False
        address = self._wallet_address
        if not address:
            self._set(last_failure=AuthFailure.SIGNIN_FAILED)
            return False
        if self._state.is_authenticated and self._state.user_address == address.lower():
            return True

        epoch = self._epoch
        self._set(is_authenticating=True, last_failure=None)

        if not self._state.user_exists:
            status = await self.check_user_status(address, force=True)
            if not self._is_current(epoch, address):
                return False
            if status is None or not status.exists:
                self._set(is_authenticating=False)
                return False

        self._set(phase=AuthPhase.SIGNING_IN)
        logger.info("attempting sign in for %s", address)

        try:
            nonce = await self.api.get_nonce()
            if not self._is_current(epoch, address):
                return False
            challenge = build_challenge(address, self.wallet.chain_id, nonce)
            signature = await self.wallet.sign_message(challenge.text)
            if not self._is_current(epoch, address):
                return False
            result = await self.api.sign_in(challenge.text, signature)
        except ProfileRequiredError:
            if self._is_current(epoch, address):
                self._set(
                    is_authenticating=False,
                    user_exists=False,
                    phase=AuthPhase.NEEDS_SETUP,
                    server_error=False,
                    last_failure=AuthFailure.SETUP_REQUIRED,
                )
            return False
        except NetworkError as e:
            if self._is_current(epoch, address):
                logger.warning("sign in failed: %s", e.message)
                self._set(
                    is_authenticating=False,
                    phase=self._connected_phase(),
                    server_error=True,
                    last_failure=AuthFailure.SERVICE_UNAVAILABLE,
                )
            return False
        except (Unauthenticated, InvalidInputError) as e:
            if self._is_current(epoch, address):
                logger.warning("sign in rejected: %s", e.message)
                self._set(
                    is_authenticating=False,
                    phase=self._connected_phase(),
                    server_error=False,
                    last_failure=AuthFailure.SIGNIN_FAILED,
                )
            return False
        except Exception:
            # the wallet refused or failed to sign
            logger.exception("sign in aborted")
            if self._is_current(epoch, address):
                self._set(
                    is_authenticating=False,
                    phase=self._connected_phase(),
                    last_failure=AuthFailure.SIGNIN_FAILED,
                )
            return False

        if not self._is_current(epoch, address):
            logger.info("discarding sign-in result for %s, identity changed", address)
            await self._revoke_quietly(result.token)
            return False

        self._token = result.token
        self.credentials.store(result.token)
        self.cache.write(True, result.address, True)
        self._set(
            phase=AuthPhase.AUTHENTICATED,
            is_authenticated=True,
            is_authenticating=False,
            user_address=result.address.lower(),
            user_exists=True,
            server_error=False,
            last_failure=None,
            last_cache_check=self.clock(),
        )
        logger.info("sign in successful for %s", result.address)
        return True

    def _drop_local_session(self) -> None:
        self._bump_epoch()
        self._token = None
        self.credentials.clear()
        self.cache.clear()
        self._set(
            phase=self._connected_phase(),
            is_authenticated=False,
            is_authenticating=False,
            is_checking_user=False,
            user_address=None,
            last_cache_check=self.clock(),
        )

    async def _revoke_quietly(self, token: str) -> bool:
        try:
            await self.api.sign_out(token)
        except WalletAuthError as e:
            logger.warning("could not invalidate session on server: %s", e.message)
            return False
        return True

    async def sign_out(self) -> None:
        """
        Forget the session locally, then delete it on the server (best effort).

        Local state is cleared first and unconditionally; anything still in
        flight for the old identity is discarded when it returns.
        """
        token = self._token or self.credentials.peek()
        keep_profile = self._wallet_address is not None and self._state.is_authenticated
        self._drop_local_session()
        self._set(
            user_exists=keep_profile,
            phase=AuthPhase.READY if keep_profile else self._connected_phase(),
            server_error=False,
            last_failure=None,
        )

        if token:
            if not await self._revoke_quietly(token):
                self._set(server_error=True)
        logger.info("logged out")

    # ---------- consumers -----------------------------------------------------
    def auth_headers(self) -> Dict[str, str]:
        """Authorization header for protected calls; empty once the credential expired."""
        token = self.credentials.load()
        if token is None:
            if self._state.is_authenticated:
                logger.info("credential expired, clearing auth state")
                self._drop_local_session()
            return {}
        return {"Authorization": f"Bearer {token}"}

    def guard_protected(self) -> RouteDecision:
        state = self._state
        if state.is_authenticating:
            return RouteDecision.LOADING
        if not state.is_authenticated:
            return RouteDecision.REDIRECT_HOME
        if not state.user_exists:
            return RouteDecision.REDIRECT_SETUP
        return RouteDecision.ALLOW

    def guard_setup(self) -> RouteDecision:
        state = self._state
        if state.is_checking_user or state.is_authenticating:
            return RouteDecision.LOADING
        if self._wallet_address is None:
            return RouteDecision.REDIRECT_HOME
        if state.is_authenticated and state.user_exists:
            return RouteDecision.REDIRECT_APP
        if state.user_exists:
            return RouteDecision.REDIRECT_HOME
        return RouteDecision.ALLOW

    def user_message(self) -> Optional[str]:
        if self._state.last_failure is None:
            return None
        return FAILURE_MESSAGES[self._state.last_failure]
