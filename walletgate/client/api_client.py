"""HTTP client for the wallet authentication endpoints."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from walletgate.core.config import settings
from walletgate.core.errors import NetworkError, ProfileRequiredError, Unauthenticated

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserStatus:
    exists: bool
    needs_setup: bool
    address: str


@dataclass(frozen=True)
class SignInResult:
    token: str
    address: str
    expires_at: int


class AuthApiClient:
    """
    Thin async wrapper over /auth/*.

    Every call honours the configured timeout. Timeouts and transport failures
    become NetworkError; 401 becomes Unauthenticated; 403 with needsSetup
    becomes ProfileRequiredError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = settings.CLIENT_TIMEOUT_SECONDS if timeout is None else timeout
        self._client = client or httpx.AsyncClient(timeout=self.timeout)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = await self._client.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out", method, path)
            raise NetworkError("Request timed out") from e
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise NetworkError("Service unavailable") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code == 401:
            raise Unauthenticated("rejected", data.get("error") or "Authentication required")
        if response.status_code == 403 and data.get("needsSetup"):
            raise ProfileRequiredError(data.get("address") or "", data.get("error"))
        if response.is_error:
            raise NetworkError(
                data.get("error") or f"HTTP {response.status_code}",
                response_status=response.status_code,
            )
        return data

    async def get_nonce(self) -> str:
        data = await self._request("GET", "/auth/nonce")
        return data["nonce"]

    async def check_user(self, address: str) -> UserStatus:
        data = await self._request("GET", "/auth/check-user", params={"address": address})
        exists = bool(data.get("exists", False))
        return UserStatus(
            exists=exists,
            needs_setup=bool(data.get("needsSetup", not exists)),
            address=data.get("address", address.lower()),
        )

    async def sign_in(self, message: str, signature: str) -> SignInResult:
        data = await self._request("POST", "/auth/signin", json={"message": message, "signature": signature})
        return SignInResult(
            token=data["token"],
            address=data["address"],
            expires_at=int(data.get("expiresAt", 0)),
        )

    async def me(self, token: str) -> str:
        data = await self._request("GET", "/auth/me", token=token)
        return data["address"]

    async def sign_out(self, token: str) -> None:
        await self._request("POST", "/auth/signout", token=token)
