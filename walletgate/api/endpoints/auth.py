import logging
from enum import Enum
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query, status

from walletgate.core.challenge import parse_challenge
from walletgate.core.config import settings
from walletgate.core.dependencies import (
    extract_bearer_token,
    get_credential_issuer,
    get_credential_verifier,
    get_current_user,
    get_nonce_registry,
    get_profile_directory,
)
from walletgate.core.errors import InvalidInputError, ProfileRequiredError, Unauthenticated
from walletgate.core.evm_auth import normalize_address, verify_signature
from walletgate.services.credentials import CredentialIssuer, CredentialVerifier, VerifiedIdentity
from walletgate.services.nonce_registry import NonceRegistry
from walletgate.services.profiles import ProfileDirectory
import walletgate.schemas.auth as schemas

logger = logging.getLogger(__name__)

router = APIRouter()
group_tags: List[str | Enum] = ["Auth"]


@router.get(
    "/nonce",
    tags=group_tags,
    response_model=schemas.NonceResponse,
    status_code=status.HTTP_200_OK,
)
def request_nonce(nonces: NonceRegistry = Depends(get_nonce_registry)) -> schemas.NonceResponse:
    """Generate and record a single-use nonce for the sign-in challenge."""
    nonce = nonces.issue()
    logger.debug("generated nonce for wallet authentication")
    return schemas.NonceResponse(nonce=nonce)


@router.get(
    "/check-user",
    tags=group_tags,
    response_model=schemas.CheckUserResponse,
)
def check_user(
    address: Optional[str] = Query(default=None, description="Wallet address (0x...)"),
    profiles: ProfileDirectory = Depends(get_profile_directory),
) -> schemas.CheckUserResponse:
    """Tell the client whether the wallet has completed profile setup."""
    if not address:
        raise InvalidInputError("Wallet address is required")
    address = normalize_address(address)
    exists = profiles.exists(address)
    return schemas.CheckUserResponse(
        exists=exists,
        can_sign_in=exists,
        needs_setup=not exists,
        address=address,
    )


@router.post(
    "/signin",
    tags=group_tags,
    response_model=schemas.SignInResponse,
    status_code=status.HTTP_201_CREATED,
)
def sign_in(
    body: schemas.SignInRequest,
    profiles: ProfileDirectory = Depends(get_profile_directory),
    nonces: NonceRegistry = Depends(get_nonce_registry),
    issuer: CredentialIssuer = Depends(get_credential_issuer),
) -> schemas.SignInResponse:
    """
    Exchange a signed challenge for a session credential.

    Steps:
    - parse the challenge and check it is for this chain
    - profile must exist, otherwise 403 with needsSetup (the nonce stays unused)
    - the signature must recover to the address in the challenge
    - the nonce must have been issued here and not used before
    """
    if not body.message or not body.signature:
        raise InvalidInputError("Missing message or signature")

    challenge = parse_challenge(body.message)
    if challenge.chain_id != settings.CHAIN_ID:
        raise InvalidInputError("Unsupported chain id")

    address = challenge.address.lower()
    if not profiles.exists(address):
        logger.info("sign-in refused, profile setup required for %s", address)
        raise ProfileRequiredError(address)

    if not verify_signature(challenge.text, body.signature, challenge.address):
        logger.warning("sign-in refused, invalid signature for %s", address)
        raise Unauthenticated("signature", "Invalid signature")

    if not nonces.consume(challenge.nonce):
        logger.warning("sign-in refused, unknown or reused nonce for %s", address)
        raise Unauthenticated("nonce", "Nonce expired or already used")

    credential = issuer.issue(address)
    logger.info("user signed in: %s", address)
    return schemas.SignInResponse(
        token=credential.value,
        address=credential.subject_address,
        expires_at=credential.expires_at,
    )


@router.get(
    "/me",
    tags=group_tags,
    response_model=schemas.MeResponse,
)
def me(identity: VerifiedIdentity = Depends(get_current_user)) -> schemas.MeResponse:
    """Current session, 401 without a trusted credential."""
    return schemas.MeResponse(authenticated=True, address=identity.address, expires_at=identity.expires_at)


@router.post(
    "/signout",
    tags=group_tags,
    response_model=schemas.SignOutResponse,
)
def sign_out(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    verifier: CredentialVerifier = Depends(get_credential_verifier),
) -> schemas.SignOutResponse:
    """Delete the caller's session row; the credential is rejected from then on."""
    verifier.revoke(extract_bearer_token(authorization))
    return schemas.SignOutResponse()
