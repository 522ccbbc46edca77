import logging
from enum import Enum
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from walletgate.core.dependencies import get_current_user, get_optional_user, get_profile_directory
from walletgate.core.errors import InvalidInputError, NotFoundError
from walletgate.core.evm_auth import normalize_address
from walletgate.models.users import User
from walletgate.services.credentials import VerifiedIdentity
from walletgate.services.profiles import ProfileDirectory, validate_unique_id
import walletgate.schemas.user as schemas

logger = logging.getLogger(__name__)

router = APIRouter()
group_tags: List[str | Enum] = ["user"]


"""
Profile setup endpoints.

A wallet must own a profile before it may sign in. The setup page creates it
with POST /user/create, which accepts an optional credential; without one the
wallet address comes from the request body.

table: users
columns:
    wallet_address: str (lower-cased, primary key)
    unique_id: str (unique, lower-cased, max 16)
    first_name / last_name: str
    organization_id: str (optional, references organizations)
"""


def _to_profile(user: User) -> schemas.UserProfile:
    return schemas.UserProfile(
        wallet_address=user.wallet_address,
        unique_id=user.unique_id,
        first_name=user.first_name,
        last_name=user.last_name,
        organization_id=user.organization_id,
        organization_name=user.organization.organization_name if user.organization else None,
        created_at=user.created_at,
    )


@router.get(
    "/exists",
    tags=group_tags,
    response_model=schemas.UserExistsResponse,
)
def user_exists(
    address: Optional[str] = Query(default=None, description="Wallet address (0x...)"),
    profiles: ProfileDirectory = Depends(get_profile_directory),
) -> schemas.UserExistsResponse:
    if not address:
        raise InvalidInputError("Wallet address is required")
    address = normalize_address(address)
    return schemas.UserExistsResponse(exists=profiles.exists(address), address=address)


@router.get(
    "/unique-id/check",
    tags=group_tags,
    response_model=schemas.UniqueIdCheckResponse,
)
def check_unique_id(
    id: Optional[str] = Query(default=None, description="Unique id to check"),
    profiles: ProfileDirectory = Depends(get_profile_directory),
) -> schemas.UniqueIdCheckResponse:
    if not id:
        raise InvalidInputError("Unique ID is required")
    unique_id = validate_unique_id(id)
    return schemas.UniqueIdCheckResponse(
        available=profiles.is_unique_id_available(unique_id),
        unique_id=unique_id,
    )


@router.get(
    "/organization/check",
    tags=group_tags,
    response_model=schemas.OrganizationCheckResponse,
)
def check_organization(
    id: Optional[str] = Query(default=None, description="Organization id to check"),
    profiles: ProfileDirectory = Depends(get_profile_directory),
) -> schemas.OrganizationCheckResponse:
    if not id:
        raise InvalidInputError("Organization ID is required")
    return schemas.OrganizationCheckResponse(
        exists=profiles.organization_exists(id),
        organization_id=id.strip().lower(),
    )


@router.get(
    "/organizations",
    tags=group_tags,
    response_model=schemas.OrganizationListResponse,
)
def list_organizations(
    profiles: ProfileDirectory = Depends(get_profile_directory),
) -> schemas.OrganizationListResponse:
    organizations = [
        schemas.OrganizationItem(
            organization_id=org.organization_id,
            organization_name=org.organization_name,
        )
        for org in profiles.list_organizations()
    ]
    return schemas.OrganizationListResponse(organizations=organizations)


@router.get(
    "/profile",
    tags=group_tags,
    response_model=schemas.ProfileResponse,
)
def get_profile(
    identity: VerifiedIdentity = Depends(get_current_user),
    profiles: ProfileDirectory = Depends(get_profile_directory),
) -> schemas.ProfileResponse:
    """Profile of the signed-in wallet."""
    user = profiles.get(identity.address)
    if user is None:
        raise NotFoundError("User profile not found", exists=False)
    return schemas.ProfileResponse(user=_to_profile(user), exists=True)


@router.post(
    "/create",
    tags=group_tags,
    response_model=schemas.CreateUserResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_user(
    body: schemas.CreateUserRequest,
    identity: Optional[VerifiedIdentity] = Depends(get_optional_user),
    profiles: ProfileDirectory = Depends(get_profile_directory),
) -> schemas.CreateUserResponse:
    """
    Create the one-time profile for a wallet.

    The address is taken from the credential when one is sent, otherwise from
    wallet_address in the body.
    """
    address = identity.address if identity else body.wallet_address
    if not address:
        raise InvalidInputError("Wallet address is required for user creation")

    user = profiles.create(
        address=address,
        unique_id=body.unique_id,
        first_name=body.first_name,
        last_name=body.last_name,
        organization_id=body.organization_id,
    )
    return schemas.CreateUserResponse(user=_to_profile(user))
