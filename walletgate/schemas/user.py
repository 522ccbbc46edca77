from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from walletgate.schemas.my_base_model import CustomBaseModel


class UserExistsResponse(CustomBaseModel):
    """Response model for profile existence"""

    exists: bool = False
    address: str = ""


class UniqueIdCheckResponse(CustomBaseModel):
    available: bool = False
    unique_id: str = Field("", serialization_alias="uniqueId")


class OrganizationCheckResponse(CustomBaseModel):
    exists: bool = False
    organization_id: str = Field("", serialization_alias="organizationId")


class OrganizationItem(CustomBaseModel):
    organization_id: str = ""
    organization_name: str = ""


class OrganizationListResponse(CustomBaseModel):
    organizations: List[OrganizationItem] = []


class UserProfile(CustomBaseModel):
    """User profile information"""

    wallet_address: str = ""
    unique_id: str = ""
    first_name: str = ""
    last_name: str = ""
    organization_id: Optional[str] = None
    organization_name: Optional[str] = None
    created_at: Optional[datetime] = None


class ProfileResponse(CustomBaseModel):
    """Response model for user profile"""

    user: UserProfile
    exists: bool = True


class CreateUserRequest(BaseModel):
    """Request model for profile creation - input validation"""

    unique_id: str = Field(..., description="Public handle, letters/numbers/underscore, max 16")
    first_name: str = Field(..., description="First name")
    last_name: str = Field(..., description="Last name")
    organization_id: Optional[str] = Field(None, description="Existing organization id")
    wallet_address: Optional[str] = Field(None, description="Wallet address when no credential is sent")


class CreateUserResponse(CustomBaseModel):
    success: bool = True
    user: UserProfile
    message: str = "User profile created successfully"
