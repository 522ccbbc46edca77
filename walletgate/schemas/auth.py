from typing import Optional

from pydantic import BaseModel, Field

from walletgate.schemas.my_base_model import CustomBaseModel


class NonceResponse(CustomBaseModel):
    """Response model for nonce generation - output"""

    nonce: str = ""


class SignInRequest(BaseModel):
    """Request model for wallet sign-in - input validation"""

    message: str = Field(..., description="Challenge text that was signed")
    signature: str = Field(..., description="EIP-191 signature of the message")


class SignInResponse(CustomBaseModel):
    """Response model for a successful sign-in - output"""

    success: bool = True
    token: str
    token_type: str = Field("bearer", serialization_alias="tokenType")
    address: str
    expires_at: int = Field(0, serialization_alias="expiresAt")


class CheckUserResponse(CustomBaseModel):
    """Response model for the profile status of a wallet"""

    exists: bool = False
    can_sign_in: bool = Field(False, serialization_alias="canSignIn")
    needs_setup: bool = Field(True, serialization_alias="needsSetup")
    address: str = ""


class MeResponse(CustomBaseModel):
    """Response model for the current session"""

    authenticated: bool = True
    address: str = ""
    expires_at: Optional[int] = Field(None, serialization_alias="expiresAt")


class SignOutResponse(CustomBaseModel):
    success: bool = True
    message: str = "Signed out successfully"
