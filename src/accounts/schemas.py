"""Request and response bodies of the account API."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr


class UserData(BaseModel):
    """User fields accepted in request bodies."""

    name: StrictStr = Field(..., min_length=1, description="Display name")
    email: StrictStr = Field(..., min_length=1, description="Unique email address")
    institute: StrictStr = Field("", description="Affiliation")
    admin: StrictBool = Field(False, description="Grant elevated privileges")


class CreateUserRequest(BaseModel):
    """Request body for creating or updating a user.

    On update an empty password leaves the stored password unchanged.
    """

    user: UserData
    password: StrictStr = ""


class UserResponse(BaseModel):
    """Serialized user account. Never carries password material."""

    id: int
    name: str
    email: str
    institute: str
    admin: bool

    model_config = ConfigDict(from_attributes=True)


class UsersResponse(BaseModel):
    users: List[UserResponse]
