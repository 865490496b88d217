from pydantic import BaseModel, ConfigDict, Field, field_validator

from typing import List, Optional


class UserCreate(BaseModel):
    name: Optional[str] = None
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    role: Optional[str] = None
    projects: Optional[List[str]] = None

    @field_validator("projects")
    @classmethod
    def unique_projects(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """Projects behave as a set; keep first occurrence order."""
        if v is None:
            return v
        return list(dict.fromkeys(v))


class UserLogin(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    project: str = Field(..., min_length=1)


class RegistrationResponse(BaseModel):
    success: bool = True
    message: str
    userId: int


class LoginResponse(BaseModel):
    success: bool = True
    username: str
    project_url: str
    access_token: str
    token_type: str = "bearer"


class PasswordUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_password: str = Field(..., min_length=1, alias="newPassword")


class NameUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_name: str = Field(..., min_length=1, alias="newName")


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: Optional[str] = None
    username: str
    email: str
    role: str
    projects: List[str]


class NameUpdateResponse(BaseModel):
    success: bool = True
    message: str
    updatedUser: UserOut


class MessageResponse(BaseModel):
    success: bool = True
    message: str
