"""
Esquemas Pydantic para registro y login local.

- Email normalizado a minúsculas.
"""
from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterPayload(BaseModel):
    username: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: EmailStr) -> str:
        return str(v).lower()

    @field_validator("username")
    @classmethod
    def _strip_username(cls, v: str) -> str:
        return v.strip()


class LoginPayload(BaseModel):
    email: EmailStr
    password: str


class TokenOut(BaseModel):
    id: str
    username: str
    access_token: str
    token_type: str = "bearer"
