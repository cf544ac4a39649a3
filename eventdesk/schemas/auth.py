from typing import Literal

from pydantic import BaseModel

Role = Literal["admin", "eventManager", "center", "customer"]


class LoginRequest(BaseModel):
    username: str
    password: str


class UserOut(BaseModel):
    id: int
    username: str
    email: str
    name: str | None = None
    role: Role


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
