from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    admin_id: int


class AdminOut(BaseModel):
    id: int
    username: str
    full_name: str | None = None
    department: str | None = None
    is_super_admin: bool

    model_config = {"from_attributes": True}
