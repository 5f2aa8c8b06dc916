from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from dealhub.deps import get_current_tenant, get_db
from dealhub.models.tenant import Tenant
from dealhub.services.users import register_user

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=200)


class RegisteredUserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    points: int

    model_config = {"from_attributes": True}


@router.post("/register", response_model=RegisteredUserResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
):
    return register_user(db, tenant.id, payload.email, payload.name, payload.password)
