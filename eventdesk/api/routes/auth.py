from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from eventdesk.core.security import create_access_token, get_current_user, verify_password
from eventdesk.database import get_db
from eventdesk.models import User
from eventdesk.schemas.auth import LoginRequest, LoginResponse, UserOut

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    username = payload.username.strip().lower()
    user = db.query(User).filter(User.username == username).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    out = UserOut(id=user.id, username=user.username, email=user.email, name=user.name, role=user.role)
    token = create_access_token(str(user.id), {"username": user.username, "role": user.role})
    return LoginResponse(access_token=token, user=out)


@router.get("/me", response_model=UserOut)
async def me(current: dict = Depends(get_current_user), db: Session = Depends(get_db)) -> UserOut:
    user = db.query(User).filter(User.id == current["id"]).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return UserOut(id=user.id, username=user.username, email=user.email, name=user.name, role=user.role)
