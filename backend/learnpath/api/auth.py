"""Auth API — signup, login, logout, current user."""
from __future__ import annotations
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, Field

from learnpath.core.config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from learnpath.persistence.db import get_connection

router = APIRouter(prefix="/auth", tags=["auth"])

_bearer = HTTPBearer(auto_error=False)


# ------------------------------------------------------------------
# Password hashing
# ------------------------------------------------------------------
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class CredentialsBody(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6, max_length=72)


# ------------------------------------------------------------------
# JWT helpers
# ------------------------------------------------------------------
def _create_token(user_id: str, email: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode({"sub": user_id, "email": email, "exp": expire}, SECRET_KEY, algorithm=ALGORITHM)


def _decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}")


# ------------------------------------------------------------------
# Dependencies: the learner id every roadmap operation needs
# ------------------------------------------------------------------
def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> dict:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return _decode_token(credentials.credentials)


def optional_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> Optional[dict]:
    if not credentials:
        return None
    try:
        return _decode_token(credentials.credentials)
    except HTTPException:
        return None


# ------------------------------------------------------------------
# DB helpers
# ------------------------------------------------------------------
def _get_user_by_email(email: str) -> Optional[dict]:
    conn = get_connection()
    row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
    conn.close()
    return dict(row) if row else None


def _get_user_by_id(user_id: str) -> Optional[dict]:
    conn = get_connection()
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    conn.close()
    return dict(row) if row else None


def _serialize_user(user: dict) -> dict:
    return {"id": user["id"], "email": user["email"], "created_at": user["created_at"]}


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------
@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(body: CredentialsBody):
    email = body.email.strip().lower()
    if _get_user_by_email(email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = {
        "id": str(uuid.uuid4()),
        "email": email,
        "password_hash": hash_password(body.password),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    conn = get_connection()
    conn.execute(
        "INSERT INTO users (id, email, password_hash, created_at) VALUES (:id, :email, :password_hash, :created_at)",
        user,
    )
    conn.commit()
    conn.close()
    return {"token": _create_token(user["id"], email), "user": _serialize_user(user)}


@router.post("/login")
def login(body: CredentialsBody):
    user = _get_user_by_email(body.email.strip().lower())
    if not user or not verify_password(body.password, user["password_hash"]):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return {"token": _create_token(user["id"], user["email"]), "user": _serialize_user(user)}


@router.post("/logout")
def logout(current_user: dict = Depends(get_current_user)):
    # Stateless JWT — the client discards the token.
    return {"detail": "Logged out successfully"}


@router.get("/me")
def me(current_user: dict = Depends(get_current_user)):
    user = _get_user_by_id(current_user["sub"])
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return _serialize_user(user)
