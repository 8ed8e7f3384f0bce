# codearena/auth.py
from fastapi import Header, HTTPException
from jose import JWTError, jwt

from codearena.config import JWT_ALGORITHM, JWT_SECRET_KEY


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or Expired Token")


def create_token(user_id: str, role: str = "learner", extra: dict = None) -> str:
    """Mint a bearer token (used by tests and local tooling; production tokens come from the auth service)"""
    return jwt.encode({"sub": user_id, "role": role, **(extra or {})}, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_token(authorization: str = Header(None)) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")

    payload = decode_token(authorization.split(" ", 1)[1])
    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid or Expired Token")
    return payload  # Contains sub (user_id) and role
