from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from jose import jwt, ExpiredSignatureError, JWTError
from typing import Optional
from app.core.config import settings
from app.core.exceptions import TokenExpiredException, TokenInvalidException
import hashlib

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SESSION_PURPOSE = "session"
RESET_PURPOSE = "password_reset"


def hash_password(password: str) -> str:
    password_bytes = password.encode("utf-8")
    digest = hashlib.sha256(password_bytes).hexdigest()
    return pwd_context.hash(digest)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    digest = hashlib.sha256(plain_password.encode("utf-8")).hexdigest()
    return pwd_context.verify(digest, hashed_password)


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None,
                        purpose: str = SESSION_PURPOSE) -> str:
    to_encode = {"sub": str(subject), "purpose": purpose}
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str, purpose: str = SESSION_PURPOSE) -> dict:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise TokenExpiredException()
    except JWTError:
        raise TokenInvalidException()
    if payload.get("purpose", SESSION_PURPOSE) != purpose or not payload.get("sub"):
        raise TokenInvalidException()
    return payload
