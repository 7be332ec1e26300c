from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import uuid

from fastapi import APIRouter, Depends
from fastapi.security import APIKeyHeader
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from ..errors import AuthError, TokenError, ValidationError
from ..schemas import UserRecord
from ..settings import settings
from ..store import LessonStore, get_store

router = APIRouter(prefix="/api/auth", tags=["auth"])

logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(
	schemes=["sha256_crypt"],
	deprecated="auto",
	sha256_crypt__default_rounds=settings.password_hash_rounds,
)
# Raw header; any scheme word is accepted and the token after it is verified
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)



class Credentials(BaseModel):
	username: Optional[str] = None
	password: Optional[str] = None


class TokenResponse(BaseModel):
	token: str
	username: str


class User(BaseModel):
	id: str
	username: str


def hash_password(password: str) -> str:
	return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(plain_password, hashed_password)


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		# Cap at far future but within datetime bounds
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = {"id": user.id, "username": user.username, "exp": _resolve_expiry(expires_delta)}
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> User:
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		raise TokenError("Invalid token")
	user_id = payload.get("id")
	username = payload.get("username")
	if user_id is None or username is None:
		raise TokenError("Invalid token")
	return User(id=str(user_id), username=username)


def get_current_user(authorization: Optional[str] = Depends(authorization_header)) -> User:
	parts = (authorization or "").split(None, 1)
	token = parts[1].strip() if len(parts) == 2 else ""
	if not token:
		raise AuthError("Token required")
	return decode_access_token(token)


def authenticate_user(store: LessonStore, username: str, password: str) -> Optional[User]:
	record = store.get_user(username)
	if record and verify_password(password, record.password_hash):
		return User(id=record.id, username=record.username)
	return None


def _required(req: Credentials) -> tuple[str, str]:
	username = (req.username or "").strip()
	password = req.password or ""
	if not username or not password:
		raise ValidationError("Missing fields")
	return username, password


@router.post("/register", response_model=TokenResponse)
async def register(req: Credentials, store: LessonStore = Depends(get_store)):
	username, password = _required(req)
	if store.get_user(username):
		raise ValidationError("User exists")
	record = UserRecord(id=uuid.uuid4().hex, username=username, password_hash=hash_password(password))
	store.add_user(record)
	user = User(id=record.id, username=record.username)
	return TokenResponse(token=create_access_token(user), username=user.username)


@router.post("/login", response_model=TokenResponse)
async def login(req: Credentials, store: LessonStore = Depends(get_store)):
	user = authenticate_user(store, (req.username or "").strip(), req.password or "")
	if not user:
		raise AuthError("Invalid credentials")
	return TokenResponse(token=create_access_token(user), username=user.username)


@router.get("/me", response_model=User)
async def me(user: User = Depends(get_current_user)):
	return user
