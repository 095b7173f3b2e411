import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Optional, Tuple

import bcrypt
from jose import jwt, JWTError
from fastapi import HTTPException, status

from app.core.config import settings
from app.models.user import User, RoleEnum, ClientProfile, TrainerProfile
from app.repositories.user_repository import UserRepository
from app.schemas.auth import UserLogin, UserRegister

logger = logging.getLogger(__name__)

# No 0/O, 1/l/I
PASSWORD_UPPER = "ABCDEFGHJKLMNPQRSTUVWXYZ"
PASSWORD_LOWER = "abcdefghijkmnopqrstuvwxyz"
PASSWORD_DIGITS = "23456789"
PASSWORD_SYMBOLS = "!@#$%&*?"


def generate_temporary_password(length: int = 12) -> str:
    """Random password with at least one upper, lower, digit and symbol."""
    if length < 4:
        raise ValueError("length must be at least 4")
    pools = [PASSWORD_UPPER, PASSWORD_LOWER, PASSWORD_DIGITS, PASSWORD_SYMBOLS]
    alphabet = "".join(pools)
    chars = [secrets.choice(pool) for pool in pools]
    chars += [secrets.choice(alphabet) for _ in range(length - len(pools))]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def parse_role(value: Optional[str]) -> RoleEnum:
    if not value:
        return RoleEnum.client
    try:
        return RoleEnum(value.strip().upper())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Rol inválido. Valores permitidos: TRAINER, CLIENT, ADMIN",
        )


class AuthService:
    def __init__(self):
        self.SECRET_KEY = settings.SECRET_KEY
        self.REFRESH_SECRET_KEY = settings.REFRESH_SECRET_KEY
        self.ALGORITHM = settings.ALGORITHM
        self.ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
        self.REFRESH_TOKEN_EXPIRE_DAYS = settings.REFRESH_TOKEN_EXPIRE_DAYS

    def hash_password(self, password: str) -> str:
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
        return hashed.decode("utf-8")

    def verify_password(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        if not plain_password or not hashed_password:
            return False
        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            # Stored value is not a bcrypt hash
            return False

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        expire = datetime.utcnow() + (expires_delta or timedelta(minutes=self.ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, self.SECRET_KEY, algorithm=self.ALGORITHM)

    def create_refresh_token(self, data: dict) -> str:
        to_encode = data.copy()
        expire = datetime.utcnow() + timedelta(days=self.REFRESH_TOKEN_EXPIRE_DAYS)
        # jti keeps two tokens issued in the same second distinct
        to_encode.update({"exp": expire, "jti": secrets.token_hex(8)})
        return jwt.encode(to_encode, self.REFRESH_SECRET_KEY, algorithm=self.ALGORITHM)

    def decode_access_token(self, token: str) -> Optional[dict]:
        try:
            return jwt.decode(token, self.SECRET_KEY, algorithms=[self.ALGORITHM])
        except JWTError:
            return None

    def _decode_refresh_token(self, token: str) -> Optional[int]:
        try:
            payload = jwt.decode(token, self.REFRESH_SECRET_KEY, algorithms=[self.ALGORITHM])
        except JWTError:
            return None
        user_id = payload.get("sub")
        return int(user_id) if user_id is not None else None

    async def issue_tokens(self, repo: UserRepository, user: User) -> Tuple[str, str]:
        """Create an access/refresh pair and store the refresh token on the user."""
        claims = {"sub": str(user.id), "role": user.role.value}
        access_token = self.create_access_token(claims)
        refresh_token = self.create_refresh_token({"sub": str(user.id)})
        await repo.save_refresh_token(
            user,
            refresh_token,
            datetime.utcnow() + timedelta(days=self.REFRESH_TOKEN_EXPIRE_DAYS),
        )
        return access_token, refresh_token

    async def authenticate_user(self, repo: UserRepository, login_data: UserLogin) -> Optional[User]:
        user = await repo.get_by_email(login_data.email)
        if not user or not self.verify_password(login_data.password, user.password):
            return None
        return user

    async def register_user(self, repo: UserRepository, user_data: UserRegister) -> User:
        if await repo.get_by_email(user_data.email):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Ya existe un usuario con este email",
            )

        role = parse_role(user_data.role)
        new_user = User(
            name=user_data.name,
            email=user_data.email.lower(),
            password=self.hash_password(user_data.password),
            role=role,
            phone=user_data.phone,
            is_active=True,
            created_at=datetime.utcnow(),
        )
        if role == RoleEnum.client:
            new_user.client_profile = ClientProfile(phone=user_data.phone)
        elif role == RoleEnum.trainer:
            new_user.trainer_profile = TrainerProfile(phone=user_data.phone)

        created = await repo.create_user(new_user)
        logger.info("Registered user %s with role %s", created.id, role.value)
        return created

    async def rotate_refresh_token(self, repo: UserRepository, refresh_token: str) -> Optional[Tuple[User, str, str]]:
        """
        Exchange a refresh token for a new pair.

        A correctly signed token that no longer matches the stored one has
        already been used: the owner's refresh token is revoked.
        """
        user_id = self._decode_refresh_token(refresh_token)
        if user_id is None:
            return None

        user = await repo.get_by_refresh_token(refresh_token)
        if user is None:
            victim = await repo.get_by_id(user_id)
            if victim is not None:
                logger.warning("Refresh token reuse detected for user %s", user_id)
                await repo.revoke_refresh_token(victim)
            return None

        if not user.refresh_token_expires or user.refresh_token_expires < datetime.utcnow():
            return None

        access_token, new_refresh_token = await self.issue_tokens(repo, user)
        return user, access_token, new_refresh_token

    async def logout_user(self, repo: UserRepository, refresh_token: str) -> bool:
        user_id = self._decode_refresh_token(refresh_token)
        if user_id is None:
            return False
        user = await repo.get_by_id(user_id)
        if user is None:
            return False
        await repo.revoke_refresh_token(user)
        return True


auth_service = AuthService()
