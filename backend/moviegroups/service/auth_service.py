import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from moviegroups.config import AppConfig
from moviegroups.domain.dto import TokenData
from moviegroups.domain.models import User
from moviegroups.repositories import UserRepository
from moviegroups.exceptions.auth import UserAlreadyExistsException, InvalidCredentialsException
from moviegroups.exceptions.repository import DuplicateEntityException

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class AuthService:
    """Accounts, password checks and the bearer tokens handed out at login."""

    def __init__(self, user_repository: UserRepository, config: AppConfig):
        self.user_repository = user_repository
        self.config = config

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        return pwd_context.hash(password)

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        if expires_delta is None:
            expires_delta = timedelta(minutes=self.config.jwt_access_token_expire_minutes)

        issued_at = datetime.now(timezone.utc)
        claims = {**data, "iat": issued_at, "exp": issued_at + expires_delta}
        return jwt.encode(claims, self.config.jwt_secret_key, algorithm=self.config.jwt_algorithm)

    def decode_access_token(self, token: str) -> TokenData:
        """Validate signature and expiry, returning the user id carried in `sub`."""
        try:
            payload = jwt.decode(token, self.config.jwt_secret_key, algorithms=[self.config.jwt_algorithm])
            subject = payload.get("sub")
            if subject is None:
                raise InvalidCredentialsException("Token has no subject")
            return TokenData(user_id=int(subject))
        except (JWTError, ValueError) as e:
            raise InvalidCredentialsException(f"Invalid access token: {str(e)}")

    def get_user_from_token(self, token: str) -> User:
        token_data = self.decode_access_token(token)
        user = self.user_repository.get_by_id(token_data.user_id)
        if user is None or not user.is_active:
            raise InvalidCredentialsException(f"User {token_data.user_id} is unknown or deactivated")
        return user

    def register_user(self, username: str, email: str, password: str) -> User:
        if self.user_repository.get_by_username(username):
            raise UserAlreadyExistsException("User with this username already exists")

        if self.user_repository.get_by_email(email):
            raise UserAlreadyExistsException("User with this email already exists")

        user = User(
            username=username,
            email=email,
            hashed_password=self.get_password_hash(password),
            is_active=True,
            is_admin=False,
            created_at=datetime.now()
        )

        try:
            return self.user_repository.create(user)
        except DuplicateEntityException as e:
            logger.info(f"Registration of '{username}' lost a uniqueness race: {str(e)}")
            raise UserAlreadyExistsException("User already exists with these credentials")

    def authenticate_user(self, username: str, password: str) -> tuple[User, str]:
        user = self.user_repository.get_by_username(username)

        if not user or not user.is_active or not self.verify_password(password, user.hashed_password):
            raise InvalidCredentialsException("Invalid username or password")

        access_token = self.create_access_token(data={"sub": str(user.id)})
        return user, access_token
