import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from moviegroups.domain.models import User
from moviegroups.db.database import get_db
from moviegroups.exceptions.auth import InvalidCredentialsException
from moviegroups.repositories import SQLAlchemyUserRepo
from moviegroups.service.auth_service import AuthService

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def _user_from_token(token: str, request: Request, db: Session) -> User:
    auth_service = AuthService(SQLAlchemyUserRepo(db), request.app.state.config)
    try:
        return auth_service.get_user_from_token(token)
    except InvalidCredentialsException as e:
        logger.info(f"Rejected bearer token on {request.method} {request.url.path}: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_current_user(request: Request, token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    return _user_from_token(token, request, db)


def get_optional_user(request: Request, token: Optional[str] = Depends(optional_oauth2_scheme),
                      db: Session = Depends(get_db)) -> Optional[User]:
    """Caller identity when a bearer token was sent, None for anonymous requests.

    A token that is present but invalid is still rejected.
    """
    if not token:
        return None
    return _user_from_token(token, request, db)
