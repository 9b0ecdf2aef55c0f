import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from moviegroups.domain.dto import UserCreate, UserResponse
from moviegroups.service.dependencies import get_auth_service
from moviegroups.service.auth_service import AuthService
from moviegroups.exceptions.auth import UserAlreadyExistsException, InvalidCredentialsException

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={401: {"description": "Invalid credentials"}}
)


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserCreate,
    auth_service: AuthService = Depends(get_auth_service)
):
    try:
        user = auth_service.register_user(user_data.username, user_data.email, user_data.password)
    except UserAlreadyExistsException as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message
        )

    logger.info(f"Registered user {user.id} ({user.username})")
    return {
        "success": True,
        "data": UserResponse(id=user.id, username=user.username, email=user.email)
    }


@router.post("/login")
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    auth_service: AuthService = Depends(get_auth_service)
):
    try:
        user, access_token = auth_service.authenticate_user(form_data.username, form_data.password)
    except InvalidCredentialsException as e:
        logger.warning(f"Rejected login for '{form_data.username}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"}
        )

    logger.info(f"User {user.id} signed in")
    # token fields stay top level so OAuth2 password-flow clients can read them
    return {"success": True, "access_token": access_token, "token_type": "bearer"}
