"""Auth routes: registration, login and the current profile."""

from fastapi import APIRouter, Depends, Request
from loguru import logger

from promaallem.application.use_cases.accounts import AccountsUseCase
from promaallem.domain.models import Identity
from promaallem.presentation.dependencies import get_current_identity
from promaallem.presentation.schemas import (
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
    error_responses,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=201,
    responses=error_responses(400, 500),
)
async def register(body: RegisterRequest, request: Request):
    """Create an account and its profile (``role`` is 'client' or 'maallem')."""
    uc: AccountsUseCase = request.app.state.accounts_uc

    session = await uc.register(
        email=body.email,
        password=body.password,
        role=body.role,
        full_name=body.full_name,
        phone=body.phone,
        city=body.city,
    )

    logger.info("POST /api/auth/register | user={} role={}", session.identity.id, body.role)
    return RegisterResponse(
        user=UserResponse(id=session.identity.id, email=session.identity.email),
        token=session.token,
    )


@router.post("/login", response_model=LoginResponse, responses=error_responses(400, 401))
async def login(body: LoginRequest, request: Request):
    """Exchange email and password for a bearer token."""
    uc: AccountsUseCase = request.app.state.accounts_uc

    session = await uc.login(email=body.email, password=body.password)

    logger.info("POST /api/auth/login | user={}", session.identity.id)
    return LoginResponse(
        token=session.token,
        user=UserResponse(id=session.identity.id, email=session.identity.email),
    )


@router.get("/me", response_model=ProfileResponse, responses=error_responses(401))
async def me(request: Request, identity: Identity = Depends(get_current_identity)):
    """Return the profile of the authenticated user."""
    uc: AccountsUseCase = request.app.state.accounts_uc
    profile = await uc.profile(identity)
    return ProfileResponse(
        id=profile.id,
        role=profile.role,
        full_name=profile.full_name,
        phone=profile.phone,
        city=profile.city,
        rating=profile.rating,
        avatar_url=profile.avatar_url,
        is_available=profile.is_available,
    )
