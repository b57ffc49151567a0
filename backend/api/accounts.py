from fastapi import APIRouter, Depends, status

from auth import Identity, get_current_identity
from dependencies import Services, get_services
from schemas import (
    AdminLoginRequest,
    AuthResponse,
    LoginRequest,
    MeResponse,
    SignupRequest,
    TokenResponse,
)

router = APIRouter(prefix="/api", tags=["accounts"])


@router.post("/auth/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupRequest,
    services: Services = Depends(get_services),
) -> AuthResponse:
    token, user = await services.accounts.signup(payload)
    return AuthResponse(token=token, user=user)


@router.post("/auth/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    services: Services = Depends(get_services),
) -> AuthResponse:
    token, user = await services.accounts.login(payload.email, payload.password)
    return AuthResponse(token=token, user=user)


@router.get("/auth/me", response_model=MeResponse)
async def read_me(
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services),
) -> MeResponse:
    return MeResponse(user=await services.accounts.me(identity))


@router.post("/admin/login", response_model=TokenResponse)
async def admin_login(
    payload: AdminLoginRequest,
    services: Services = Depends(get_services),
) -> TokenResponse:
    return TokenResponse(token=await services.accounts.admin_login(payload.password))
