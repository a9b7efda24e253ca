from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from backend.auth.dependencies import (
    authenticate,
    get_auth_service,
    get_bearer_token,
    require_admin,
)
from backend.core import responses
from backend.services.auth_service import AuthService, SessionUser

router = APIRouter(tags=['auth'])


class CredentialsRequest(BaseModel):
    # Optional so a missing field reaches the service's own validation message.
    email: str | None = None
    password: str | None = None


class RegisterRequest(CredentialsRequest):
    first_name: str | None = Field(default=None, alias='firstName')
    last_name: str | None = Field(default=None, alias='lastName')
    role: str | None = None

    class Config:
        populate_by_name = True


@router.post('/login')
def login(data: CredentialsRequest, auth_service: AuthService = Depends(get_auth_service)):
    result = auth_service.login(data.email, data.password)
    return responses.success(result, 'Login successful')


@router.post('/initialize-admin')
def initialize_admin(data: CredentialsRequest, auth_service: AuthService = Depends(get_auth_service)):
    admin = auth_service.create_initial_admin(data.email, data.password)
    return responses.created(admin, 'Admin user created successfully')


@router.post('/logout')
def logout(
    token: str = Depends(get_bearer_token),
    current_user: SessionUser = Depends(authenticate),
    auth_service: AuthService = Depends(get_auth_service),
):
    auth_service.logout(token)
    return responses.success(message='Logged out successfully')


@router.get('/profile')
def profile(current_user: SessionUser = Depends(authenticate)):
    return responses.success(current_user, 'Profile retrieved successfully')


@router.post('/register')
def register(
    data: RegisterRequest,
    current_user: SessionUser = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service),
):
    user = auth_service.register(
        data.email,
        data.password,
        first_name=data.first_name,
        last_name=data.last_name,
        role=data.role,
        caller=current_user,
    )
    return responses.created(user, 'User registered successfully')
