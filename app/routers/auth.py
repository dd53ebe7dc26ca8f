"""
Authentication API endpoints (cookie sessions).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile
from starlette.concurrency import run_in_threadpool

from app.schemas.auth import (
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    RegisterRequest,
    UpdateProfileRequest,
    UpdateProfileResponse,
    UploadPictureResponse,
)
from auth.middleware import (
    CookieSettings,
    clear_session_cookie,
    get_auth_service,
    get_cookie_settings,
    require_session_token,
    set_session_cookie,
)
from auth.service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


# =============================================================================
# Routes
# =============================================================================

@router.post("/register", response_model=MessageResponse)
def register(
    body: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Register a new user account. Does not log in."""
    service.register(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    return MessageResponse(message="User registered successfully")


@router.post("/login", response_model=ProfileResponse)
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    cookies: CookieSettings = Depends(get_cookie_settings),
):
    """Login with email/password; sets the session cookie."""
    result = service.login(
        email=body.email,
        password=body.password,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    set_session_cookie(response, result.session.token, cookies)
    return ProfileResponse(**result.user.profile())


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    token: str = Depends(require_session_token),
    service: AuthService = Depends(get_auth_service),
    cookies: CookieSettings = Depends(get_cookie_settings),
):
    """Revoke the current session and clear the cookie."""
    service.logout(token)
    clear_session_cookie(response, cookies)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=ProfileResponse)
def get_me(
    response: Response,
    token: str = Depends(require_session_token),
    service: AuthService = Depends(get_auth_service),
    cookies: CookieSettings = Depends(get_cookie_settings),
):
    """Get current user info."""
    user = service.get_current_user(token)
    set_session_cookie(response, token, cookies)
    return ProfileResponse(**user.profile())


@router.put("/profile", response_model=UpdateProfileResponse, responses={409: {"model": ErrorResponse}})
def update_profile(
    body: UpdateProfileRequest,
    response: Response,
    token: str = Depends(require_session_token),
    service: AuthService = Depends(get_auth_service),
    cookies: CookieSettings = Depends(get_cookie_settings),
):
    """
    Update email and names.

    Changing the email ends the session; the client must log in again
    with the new address.
    """
    result = service.update_profile(
        token,
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
    )

    if result.require_relogin:
        clear_session_cookie(response, cookies)
        return UpdateProfileResponse(
            message="Profile updated successfully. Please log in again with your new email.",
            require_re_login=True,
        )

    set_session_cookie(response, token, cookies)
    return UpdateProfileResponse(
        message="Profile updated successfully",
        user=ProfileResponse(**result.user.profile()),
    )


@router.post("/upload-profile-picture", response_model=UploadPictureResponse)
async def upload_profile_picture(
    response: Response,
    file: Optional[UploadFile] = File(None),
    token: str = Depends(require_session_token),
    service: AuthService = Depends(get_auth_service),
    cookies: CookieSettings = Depends(get_cookie_settings),
):
    """Replace the profile picture (multipart field `file`)."""
    data = b""
    filename = None
    declared_size = None
    if file is not None:
        # Never buffer more than one byte past the ceiling
        data = await file.read(service.upload_policy.max_bytes + 1)
        filename = file.filename
        declared_size = file.size
        await file.close()

    profile_picture = await run_in_threadpool(
        service.upload_profile_picture,
        token,
        data,
        filename,
        declared_size,
    )
    set_session_cookie(response, token, cookies)
    return UploadPictureResponse(
        message="Profile picture uploaded successfully",
        profile_picture=profile_picture,
    )
