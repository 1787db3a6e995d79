"""
API v1 routes.

Defines REST endpoints for user accounts and security codes. Every route
translates its request into one command or query and hands it to the
message bus; domain errors are mapped to HTTP responses in src.api.main.
"""

from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, Response, status

from src.api.dependencies import get_message_bus
from src.api.models import (
    ChallengeIdResponse,
    ChallengeResponse,
    ChangeEmailRequest,
    ChangePasswordRequest,
    ChangeStatusRequest,
    ErrorResponse,
    GenerateCodesRequest,
    RedeemCodeRequest,
    ResetPasswordRequest,
    SignInRequest,
    SignUpRequest,
    UserIdResponse,
    UserResponse,
)
from src.application.message_bus import MessageBus
from src.application.messages import (
    ChangeEmailCommand,
    ChangePasswordCommand,
    ChangeStatusCommand,
    FindActiveChallengeQuery,
    FindUserByIdQuery,
    GenerateCodesCommand,
    InvalidateCodesCommand,
    LogoutCommand,
    RedeemCodeCommand,
    ResetPasswordCommand,
    SignInCommand,
    SignUpCommand,
)

router = APIRouter(tags=["v1"])

_not_found = {404: {"model": ErrorResponse, "description": "User not found"}}
_conflict = {409: {"model": ErrorResponse, "description": "Business rule or state conflict"}}
_invalid = {422: {"model": ErrorResponse, "description": "Validation error"}}


@router.post(
    "/users",
    response_model=UserIdResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_conflict, **_invalid},
    summary="Register a new user",
)
def sign_up(
    request_data: SignUpRequest,
    bus: MessageBus = Depends(get_message_bus),
) -> UserIdResponse:
    """
    Create a user account.

    - **username**: Display name
    - **email**: Must not be registered yet (409, rule code 4002)
    - **password**: Minimum 6 characters
    """
    user_id = bus.handle(
        SignUpCommand(
            user_id=uuid4(),
            username=request_data.username,
            email=request_data.email,
            password=request_data.password,
        )
    )
    return UserIdResponse(user_id=user_id)


@router.post(
    "/users/sign-in",
    response_model=UserIdResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    summary="Sign in with email and password",
)
def sign_in(
    request_data: SignInRequest,
    bus: MessageBus = Depends(get_message_bus),
) -> UserIdResponse:
    """Unknown email and wrong password return the same 401 response."""
    user_id = bus.handle(SignInCommand(email=request_data.email, password=request_data.password))
    return UserIdResponse(user_id=user_id)


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    responses=_not_found,
    summary="Fetch a user account",
)
def get_user(user_id: UUID, bus: MessageBus = Depends(get_message_bus)) -> UserResponse:
    user = bus.handle(FindUserByIdQuery(user_id=user_id))
    return UserResponse(
        id=user.id,
        username=user.username.value,
        email=user.email.value,
        status=user.status.value,
        created_at=user.created_at,
        updated_at=user.updated_at,
        logged_at=user.logged_at,
    )


@router.post(
    "/users/{user_id}/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_not_found,
    summary="Record a logout",
)
def logout(user_id: UUID, bus: MessageBus = Depends(get_message_bus)) -> Response:
    bus.handle(LogoutCommand(user_id=user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/users/{user_id}/email",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**_not_found, **_conflict},
    summary="Change the account email",
)
def change_email(
    user_id: UUID,
    request_data: ChangeEmailRequest,
    bus: MessageBus = Depends(get_message_bus),
) -> Response:
    bus.handle(ChangeEmailCommand(user_id=user_id, email=request_data.email))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/users/{user_id}/password",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**_not_found, **_invalid},
    summary="Change the account password",
)
def change_password(
    user_id: UUID,
    request_data: ChangePasswordRequest,
    bus: MessageBus = Depends(get_message_bus),
) -> Response:
    bus.handle(ChangePasswordCommand(user_id=user_id, password=request_data.password))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/users/{user_id}/password-reset",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**_not_found, **_conflict, **_invalid},
    summary="Reset the password with a password_reset code",
)
def reset_password(
    user_id: UUID,
    request_data: ResetPasswordRequest,
    bus: MessageBus = Depends(get_message_bus),
) -> Response:
    """The code is consumed and the password changed in one transaction."""
    bus.handle(
        ResetPasswordCommand(user_id=user_id, code=request_data.code, password=request_data.password)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/users/{user_id}/status",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**_not_found, **_conflict},
    summary="Suspend, soft delete or restore an account",
)
def change_status(
    user_id: UUID,
    request_data: ChangeStatusRequest,
    bus: MessageBus = Depends(get_message_bus),
) -> Response:
    bus.handle(ChangeStatusCommand(user_id=user_id, operation=request_data.operation))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/users/{user_id}/challenges",
    response_model=ChallengeIdResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_not_found, **_conflict, **_invalid},
    summary="Issue a new set of security codes",
)
def generate_codes(
    user_id: UUID,
    request_data: GenerateCodesRequest,
    bus: MessageBus = Depends(get_message_bus),
) -> ChallengeIdResponse:
    """
    Generate a challenge of one-time codes.

    The codes are delivered out of band once the challenge is committed.
    Fails with 409 (rule code 4001) when the user already holds the
    maximum number of non-invalidated challenges.
    """
    challenge_id = bus.handle(
        GenerateCodesCommand(
            user_id=user_id,
            purpose=request_data.purpose,
            code_length=request_data.code_length,
            security_level=request_data.security_level,
        )
    )
    return ChallengeIdResponse(challenge_id=challenge_id)


@router.get(
    "/users/{user_id}/challenges/{purpose}",
    response_model=ChallengeResponse,
    responses={404: {"model": ErrorResponse, "description": "No active challenge"}},
    summary="Describe the active challenge for a purpose",
)
def get_active_challenge(
    user_id: UUID,
    purpose: str,
    bus: MessageBus = Depends(get_message_bus),
) -> ChallengeResponse:
    challenge = bus.handle(FindActiveChallengeQuery(user_id=user_id, purpose=purpose))
    return ChallengeResponse(
        id=challenge.id,
        purpose=challenge.purpose.value,
        created_at=challenge.created_at,
        expires_at=challenge.expires_at,
        codes_total=len(challenge.codes),
        codes_unused=sum(1 for code in challenge.codes if not code.is_used),
    )


@router.post(
    "/users/{user_id}/challenges/{purpose}/invalidate",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "No active challenge"}},
    summary="Invalidate every remaining code of the active challenge",
)
def invalidate_codes(
    user_id: UUID,
    purpose: str,
    bus: MessageBus = Depends(get_message_bus),
) -> Response:
    bus.handle(InvalidateCodesCommand(user_id=user_id, purpose=purpose))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/users/{user_id}/codes/redeem",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        404: {"model": ErrorResponse, "description": "Code not found"},
        **_conflict,
        **_invalid,
    },
    summary="Redeem a one-time code",
)
def redeem_code(
    user_id: UUID,
    request_data: RedeemCodeRequest,
    bus: MessageBus = Depends(get_message_bus),
) -> Response:
    """
    Mark a code as used.

    - 404 when no code of this user has the given value
    - 409 when the purpose differs or the code was already used
    """
    bus.handle(
        RedeemCodeCommand(user_id=user_id, code=request_data.code, purpose=request_data.purpose)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
