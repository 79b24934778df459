from fastapi import APIRouter, Depends

from webauth.container import Container
from webauth.dependencies import Identity, get_container, require_auth
from webauth.schemas import MessageResponse, UpdateNameRequest, UpdatePasswordRequest

router = APIRouter(prefix="/profile", tags=["profile"])


@router.put("/updateName", response_model=MessageResponse)
def update_name(
    request: UpdateNameRequest,
    identity: Identity = Depends(require_auth),
    container: Container = Depends(get_container),
):
    container.auth_service.update_name(identity.user_id, request.first_name, request.last_name)
    return MessageResponse(message="Profile updated successfully")


@router.put("/updatePassword", response_model=MessageResponse)
def update_password(
    request: UpdatePasswordRequest,
    identity: Identity = Depends(require_auth),
    container: Container = Depends(get_container),
):
    """
    Change the password after re-checking the current one.

    Existing sessions are left alone.
    """
    container.auth_service.update_password(
        identity.user_id, request.current_password, request.new_password
    )
    return MessageResponse(message="Password updated successfully")
