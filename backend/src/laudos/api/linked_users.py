"""API endpoints for linked users and the processes shared with them."""

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..processes.sharing import (
    LinkedUser,
    LinkedUserRequest,
    ProcessAccessEntry,
    SharingService,
    get_sharing_service,
)
from . import NotFoundError, ValidationError
from .auth import CurrentUser

router = APIRouter(prefix="/linked-users", tags=["linked-users"])


class AccessUpdate(BaseModel):
    process_ids: list[UUID]


@router.get("", response_model=list[LinkedUser])
async def list_linked_users(
    user: CurrentUser,
    service: SharingService = Depends(get_sharing_service),
) -> list[LinkedUser]:
    """Linked users of the signed-in owner, newest first."""
    return await service.list_linked_users(user.id)


@router.post("", response_model=LinkedUser, status_code=201)
async def create_linked_user(
    request: LinkedUserRequest,
    user: CurrentUser,
    service: SharingService = Depends(get_sharing_service),
) -> LinkedUser:
    try:
        return await service.create_linked_user(request, user.id)
    except ValueError as e:
        raise ValidationError(str(e))


@router.put("/{linked_user_id}", response_model=LinkedUser)
async def update_linked_user(
    linked_user_id: UUID,
    request: LinkedUserRequest,
    user: CurrentUser,
    service: SharingService = Depends(get_sharing_service),
) -> LinkedUser:
    try:
        return await service.update_linked_user(linked_user_id, request, user.id)
    except ValueError as e:
        raise ValidationError(str(e))


@router.post("/{linked_user_id}/deactivate", response_model=LinkedUser)
async def deactivate_linked_user(
    linked_user_id: UUID,
    user: CurrentUser,
    service: SharingService = Depends(get_sharing_service),
) -> LinkedUser:
    """Suspend the link; its grants stop applying until reactivated."""
    return await service.set_status(linked_user_id, False, user.id)


@router.post("/{linked_user_id}/activate", response_model=LinkedUser)
async def activate_linked_user(
    linked_user_id: UUID,
    user: CurrentUser,
    service: SharingService = Depends(get_sharing_service),
) -> LinkedUser:
    return await service.set_status(linked_user_id, True, user.id)


@router.delete("/{linked_user_id}", status_code=204)
async def delete_linked_user(
    linked_user_id: UUID,
    user: CurrentUser,
    service: SharingService = Depends(get_sharing_service),
) -> None:
    await service.delete_linked_user(linked_user_id, user.id)


@router.get("/{linked_user_id}/access", response_model=list[ProcessAccessEntry])
async def list_access(
    linked_user_id: UUID,
    user: CurrentUser,
    service: SharingService = Depends(get_sharing_service),
) -> list[ProcessAccessEntry]:
    """Processes shared with a linked user."""
    return await service.list_access(linked_user_id, user.id)


@router.put("/{linked_user_id}/access")
async def replace_access(
    linked_user_id: UUID,
    request: AccessUpdate,
    user: CurrentUser,
    service: SharingService = Depends(get_sharing_service),
) -> dict:
    """Replace the whole set of processes shared with a linked user."""
    granted = await service.replace_access(linked_user_id, request.process_ids, user.id)
    return {"granted": granted}


@router.put("/{linked_user_id}/access/{process_id}", status_code=204)
async def grant_access(
    linked_user_id: UUID,
    process_id: UUID,
    user: CurrentUser,
    service: SharingService = Depends(get_sharing_service),
) -> None:
    await service.grant(linked_user_id, process_id, user.id)


@router.delete("/{linked_user_id}/access/{process_id}", status_code=204)
async def revoke_access(
    linked_user_id: UUID,
    process_id: UUID,
    user: CurrentUser,
    service: SharingService = Depends(get_sharing_service),
) -> None:
    if not await service.revoke(linked_user_id, process_id, user.id):
        raise NotFoundError("Acesso", process_id)
