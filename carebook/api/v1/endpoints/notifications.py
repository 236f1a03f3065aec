"""Notification endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from carebook.core.exceptions import NotFoundException
from carebook.dependencies import CurrentActor, NotificationStoreDep
from carebook.schemas.notifications import MarkAllReadResponse, NotificationListResponse

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "/",
    response_model=NotificationListResponse,
    status_code=status.HTTP_200_OK,
    summary="List my notifications",
)
async def list_notifications(
    actor: CurrentActor,
    store: NotificationStoreDep,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False),
) -> NotificationListResponse:
    """
    Get the authenticated user's notifications, newest first.

    Args:
        actor: Authenticated actor
        store: Notification store
        page: Page number (1-indexed)
        page_size: Number of items per page
        unread_only: Only return unread notifications

    Returns:
        Paginated notifications with total and unread counts
    """
    items, total, unread = await store.list_for_user(
        actor.user_id,
        page=page,
        page_size=page_size,
        unread_only=unread_only,
    )
    return NotificationListResponse(
        notifications=items,
        total=total,
        unread=unread,
        page=page,
        page_size=page_size,
    )


@router.patch(
    "/{notification_id}/read",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Mark notification as read",
)
async def mark_notification_read(
    notification_id: UUID,
    actor: CurrentActor,
    store: NotificationStoreDep,
) -> None:
    """
    Mark one of the authenticated user's notifications as read.

    Raises:
        NotFoundException: If the notification does not exist or belongs to someone else
    """
    if not await store.mark_read(notification_id, actor.user_id):
        raise NotFoundException("Notification not found")


@router.post(
    "/read-all",
    response_model=MarkAllReadResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark all notifications as read",
)
async def mark_all_notifications_read(
    actor: CurrentActor,
    store: NotificationStoreDep,
) -> MarkAllReadResponse:
    """Mark every unread notification of the authenticated user as read."""
    return MarkAllReadResponse(updated=await store.mark_all_read(actor.user_id))
