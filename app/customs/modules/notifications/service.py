from __future__ import annotations

from typing import TYPE_CHECKING

from app.customs.modules.clients.models import Client
from app.customs.modules.notifications.models import Notification

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.customs.modules.dispatches.models import Dispatch


INBOX_LIMIT = 20


def client_user_id(s: "Session", client_id: int | None) -> int | None:
    """Portal user linked to a client, if the client has one."""
    if client_id is None:
        return None
    row = s.query(Client.user_id).filter(Client.id == client_id).one_or_none()
    return row[0] if row else None


def notify_user(
    s: "Session",
    *,
    user_id: int,
    type: str,
    title: str,
    message: str,
    dispatch_id: int | None = None,
) -> Notification:
    n = Notification(
        user_id=user_id,
        dispatch_id=dispatch_id,
        type=type,
        title=title,
        message=message,
        read=False,
    )
    s.add(n)
    return n


def notify_client_of_dispatch(
    s: "Session",
    dispatch: "Dispatch",
    *,
    type: str,
    title: str,
    message: str,
    link_dispatch: bool = True,
) -> Notification | None:
    """
    Drop a notification in the inbox of the dispatch's client user.
    No-op when the client has no portal login.
    """
    uid = client_user_id(s, dispatch.client_id)
    if not uid:
        return None
    return notify_user(
        s,
        user_id=uid,
        dispatch_id=dispatch.id if link_dispatch else None,
        type=type,
        title=title,
        message=message,
    )


def list_for_user(s: "Session", user_id: int, limit: int = INBOX_LIMIT) -> list[Notification]:
    return (
        s.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def unread_count(s: "Session", user_id: int) -> int:
    return (
        s.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read.is_(False))
        .count()
    )


def mark_read(s: "Session", user_id: int, notification_id: int) -> Notification | None:
    """Mark one of the user's notifications read. Returns None if it isn't theirs."""
    n = s.get(Notification, notification_id)
    if not n or n.user_id != user_id:
        return None
    n.read = True
    return n


def mark_all_read(s: "Session", user_id: int) -> int:
    unread = (
        s.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read.is_(False))
        .all()
    )
    for n in unread:
        n.read = True
    return len(unread)
