from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pymongo.database import Database

from database import get_db, sanitize, to_obj_id, utcnow
from routers.listings import seller_for
from schemas import Notification as NotificationSchema, NotificationType
from security import require_role

logger = logging.getLogger(__name__)

router = APIRouter()


def notify_seller(db: Database, seller_id: str, kind: NotificationType, message: str) -> None:
    doc = NotificationSchema(seller_id=seller_id, type=kind, message=message).model_dump()
    db["notification"].insert_one(doc)
    logger.debug("Notified seller %s (%s)", seller_id, kind)


@router.get("/")
def list_notifications(
    unread: bool = False,
    current_user=Depends(require_role("seller")),
    db: Database = Depends(get_db),
):
    seller = seller_for(db, current_user)
    q = {"seller_id": str(seller["_id"])}
    if unread:
        q["read"] = False
    cursor = db["notification"].find(q).sort([("created_at", -1), ("_id", -1)])
    notifications = [sanitize(n) for n in cursor]
    return {"message": "Notifications retrieved successfully", "data": notifications}


@router.patch("/read/{notification_id}")
def mark_notification_read(
    notification_id: str,
    current_user=Depends(require_role("seller")),
    db: Database = Depends(get_db),
):
    notification = db["notification"].find_one({"_id": to_obj_id(notification_id)})
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    seller = seller_for(db, current_user)
    if notification["seller_id"] != str(seller["_id"]):
        raise HTTPException(status_code=403, detail="You are not authorized to perform this action")
    db["notification"].update_one(
        {"_id": notification["_id"]}, {"$set": {"read": True, "updated_at": utcnow()}}
    )
    return {
        "message": "Notification marked as read",
        "data": sanitize(db["notification"].find_one({"_id": notification["_id"]})),
    }
