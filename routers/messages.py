from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from pymongo.database import Database

from database import get_db, is_valid_id, sanitize, to_obj_id
from routers.notifications import notify_seller
from schemas import Message as MessageSchema
from security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


class SendMessageRequest(BaseModel):
    recipient_id: str
    content: str = Field(..., max_length=5000)


@router.post("/send", status_code=201)
def send_message(
    payload: SendMessageRequest,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    if not is_valid_id(payload.recipient_id):
        raise HTTPException(status_code=400, detail="Invalid recipient ID")
    content = payload.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Message content is required")
    recipient = db["user"].find_one({"_id": to_obj_id(payload.recipient_id)})
    if not recipient:
        raise HTTPException(status_code=404, detail="Recipient not found")

    doc = MessageSchema(
        sender_id=current_user["id"], recipient_id=payload.recipient_id, content=content
    ).model_dump()
    doc["_id"] = db["message"].insert_one(doc).inserted_id

    seller = db["seller"].find_one({"user_id": payload.recipient_id})
    if seller:
        notify_seller(db, str(seller["_id"]), "message", f"New message from {current_user['name']}")
    return {"message": "Message sent successfully", "data": sanitize(doc)}


@router.get("/conversation/{user_id}")
def get_conversation(
    user_id: str,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    if not is_valid_id(user_id):
        raise HTTPException(status_code=400, detail="Invalid user ID")
    me = current_user["id"]
    cursor = db["message"].find(
        {
            "$or": [
                {"sender_id": me, "recipient_id": user_id},
                {"sender_id": user_id, "recipient_id": me},
            ]
        }
    ).sort([("created_at", 1), ("_id", 1)])
    return {"message": "Conversation retrieved successfully", "data": [sanitize(m) for m in cursor]}


@router.get("/get/conversations")
def get_conversations(current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    """Latest message per counterpart, newest conversation first."""
    me = current_user["id"]
    latest: Dict[str, Dict] = {}
    cursor = db["message"].find({"$or": [{"sender_id": me}, {"recipient_id": me}]}).sort(
        [("created_at", -1), ("_id", -1)]
    )
    for m in cursor:
        other = m["recipient_id"] if m["sender_id"] == me else m["sender_id"]
        latest.setdefault(other, m)

    ids = [to_obj_id(uid) for uid in latest]
    users = {str(u["_id"]): u for u in db["user"].find({"_id": {"$in": ids}})} if ids else {}
    conversations: List[Dict] = []
    for other, m in latest.items():
        participant = users.get(other)
        if not participant:
            continue
        d = sanitize(m)
        d["participant"] = {"id": other, "name": participant.get("name"), "email": participant.get("email")}
        conversations.append(d)
    return {"message": "Conversations retrieved successfully", "data": conversations}


@router.patch("/read/{message_id}")
def mark_as_read(
    message_id: str,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    message = db["message"].find_one({"_id": to_obj_id(message_id)})
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    # Only the recipient can mark a message as read
    if message["recipient_id"] != current_user["id"]:
        raise HTTPException(status_code=403, detail="You are not authorized to perform this action")
    db["message"].update_one({"_id": message["_id"]}, {"$set": {"read": True}})
    return {
        "message": "Message marked as read",
        "data": sanitize(db["message"].find_one({"_id": message["_id"]})),
    }


@router.delete("/delete/{message_id}")
def delete_message(
    message_id: str,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    message = db["message"].find_one({"_id": to_obj_id(message_id)})
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    if current_user["id"] not in (message["sender_id"], message["recipient_id"]):
        raise HTTPException(status_code=403, detail="You are not authorized to perform this action")
    db["message"].delete_one({"_id": message["_id"]})
    return {"message": "Message deleted successfully"}
