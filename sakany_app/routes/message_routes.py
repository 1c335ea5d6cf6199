from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi_utils.cbv import cbv

from core.get_current_user import get_current_user
from core.safe_handler import safe_handler
from models.models import User
from realtime.messaging_service import MessagingService, get_messaging
from schemas.schema import ConversationOut, MarkReadIn, MarkReadOut, MessageOut
from services.message_service import MessageService

router = APIRouter(tags=["Messaging"])


@cbv(router)
class MessageRoutes:
    @router.get("/conversations", response_model=List[ConversationOut])
    @safe_handler
    async def list_conversations(
        self,
        messaging: MessagingService = Depends(get_messaging),
        current_user: User = Depends(get_current_user),
    ):
        return await MessageService(messaging).list_conversations(
            current_user=current_user
        )

    @router.get("/messages/{conversation_id}", response_model=List[MessageOut])
    @safe_handler
    async def list_messages(
        self,
        conversation_id: int,
        limit: Optional[int] = Query(default=None, ge=1, le=500),
        before_id: Optional[int] = Query(default=None, alias="beforeId", ge=1),
        messaging: MessagingService = Depends(get_messaging),
        current_user: User = Depends(get_current_user),
    ):
        return await MessageService(messaging).list_messages(
            conversation_id=conversation_id,
            current_user=current_user,
            limit=limit,
            before_id=before_id,
        )

    @router.post("/messages/read", response_model=MarkReadOut)
    @safe_handler
    async def mark_read(
        self,
        data: MarkReadIn,
        messaging: MessagingService = Depends(get_messaging),
        current_user: User = Depends(get_current_user),
    ):
        return await MessageService(messaging).mark_read(
            sender_id=data.sender_id, current_user=current_user
        )
