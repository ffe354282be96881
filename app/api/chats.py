"""API routes for organization AI chats."""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.exceptions import ChatServiceError, NotFoundError
from app.schemas.chats import (
    ChatCreate,
    ChatMessageOut,
    ChatOut,
    ChatSettingsUpdate,
    ChatStatsOut,
    ChatSummaryOut,
    DeleteResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from app.services.ai import ChatService, get_chat_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _not_found(detail: str = "Chat not found") -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


@router.get("", response_model=List[ChatSummaryOut])
async def list_chats(
    org_id: str,
    company_id: Optional[str] = Query(None, alias="companyId"),
    service: ChatService = Depends(get_chat_service),
):
    """List an organization's chats, most recently updated first"""
    try:
        summaries = await service.list_chats(org_id, company_id=company_id)
        return [ChatSummaryOut.from_model(summary) for summary in summaries]
    except Exception as e:
        logger.error(f"Error listing chats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list chats"
        )


@router.get("/stats", response_model=ChatStatsOut)
async def get_stats(org_id: str, service: ChatService = Depends(get_chat_service)):
    try:
        return ChatStatsOut.from_model(await service.get_stats(org_id))
    except Exception as e:
        logger.error(f"Error getting chat stats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get stats"
        )


@router.post("", response_model=ChatOut, status_code=status.HTTP_201_CREATED)
async def create_chat(
    org_id: str,
    payload: ChatCreate,
    service: ChatService = Depends(get_chat_service),
):
    try:
        chat = await service.create_chat(
            org_id,
            company_id=payload.companyId,
            title=payload.title,
            ai_model=payload.model,
            max_history_messages=payload.maxHistoryMessages,
            system_prompt=payload.systemPrompt,
        )
        return ChatOut.from_model(chat)
    except ChatServiceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating chat: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create chat"
        )


@router.get("/{chat_id}", response_model=ChatOut)
async def get_chat(org_id: str, chat_id: str, service: ChatService = Depends(get_chat_service)):
    chat = await service.get_chat(org_id, chat_id)
    if chat is None:
        raise _not_found()
    return ChatOut.from_model(chat)


@router.patch("/{chat_id}", response_model=ChatOut)
async def update_chat(
    org_id: str,
    chat_id: str,
    payload: ChatSettingsUpdate,
    service: ChatService = Depends(get_chat_service),
):
    """Update title or history limit. A lower limit takes effect on the next message."""
    try:
        chat = await service.update_settings(
            chat_id,
            title=payload.title,
            max_history_messages=payload.maxHistoryMessages,
            organization_id=org_id,
        )
        return ChatOut.from_model(chat)
    except NotFoundError as e:
        raise _not_found(e.message)
    except ChatServiceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating chat {chat_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update chat"
        )


@router.delete("/{chat_id}", response_model=DeleteResponse)
async def delete_chat(org_id: str, chat_id: str, service: ChatService = Depends(get_chat_service)):
    if not await service.delete_chat(org_id, chat_id):
        raise _not_found()
    return DeleteResponse(success=True)


@router.post("/{chat_id}/message", response_model=SendMessageResponse)
async def send_message(
    org_id: str,
    chat_id: str,
    payload: SendMessageRequest,
    service: ChatService = Depends(get_chat_service),
):
    """Send a user message and return it together with the assistant reply.

    Provider outages come back as a 200 whose assistant message carries the error.
    """
    try:
        result = await service.send_message(chat_id, payload.message, organization_id=org_id)
    except NotFoundError as e:
        raise _not_found(e.message)
    except ChatServiceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"Error sending message to chat {chat_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send message"
        )

    return SendMessageResponse(
        userMessage=ChatMessageOut.from_model(result.user_message),
        assistantMessage=ChatMessageOut.from_model(result.assistant_message),
    )
