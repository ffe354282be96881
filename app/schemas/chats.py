"""
Chat-related Pydantic schemas
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from app.services.ai.models import Chat, ChatMessage, ChatStats, ChatSummary

class ChatCreate(BaseModel):
    companyId: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    model: str = Field(..., min_length=1, max_length=100)
    maxHistoryMessages: int = Field(50, ge=1, le=200)
    systemPrompt: Optional[str] = Field(None, max_length=5000)

class ChatSettingsUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    maxHistoryMessages: Optional[int] = Field(None, ge=1, le=200)

class SendMessageRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=50000)

class ChatMessageOut(BaseModel):
    role: str
    content: str
    timestamp: datetime
    tokenCount: int

    @classmethod
    def from_model(cls, message: ChatMessage) -> "ChatMessageOut":
        return cls(
            role=message.role,
            content=message.content,
            timestamp=message.timestamp,
            tokenCount=message.token_count,
        )

class ChatOut(BaseModel):
    id: str
    organizationId: str
    companyId: str
    title: str
    model: str
    messages: List[ChatMessageOut]
    totalTokens: int
    maxHistoryMessages: int
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_model(cls, chat: Chat) -> "ChatOut":
        return cls(
            id=chat.id,
            organizationId=chat.organization_id,
            companyId=chat.company_id,
            title=chat.title,
            model=chat.ai_model,
            messages=[ChatMessageOut.from_model(m) for m in chat.messages],
            totalTokens=chat.total_tokens,
            maxHistoryMessages=chat.max_history_messages,
            createdAt=chat.created_at,
            updatedAt=chat.updated_at,
        )

class ChatCompanyOut(BaseModel):
    name: str
    provider: str

class ChatSummaryOut(BaseModel):
    id: str
    title: str
    model: str
    companyId: str
    company: Optional[ChatCompanyOut] = None
    totalTokens: int
    maxHistoryMessages: int
    messageCount: int
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_model(cls, summary: ChatSummary) -> "ChatSummaryOut":
        company = None
        if summary.company:
            company = ChatCompanyOut(name=summary.company.name, provider=summary.company.provider.value)
        return cls(
            id=summary.id,
            title=summary.title,
            model=summary.ai_model,
            companyId=summary.company_id,
            company=company,
            totalTokens=summary.total_tokens,
            maxHistoryMessages=summary.max_history_messages,
            messageCount=summary.message_count,
            createdAt=summary.created_at,
            updatedAt=summary.updated_at,
        )

class ChatStatsOut(BaseModel):
    totalChats: int
    totalMessages: int
    totalTokens: int

    @classmethod
    def from_model(cls, stats: ChatStats) -> "ChatStatsOut":
        return cls(
            totalChats=stats.total_chats,
            totalMessages=stats.total_messages,
            totalTokens=stats.total_tokens,
        )

class SendMessageResponse(BaseModel):
    userMessage: ChatMessageOut
    assistantMessage: ChatMessageOut

class DeleteResponse(BaseModel):
    success: bool = True
