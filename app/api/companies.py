"""API routes for AI provider companies."""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas.chats import DeleteResponse
from app.schemas.companies import (
    AICompanyCreate,
    AICompanyResponse,
    AICompanyStatsOut,
    AICompanyUpdate,
)
from app.services.ai import AIProvider, get_company_store
from app.services.ai.company_store import AICompanyStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=List[AICompanyResponse])
async def list_companies(
    org_id: str,
    provider: Optional[AIProvider] = None,
    store: AICompanyStore = Depends(get_company_store),
):
    companies = store.list_for_organization(org_id, provider=provider)
    return [AICompanyResponse.from_model(company) for company in companies]


@router.post("", response_model=AICompanyResponse, status_code=status.HTTP_201_CREATED)
async def create_company(
    org_id: str,
    payload: AICompanyCreate,
    store: AICompanyStore = Depends(get_company_store),
):
    try:
        company = store.create(
            org_id,
            name=payload.name,
            provider=payload.provider,
            api_key=payload.apiKey,
            api_secret=payload.apiSecret,
            base_url=payload.baseUrl,
            default_model=payload.defaultModel,
            available_models=payload.availableModels,
        )
        return AICompanyResponse.from_model(company)
    except Exception as e:
        logger.error(f"Error creating AI company: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create AI company"
        )


@router.get("/stats", response_model=AICompanyStatsOut)
async def get_company_stats(org_id: str, store: AICompanyStore = Depends(get_company_store)):
    try:
        return AICompanyStatsOut.from_model(store.get_stats(org_id))
    except Exception as e:
        logger.error(f"Error getting AI company stats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get stats"
        )


@router.get("/{company_id}", response_model=AICompanyResponse)
async def get_company(org_id: str, company_id: str, store: AICompanyStore = Depends(get_company_store)):
    company = store.get(org_id, company_id)
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="AI Company not found")
    return AICompanyResponse.from_model(company)


@router.patch("/{company_id}", response_model=AICompanyResponse)
async def update_company(
    org_id: str,
    company_id: str,
    payload: AICompanyUpdate,
    store: AICompanyStore = Depends(get_company_store),
):
    """Partial update. A rotated key is used by the next message of every chat on this company."""
    company = store.update(
        org_id,
        company_id,
        name=payload.name,
        provider=payload.provider,
        api_key=payload.apiKey,
        api_secret=payload.apiSecret,
        base_url=payload.baseUrl,
        default_model=payload.defaultModel,
        available_models=payload.availableModels,
        is_active=payload.isActive,
    )
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="AI Company not found")
    return AICompanyResponse.from_model(company)


@router.delete("/{company_id}", response_model=DeleteResponse)
async def delete_company(org_id: str, company_id: str, store: AICompanyStore = Depends(get_company_store)):
    if not store.delete(org_id, company_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="AI Company not found")
    return DeleteResponse(success=True)
