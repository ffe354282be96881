"""
AI provider company schemas
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime

from app.services.ai.company_store import MASK, mask_api_key
from app.services.ai.models import AICompany, AIProvider, CompanyStats

class AICompanyCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    provider: AIProvider
    apiKey: str = Field(..., min_length=1, max_length=500)
    apiSecret: Optional[str] = Field(None, max_length=500)
    baseUrl: Optional[str] = Field(None, max_length=500)
    defaultModel: Optional[str] = Field(None, max_length=100)
    availableModels: Optional[List[str]] = None

class AICompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    provider: Optional[AIProvider] = None
    apiKey: Optional[str] = Field(None, min_length=1, max_length=500)
    apiSecret: Optional[str] = Field(None, max_length=500)
    baseUrl: Optional[str] = Field(None, max_length=500)
    defaultModel: Optional[str] = Field(None, max_length=100)
    availableModels: Optional[List[str]] = None
    isActive: Optional[bool] = None

class AICompanyStatsOut(BaseModel):
    totalCompanies: int
    activeCompanies: int
    byProvider: Dict[str, int]

    @classmethod
    def from_model(cls, stats: CompanyStats) -> "AICompanyStatsOut":
        return cls(
            totalCompanies=stats.total_companies,
            activeCompanies=stats.active_companies,
            byProvider=stats.by_provider,
        )

class AICompanyResponse(BaseModel):
    id: str
    organizationId: str
    name: str
    provider: AIProvider
    apiKey: str
    apiSecret: Optional[str] = None
    baseUrl: Optional[str] = None
    defaultModel: Optional[str] = None
    availableModels: List[str]
    isActive: bool
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_model(cls, company: AICompany) -> "AICompanyResponse":
        # Credentials never leave the service unmasked
        return cls(
            id=company.id,
            organizationId=company.organization_id,
            name=company.name,
            provider=company.provider,
            apiKey=mask_api_key(company.api_key),
            apiSecret=MASK if company.api_secret else None,
            baseUrl=company.base_url,
            defaultModel=company.default_model,
            availableModels=company.available_models,
            isActive=company.is_active,
            createdAt=company.created_at,
            updatedAt=company.updated_at,
        )
