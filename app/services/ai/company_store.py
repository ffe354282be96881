"""Storage for AI provider companies and the credential lookup used by chats."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import AICompany, AIProvider, CompanyStats, PROVIDER_MODELS, ProviderConfig, utcnow

logger = logging.getLogger(__name__)

MASK = "••••••••"

UPDATABLE_FIELDS = {
    "name",
    "provider",
    "api_key",
    "api_secret",
    "base_url",
    "default_model",
    "available_models",
    "is_active",
}


def mask_api_key(api_key: str) -> str:
    return MASK + api_key[-4:]


class AICompanyStore:
    """Store provider companies as JSON files, one per company id."""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def create(
        self,
        organization_id: str,
        *,
        name: str,
        provider: AIProvider,
        api_key: str,
        api_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        default_model: Optional[str] = None,
        available_models: Optional[List[str]] = None,
    ) -> AICompany:
        company = AICompany(
            organization_id=organization_id,
            name=name,
            provider=provider,
            api_key=api_key,
            api_secret=api_secret,
            base_url=base_url,
            default_model=default_model,
            available_models=available_models or list(PROVIDER_MODELS.get(provider, [])),
        )
        self._write_company(company)
        logger.info(f"Registered {provider.value} company '{name}' for organization {organization_id}")
        return company

    def get(self, organization_id: str, company_id: str) -> Optional[AICompany]:
        path = self._company_path(company_id)
        if path is None or not path.exists():
            return None
        company = AICompany.model_validate(json.loads(path.read_text(encoding="utf-8")))
        if company.organization_id != organization_id:
            return None
        return company

    def list_for_organization(self, organization_id: str, provider: Optional[AIProvider] = None) -> List[AICompany]:
        companies: List[AICompany] = []
        for path in self.base_dir.glob("*.json"):
            company = self.get(organization_id, path.stem)
            if company is None:
                continue
            if provider is not None and company.provider != provider:
                continue
            companies.append(company)
        return sorted(companies, key=lambda c: c.created_at, reverse=True)

    def update(self, organization_id: str, company_id: str, **changes: Any) -> Optional[AICompany]:
        """Apply the given field changes. ``None`` values are ignored."""
        company = self.get(organization_id, company_id)
        if company is None:
            return None
        updates = {key: value for key, value in changes.items() if value is not None}
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update company fields: {', '.join(sorted(unknown))}")
        updates["updated_at"] = utcnow()
        company = company.model_copy(update=updates)
        self._write_company(company)
        logger.info(f"Updated company {company_id} ({', '.join(sorted(updates))})")
        return company

    def get_stats(self, organization_id: str) -> CompanyStats:
        companies = self.list_for_organization(organization_id)
        by_provider: Dict[str, int] = {}
        for company in companies:
            by_provider[company.provider.value] = by_provider.get(company.provider.value, 0) + 1
        return CompanyStats(
            total_companies=len(companies),
            active_companies=sum(1 for company in companies if company.is_active),
            by_provider=by_provider,
        )

    def delete(self, organization_id: str, company_id: str) -> bool:
        if self.get(organization_id, company_id) is None:
            return False
        self._company_path(company_id).unlink()
        return True

    def _company_path(self, company_id: str) -> Optional[Path]:
        if not company_id or not company_id.isalnum():
            return None
        return self.base_dir / f"{company_id}.json"

    def _write_company(self, company: AICompany) -> None:
        path = self.base_dir / f"{company.id}.json"
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(
            json.dumps(company.model_dump(mode="json"), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        tmp_path.replace(path)


class CompanyCredentialResolver:
    """Resolves a chat's provider company into provider credentials."""

    def __init__(self, store: AICompanyStore):
        self.store = store

    def resolve(self, organization_id: str, company_id: str) -> Optional[ProviderConfig]:
        company = self.store.get(organization_id, company_id)
        if company is None:
            return None
        return company.to_provider_config()
