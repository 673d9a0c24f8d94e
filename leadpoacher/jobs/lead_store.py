from __future__ import annotations

import asyncio
import csv
import io
import uuid

from leadpoacher.models import Company, Lead, LeadStatus, LeadWithCompany, ScrapingResult, StorageSummary


class LeadNotFoundError(LookupError):
    pass


class LeadStore:
    """In-memory companies and leads; one company per domain, one lead per (company, email)."""

    def __init__(self) -> None:
        self._companies: dict[str, Company] = {}
        self._company_ids_by_domain: dict[str, str] = {}
        self._leads: dict[str, Lead] = {}
        self._lead_keys: set[tuple[str, str]] = set()
        self._lock = asyncio.Lock()

    async def save_result(self, result: ScrapingResult) -> StorageSummary:
        summary = StorageSummary()
        async with self._lock:
            for record in result.companies:
                domain = record.domain.lower()
                if domain in self._company_ids_by_domain:
                    continue
                company = Company(id=str(uuid.uuid4()), domain=domain, name=record.name)
                self._companies[company.id] = company
                self._company_ids_by_domain[domain] = company.id
                summary.saved_companies += 1

            for extracted in result.leads:
                company_id = self._company_ids_by_domain.get(extracted.domain.lower())
                if company_id is None:
                    continue
                key = (company_id, extracted.email.lower())
                if key in self._lead_keys:
                    continue
                lead = Lead(
                    id=str(uuid.uuid4()),
                    company_id=company_id,
                    contact_name=extracted.name,
                    contact_email=extracted.email.lower(),
                    source_url=extracted.source_url,
                )
                self._leads[lead.id] = lead
                self._lead_keys.add(key)
                summary.saved_leads += 1
        return summary

    async def get_company_by_domain(self, domain: str) -> Company | None:
        async with self._lock:
            company_id = self._company_ids_by_domain.get(domain.lower())
            return self._companies[company_id].model_copy() if company_id else None

    async def list_companies(self, limit: int = 50, offset: int = 0) -> list[Company]:
        async with self._lock:
            companies = sorted(self._companies.values(), key=lambda company: company.created_at, reverse=True)
        return [company.model_copy() for company in companies[offset:offset + limit]]

    async def list_leads(self, limit: int = 50, offset: int = 0) -> list[LeadWithCompany]:
        async with self._lock:
            leads = sorted(self._leads.values(), key=lambda lead: lead.timestamp, reverse=True)
            rows = [
                LeadWithCompany(lead=lead.model_copy(), company=self._companies[lead.company_id].model_copy())
                for lead in leads[offset:offset + limit]
            ]
        return rows

    async def update_lead(self, lead_id: str, status: LeadStatus | None = None, note: str | None = None) -> Lead:
        async with self._lock:
            lead = self._leads.get(lead_id)
            if lead is None:
                raise LeadNotFoundError(lead_id)
            if status is not None:
                lead.status = status
            if note is not None:
                lead.note = note.strip() or None
            return lead.model_copy()

    async def to_csv_bytes(self) -> bytes:
        rows = await self.list_leads(limit=len(self._leads) or 1)

        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(['company', 'domain', 'contact_name', 'contact_email', 'source_url', 'status', 'note', 'timestamp'])

        for row in rows:
            writer.writerow(
                [
                    row.company.name,
                    row.company.domain,
                    row.lead.contact_name or '',
                    row.lead.contact_email,
                    row.lead.source_url,
                    row.lead.status.value,
                    row.lead.note or '',
                    row.lead.timestamp.isoformat(),
                ]
            )

        return output.getvalue().encode('utf-8')
