"""Audit extract models.

The extract is produced upstream by the audit extractor and is read-only here.
Only the fields below are consumed; anything else in the payload is ignored.
Missing optional values fall back to defaults instead of failing validation.
"""

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ContactInfo(BaseModel):
    """Client primary contact."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: Optional[str] = None
    title: Optional[str] = None
    email: Optional[str] = None


class ClientIdentity(BaseModel):
    """Audited client."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    account_name: str = Field("Client", description="Client account name")
    industry: Optional[str] = Field(None, description="Free-text industry")
    primary_contact: ContactInfo = Field(default_factory=ContactInfo)

    @field_validator("account_name", mode="before")
    @classmethod
    def _default_account_name(cls, value: Any) -> Any:
        return value or "Client"


class AuditInfo(BaseModel):
    """Reference to the completed diagnostic (Phase 1)."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    audit_id: Optional[str] = None
    audit_date: Optional[str] = None
    duration_days: int = Field(3, description="Audit duration in business days")


class WorkflowInfo(BaseModel):
    """Audited workflow."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field("Business Process Automation", description="Workflow name")
    description: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, value: Any) -> Any:
        return value or "Business Process Automation"


class Finding(BaseModel):
    """Single audit finding with traffic-light status."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    category: Optional[str] = None
    status: Optional[str] = Field(None, description="critical | warning | healthy")
    finding: str = Field("", description="Finding text")


class RecommendedFix(BaseModel):
    """Recommended fix with effort descriptor and impact."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    fix_id: Optional[str] = None
    problem: Optional[str] = None
    fix: Optional[str] = Field(None, description="Fix description")
    description: Optional[str] = Field(None, description="Alternate fix text used by older audit exports")
    impact: Optional[str] = Field(None, description="Impact description")
    effort_tier: str = Field("moderate", description="Effort tier or free-text complexity")

    @field_validator("effort_tier", mode="before")
    @classmethod
    def _coerce_effort(cls, value: Any) -> Any:
        # {"tier": "complex"} shapes are accepted as well
        if isinstance(value, dict):
            value = value.get("tier")
        return str(value) if value else "moderate"

    @field_validator("impact", mode="before")
    @classmethod
    def _coerce_impact(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return value.get("basis") or value.get("display")
        return value


class BleedData(BaseModel):
    """Audited monthly revenue bleed."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    monthly_amount: float = Field(0.0, description="Monthly revenue bleed")
    currency: str = "USD"

    @field_validator("monthly_amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Any:
        if value is None:
            return 0.0
        if isinstance(value, str):
            cleaned = re.sub(r"[^0-9.]", "", value)
            try:
                return float(cleaned) if cleaned else 0.0
            except ValueError:
                return 0.0
        return value


class AuditExtract(BaseModel):
    """
    Canonical audit extract consumed by the pricing, phase and assembly layers.

    Fields:
    - client: identity and free-text industry
    - findings / recommended_fixes: diagnostic results
    - systems: systems involved in the workflow
    - bleed: monthly revenue bleed
    - integration_types: detected integration kinds (api_available, csv_import ...)
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    client: ClientIdentity = Field(default_factory=ClientIdentity)
    audit: AuditInfo = Field(default_factory=AuditInfo)
    workflow: WorkflowInfo = Field(default_factory=WorkflowInfo)
    systems: list[str] = Field(default_factory=list)
    findings: list[Finding] = Field(default_factory=list)
    recommended_fixes: list[RecommendedFix] = Field(default_factory=list)
    bleed: BleedData = Field(default_factory=BleedData)
    integration_types: list[str] = Field(default_factory=lambda: ["api_available"])

    @field_validator(
        "client", "audit", "workflow", "bleed", mode="before"
    )
    @classmethod
    def _none_to_default(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("systems", "findings", "recommended_fixes", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("integration_types", mode="before")
    @classmethod
    def _default_integrations(cls, value: Any) -> Any:
        return value or ["api_available"]

    @property
    def monthly_bleed(self) -> float:
        return self.bleed.monthly_amount

    @property
    def fix_descriptions(self) -> list[str]:
        """Non-empty fix descriptions in original order."""
        return [f.fix.strip() for f in self.recommended_fixes if f.fix and f.fix.strip()]
