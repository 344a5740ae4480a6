"""Project intake contracts.

The intake is supplied once per generation request and never mutated by the
pipeline. Its fingerprint decides whether a cached Content Pack is reusable.
"""

import hashlib
import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from .base import ContractModel


class PackageTier(str, Enum):
    """Commercial package tier; higher tiers get a larger default site."""
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"

    @property
    def is_extended(self) -> bool:
        return self in (PackageTier.PREMIUM, PackageTier.ENTERPRISE)


class SectionInput(ContractModel):
    """A user-authored section in the page skeleton."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Section identifier")
    section_type: str = Field(..., description="Section type tag, e.g. hero, faq, contact")
    config: Dict[str, Any] = Field(default_factory=dict)


class PageInput(ContractModel):
    """A user-authored page in the page skeleton."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    slug: str = Field(..., description="'/' for the home page, '/about' etc.")
    sections: List[SectionInput] = Field(default_factory=list)


class LocationInput(ContractModel):
    """Where the business operates."""
    model_config = ConfigDict(frozen=True)

    city: Optional[str] = None
    country: str = "Deutschland"
    timezone: Optional[str] = None


class ProjectIntake(ContractModel):
    """Immutable project input for one generation request."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Project identifier, also the cache key")
    name: str = Field(..., min_length=1)
    brief: str = Field("", description="Free-text project brief")
    target_audience: str = ""
    website_style: str = "modern"
    package_type: PackageTier = PackageTier.STANDARD
    optimization_goal: str = "leads"
    primary_color: str = "#2563eb"
    secondary_color: str = "#0f172a"
    logo_url: Optional[str] = None
    industry: Optional[str] = None
    location: Optional[LocationInput] = None
    contact_email: str = ""
    contact_phone: Optional[str] = None
    selected_addons: List[str] = Field(default_factory=list)
    pages: List[PageInput] = Field(default_factory=list)

    # CMS / email add-on configuration
    sanity_project_id: Optional[str] = None
    sanity_dataset: str = "production"
    email_domain: Optional[str] = None

    def fingerprint(self) -> str:
        """SHA-256 over every field that influences generated content."""
        relevant = self.model_dump(
            mode="json",
            exclude={"id", "sanity_project_id", "sanity_dataset", "email_domain"},
        )
        relevant["selected_addons"] = sorted(relevant["selected_addons"])
        payload = json.dumps(relevant, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
