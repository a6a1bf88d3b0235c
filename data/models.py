"""Data models for Brainiark OS.

This module exposes two sets of models:

* SQLAlchemy ORM models backing users, brand workspaces, Brand Brains,
  evidence items and AI activity logs
* Dataclasses describing crawler and LLM pipeline results that are passed
  between ingestion and analysis modules
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import relationship

# SQLAlchemy base for ORM models
Base = declarative_base()


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _camel_dict(data: Any) -> Any:
    """Recursively convert snake_case dict keys to camelCase."""
    if isinstance(data, dict):
        return {_camel(k) if isinstance(k, str) else k: _camel_dict(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_camel_dict(v) for v in data]
    if isinstance(data, datetime):
        return data.isoformat()
    return data


class EvidenceType(str, Enum):
    WEBSITE = "website"
    DOCUMENT = "document"
    SOCIAL = "social"
    MANUAL = "manual"
    BRAND_NAME_SEARCH = "brand_name_search"


class EvidenceStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"


class BrainStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    FAILED = "failed"


BRAIN_TEXT_SECTIONS = ("summary", "audience", "tone", "offers")
BRAIN_LIST_SECTIONS = ("pillars", "competitors", "channels", "recommendations")


# ---------------------------------------------------------------------------
# ORM models
# ---------------------------------------------------------------------------


class User(Base):
    """Registered account."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(254), unique=True, nullable=False, index=True)
    phone = Column(String(32), nullable=True)
    password_hash = Column(String, nullable=False)
    onboarding_status = Column(String, default="not_started", nullable=False)
    onboarding_step = Column(Integer, default=0, nullable=False)
    # Most recently selected workspace; plain column to avoid a users <-> workspaces FK cycle
    workspace_id = Column(Integer, nullable=True)
    reset_token = Column(String, nullable=True, index=True)
    reset_token_expiry = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    workspaces = relationship("BrandWorkspace", back_populates="owner", cascade="all, delete-orphan")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phone": self.phone,
            "onboardingStatus": self.onboarding_status,
            "onboardingStep": self.onboarding_step,
            "workspaceId": str(self.workspace_id) if self.workspace_id else None,
        }


class BrandWorkspace(Base):
    """A brand being onboarded; owned by one user."""

    __tablename__ = "brand_workspaces"

    id = Column(Integer, primary_key=True, index=True)
    owner_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String(200), nullable=False)
    slug = Column(String, unique=True, nullable=False, index=True)
    ai_thread_id = Column(String, nullable=True)
    status = Column(String, default="not_started", nullable=False)
    onboarding_step = Column(Integer, default=1, nullable=False)
    last_active_at = Column(DateTime, default=datetime.utcnow, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    owner = relationship("User", back_populates="workspaces")
    brain = relationship("BrandBrain", back_populates="workspace", uselist=False, cascade="all, delete-orphan")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "slug": self.slug,
            "ownerUserId": str(self.owner_user_id),
            "aiThreadId": self.ai_thread_id,
            "status": self.status,
            "onboardingStep": self.onboarding_step,
            "lastActiveAt": _iso(self.last_active_at),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class BrandBrain(Base):
    """Structured brand profile produced by analysis."""

    __tablename__ = "brand_brains"

    id = Column(Integer, primary_key=True, index=True)
    brand_workspace_id = Column(Integer, ForeignKey("brand_workspaces.id"), unique=True, nullable=False)
    brand_slug = Column(String, unique=True, nullable=False, index=True)

    summary = Column(Text, default="")
    audience = Column(Text, default="")
    tone = Column(Text, default="")
    offers = Column(Text, default="")
    pillars = Column(JSON, default=list)
    competitors = Column(JSON, default=list)
    channels = Column(JSON, default=list)
    recommendations = Column(JSON, default=list)

    status = Column(String, default=BrainStatus.NOT_STARTED.value, nullable=False)
    is_activated = Column(Boolean, default=False, nullable=False)
    onboarding_step = Column(Integer, default=1, nullable=False)

    last_analyzed_at = Column(DateTime, nullable=True)
    analysis_started_at = Column(DateTime, nullable=True)
    analysis_completed_at = Column(DateTime, nullable=True)
    analysis_duration_ms = Column(Integer, nullable=True)
    analysis_method = Column(String, nullable=True)
    evidence_count = Column(Integer, default=0)
    evidence_type = Column(String, nullable=True)
    gpt_enhanced = Column(Boolean, default=False)
    gpt_analysis_data = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    workspace = relationship("BrandWorkspace", back_populates="brain")

    def has_content(self) -> bool:
        return bool(self.summary or self.audience or self.tone or self.pillars)

    def sections(self) -> Dict[str, Any]:
        data = {name: getattr(self, name) or "" for name in BRAIN_TEXT_SECTIONS}
        data.update({name: list(getattr(self, name) or []) for name in BRAIN_LIST_SECTIONS})
        return data

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": str(self.id),
            "brandWorkspaceId": str(self.brand_workspace_id),
            "brandSlug": self.brand_slug,
        }
        data.update(self.sections())
        data.update({
            "status": self.status,
            "isActivated": bool(self.is_activated),
            "onboardingStep": self.onboarding_step,
            "lastAnalyzedAt": _iso(self.last_analyzed_at),
            "analysisStartedAt": _iso(self.analysis_started_at),
            "analysisCompletedAt": _iso(self.analysis_completed_at),
            "analysisDurationMs": self.analysis_duration_ms,
            "analysisMethod": self.analysis_method,
            "evidenceCount": self.evidence_count or 0,
            "evidenceType": self.evidence_type,
            "gptEnhanced": bool(self.gpt_enhanced),
            "gptAnalysisData": self.gpt_analysis_data,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        })
        return data


class Evidence(Base):
    """One piece of user-supplied (or search-generated) brand evidence."""

    __tablename__ = "evidence"

    id = Column(Integer, primary_key=True, index=True)
    brand_slug = Column(String, nullable=False, index=True)
    brand_workspace_id = Column(Integer, ForeignKey("brand_workspaces.id"), nullable=False)
    type = Column(String, nullable=False)
    value = Column(Text, nullable=False)
    status = Column(String, default=EvidenceStatus.PENDING.value, nullable=False)
    analyzed_content = Column(Text, nullable=True)
    analysis_summary = Column(Text, nullable=True)
    analysis_error = Column(Text, nullable=True)
    processed_with_error = Column(Boolean, default=False)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    processing_completed_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "brandSlug": self.brand_slug,
            "brandWorkspaceId": str(self.brand_workspace_id),
            "type": self.type,
            "value": self.value,
            "status": self.status,
            "analyzedContent": self.analyzed_content,
            "analysisSummary": self.analysis_summary,
            "analysisError": self.analysis_error,
            "metadata": self.meta or {},
            "createdAt": _iso(self.created_at),
            "processingCompletedAt": _iso(self.processing_completed_at),
        }


class AiLog(Base):
    """System, insight and action messages shown in the onboarding activity feed."""

    __tablename__ = "ai_logs"

    id = Column(Integer, primary_key=True, index=True)
    brand_workspace_id = Column(Integer, ForeignKey("brand_workspaces.id"), nullable=False, index=True)
    type = Column(String, default="system", nullable=False)
    message = Column(Text, nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "workspaceId": str(self.brand_workspace_id),
            "type": self.type,
            "message": self.message,
            "details": self.details,
            "createdAt": _iso(self.created_at),
        }


# ---------------------------------------------------------------------------
# Pipeline dataclasses
# ---------------------------------------------------------------------------


@dataclass
class WebsiteData:
    """Everything extracted from one crawled page."""

    url: str
    title: str = ""
    meta_description: str = ""
    meta_keywords: List[str] = field(default_factory=list)
    headings: Dict[str, List[str]] = field(default_factory=lambda: {"h1": [], "h2": [], "h3": []})
    body_content: str = ""
    main_content: str = ""
    links: List[Dict[str, Any]] = field(default_factory=list)  # {text, url, internal}
    images: List[Dict[str, str]] = field(default_factory=list)  # {src, alt}
    scripts: List[str] = field(default_factory=list)
    styles: List[str] = field(default_factory=list)
    social_meta: Dict[str, Optional[str]] = field(default_factory=dict)
    structured_data: List[Any] = field(default_factory=list)
    load_time: int = 0  # ms
    status_code: int = 200
    word_count: int = 0
    reading_level: str = "Unknown"
    screenshot_url: Optional[str] = None
    error: Optional[str] = None
    is_javascript_site: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return _camel_dict(asdict(self))


@dataclass
class JSCrawlResult:
    success: bool
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    text: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    headings: Dict[str, List[str]] = field(default_factory=dict)
    links: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _camel_dict(asdict(self))


@dataclass
class SearchResult:
    title: str
    url: str
    snippet: str = ""
    source: str = "web_search"
    relevance: float = 0.5


@dataclass
class CrawledPage:
    url: str
    title: str
    content: str
    page_type: str = "other"  # homepage, about, product, blog, contact, other
    crawled_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class BrandInsights:
    company_info: str = ""
    public_presence: str = ""
    competitors: List[str] = field(default_factory=list)
    industry: str = ""
    audience_signals: List[str] = field(default_factory=list)
    tone_signals: List[str] = field(default_factory=list)
    market_position: str = ""
    key_messages: List[str] = field(default_factory=list)


@dataclass
class WebSearchResult:
    """Outcome of the multi-stage LLM web research for a brand."""

    success: bool
    brand_name: str
    search_results: List[SearchResult] = field(default_factory=list)
    crawled_pages: List[CrawledPage] = field(default_factory=list)
    insights: BrandInsights = field(default_factory=BrandInsights)
    search_performed_at: datetime = field(default_factory=datetime.utcnow)
    sources: List[str] = field(default_factory=list)
    analysis_duration_ms: int = 0
    gpt_model: str = "gpt-4o"

    @property
    def total_results(self) -> int:
        return len(self.search_results)

    @property
    def crawled_count(self) -> int:
        return len(self.crawled_pages)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "brandName": self.brand_name,
            "searchResults": _camel_dict([asdict(r) for r in self.search_results]),
            "crawledPages": _camel_dict([asdict(p) for p in self.crawled_pages]),
            "insights": _camel_dict(asdict(self.insights)),
            "metadata": {
                "searchPerformedAt": self.search_performed_at.isoformat(),
                "totalResults": self.total_results,
                "crawledCount": self.crawled_count,
                "sources": list(self.sources),
                "analysisDurationMs": self.analysis_duration_ms,
                "gptModel": self.gpt_model,
            },
        }


@dataclass
class BrandBrainAnalysis:
    """Normalized Brand Brain sections, ready to store on a ``BrandBrain``."""
    summary: str = ""
    audience: str = ""
    tone: str = ""
    offers: str = ""
    pillars: List[str] = field(default_factory=list)
    competitors: List[str] = field(default_factory=list)
    channels: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BrandAnalysisResult:
    success: bool
    analysis: Optional[Dict[str, Any]]
    search_data: WebSearchResult
    raw_data: Dict[str, str] = field(default_factory=dict)
    analysis_duration_ms: int = 0
    total_tokens: int = 0
    user_evidence_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "analysis": self.analysis,
            "searchData": self.search_data.to_dict(),
            "rawData": dict(self.raw_data),
            "metadata": {
                "analysisDurationMs": self.analysis_duration_ms,
                "totalTokens": self.total_tokens,
                "userEvidenceCount": self.user_evidence_count,
            },
        }
