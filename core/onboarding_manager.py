"""Onboarding manager: step tracking, Brand Brain analysis and section edits."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from analysis.brand_analysis import (
    build_enhanced_evidence_text,
    create_fallback_analysis_from_gpt,
    create_fallback_evidence_only_analysis,
    enhance_analysis_with_user_evidence,
    normalize_analysis,
)
from analysis.web_analyzer import perform_gpt_brand_analysis
from config.settings import SETTINGS
from core.errors import ForbiddenError, NotFoundError
from data import store
from data.models import (
    BRAIN_LIST_SECTIONS,
    BRAIN_TEXT_SECTIONS,
    BrainStatus,
    BrandBrain,
    EvidenceStatus,
    EvidenceType,
)

logger = logging.getLogger(__name__)

STEP_TO_NUMBER = {
    "intro": 1,
    "collecting_evidence": 2,
    "waiting_for_analysis": 3,
    "analyzing": 4,
    "reviewing_brand_brain": 5,
    "complete": 5,
}

STEP_TO_STATUS = {
    "intro": BrainStatus.NOT_STARTED.value,
    "collecting_evidence": BrainStatus.IN_PROGRESS.value,
    "waiting_for_analysis": BrainStatus.IN_PROGRESS.value,
    "analyzing": BrainStatus.IN_PROGRESS.value,
    "reviewing_brand_brain": BrainStatus.IN_PROGRESS.value,
    "complete": BrainStatus.READY.value,
}

NUMBER_TO_STEP = {
    1: "intro",
    2: "collecting_evidence",
    3: "waiting_for_analysis",
    4: "analyzing",
    5: "reviewing_brand_brain",
}

ANALYZING_STEP = 4
BRAIN_SECTIONS = BRAIN_TEXT_SECTIONS + BRAIN_LIST_SECTIONS
BRAIN_UPDATE_FIELDS = BRAIN_SECTIONS + ("status",)
UPDATE_SECTION_KEYS = ("summary", "audience", "tone", "pillars", "offers", "competitors", "channels")

METHOD_WEB = "gpt_4o_web"
METHOD_ENHANCED = "gpt_4o_enhanced"
METHOD_EVIDENCE_ONLY = "evidence_only"


class AnalysisInProgressError(Exception):
    def __init__(self, started_at: Optional[datetime]):
        super().__init__("Analysis already in progress. Try again in a few minutes or force restart.")
        self.started_at = started_at


class NoEvidenceError(Exception):
    def __init__(self, brand_name: str):
        super().__init__(
            "No evidence available. Would you like me to search the internet and analyze your brand using AI?"
        )
        self.brand_name = brand_name

    @property
    def details(self) -> Dict[str, Any]:
        return {"suggestion": "gpt_brand_search", "brandName": self.brand_name, "canPerformGPTAnalysis": True}


class AnalysisFailedError(Exception):
    pass


def compute_status(step: int) -> str:
    if step >= 5:
        return BrainStatus.READY.value
    if step > 1:
        return BrainStatus.IN_PROGRESS.value
    return BrainStatus.NOT_STARTED.value


def split_lines(content: str) -> List[str]:
    return [line.strip() for line in content.split("\n") if line.strip()]


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _research_summary(search_data) -> Dict[str, Any]:
    return {
        "searchPerformed": True,
        "sourcesUsed": list(search_data.sources),
        "resultsCount": search_data.total_results,
        "crawledCount": search_data.crawled_count,
    }


class OnboardingManager:
    """Drives a workspace through onboarding and builds its Brand Brain."""

    def __init__(self, engine=None, client=None, settings: Optional[dict] = None):
        self.engine = engine or store.init_db()
        self.client = client
        self.settings = settings or SETTINGS

    # ------------------------------------------------------------------
    # Onboarding step
    # ------------------------------------------------------------------
    def get_state(self, workspace) -> Dict[str, Any]:
        with store.session_scope(self.engine) as session:
            ws = self._load_workspace(session, workspace.id)
            brain = store.get_or_create_brain(session, ws)
            step_number = brain.onboarding_step or 1
            return {
                "step": NUMBER_TO_STEP.get(step_number, "intro"),
                "status": brain.status or BrainStatus.NOT_STARTED.value,
                "onboardingStep": step_number,
                "isActivated": bool(brain.is_activated),
                "updatedAt": _iso(brain.updated_at or datetime.utcnow()),
            }

    def set_state(self, workspace, step_name: str) -> Dict[str, Any]:
        if step_name not in STEP_TO_NUMBER:
            raise ValueError(f"Invalid onboarding step: {step_name}")

        step_number = STEP_TO_NUMBER[step_name]
        status = STEP_TO_STATUS[step_name]
        fields = {"onboarding_step": step_number, "status": status}
        if step_name == "complete":
            fields["is_activated"] = True

        with store.session_scope(self.engine) as session:
            ws = self._load_workspace(session, workspace.id)
            brain = store.update_brain(session, ws, **fields)
            store.touch_workspace(session, ws.id)
            logger.info("[ONBOARDING] %s moved to step %s", ws.slug, step_name)
            return {
                "step": step_name,
                "status": status,
                "onboardingStep": step_number,
                "isActivated": step_name == "complete",
                "updatedAt": _iso(brain.updated_at),
            }

    def get_progress(self, workspace) -> Dict[str, Any]:
        with store.session_scope(self.engine) as session:
            brain = store.get_brain_for_workspace(session, workspace.id)
            if brain is None:
                return {"step": 1, "isActivated": False}
            return {"step": brain.onboarding_step or 1, "isActivated": bool(brain.is_activated)}

    def set_step(self, workspace, step_number) -> Dict[str, Any]:
        if isinstance(step_number, bool) or not isinstance(step_number, int) or not 1 <= step_number <= 5:
            raise ValueError("Invalid step number. Must be between 1 and 5.")

        status = compute_status(step_number)
        with store.session_scope(self.engine) as session:
            ws = self._load_workspace(session, workspace.id)
            brain = store.update_brain(
                session, ws, onboarding_step=step_number, status=status, is_activated=step_number == 5
            )
            store.touch_workspace(session, ws.id, status=status, onboarding_step=step_number)
            return {"step": brain.onboarding_step, "isActivated": bool(brain.is_activated)}

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------
    def run_analysis(self, workspace, force: bool = False, brand_name_only: bool = False) -> Dict[str, Any]:
        """Build the Brand Brain for ``workspace``.

        Args:
            workspace: BrandWorkspace being analyzed
            force: Restart an analysis that is still marked in progress
            brand_name_only: Research the brand name instead of stored evidence

        Returns:
            The normalized analysis sections

        Raises:
            AnalysisInProgressError: a recent analysis is still running
            NoEvidenceError: evidence path without any complete evidence
            AnalysisFailedError: brand-name research failed
        """
        started = datetime.utcnow()
        stale_after = timedelta(minutes=self.settings.get("analysis_stale_minutes", 5))

        with store.session_scope(self.engine) as session:
            ws = self._load_workspace(session, workspace.id)
            brain = store.get_brain_for_workspace(session, ws.id)

            if brain and brain.status == BrainStatus.IN_PROGRESS.value and brain.onboarding_step == ANALYZING_STEP:
                analysis_started = brain.analysis_started_at or brain.updated_at
                if force or (analysis_started and analysis_started < started - stale_after):
                    logger.info("[ANALYZE] Resetting %s analysis for %s",
                                "forced" if force else "stale", ws.slug)
                    store.update_brain(
                        session, ws,
                        status=BrainStatus.NOT_STARTED.value, onboarding_step=3, last_analyzed_at=None,
                    )
                else:
                    raise AnalysisInProgressError(analysis_started)

            store.update_brain(
                session, ws,
                status=BrainStatus.IN_PROGRESS.value,
                onboarding_step=ANALYZING_STEP,
                analysis_started_at=started,
                analysis_method=METHOD_WEB,
            )
            store.touch_workspace(session, ws.id)
            brand_name, slug, workspace_id = ws.name, ws.slug, ws.id

        logger.info("[ANALYZE] Workspace: %s, brandNameOnly=%s", brand_name, brand_name_only)
        if brand_name_only:
            return self._analyze_brand_name(brand_name, slug, workspace_id, started)
        return self._analyze_evidence(brand_name, slug, workspace_id, started)

    def _analyze_brand_name(self, brand_name: str, slug: str, workspace_id: int, started: datetime):
        with store.session_scope(self.engine) as session:
            ws = store.get_workspace(session, workspace_id)
            evidence = store.create_evidence(
                session, ws, EvidenceType.BRAND_NAME_SEARCH.value, brand_name,
                status=EvidenceStatus.PROCESSING.value,
            )
            evidence_id = evidence.id
        self._system_message(workspace_id, f'Searching the internet for brand information about "{brand_name}"...')
        self._system_message(workspace_id, "Crawling website pages and analyzing public presence...")

        result = perform_gpt_brand_analysis(brand_name, [], client=self.client)
        if not result.success:
            error = "GPT web search and analysis failed"
            logger.error("[ANALYZE] Brand-name-only analysis failed for %s", slug)
            with store.session_scope(self.engine) as session:
                store.update_evidence_status(
                    session, evidence_id, EvidenceStatus.FAILED.value, analysis_error=error
                )
            raise AnalysisFailedError(f"GPT-powered analysis failed: {error}")

        search_data = result.search_data
        completed = datetime.utcnow()
        with store.session_scope(self.engine) as session:
            store.update_evidence_status(
                session, evidence_id, EvidenceStatus.COMPLETE.value,
                analyzed_content=json.dumps(search_data.to_dict(), indent=2),
                analysis_summary="GPT-4o web search and analysis completed",
                meta={
                    "gptAnalysis": True,
                    "searchResults": search_data.total_results,
                    "crawledPages": search_data.crawled_count,
                    "sources": list(search_data.sources),
                },
                processing_completed_at=completed,
            )

        self._system_message(
            workspace_id,
            f"Found {search_data.total_results} sources and crawled {search_data.crawled_count} pages",
        )
        self._system_message(workspace_id, "Generating your Brand Brain from GPT analysis...")

        analysis = normalize_analysis(result.analysis or create_fallback_analysis_from_gpt(brand_name, search_data))
        completed = datetime.utcnow()
        with store.session_scope(self.engine) as session:
            ws = store.get_workspace(session, workspace_id)
            store.update_brain(
                session, ws,
                status=BrainStatus.READY.value,
                onboarding_step=5,
                last_analyzed_at=completed,
                analysis_completed_at=completed,
                analysis_duration_ms=int((completed - started).total_seconds() * 1000),
                evidence_count=1,
                evidence_type="gpt_brand_search",
                analysis_method=METHOD_WEB,
                gpt_analysis_data=_research_summary(search_data),
                **analysis.to_dict(),
            )
            store.touch_workspace(session, workspace_id)

        self._system_message(workspace_id, "Brand Brain created successfully from GPT-powered analysis!")
        logger.info("[ANALYZE] Brand-name-only analysis completed for %s", slug)
        return analysis.to_dict()

    def _analyze_evidence(self, brand_name: str, slug: str, workspace_id: int, started: datetime):
        with store.session_scope(self.engine) as session:
            processing = store.count_evidence(session, slug, status=EvidenceStatus.PROCESSING.value)
            items = store.list_evidence(session, slug, status=EvidenceStatus.COMPLETE.value)

        if processing:
            logger.info("[ANALYZE] %s evidence items still processing, continuing anyway", processing)
        if not items:
            raise NoEvidenceError(brand_name)

        self._system_message(workspace_id, f"Starting GPT-powered analysis of {len(items)} evidence items...")
        self._system_message(workspace_id, "Enhancing analysis with internet research...")

        gpt_result = None
        try:
            texts = [t for t in (item.analyzed_content or item.value for item in items) if t]
            gpt_result = perform_gpt_brand_analysis(brand_name, texts, client=self.client)
            if gpt_result.success:
                self._system_message(
                    workspace_id, f"Added {gpt_result.search_data.total_results} internet sources to analysis"
                )
        except Exception as e:
            logger.warning("[ANALYZE] GPT enhancement failed, proceeding with evidence-only analysis: %s", e)

        evidence_text = build_enhanced_evidence_text(items, gpt_result)
        self._system_message(workspace_id, "Generating comprehensive Brand Brain with GPT-4o...")

        gpt_ok = gpt_result is not None and gpt_result.success
        if gpt_ok and gpt_result.analysis:
            analysis = enhance_analysis_with_user_evidence(gpt_result.analysis, items)
        elif gpt_ok:
            analysis = create_fallback_analysis_from_gpt(brand_name, gpt_result.search_data)
        else:
            analysis = create_fallback_evidence_only_analysis(brand_name, evidence_text)
        normalized = normalize_analysis(analysis)

        completed = datetime.utcnow()
        with store.session_scope(self.engine) as session:
            ws = store.get_workspace(session, workspace_id)
            store.update_brain(
                session, ws,
                status=BrainStatus.READY.value,
                onboarding_step=5,
                last_analyzed_at=completed,
                analysis_completed_at=completed,
                analysis_duration_ms=int((completed - started).total_seconds() * 1000),
                evidence_count=len(items),
                gpt_enhanced=gpt_ok,
                analysis_method=METHOD_ENHANCED if gpt_ok else METHOD_EVIDENCE_ONLY,
                gpt_analysis_data=_research_summary(gpt_result.search_data) if gpt_ok else None,
                **normalized.to_dict(),
            )
            store.touch_workspace(session, workspace_id)

        self._system_message(workspace_id, "✅ GPT-powered Brand Brain created successfully!")
        logger.info("[ANALYZE] Evidence-based analysis completed for %s (%s items)", slug, len(items))
        return normalized.to_dict()

    def reset_analysis(self, workspace) -> Dict[str, Any]:
        with store.session_scope(self.engine) as session:
            ws = self._load_workspace(session, workspace.id)
            if store.get_brain_for_workspace(session, ws.id) is not None:
                store.update_brain(
                    session, ws,
                    status=BrainStatus.NOT_STARTED.value,
                    onboarding_step=3,
                    last_analyzed_at=None,
                    analysis_started_at=None,
                    analysis_completed_at=None,
                )
            store.touch_workspace(session, ws.id)
        return {
            "message": "Analysis reset successfully. You can now start a new analysis.",
            "resetAt": datetime.utcnow().isoformat(),
        }

    # ------------------------------------------------------------------
    # Brand Brain
    # ------------------------------------------------------------------
    def get_brain(self, slug: str) -> Optional[Dict[str, Any]]:
        with store.session_scope(self.engine) as session:
            brain = store.get_brain_by_slug(session, slug)
            return brain.to_dict() if brain else None

    def update_brain(self, workspace, updates: Dict[str, Any]) -> Dict[str, Any]:
        fields = {k: v for k, v in updates.items() if k in BRAIN_UPDATE_FIELDS and v is not None}
        with store.session_scope(self.engine) as session:
            ws = self._load_workspace(session, workspace.id)
            brain = store.update_brain(session, ws, **fields)
            store.touch_workspace(session, ws.id)
            return brain.to_dict()

    def complete_onboarding(self, workspace) -> Dict[str, Any]:
        with store.session_scope(self.engine) as session:
            ws = self._load_workspace(session, workspace.id)
            brain = store.get_brain_for_workspace(session, ws.id)
            if brain is None:
                raise NotFoundError("Brand brain not found")
            brain = store.update_brain(
                session, ws, is_activated=True, status=BrainStatus.READY.value, onboarding_step=5
            )
            ws = store.touch_workspace(session, ws.id)
            logger.info("[ONBOARDING] Onboarding completed for %s", ws.slug)
            return {
                "brain": brain.to_dict(),
                "workspace": ws.to_dict(),
                "completedAt": datetime.utcnow().isoformat(),
            }

    def refine_section(self, slug: str, section: Optional[str], content: Optional[str]) -> Dict[str, Any]:
        if not section or not content:
            raise ValueError("Section and content are required")
        if section not in BRAIN_SECTIONS:
            raise ValueError("Invalid section")

        value = split_lines(content) if section in BRAIN_LIST_SECTIONS else content
        with store.session_scope(self.engine) as session:
            brain = store.get_brain_by_slug(session, slug)
            if brain is None:
                raise NotFoundError("Brand brain not found")
            setattr(brain, section, value)
            brain.updated_at = datetime.utcnow()
            session.flush()
            return brain.to_dict()

    def update_section(self, brain_id, section_key: str, content: str, user_id: Optional[int] = None):
        """Replace one section of a brain addressed by id."""
        if section_key not in UPDATE_SECTION_KEYS:
            raise ValueError("Invalid section key")
        if not content:
            raise ValueError("Content cannot be empty")

        with store.session_scope(self.engine) as session:
            try:
                brain = session.get(BrandBrain, int(brain_id))
            except (TypeError, ValueError):
                brain = None
            if brain is None:
                raise NotFoundError("Brand brain not found")
            if user_id is not None and brain.workspace.owner_user_id != user_id:
                raise ForbiddenError("You don't have access to this brand brain")

            setattr(brain, section_key, split_lines(content) if section_key in BRAIN_LIST_SECTIONS else content)
            brain.updated_at = datetime.utcnow()
        return {"sectionKey": section_key}

    def list_system_messages(self, workspace, limit: int = 50) -> List[Dict[str, Any]]:
        with store.session_scope(self.engine) as session:
            return [log.to_dict() for log in store.list_ai_logs(session, workspace.id, limit=limit)]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _load_workspace(self, session, workspace_id):
        ws = store.get_workspace(session, workspace_id)
        if ws is None:
            raise NotFoundError("Workspace not found")
        return ws

    def _system_message(self, workspace_id: int, message: str):
        logger.info("[ANALYZE] %s", message)
        with store.session_scope(self.engine) as session:
            store.add_ai_log(session, workspace_id, message, type="system")
