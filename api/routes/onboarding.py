"""Onboarding progress, analysis and Brand Brain endpoints."""

import logging
from typing import Any, List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.deps import get_onboarding_manager, get_workspace
from api.errors import ApiError, from_domain_error, ok
from core.errors import NotFoundError
from core.onboarding_manager import (
    AnalysisFailedError,
    AnalysisInProgressError,
    NoEvidenceError,
    OnboardingManager,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/brands/{slug}/onboarding', tags=['onboarding'])

OnboardingStep = Literal[
    'intro', 'collecting_evidence', 'waiting_for_analysis', 'analyzing', 'reviewing_brand_brain', 'complete'
]


class StepRequest(BaseModel):
    step: Any = None


class StateRequest(BaseModel):
    step: OnboardingStep


class AnalyzeRequest(BaseModel):
    force: bool = False
    brandNameOnly: bool = False


class BrainUpdateRequest(BaseModel):
    summary: Optional[str] = None
    audience: Optional[str] = None
    tone: Optional[str] = None
    offers: Optional[str] = None
    pillars: Optional[List[str]] = None
    competitors: Optional[List[str]] = None
    channels: Optional[List[str]] = None
    recommendations: Optional[List[str]] = None
    status: Optional[Literal['not_started', 'in_progress', 'ready']] = None


class RefineRequest(BaseModel):
    section: Optional[str] = None
    content: Optional[str] = None


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

@router.get('')
def get_progress(workspace=Depends(get_workspace), manager: OnboardingManager = Depends(get_onboarding_manager)):
    return ok(manager.get_progress(workspace))


@router.patch('')
def set_progress(
    body: StepRequest,
    workspace=Depends(get_workspace),
    manager: OnboardingManager = Depends(get_onboarding_manager),
):
    try:
        return ok(manager.set_step(workspace, body.step))
    except ValueError as e:
        raise from_domain_error(e)


@router.get('/state')
def get_state(workspace=Depends(get_workspace), manager: OnboardingManager = Depends(get_onboarding_manager)):
    return ok(manager.get_state(workspace))


@router.patch('/state')
def set_state(
    body: StateRequest,
    workspace=Depends(get_workspace),
    manager: OnboardingManager = Depends(get_onboarding_manager),
):
    return ok(manager.set_state(workspace, body.step))


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

@router.post('/analyze')
def analyze(
    body: Optional[AnalyzeRequest] = None,
    workspace=Depends(get_workspace),
    manager: OnboardingManager = Depends(get_onboarding_manager),
):
    body = body or AnalyzeRequest()
    logger.info(f'[ANALYZE] Request for {workspace.slug}: force={body.force}, brandNameOnly={body.brandNameOnly}')
    try:
        analysis = manager.run_analysis(workspace, force=body.force, brand_name_only=body.brandNameOnly)
    except AnalysisInProgressError as e:
        raise ApiError(409, str(e), code='ANALYSIS_IN_PROGRESS',
                       startedAt=e.started_at.isoformat() if e.started_at else None)
    except NoEvidenceError as e:
        raise ApiError(400, str(e), code='NO_EVIDENCE_GPT_SUGGESTION', details=e.details)
    except AnalysisFailedError as e:
        raise ApiError(500, str(e), code='GPT_ANALYSIS_FAILED', details={'message': str(e)})
    except NotFoundError as e:
        raise from_domain_error(e)
    return ok(analysis)


@router.post('/analyze/reset')
def reset_analysis(workspace=Depends(get_workspace), manager: OnboardingManager = Depends(get_onboarding_manager)):
    result = manager.reset_analysis(workspace)
    return ok({'resetAt': result['resetAt']}, message=result['message'])


# ---------------------------------------------------------------------------
# Brand Brain
# ---------------------------------------------------------------------------

@router.get('/brain')
def get_brain(workspace=Depends(get_workspace), manager: OnboardingManager = Depends(get_onboarding_manager)):
    return ok(manager.get_brain(workspace.slug))


@router.patch('/brain')
def update_brain(
    body: BrainUpdateRequest,
    workspace=Depends(get_workspace),
    manager: OnboardingManager = Depends(get_onboarding_manager),
):
    return ok(manager.update_brain(workspace, body.model_dump(exclude_none=True)))


@router.post('/brain')
def complete_onboarding(workspace=Depends(get_workspace), manager: OnboardingManager = Depends(get_onboarding_manager)):
    try:
        return ok(manager.complete_onboarding(workspace))
    except NotFoundError as e:
        raise from_domain_error(e)


@router.put('/brain')
def refine_brain(
    body: RefineRequest,
    workspace=Depends(get_workspace),
    manager: OnboardingManager = Depends(get_onboarding_manager),
):
    try:
        return ok(manager.refine_section(workspace.slug, body.section, body.content))
    except (ValueError, NotFoundError) as e:
        raise from_domain_error(e)
