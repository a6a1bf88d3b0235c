"""Evidence CRUD; new items are analyzed by a background task after the response."""

import logging
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from pydantic import BaseModel, Field

from analysis.evidence_monitor import monitor_evidence_pipeline
from analysis.evidence_processor import run_evidence_processing
from api.deps import get_engine, get_llm_client, get_workspace
from api.errors import ApiError, ok
from config.settings import SETTINGS
from data import store
from data.models import EvidenceStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/brands/{slug}/onboarding/evidence', tags=['evidence'])

EVIDENCE_TYPE_LABELS = {
    'website': 'url',
    'document': 'file',
    'social': 'text',
    'manual': 'text',
    'brand_name_search': 'search',
}


class EvidenceCreateRequest(BaseModel):
    type: Literal['website', 'document', 'social', 'manual']
    value: str = Field(min_length=1)


class EvidenceUpdateRequest(BaseModel):
    id: Optional[str] = None
    status: Optional[Literal['pending', 'processing', 'complete', 'failed']] = None
    analyzedContent: Optional[str] = None
    analysisSummary: Optional[str] = None


def serialize_evidence(item) -> Dict[str, Any]:
    metadata = {
        'originalValue': item.value,
        'status': item.status or EvidenceStatus.PENDING.value,
        'analyzedContent': item.analyzed_content,
        'analysisSummary': item.analysis_summary,
    }
    if item.type == 'brand_name_search':
        metadata['searchType'] = 'brand_search'
    return {
        'id': str(item.id),
        'content': item.analyzed_content or item.value,
        'type': EVIDENCE_TYPE_LABELS.get(item.type, 'text'),
        'source': item.type,
        'createdAt': item.created_at.isoformat() if item.created_at else None,
        'metadata': metadata,
    }


def _evidence_id(raw: Optional[str]) -> int:
    if not raw:
        raise ApiError(400, 'Evidence ID is required')
    try:
        return int(raw)
    except ValueError:
        raise ApiError(404, 'Evidence not found')


@router.get('')
def list_evidence(
    status: Optional[str] = None,
    type: Optional[str] = None,
    limit: Optional[int] = None,
    workspace=Depends(get_workspace),
    engine=Depends(get_engine),
):
    with store.session_scope(engine) as session:
        items = store.list_evidence(
            session, workspace.slug, status=status, type=type,
            limit=limit or SETTINGS.get('evidence_list_limit', 50),
        )
        return ok([serialize_evidence(item) for item in items])


@router.post('')
def create_evidence(
    body: EvidenceCreateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    workspace=Depends(get_workspace),
    engine=Depends(get_engine),
):
    with store.session_scope(engine) as session:
        evidence = store.create_evidence(session, workspace, body.type, body.value)
        store.touch_workspace(session, workspace.id)
        data = serialize_evidence(evidence)
        evidence_id = evidence.id

    logger.info(f'[EVIDENCE] Queued {body.type} evidence {evidence_id} for {workspace.slug}')
    background_tasks.add_task(
        run_evidence_processing, evidence_id, body.type, body.value,
        engine=engine, client=get_llm_client(request),
    )
    return ok(data, status_code=201)


@router.patch('')
def update_evidence(body: EvidenceUpdateRequest, workspace=Depends(get_workspace), engine=Depends(get_engine)):
    evidence_id = _evidence_id(body.id)
    fields = {}
    if body.status:
        fields['status'] = body.status
    if body.analyzedContent:
        fields['analyzed_content'] = body.analyzedContent
    if body.analysisSummary:
        fields['analysis_summary'] = body.analysisSummary

    with store.session_scope(engine) as session:
        evidence = store.get_evidence(session, evidence_id)
        if evidence is None or evidence.brand_slug != workspace.slug:
            raise ApiError(404, 'Evidence not found')
        evidence = store.update_evidence(session, evidence_id, **fields)
        return ok(serialize_evidence(evidence))


@router.delete('')
def delete_evidence(id: Optional[str] = None, workspace=Depends(get_workspace), engine=Depends(get_engine)):
    evidence_id = _evidence_id(id)
    with store.session_scope(engine) as session:
        if not store.delete_evidence(session, workspace.slug, evidence_id):
            raise ApiError(404, 'Evidence not found')
    return ok({'deleted': True, 'id': id, 'message': 'Evidence successfully deleted'})


@router.get('/monitor')
def monitor(workspace=Depends(get_workspace), engine=Depends(get_engine)):
    return ok(monitor_evidence_pipeline(workspace.slug, engine=engine))
