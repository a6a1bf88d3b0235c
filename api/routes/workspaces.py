import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.deps import get_current_user, get_workspace_manager
from api.errors import from_domain_error, ok
from core.errors import NotFoundError
from core.workspace_manager import WorkspaceManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/brand-workspaces', tags=['workspaces'])


class CreateWorkspaceRequest(BaseModel):
    name: Optional[str] = None


@router.get('')
def list_workspaces(user=Depends(get_current_user), workspaces: WorkspaceManager = Depends(get_workspace_manager)):
    return ok(workspaces.list_workspaces(user))


@router.post('/create')
def create_workspace(
    body: CreateWorkspaceRequest,
    user=Depends(get_current_user),
    workspaces: WorkspaceManager = Depends(get_workspace_manager),
):
    logger.info(f'[BRAND_CREATE] Creating brand for user {user.id}')
    try:
        data = workspaces.create_workspace(user, body.name)
    except (ValueError, NotFoundError) as e:
        raise from_domain_error(e)
    return ok(data, status_code=201)


@router.get('/{slug}')
def get_workspace(
    slug: str,
    user=Depends(get_current_user),
    workspaces: WorkspaceManager = Depends(get_workspace_manager),
):
    try:
        return ok(workspaces.get_workspace_detail(user, slug))
    except LookupError as e:
        raise from_domain_error(e)
