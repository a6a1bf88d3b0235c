"""Brand workspace creation and ownership checks."""

import logging
from typing import Any, Dict, List, Optional

from analysis.threads import ThreadManager, thread_manager
from core.errors import ForbiddenError, NotFoundError
from data import store
from data.models import BrandWorkspace
from utils.slug import generate_unique_slug, slugify_name

logger = logging.getLogger(__name__)

DEFAULT_SLUG = 'brand'


class WorkspaceManager:
    def __init__(self, engine=None, threads: Optional[ThreadManager] = None):
        self.engine = engine or store.init_db()
        self.threads = threads or thread_manager

    def create_workspace(self, user, name: Optional[str], slug_base: Optional[str] = None) -> Dict[str, Any]:
        """Create a workspace, its AI thread and an empty Brand Brain.

        ``user`` may be a User row or its id. The slug comes from ``slug_base``
        when given, otherwise from the name.
        """
        if not name or not isinstance(name, str):
            raise ValueError('Brand name is required')
        name = name.strip()
        if len(name) < 2:
            raise ValueError('Brand name must be at least 2 characters')

        user_id = getattr(user, 'id', user)
        with store.session_scope(self.engine) as session:
            owner = store.get_user(session, user_id)
            if owner is None:
                raise NotFoundError('User not found')
            return self.add_workspace(session, owner, name, slug_base)

    def add_workspace(self, session, owner, name: str, slug_base: Optional[str] = None) -> Dict[str, Any]:
        """Insert the workspace rows in the caller's session; nothing is committed here."""
        slug = generate_unique_slug(session, slugify_name(slug_base or name) or DEFAULT_SLUG)
        workspace = BrandWorkspace(name=name, slug=slug, owner_user_id=owner.id)
        session.add(workspace)
        session.flush()

        workspace.ai_thread_id = self.threads.init_thread(workspace.id)
        brain = store.get_or_create_brain(session, workspace)

        owner.onboarding_status = 'in_progress'
        owner.workspace_id = workspace.id
        logger.info(f'[WORKSPACE] Created {slug} for user {owner.id}')
        return {
            'slug': workspace.slug,
            'brandWorkspaceId': str(workspace.id),
            'aiThreadId': workspace.ai_thread_id,
            'brainId': str(brain.id),
        }

    def list_workspaces(self, user) -> List[Dict[str, Any]]:
        with store.session_scope(self.engine) as session:
            return [ws.to_dict() for ws in store.list_workspaces_for_user(session, getattr(user, 'id', user))]

    def get_workspace_for_user(self, user, slug: str):
        """Workspace row for ``slug``; raises when missing or owned by someone else."""
        with store.session_scope(self.engine) as session:
            workspace = store.get_workspace_by_slug(session, slug)
            if workspace is None:
                raise NotFoundError('Brand workspace not found.')
            if workspace.owner_user_id != getattr(user, 'id', user):
                raise ForbiddenError("You don't have access to this brand.")
            return workspace

    def get_workspace_detail(self, user, slug: str) -> Dict[str, Any]:
        workspace = self.get_workspace_for_user(user, slug)
        with store.session_scope(self.engine) as session:
            brain = store.get_brain_for_workspace(session, workspace.id)
            data = workspace.to_dict()
            data['brainId'] = str(brain.id) if brain else None
            data['brain'] = brain.to_dict() if brain else None
            return data
