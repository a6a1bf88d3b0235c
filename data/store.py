"""Database store utilities for Brainiark OS."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from config.settings import SETTINGS
from data.models import (
    AiLog,
    Base,
    BrandBrain,
    BrandWorkspace,
    Evidence,
    EvidenceStatus,
    User,
)


def get_engine(database_url: Optional[str] = None):
    """Create a SQLAlchemy engine for the configured database."""

    url = database_url or SETTINGS.get("database_url") or "sqlite:///./brainiark.db"
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, future=True, connect_args=connect_args)


def init_db(engine=None):
    """Create all tables in the configured database."""

    engine = engine or get_engine()
    Base.metadata.create_all(bind=engine)
    return engine


def get_session(engine=None) -> Session:
    engine = engine or get_engine()
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    return SessionLocal()


@contextmanager
def session_scope(engine=None):
    session = get_session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def get_user(session: Session, user_id: int) -> Optional[User]:
    return session.get(User, user_id)


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.query(User).filter(User.email == email.strip().lower()).first()


def get_user_by_reset_token(session: Session, token: str) -> Optional[User]:
    return session.query(User).filter(User.reset_token == token).first()


def create_user(session: Session, **fields) -> User:
    fields["email"] = fields["email"].strip().lower()
    user = User(**fields)
    session.add(user)
    session.flush()
    return user


# ---------------------------------------------------------------------------
# Workspaces
# ---------------------------------------------------------------------------


def get_workspace(session: Session, workspace_id: int) -> Optional[BrandWorkspace]:
    return session.get(BrandWorkspace, workspace_id)


def get_workspace_by_slug(session: Session, slug: str) -> Optional[BrandWorkspace]:
    return session.query(BrandWorkspace).filter(BrandWorkspace.slug == slug).first()


def slug_exists(session: Session, slug: str) -> bool:
    return session.query(BrandWorkspace.id).filter(BrandWorkspace.slug == slug).first() is not None


def list_workspaces_for_user(session: Session, user_id: int) -> List[BrandWorkspace]:
    return (
        session.query(BrandWorkspace)
        .filter(BrandWorkspace.owner_user_id == user_id)
        .order_by(BrandWorkspace.created_at.desc(), BrandWorkspace.id.desc())
        .all()
    )


def touch_workspace(session: Session, workspace_id: int, **fields) -> Optional[BrandWorkspace]:
    workspace = session.get(BrandWorkspace, workspace_id)
    if workspace is None:
        return None
    workspace.last_active_at = datetime.utcnow()
    for key, value in fields.items():
        setattr(workspace, key, value)
    session.flush()
    return workspace


# ---------------------------------------------------------------------------
# Brand Brain
# ---------------------------------------------------------------------------


def get_brain_for_workspace(session: Session, workspace_id: int) -> Optional[BrandBrain]:
    return session.query(BrandBrain).filter(BrandBrain.brand_workspace_id == workspace_id).first()


def get_brain_by_slug(session: Session, slug: str) -> Optional[BrandBrain]:
    return session.query(BrandBrain).filter(BrandBrain.brand_slug == slug).first()


def get_or_create_brain(session: Session, workspace: BrandWorkspace) -> BrandBrain:
    brain = get_brain_for_workspace(session, workspace.id)
    if brain:
        return brain

    brain = BrandBrain(
        brand_workspace_id=workspace.id,
        brand_slug=workspace.slug,
        summary="",
        audience="",
        tone="",
        offers="",
        pillars=[],
        competitors=[],
        channels=[],
        recommendations=[],
        status="not_started",
        is_activated=False,
        onboarding_step=1,
    )
    session.add(brain)
    session.flush()
    return brain


def update_brain(session: Session, workspace: BrandWorkspace, **fields) -> BrandBrain:
    """Upsert the workspace's Brand Brain with the given column values."""
    brain = get_or_create_brain(session, workspace)
    for key, value in fields.items():
        setattr(brain, key, value)
    brain.updated_at = datetime.utcnow()
    session.flush()
    return brain


# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------


def create_evidence(
    session: Session,
    workspace: BrandWorkspace,
    type: str,
    value: str,
    status: str = EvidenceStatus.PENDING.value,
    meta: Optional[Dict[str, Any]] = None,
) -> Evidence:
    evidence = Evidence(
        brand_slug=workspace.slug,
        brand_workspace_id=workspace.id,
        type=type,
        value=value,
        status=status,
        meta=meta or {},
    )
    session.add(evidence)
    session.flush()
    return evidence


def get_evidence(session: Session, evidence_id: int) -> Optional[Evidence]:
    return session.get(Evidence, evidence_id)


def update_evidence(session: Session, evidence_id: int, **fields) -> Optional[Evidence]:
    evidence = session.get(Evidence, evidence_id)
    if evidence is None:
        return None
    for key, value in fields.items():
        setattr(evidence, key, value)
    session.flush()
    return evidence


def update_evidence_status(session: Session, evidence_id: int, status: str, **fields) -> Optional[Evidence]:
    return update_evidence(session, evidence_id, status=status, **fields)


def list_evidence(
    session: Session,
    brand_slug: str,
    status: Optional[str] = None,
    type: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Evidence]:
    """Evidence for a brand, newest first."""
    query = session.query(Evidence).filter(Evidence.brand_slug == brand_slug)
    if status:
        query = query.filter(Evidence.status == status)
    if type:
        query = query.filter(Evidence.type == type)
    query = query.order_by(Evidence.created_at.desc(), Evidence.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def count_evidence(session: Session, brand_slug: str, status: Optional[str] = None) -> int:
    query = session.query(Evidence).filter(Evidence.brand_slug == brand_slug)
    if status:
        query = query.filter(Evidence.status == status)
    return query.count()


def delete_evidence(session: Session, brand_slug: str, evidence_id: int) -> bool:
    evidence = (
        session.query(Evidence)
        .filter(Evidence.id == evidence_id, Evidence.brand_slug == brand_slug)
        .first()
    )
    if evidence is None:
        return False
    session.delete(evidence)
    session.flush()
    return True


# ---------------------------------------------------------------------------
# AI activity log
# ---------------------------------------------------------------------------


def add_ai_log(session: Session, workspace_id: int, message: str, type: str = "system", details: Optional[dict] = None) -> AiLog:
    log = AiLog(brand_workspace_id=workspace_id, type=type, message=message, details=details)
    session.add(log)
    session.flush()
    return log


def list_ai_logs(session: Session, workspace_id: int, limit: int = 50) -> List[AiLog]:
    return (
        session.query(AiLog)
        .filter(AiLog.brand_workspace_id == workspace_id)
        .order_by(AiLog.created_at.desc(), AiLog.id.desc())
        .limit(limit)
        .all()
    )
