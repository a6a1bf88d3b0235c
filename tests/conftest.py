import pytest

from data import store
from data.models import BrandWorkspace


@pytest.fixture
def engine(tmp_path):
    engine = store.get_engine(f"sqlite:///{tmp_path / 'test.db'}")
    store.init_db(engine)
    return engine


@pytest.fixture
def user(engine):
    with store.session_scope(engine) as session:
        return store.create_user(
            session,
            first_name="Ada",
            last_name="Lovelace",
            email="Ada@Example.com",
            phone="+1 555 0100",
            password_hash="not-a-real-hash",
        )


@pytest.fixture
def workspace(engine, user):
    with store.session_scope(engine) as session:
        ws = BrandWorkspace(name="Acme Rockets", slug="acme-rockets", owner_user_id=user.id)
        session.add(ws)
        session.flush()
        store.get_or_create_brain(session, ws)
        return ws


@pytest.fixture
def add_evidence(engine):
    """Factory inserting one evidence row; returns its id."""

    def _add(workspace, type="manual", value="We sell rockets", status="complete", analyzed_content=None):
        with store.session_scope(engine) as session:
            ws = store.get_workspace(session, workspace.id)
            item = store.create_evidence(session, ws, type, value, status=status)
            if analyzed_content is not None:
                item.analyzed_content = analyzed_content
            return item.id

    return _add
