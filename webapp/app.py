"""
Brainiark OS Operator Console
Streamlit front end over the onboarding services: accounts, workspaces,
evidence, Brand Brain analysis and the onboarding assistant.
"""
from __future__ import annotations

import os
import sys

# Ensure project root is on PYTHONPATH
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import logging
from typing import Any, Dict, List, Optional

import streamlit as st

from analysis.evidence_monitor import monitor_evidence_pipeline
from analysis.evidence_processor import run_evidence_processing
from analysis.onboarding_chat import ONBOARDING_STEPS, stream_onboarding_reply
from config.settings import SETTINGS
from core.auth import AuthService, LoginRequest, RegisterRequest
from core.errors import AuthError, ConflictError
from core.onboarding_manager import (
    NUMBER_TO_STEP,
    AnalysisFailedError,
    AnalysisInProgressError,
    NoEvidenceError,
    OnboardingManager,
)
from core.workspace_manager import WorkspaceManager
from data import store
from data.models import BRAIN_LIST_SECTIONS, BRAIN_TEXT_SECTIONS, EvidenceStatus
from webapp.utils.logging_utils import ActivityPanel, StreamlitLogHandler, render_system_messages

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

EVIDENCE_TYPES = {
    'website': '🌐 Website URL',
    'document': '📄 Document text',
    'social': '💬 Social content',
    'manual': '✍️ Manual description',
}

STATUS_BADGES = {
    EvidenceStatus.PENDING.value: '⏳ pending',
    EvidenceStatus.PROCESSING.value: '⚙️ processing',
    EvidenceStatus.COMPLETE.value: '✅ complete',
    EvidenceStatus.FAILED.value: '❌ failed',
}

SECTION_LABELS = {
    'summary': 'Summary',
    'audience': 'Audience',
    'tone': 'Tone of voice',
    'offers': 'Offers',
    'pillars': 'Content pillars',
    'competitors': 'Competitors',
    'channels': 'Channels',
    'recommendations': 'Recommendations',
}


@st.cache_resource
def get_engine():
    return store.init_db()


def services():
    engine = get_engine()
    return AuthService(engine), WorkspaceManager(engine), OnboardingManager(engine)


def current_user():
    user_id = st.session_state.get('user_id')
    if not user_id:
        return None
    with store.session_scope(get_engine()) as session:
        return store.get_user(session, user_id)


def attach_activity_panel(container) -> tuple:
    """Mirror log records into ``container`` until the returned handler is removed."""
    panel = ActivityPanel(container)
    handler = StreamlitLogHandler(panel)
    handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logging.getLogger().addHandler(handler)
    return panel, handler


def detach_activity_panel(panel: ActivityPanel, handler: logging.Handler):
    logging.getLogger().removeHandler(handler)
    panel.clear()


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

def show_login_page():
    """Login and registration forms"""
    st.markdown('<div class="main-header">🧠 Brainiark OS</div>', unsafe_allow_html=True)
    st.markdown('<div class="sub-header">Build a Brand Brain from your brand evidence</div>', unsafe_allow_html=True)

    auth, _, _ = services()
    login_tab, register_tab = st.tabs(["Log in", "Create account"])

    with login_tab:
        with st.form("login"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Log in", type="primary")
        if submitted:
            try:
                body = LoginRequest(email=email, password=password)
                result = auth.login(body.email, body.password)
            except AuthError as e:
                st.error(str(e))
            except ValueError as e:
                st.error(f"Invalid input: {e}")
            else:
                st.session_state['user_id'] = int(result['user']['id'])
                st.session_state['page'] = 'workspaces'
                st.rerun()

    with register_tab:
        with st.form("register"):
            col1, col2 = st.columns(2)
            with col1:
                first_name = st.text_input("First name")
            with col2:
                last_name = st.text_input("Last name")
            email = st.text_input("Email", key="register_email")
            phone = st.text_input("Phone")
            password = st.text_input("Password", type="password", key="register_password")
            submitted = st.form_submit_button("Create account", type="primary")
        if submitted:
            try:
                body = RegisterRequest(firstName=first_name, lastName=last_name, email=email,
                                       phone=phone, password=password)
                result = auth.register(body.firstName, body.lastName, body.email, body.phone, body.password)
            except ConflictError as e:
                st.error(str(e))
            except ValueError as e:
                st.error(f"Invalid input: {e}")
            else:
                st.session_state['user_id'] = int(result['user']['id'])
                st.session_state['page'] = 'workspaces'
                st.rerun()


def show_workspaces_page(user):
    """Pick or create a brand workspace"""
    st.markdown('<div class="main-header">🏷️ Brand Workspaces</div>', unsafe_allow_html=True)
    _, workspaces, _ = services()

    items = workspaces.list_workspaces(user)
    if items:
        for ws in items:
            col1, col2, col3 = st.columns([3, 2, 1])
            with col1:
                st.markdown(f"**{ws['name']}**  \n`{ws['slug']}`")
            with col2:
                step = NUMBER_TO_STEP.get(ws['onboardingStep'], 'intro')
                st.caption(f"{ws['status']} · {step}")
            with col3:
                if st.button("Open", key=f"open_{ws['slug']}", width='stretch'):
                    st.session_state['slug'] = ws['slug']
                    st.session_state['page'] = 'evidence'
                    st.rerun()
    else:
        st.info("No workspaces yet. Create one below.")

    st.divider()
    with st.form("create_workspace"):
        name = st.text_input("Brand name", placeholder="e.g., Acme Coffee")
        submitted = st.form_submit_button("Create workspace", type="primary")
    if submitted:
        try:
            result = workspaces.create_workspace(user, name)
        except ValueError as e:
            st.error(str(e))
        else:
            st.success(f"Created {result['slug']}")
            st.session_state['slug'] = result['slug']
            st.session_state['page'] = 'evidence'
            st.rerun()


def show_evidence_page(user, workspace):
    """Add evidence and watch processing"""
    st.markdown(f'<div class="main-header">📥 Evidence · {workspace.name}</div>', unsafe_allow_html=True)

    with st.form("add_evidence", clear_on_submit=True):
        evidence_type = st.selectbox("Type", list(EVIDENCE_TYPES), format_func=EVIDENCE_TYPES.get)
        value = st.text_area("Value", placeholder="https://example.com, a description, pasted text...")
        submitted = st.form_submit_button("Add and process", type="primary")

    if submitted:
        if not value.strip():
            st.error("Value is required")
        else:
            with store.session_scope(get_engine()) as session:
                evidence = store.create_evidence(session, workspace, evidence_type, value.strip())
                store.touch_workspace(session, workspace.id)
                evidence_id = evidence.id

            panel, handler = attach_activity_panel(st.empty())
            panel.show(f"Processing {evidence_type} evidence...", "⚙️")
            try:
                run_evidence_processing(evidence_id, evidence_type, value.strip(), engine=get_engine())
            finally:
                detach_activity_panel(panel, handler)
            st.success("Evidence processed")

    st.divider()
    with store.session_scope(get_engine()) as session:
        items = store.list_evidence(session, workspace.slug, limit=SETTINGS.get('evidence_list_limit', 50))

    if not items:
        st.caption("No evidence yet.")
    for item in items:
        label = f"{STATUS_BADGES.get(item.status, item.status)} · {item.type} · {item.value[:60]}"
        with st.expander(label):
            if item.analysis_summary:
                st.markdown(f"**Summary:** {item.analysis_summary}")
            if item.analysis_error:
                st.error(item.analysis_error)
            st.text(item.analyzed_content or item.value)
            if st.button("Delete", key=f"delete_{item.id}"):
                with store.session_scope(get_engine()) as session:
                    store.delete_evidence(session, workspace.slug, item.id)
                st.rerun()

    with st.expander("🔎 Website pipeline monitor"):
        st.json(monitor_evidence_pipeline(workspace.slug, engine=get_engine()))


def show_brain_page(user, workspace):
    """Run the analysis and refine the Brand Brain"""
    st.markdown(f'<div class="main-header">🧠 Brand Brain · {workspace.name}</div>', unsafe_allow_html=True)
    _, _, onboarding = services()

    col1, col2, col3 = st.columns(3)
    with col1:
        run = st.button("🚀 Analyze evidence", type="primary", width='stretch')
    with col2:
        run_search = st.button("🌐 Analyze brand name only", width='stretch')
    with col3:
        force = st.checkbox("Force restart")

    if run or run_search:
        panel, handler = attach_activity_panel(st.empty())
        panel.show("Building your Brand Brain...", "🧠")
        try:
            onboarding.run_analysis(workspace, force=force, brand_name_only=run_search)
        except AnalysisInProgressError as e:
            st.warning(str(e))
        except NoEvidenceError as e:
            st.warning(str(e))
        except AnalysisFailedError as e:
            st.error(str(e))
        else:
            st.success("Brand Brain ready")
        finally:
            detach_activity_panel(panel, handler)

    brain = onboarding.get_brain(workspace.slug)
    if not brain:
        st.info("No Brand Brain yet.")
        return

    st.caption(f"Status: {brain['status']} · method: {brain.get('analysisMethod') or '-'} · "
               f"evidence used: {brain.get('evidenceCount', 0)}")

    for section in BRAIN_TEXT_SECTIONS + BRAIN_LIST_SECTIONS:
        value = brain.get(section)
        current = '\n'.join(value) if section in BRAIN_LIST_SECTIONS else (value or '')
        with st.expander(SECTION_LABELS[section], expanded=section == 'summary'):
            edited = st.text_area(
                SECTION_LABELS[section],
                value=current,
                key=f"section_{section}",
                label_visibility="collapsed",
                help="One item per line" if section in BRAIN_LIST_SECTIONS else None,
            )
            if st.button("Save", key=f"save_{section}") and edited.strip() and edited != current:
                onboarding.refine_section(workspace.slug, section, edited)
                st.rerun()

    st.divider()
    if brain.get('isActivated'):
        st.success("Onboarding complete")
    elif st.button("✅ Complete onboarding", type="primary"):
        onboarding.complete_onboarding(workspace)
        st.rerun()


def show_chat_page(user, workspace):
    """Onboarding assistant"""
    st.markdown(f'<div class="main-header">💬 Assistant · {workspace.name}</div>', unsafe_allow_html=True)
    _, _, onboarding = services()

    state = onboarding.get_state(workspace)
    step = st.selectbox("Onboarding step", ONBOARDING_STEPS, index=ONBOARDING_STEPS.index(state['step']))

    history_key = f"chat_{workspace.slug}"
    history: List[Dict[str, str]] = st.session_state.setdefault(history_key, [])
    for message in history:
        with st.chat_message(message['role']):
            st.markdown(message['content'])

    prompt = st.chat_input("Ask the onboarding assistant")
    if prompt:
        history.append({'role': 'user', 'content': prompt})
        with st.chat_message('user'):
            st.markdown(prompt)
        with st.chat_message('assistant'):
            reply = st.write_stream(stream_onboarding_reply(
                workspace, prompt, step, {'source': 'console'}, engine=get_engine()))
        history.append({'role': 'assistant', 'content': reply if isinstance(reply, str) else ''.join(reply)})


def show_activity_page(user, workspace):
    """Persisted AI system messages"""
    st.markdown(f'<div class="main-header">📜 AI Activity · {workspace.name}</div>', unsafe_allow_html=True)
    _, _, onboarding = services()
    render_system_messages(onboarding.list_system_messages(workspace, limit=100), limit=100)


def load_workspace(user) -> Optional[Any]:
    slug = st.session_state.get('slug')
    if not slug:
        return None
    _, workspaces, _ = services()
    try:
        return workspaces.get_workspace_for_user(user, slug)
    except LookupError as e:
        st.error(str(e))
        st.session_state.pop('slug', None)
        return None


def main():
    """Main application entry point"""
    st.set_page_config(
        page_title="Brainiark OS",
        page_icon="🧠",
        layout="wide",
        initial_sidebar_state="expanded"
    )
    st.markdown("""
<style>
    .main-header { font-size: 2.4rem; font-weight: bold; color: #1f77b4; margin-bottom: 0.5rem; }
    .sub-header { font-size: 1.1rem; color: #666; margin-bottom: 1.5rem; }
    .activity-container { font-size: 0.85rem; padding: 0.5rem 0; }
    .activity-item { font-weight: 600; margin-bottom: 0.25rem; }
    .activity-emoji { margin-right: 0.4rem; }
    .activity-log-entry { color: #777; font-family: monospace; }
</style>
""", unsafe_allow_html=True)

    user = current_user()
    if user is None:
        show_login_page()
        return

    if 'page' not in st.session_state:
        st.session_state['page'] = 'workspaces'

    workspace = load_workspace(user)

    with st.sidebar:
        st.markdown(f"**{user.first_name} {user.last_name}**")
        st.caption(user.email)
        if workspace is not None:
            st.caption(f"Workspace: {workspace.name}")
        st.divider()

        pages = [('workspaces', "🏷️ Workspaces")]
        if workspace is not None:
            pages += [
                ('evidence', "📥 Evidence"),
                ('brain', "🧠 Brand Brain"),
                ('chat', "💬 Assistant"),
                ('activity', "📜 AI Activity"),
            ]
        for key, label in pages:
            if st.button(label, width='stretch'):
                st.session_state['page'] = key
                st.rerun()

        st.divider()
        if st.button("Log out", width='stretch'):
            st.session_state.clear()
            st.rerun()
        st.caption("Brainiark OS")

    page = st.session_state.get('page', 'workspaces')
    if workspace is None or page == 'workspaces':
        show_workspaces_page(user)
    elif page == 'evidence':
        show_evidence_page(user, workspace)
    elif page == 'brain':
        show_brain_page(user, workspace)
    elif page == 'chat':
        show_chat_page(user, workspace)
    elif page == 'activity':
        show_activity_page(user, workspace)


if __name__ == '__main__':
    main()
