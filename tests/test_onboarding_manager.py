"""
Tests for the onboarding manager: step tracking, the analysis lock,
both analysis paths and Brand Brain section edits.

perform_gpt_brand_analysis is patched so no model is called.
"""

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from core.errors import ForbiddenError, NotFoundError
from core.onboarding_manager import (
    AnalysisFailedError,
    AnalysisInProgressError,
    NoEvidenceError,
    OnboardingManager,
    compute_status,
    split_lines,
)
from data import store
from data.models import BrandAnalysisResult, BrandInsights, SearchResult, WebSearchResult

ANALYSIS = {
    "summary": "Acme Rockets is a challenger launch provider.",
    "audience": "Small satellite operators",
    "tone": "Confident, technical",
    "pillars": ["Reliability", "Reusability"],
    "offers": "Dedicated and rideshare launches",
    "competitors": ["Globex"],
    "channels": ["LinkedIn"],
    "recommendations": ["Publish mission recaps"],
}


def _search_data(success=True):
    return WebSearchResult(
        success=success,
        brand_name="Acme Rockets",
        search_results=[SearchResult(title="Acme", url="https://acme.com/")] if success else [],
        insights=BrandInsights(company_info="Acme builds rockets."),
        sources=["web_search"] if success else [],
    )


def _result(success=True, analysis=None):
    return BrandAnalysisResult(success=success, analysis=analysis, search_data=_search_data(success))


@pytest.fixture
def manager(engine):
    return OnboardingManager(engine=engine)


def _brain(engine, workspace):
    with store.session_scope(engine) as session:
        return store.get_brain_for_workspace(session, workspace.id)


def _messages(manager, workspace):
    return [m["message"] for m in manager.list_system_messages(workspace)]


class TestHelpers:
    def test_compute_status(self):
        assert compute_status(1) == "not_started"
        assert compute_status(3) == "in_progress"
        assert compute_status(5) == "ready"

    def test_split_lines(self):
        assert split_lines("One\n\n  Two  \n") == ["One", "Two"]


class TestOnboardingSteps:
    def test_initial_state(self, manager, workspace):
        state = manager.get_state(workspace)

        assert state["step"] == "intro"
        assert state["onboardingStep"] == 1
        assert state["isActivated"] is False
        assert manager.get_progress(workspace) == {"step": 1, "isActivated": False}

    def test_set_state(self, manager, workspace, engine):
        state = manager.set_state(workspace, "waiting_for_analysis")

        assert state["onboardingStep"] == 3
        assert state["status"] == "in_progress"
        assert manager.get_state(workspace)["step"] == "waiting_for_analysis"

    def test_set_state_complete_activates(self, manager, workspace, engine):
        state = manager.set_state(workspace, "complete")

        assert state["isActivated"] is True
        brain = _brain(engine, workspace)
        assert brain.is_activated is True
        assert brain.status == "ready"

    def test_set_state_invalid(self, manager, workspace):
        with pytest.raises(ValueError, match="Invalid onboarding step: later"):
            manager.set_state(workspace, "later")

    def test_set_step(self, manager, workspace, engine):
        assert manager.set_step(workspace, 5) == {"step": 5, "isActivated": True}
        assert manager.set_step(workspace, 2) == {"step": 2, "isActivated": False}
        assert _brain(engine, workspace).status == "in_progress"
        with store.session_scope(engine) as session:
            assert store.get_workspace(session, workspace.id).onboarding_step == 2

    @pytest.mark.parametrize("step", [0, 6, "3", True, None])
    def test_set_step_invalid(self, manager, workspace, step):
        with pytest.raises(ValueError, match="Must be between 1 and 5"):
            manager.set_step(workspace, step)


class TestAnalysisLock:
    def test_recent_analysis_blocks(self, manager, workspace):
        manager.set_step(workspace, 4)

        with pytest.raises(AnalysisInProgressError):
            manager.run_analysis(workspace)

    @patch('core.onboarding_manager.perform_gpt_brand_analysis')
    def test_force_restarts(self, mock_analysis, manager, workspace, add_evidence):
        mock_analysis.return_value = _result(analysis=ANALYSIS)
        add_evidence(workspace)
        manager.set_step(workspace, 4)

        analysis = manager.run_analysis(workspace, force=True)

        assert analysis["summary"] == ANALYSIS["summary"]

    @patch('core.onboarding_manager.perform_gpt_brand_analysis')
    def test_stale_analysis_restarts(self, mock_analysis, manager, workspace, engine, add_evidence):
        mock_analysis.return_value = _result(analysis=ANALYSIS)
        add_evidence(workspace)
        with store.session_scope(engine) as session:
            ws = store.get_workspace(session, workspace.id)
            store.update_brain(session, ws, status="in_progress", onboarding_step=4,
                               analysis_started_at=datetime.utcnow() - timedelta(minutes=10))

        manager.run_analysis(workspace)

        assert _brain(engine, workspace).status == "ready"


class TestEvidenceAnalysis:
    def test_no_evidence(self, manager, workspace, engine, add_evidence):
        add_evidence(workspace, status="pending")

        with pytest.raises(NoEvidenceError) as exc_info:
            manager.run_analysis(workspace)

        assert exc_info.value.details == {
            "suggestion": "gpt_brand_search",
            "brandName": "Acme Rockets",
            "canPerformGPTAnalysis": True,
        }
        brain = _brain(engine, workspace)
        assert brain.status == "in_progress"
        assert brain.onboarding_step == 4

    @patch('core.onboarding_manager.perform_gpt_brand_analysis')
    def test_gpt_enhanced(self, mock_analysis, manager, workspace, engine, add_evidence):
        mock_analysis.return_value = _result(analysis=ANALYSIS)
        add_evidence(workspace, value="We sell rockets", analyzed_content="Rockets for small satellites")
        add_evidence(workspace, type="website", value="https://acme.com")

        analysis = manager.run_analysis(workspace)

        assert analysis["pillars"] == ["Reliability", "Reusability"]
        args = mock_analysis.call_args
        assert args.args[0] == "Acme Rockets"
        assert sorted(args.args[1]) == ["Rockets for small satellites", "https://acme.com"]

        brain = _brain(engine, workspace)
        assert brain.status == "ready"
        assert brain.onboarding_step == 5
        assert brain.evidence_count == 2
        assert brain.gpt_enhanced is True
        assert brain.analysis_method == "gpt_4o_enhanced"
        assert brain.gpt_analysis_data["resultsCount"] == 1
        assert brain.analysis_completed_at is not None

        messages = _messages(manager, workspace)
        assert messages[0] == "✅ GPT-powered Brand Brain created successfully!"
        assert "Starting GPT-powered analysis of 2 evidence items..." in messages
        assert "Added 1 internet sources to analysis" in messages

    @patch('core.onboarding_manager.perform_gpt_brand_analysis')
    def test_research_failure_uses_evidence_only(self, mock_analysis, manager, workspace, engine, add_evidence):
        mock_analysis.side_effect = RuntimeError("network down")
        add_evidence(workspace)

        analysis = manager.run_analysis(workspace)

        assert analysis["summary"].startswith("Analysis of Acme Rockets based on provided evidence.")
        brain = _brain(engine, workspace)
        assert brain.analysis_method == "evidence_only"
        assert brain.gpt_enhanced is False
        assert brain.gpt_analysis_data is None

    @patch('core.onboarding_manager.perform_gpt_brand_analysis')
    def test_research_without_analysis_uses_insights(self, mock_analysis, manager, workspace, add_evidence):
        mock_analysis.return_value = _result(analysis=None)
        add_evidence(workspace)

        analysis = manager.run_analysis(workspace)

        assert "Acme builds rockets." in analysis["summary"]
        assert all(analysis.values())


class TestBrandNameAnalysis:
    @patch('core.onboarding_manager.perform_gpt_brand_analysis')
    def test_success(self, mock_analysis, manager, workspace, engine):
        mock_analysis.return_value = _result(analysis=ANALYSIS)

        analysis = manager.run_analysis(workspace, brand_name_only=True)

        assert analysis["tone"] == "Confident, technical"
        mock_analysis.assert_called_once_with("Acme Rockets", [], client=None)

        brain = _brain(engine, workspace)
        assert brain.status == "ready"
        assert brain.evidence_type == "gpt_brand_search"
        assert brain.evidence_count == 1
        assert brain.analysis_method == "gpt_4o_web"

        with store.session_scope(engine) as session:
            items = store.list_evidence(session, "acme-rockets")
            assert len(items) == 1
            assert items[0].type == "brand_name_search"
            assert items[0].status == "complete"
            assert items[0].meta["gptAnalysis"] is True
            assert items[0].meta["searchResults"] == 1

        messages = _messages(manager, workspace)
        assert messages[0] == "Brand Brain created successfully from GPT-powered analysis!"
        assert "Found 1 sources and crawled 0 pages" in messages

    @patch('core.onboarding_manager.perform_gpt_brand_analysis')
    def test_failure(self, mock_analysis, manager, workspace, engine):
        mock_analysis.return_value = _result(success=False)

        with pytest.raises(AnalysisFailedError, match="GPT-powered analysis failed: GPT web search and analysis failed"):
            manager.run_analysis(workspace, brand_name_only=True)

        with store.session_scope(engine) as session:
            item = store.list_evidence(session, "acme-rockets")[0]
            assert item.status == "failed"
            assert item.analysis_error == "GPT web search and analysis failed"


class TestBrandBrainEdits:
    def test_reset(self, manager, workspace, engine):
        manager.set_step(workspace, 5)

        result = manager.reset_analysis(workspace)

        assert result["message"] == "Analysis reset successfully. You can now start a new analysis."
        brain = _brain(engine, workspace)
        assert brain.status == "not_started"
        assert brain.onboarding_step == 3

    def test_get_brain(self, manager, workspace):
        assert manager.get_brain("acme-rockets")["brandSlug"] == "acme-rockets"
        assert manager.get_brain("missing") is None

    def test_update_brain_filters_fields(self, manager, workspace):
        brain = manager.update_brain(workspace, {"summary": "New summary", "is_activated": True, "tone": None})

        assert brain["summary"] == "New summary"
        assert brain["isActivated"] is False
        assert brain["tone"] == ""

    def test_complete_onboarding(self, manager, workspace):
        result = manager.complete_onboarding(workspace)

        assert result["brain"]["isActivated"] is True
        assert result["brain"]["status"] == "ready"
        assert result["workspace"]["slug"] == "acme-rockets"
        assert result["completedAt"]

    def test_refine_list_section(self, manager, workspace):
        brain = manager.refine_section("acme-rockets", "pillars", "Reliability\n\nReusability\n")

        assert brain["pillars"] == ["Reliability", "Reusability"]

    def test_refine_text_section(self, manager, workspace):
        assert manager.refine_section("acme-rockets", "tone", "Playful")["tone"] == "Playful"

    def test_refine_invalid(self, manager, workspace):
        with pytest.raises(ValueError, match="required"):
            manager.refine_section("acme-rockets", "tone", "")
        with pytest.raises(ValueError, match="Invalid section"):
            manager.refine_section("acme-rockets", "mission", "x")
        with pytest.raises(NotFoundError):
            manager.refine_section("missing", "tone", "x")

    def test_update_section(self, manager, workspace, user, engine):
        brain_id = _brain(engine, workspace).id

        result = manager.update_section(str(brain_id), "channels", "LinkedIn\nPodcasts", user_id=user.id)

        assert result == {"sectionKey": "channels"}
        assert _brain(engine, workspace).channels == ["LinkedIn", "Podcasts"]

    def test_update_section_errors(self, manager, workspace, user, engine):
        brain_id = _brain(engine, workspace).id

        with pytest.raises(ValueError, match="Invalid section key"):
            manager.update_section(brain_id, "recommendations", "x")
        with pytest.raises(ValueError, match="Content cannot be empty"):
            manager.update_section(brain_id, "tone", "")
        with pytest.raises(NotFoundError):
            manager.update_section("not-a-number", "tone", "x")
        with pytest.raises(ForbiddenError):
            manager.update_section(brain_id, "tone", "x", user_id=user.id + 1)
