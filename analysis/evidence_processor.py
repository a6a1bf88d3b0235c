"""
Evidence processor.

Turns one stored evidence item into analyzed content: websites are crawled
(with a JS-site fallback) and analyzed, text evidence goes straight to the
per-type analysis prompt. Processing always leaves the item in a terminal
state.
"""

import logging
from datetime import datetime
from typing import Optional

from analysis.llm_client import ChatClient, LLMServiceError, create_analysis_completion
from analysis.search_processor import process_brand_name_search
from data.models import EvidenceStatus, EvidenceType
from data.store import get_evidence, get_workspace, session_scope, update_evidence, update_evidence_status
from ingestion.js_crawler import crawl_javascript_site
from ingestion.web_crawler import crawl_website, format_crawl_report
from prompts.evidence import (
    DOCUMENT_ANALYSIS_SYSTEM,
    MANUAL_ANALYSIS_SYSTEM,
    SOCIAL_ANALYSIS_SYSTEM,
    WEBSITE_ANALYSIS_SYSTEM,
    build_document_prompt,
    build_manual_prompt,
    build_social_prompt,
    build_website_prompt,
)

logger = logging.getLogger(__name__)

THIN_CONTENT_CHARS = 200
SUMMARY_CHARS = 200
DOCUMENT_FALLBACK_CHARS = 500


def summarize_analysis(content: str) -> str:
    """First 200 chars of the first non-empty paragraph."""
    for paragraph in (content or '').split('\n\n'):
        paragraph = ' '.join(paragraph.split())
        if paragraph:
            return paragraph[:SUMMARY_CHARS]
    return ''


# ---------------------------------------------------------------------------
# Per-type analysis
# ---------------------------------------------------------------------------

def build_website_report(url: str) -> tuple:
    """Crawl ``url`` and render the crawl report.

    Returns:
        (WebsiteData, report text)
    """
    data = crawl_website(url)
    js_text = None
    if not data.error and (data.is_javascript_site or len(data.main_content or '') < THIN_CONTENT_CHARS):
        logger.info(f'[EVIDENCE] Thin or JS-rendered page, trying JS crawler for {url}')
        js_result = crawl_javascript_site(data.url)
        if js_result.success:
            js_text = js_result.text
    return data, format_crawl_report(data, js_text=js_text)


def analyze_website(url: str, client: Optional[ChatClient] = None) -> str:
    data, report = build_website_report(url)
    # A failed crawl still produces a report; the model only sees the URL then
    prompt = build_website_prompt(url) if data.error else build_website_prompt(url, report)

    try:
        response = create_analysis_completion(WEBSITE_ANALYSIS_SYSTEM, prompt, client=client)
    except LLMServiceError as e:
        logger.error(f'[EVIDENCE] Website analysis error for {url}: {e.message}')
        return report or f'Website: {url}'

    if not response:
        return report or f'Website URL provided: {url}'
    return f'{response}\n\n{report}' if report else response


def analyze_document(content: str, client: Optional[ChatClient] = None) -> str:
    try:
        response = create_analysis_completion(DOCUMENT_ANALYSIS_SYSTEM, build_document_prompt(content), client=client)
    except LLMServiceError as e:
        logger.error(f'[EVIDENCE] Document analysis error: {e.message}')
        return content[:DOCUMENT_FALLBACK_CHARS] + ('...' if len(content) > DOCUMENT_FALLBACK_CHARS else '')
    return response or 'Document content analyzed'


def analyze_social(content: str, client: Optional[ChatClient] = None) -> str:
    try:
        response = create_analysis_completion(SOCIAL_ANALYSIS_SYSTEM, build_social_prompt(content), client=client)
    except LLMServiceError as e:
        logger.error(f'[EVIDENCE] Social analysis error: {e.message}')
        return content
    return response or 'Social content analyzed'


def analyze_manual_input(content: str, client: Optional[ChatClient] = None) -> str:
    try:
        response = create_analysis_completion(MANUAL_ANALYSIS_SYSTEM, build_manual_prompt(content), client=client)
    except LLMServiceError as e:
        logger.error(f'[EVIDENCE] Manual input analysis error: {e.message}')
        return content
    return response or content


ANALYZERS = {
    EvidenceType.WEBSITE.value: analyze_website,
    EvidenceType.DOCUMENT.value: analyze_document,
    EvidenceType.SOCIAL.value: analyze_social,
    EvidenceType.MANUAL.value: analyze_manual_input,
}


# ---------------------------------------------------------------------------
# Processing entry points
# ---------------------------------------------------------------------------

def process_evidence(evidence_id: int, type: str, value: str, engine=None, client: Optional[ChatClient] = None):
    """Analyze one evidence item and store the result.

    Dispatch failures still complete the item with its raw value; only
    database errors escape.
    """
    with session_scope(engine) as session:
        evidence = update_evidence_status(session, evidence_id, EvidenceStatus.PROCESSING.value)
        if evidence is None:
            raise LookupError(f'Evidence {evidence_id} not found')
        brand_slug = evidence.brand_slug
        workspace_id = evidence.brand_workspace_id
        workspace = get_workspace(session, workspace_id)
        brand_name = workspace.name if workspace else value

    fields = {}
    try:
        if type == EvidenceType.BRAND_NAME_SEARCH.value:
            result = process_brand_name_search(value or brand_name, brand_slug, workspace_id, client=client)
            analyzed = result['content']
            fields['analysis_summary'] = result['summary']
            fields['meta'] = result['metadata']
        elif type in ANALYZERS:
            analyzed = ANALYZERS[type](value, client=client)
        else:
            analyzed = value
    except Exception as e:
        logger.error(f'[EVIDENCE] Error processing evidence {evidence_id}: {e}')
        analyzed = value
        fields = {}

    fields.setdefault('analysis_summary', summarize_analysis(analyzed))
    with session_scope(engine) as session:
        update_evidence_status(
            session,
            evidence_id,
            EvidenceStatus.COMPLETE.value,
            analyzed_content=analyzed,
            processing_completed_at=datetime.utcnow(),
            **fields,
        )
    logger.info(f'[EVIDENCE] Processed evidence {evidence_id}: {type}')
    return analyzed


def run_evidence_processing(evidence_id: int, type: str, value: str, engine=None,
                            client: Optional[ChatClient] = None):
    """Background task wrapper; marks the item failed if processing itself breaks."""
    try:
        process_evidence(evidence_id, type, value, engine=engine, client=client)
    except Exception as e:
        logger.exception(f'[EVIDENCE] Background processing failed for {evidence_id}')
        with session_scope(engine) as session:
            if get_evidence(session, evidence_id) is not None:
                update_evidence(
                    session,
                    evidence_id,
                    status=EvidenceStatus.FAILED.value,
                    analysis_error=str(e),
                    analyzed_content=value,
                    processing_completed_at=datetime.utcnow(),
                    processed_with_error=True,
                )
