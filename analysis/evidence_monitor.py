"""Website evidence pipeline report, used by the monitor endpoint and CLI."""

import json
import logging
from typing import Any, Dict

from data.models import EvidenceStatus, EvidenceType
from data.store import list_evidence, session_scope
from ingestion.web_crawler import CRAWL_REPORT_MARKER

logger = logging.getLogger(__name__)

CRAWL_FAILED_MARKER = 'Crawl failed'


def monitor_evidence_pipeline(slug: str, engine=None) -> Dict[str, Any]:
    with session_scope(engine) as session:
        items = list_evidence(session, slug, type=EvidenceType.WEBSITE.value)

        details = []
        crawled = failed = pending = 0
        for item in items:
            content = item.analyzed_content or ''
            has_crawl = CRAWL_REPORT_MARKER in content
            crawled += has_crawl
            failed += CRAWL_FAILED_MARKER in content or item.status == EvidenceStatus.FAILED.value
            pending += item.status in (EvidenceStatus.PENDING.value, EvidenceStatus.PROCESSING.value)
            details.append({
                'id': str(item.id),
                'value': item.value[:50],
                'status': item.status,
                'hasCrawl': has_crawl,
                'contentLength': len(content),
                'createdAt': item.created_at.isoformat() if item.created_at else None,
            })

    return {
        'totalWebsites': len(items),
        'crawledWebsites': crawled,
        'failedCrawls': failed,
        'pendingWebsites': pending,
        'details': details,
    }


def debug_evidence_pipeline(slug: str, engine=None) -> Dict[str, Any]:
    report = monitor_evidence_pipeline(slug, engine=engine)
    logger.info('[MONITOR] Evidence pipeline status for %s:\n%s', slug, json.dumps(report, indent=2))
    return report
