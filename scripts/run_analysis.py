#!/usr/bin/env python3
"""Command-line access to the crawlers, the brand analysis and the API server."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

# Ensure project root is on PYTHONPATH
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from analysis.evidence_monitor import debug_evidence_pipeline
from analysis.web_analyzer import perform_gpt_brand_analysis
from config.settings import SETTINGS
from data import store
from ingestion.js_crawler import crawl_javascript_site
from ingestion.web_crawler import crawl_website

logger = logging.getLogger(__name__)


def _read_evidence(paths: Optional[List[str]]) -> List[str]:
    texts = []
    for path in paths or []:
        evidence_path = Path(path)
        if not evidence_path.exists():
            raise FileNotFoundError(evidence_path)
        texts.append(evidence_path.read_text(encoding="utf-8"))
    return texts


def cmd_crawl(args) -> int:
    result = crawl_javascript_site(args.url) if args.js else crawl_website(args.url)
    print(json.dumps(result.to_dict(), indent=2, default=str))
    return 0 if result.error is None else 1


def cmd_analyze(args) -> int:
    if args.model:
        SETTINGS["openai_model"] = args.model
        logger.info(f"Using model override: {args.model}")
    result = perform_gpt_brand_analysis(args.brand, _read_evidence(args.evidence))
    print(json.dumps(result.to_dict(), indent=2, default=str))
    return 0 if result.success else 1


def cmd_serve(args) -> int:
    import uvicorn

    uvicorn.run("api.app:create_app", factory=True, host=args.host, port=args.port)
    return 0


def cmd_monitor(args) -> int:
    report = debug_evidence_pipeline(args.slug, engine=store.init_db())
    print(json.dumps(report, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Brainiark OS evidence and Brand Brain tools")
    sub = parser.add_subparsers(dest="command", required=True)

    crawl = sub.add_parser("crawl", help="Crawl one URL and print the extracted data")
    crawl.add_argument("url")
    crawl.add_argument("--js", action="store_true", help="Use the JavaScript-site crawler")
    crawl.set_defaults(func=cmd_crawl)

    analyze = sub.add_parser("analyze", help="Run the GPT brand analysis for a brand name")
    analyze.add_argument("brand")
    analyze.add_argument("--evidence", nargs="+", help="Text files to include as user evidence")
    analyze.add_argument("--model", help="Override LLM model (e.g. gpt-4o-mini, claude-3-5-sonnet-20240620)")
    analyze.set_defaults(func=cmd_analyze)

    serve = sub.add_parser("serve", help="Run the REST API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)

    monitor = sub.add_parser("monitor", help="Print the website evidence pipeline report for a brand")
    monitor.add_argument("slug")
    monitor.set_defaults(func=cmd_monitor)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
