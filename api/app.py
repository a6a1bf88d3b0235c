"""
FastAPI application factory.

Run with ``uvicorn api.app:create_app --factory`` or ``python scripts/run_analysis.py serve``.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import register_exception_handlers
from api.routes import auth, brand_brain, chat, evidence, onboarding, workspaces
from config.settings import SETTINGS
from data import store

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def create_app(engine=None, settings: Optional[dict] = None) -> FastAPI:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    settings = settings or SETTINGS

    app = FastAPI(title='Brainiark OS', version='0.1.0')
    app.state.engine = store.init_db(engine)
    app.state.settings = settings
    # Created on first request that needs a model
    app.state.llm_client = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get('cors_origins', []),
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )
    register_exception_handlers(app)

    for module in (auth, workspaces, onboarding, evidence, chat, brand_brain):
        app.include_router(module.router)

    @app.get('/health')
    def health():
        return {'success': True, 'data': {'status': 'ok'}}

    logger.info('[API] Application initialized')
    return app
