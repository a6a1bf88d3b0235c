"""Data package for Brainiark OS.

Exposes the ORM models and pipeline dataclasses used by the ingestion,
analysis and API layers.
"""

from .models import (
    AiLog,
    BrandBrain,
    BrandWorkspace,
    Evidence,
    User,
)

__all__ = [
    "AiLog",
    "BrandBrain",
    "BrandWorkspace",
    "Evidence",
    "User",
]
