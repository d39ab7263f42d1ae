from __future__ import annotations
import os
from typing import Any
from .base import TranslationService
from .argos import ArgosService
from .openai_service import OpenAIService

def get_service(provider: str | None = None, **options: Any) -> TranslationService:
    provider = (provider or os.getenv("LINGOAI_PROVIDER", "openai")).lower().strip()

    if provider == "openai":
        return OpenAIService(**options)
    if provider == "argos":
        return ArgosService()

    raise ValueError(f"Unknown translation provider: {provider}")
