"""AI summary and image analysis boundary."""

from facility_audit.ai.service import (
    NO_DEFICIENCIES_MESSAGE,
    AIService,
    build_ai_service,
)

__all__ = [
    "AIService",
    "NO_DEFICIENCIES_MESSAGE",
    "build_ai_service",
]
