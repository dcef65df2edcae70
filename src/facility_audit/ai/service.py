"""AI corrective-action summaries and photo risk descriptions.

Both calls are best-effort: any failure (missing key, network, model error)
yields a fixed user-facing placeholder instead of an exception.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any

from langchain_core.messages import HumanMessage, SystemMessage

from facility_audit.ai.prompts import (
    FAILURE_LINE_TEMPLATE,
    IMAGE_PROMPT,
    SUMMARY_PROMPT_TEMPLATE,
    SUMMARY_SYSTEM_PROMPT,
)
from facility_audit.catalog import QuestionCatalog
from facility_audit.config import AISettings
from facility_audit.domain.models import AuditRecord

LOGGER = logging.getLogger(__name__)

NO_DEFICIENCIES_MESSAGE = (
    "Great job! No deficiencies were noted during this round. "
    "Continue monitoring to maintain high standards."
)
SUMMARY_KEY_MISSING = "API Key missing. Cannot generate AI report."
SUMMARY_ERROR = "Error communicating with AI service."
SUMMARY_EMPTY = "Unable to generate summary."
IMAGE_KEY_MISSING = "API Key missing."
IMAGE_ERROR = "Error analyzing image."
IMAGE_EMPTY = "No analysis available."

_DEFAULT_MIME = "image/jpeg"


def _image_payload(image: bytes | str) -> tuple[str, str]:
    """Return ``(mime_type, base64_data)`` for raw bytes, base64 or a data URI."""
    if isinstance(image, bytes):
        return _DEFAULT_MIME, base64.b64encode(image).decode("ascii")
    if image.startswith("data:") and "," in image:
        header, data = image.split(",", 1)
        mime = header[len("data:"):].split(";", 1)[0] or _DEFAULT_MIME
        return mime, data
    return _DEFAULT_MIME, image


def build_summary_prompt(record: AuditRecord, catalog: QuestionCatalog) -> str:
    lines = []
    for response in record.failing_responses():
        question = catalog.get(response.question_id)
        lines.append(
            FAILURE_LINE_TEMPLATE.format(
                category=question.category if question else "Unknown",
                text=question.text if question else response.question_id,
                notes=response.comment or "None",
            )
        )
    return SUMMARY_PROMPT_TEMPLATE.format(
        facility_name=record.facility_name,
        location=record.location,
        failure_details="\n".join(lines),
    )


class AIService:
    """Wraps a text model and a vision model (LangChain chat models)."""

    def __init__(
        self,
        text_model: Any | None,
        vision_model: Any | None = None,
        *,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._text_model = text_model
        self._vision_model = vision_model
        self._timeout = timeout_seconds

    @property
    def available(self) -> bool:
        return self._text_model is not None

    async def summarize(self, record: AuditRecord, catalog: QuestionCatalog) -> str:
        if not record.failing_responses():
            return NO_DEFICIENCIES_MESSAGE
        if self._text_model is None:
            return SUMMARY_KEY_MISSING

        messages = [
            SystemMessage(content=SUMMARY_SYSTEM_PROMPT),
            HumanMessage(content=build_summary_prompt(record, catalog)),
        ]
        text = await self._invoke(self._text_model, messages, "summary")
        if text is None:
            return SUMMARY_ERROR
        return text or SUMMARY_EMPTY

    async def analyze_image(self, image: bytes | str) -> str:
        if self._vision_model is None:
            return IMAGE_KEY_MISSING

        mime, data = _image_payload(image)
        messages = [
            HumanMessage(
                content=[
                    {"type": "text", "text": IMAGE_PROMPT},
                    {"type": "image_url", "image_url": {"url": f"data:{mime};base64,{data}"}},
                ]
            )
        ]
        text = await self._invoke(self._vision_model, messages, "image analysis")
        if text is None:
            return IMAGE_ERROR
        return text or IMAGE_EMPTY

    async def _invoke(self, model: Any, messages: list, label: str) -> str | None:
        """Return the model's text, ``""`` for an empty reply, ``None`` on failure."""
        try:
            result = await asyncio.wait_for(model.ainvoke(messages), timeout=self._timeout)
        except Exception as err:
            LOGGER.warning("AI %s failed: %s", label, err)
            return None
        content = getattr(result, "content", None)
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        return str(content).strip() if content else ""


def build_ai_service(settings: AISettings) -> AIService:
    """Create the Gemini-backed service, or a placeholder-only one without a key."""
    if not settings.api_key:
        LOGGER.info("No AI API key configured; AI features return placeholders")
        return AIService(None, None, timeout_seconds=settings.timeout_seconds)

    from langchain_google_genai import ChatGoogleGenerativeAI

    text_model = ChatGoogleGenerativeAI(api_key=settings.api_key, model=settings.text_model)
    vision_model = ChatGoogleGenerativeAI(api_key=settings.api_key, model=settings.vision_model)
    return AIService(text_model, vision_model, timeout_seconds=settings.timeout_seconds)
