"""Gemini gateway: script generation, image synthesis and chat."""

from __future__ import annotations

import base64
import logging
from typing import Any, List, Optional

from google import genai
from google.genai import types

from ..errors import ChatError, ImageGenerationError, ParseError, RequestError
from ..models import GroundingChunk, GroundingChunkWeb, ScriptGenerationResult
from .parsing import parse_script_payload
from .prompts import CHAT_SYSTEM_INSTRUCTION, build_script_prompt

logger = logging.getLogger(__name__)

DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_IMAGE_MIME_TYPE = "image/png"
IMAGE_ASPECT_RATIO = "16:9"


class GeminiClient:
    """Thin wrapper around ``genai.Client`` for one browser session.

    The chat session is owned by the instance: the first message creates it
    and every later message reuses it, so the service keeps earlier turns as
    context.
    """

    def __init__(
        self,
        client: genai.Client,
        text_model: str | None = None,
        image_model: str | None = None,
    ):
        self._client = client
        self.text_model = self._clean(text_model) or DEFAULT_TEXT_MODEL
        self.image_model = self._clean(image_model) or DEFAULT_IMAGE_MODEL
        self._chat: Optional[Any] = None

    @staticmethod
    def _clean(value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None

    def generate_script(
        self,
        topic: str,
        language: str,
        scene_count: int,
        questions: str | None = None,
    ) -> ScriptGenerationResult:
        """Ask the text model for a script, grounded with Google Search."""
        prompt = build_script_prompt(topic, language, scene_count, questions)
        try:
            response = self._client.models.generate_content(
                model=self.text_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    tools=[types.Tool(google_search=types.GoogleSearch())],
                ),
            )
            script = parse_script_payload(response.text or "")
        except ParseError:
            raise
        except Exception as exc:
            logger.exception("Error generating script")
            raise RequestError() from exc

        chunks = _grounding_chunks(response)
        logger.info(
            "Generated script %r with %d scenes and %d grounding chunks",
            script.title,
            len(script.scenes),
            len(chunks),
        )
        return ScriptGenerationResult(script=script, grounding_chunks=chunks)

    async def generate_image(self, prompt: str) -> str:
        """Return one 16:9 image for ``prompt`` as a data URI."""
        try:
            response = await self._client.aio.models.generate_content(
                model=self.image_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE"],
                    image_config=types.ImageConfig(aspect_ratio=IMAGE_ASPECT_RATIO),
                ),
            )
            inline_data = _first_inline_image(response)
            if inline_data is None:
                raise ValueError("no image in response")
        except Exception as exc:
            logger.exception("Error generating image")
            raise ImageGenerationError() from exc

        mime_type = inline_data.mime_type or DEFAULT_IMAGE_MIME_TYPE
        encoded = base64.b64encode(inline_data.data).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"

    def _get_chat(self) -> Any:
        if self._chat is None:
            self._chat = self._client.chats.create(
                model=self.text_model,
                config=types.GenerateContentConfig(
                    system_instruction=CHAT_SYSTEM_INSTRUCTION,
                ),
            )
            logger.debug("Created chat session on %s", self.text_model)
        return self._chat

    def send_chat_message(self, message: str) -> str:
        try:
            response = self._get_chat().send_message(message)
        except Exception as exc:
            logger.exception("Error in chat")
            raise ChatError() from exc
        return response.text or ""


def _grounding_chunks(response: Any) -> List[GroundingChunk]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    raw_chunks = getattr(metadata, "grounding_chunks", None) or []

    chunks: list[GroundingChunk] = []
    for raw in raw_chunks:
        web = getattr(raw, "web", None)
        if web is None:
            chunks.append(GroundingChunk())
            continue
        chunks.append(
            GroundingChunk(
                web=GroundingChunkWeb(
                    uri=getattr(web, "uri", None) or "",
                    title=getattr(web, "title", None) or "",
                )
            )
        )
    return chunks


def _first_inline_image(response: Any) -> Any:
    candidates = getattr(response, "candidates", None) or []
    if not candidates or not candidates[0].content or not candidates[0].content.parts:
        return None
    for part in candidates[0].content.parts:
        inline_data = getattr(part, "inline_data", None)
        if inline_data is not None and inline_data.data:
            return inline_data
    return None
