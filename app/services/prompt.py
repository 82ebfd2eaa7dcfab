# app/services/prompt.py
from typing import List, Optional

from app.errors import InvalidRequest
from app.models import ContentPart, MediaPart, PromptPayload, TextPart

KNOWLEDGE_HEADER = "\n\nKnowledge base:\n"


def build_system_instruction(persona: str, knowledge: str = "") -> str:
    knowledge = (knowledge or "").strip()
    if not knowledge:
        return persona
    return persona + KNOWLEDGE_HEADER + knowledge


def assemble_prompt(
    persona: str,
    text: str,
    image: Optional[MediaPart] = None,
    knowledge: str = "",
) -> PromptPayload:
    """
    Combine persona, knowledge, sanitized text and normalized image.
    Text part comes first, image second. Raises InvalidRequest when both are missing.
    """
    parts: List[ContentPart] = []
    if text:
        parts.append(TextPart(text=text))
    if image is not None:
        parts.append(image)
    if not parts:
        raise InvalidRequest("Empty prompt: send a message or an image")
    return PromptPayload(
        system_instruction=build_system_instruction(persona, knowledge),
        parts=tuple(parts),
    )
