import pytest

from app.errors import InvalidRequest
from app.models import MediaPart, PromptPayload, TextPart
from app.services.prompt import KNOWLEDGE_HEADER, assemble_prompt, build_system_instruction

PERSONA = "You are the portfolio assistant."


def test_text_only_has_single_text_part():
    payload = assemble_prompt(PERSONA, "Hello")
    assert payload.parts == (TextPart(text="Hello"),)


def test_text_before_image():
    image = MediaPart(data=b"\xff\xd8jpeg", mime_type="image/jpeg")
    payload = assemble_prompt(PERSONA, "What is this?", image)
    assert len(payload.parts) == 2
    assert isinstance(payload.parts[0], TextPart)
    assert payload.parts[1] is image


def test_image_only_does_not_invent_text():
    image = MediaPart(data=b"img")
    payload = assemble_prompt(PERSONA, "", image)
    assert payload.parts == (image,)


def test_empty_rejected():
    with pytest.raises(InvalidRequest):
        assemble_prompt(PERSONA, "", None)


def test_payload_itself_refuses_empty_parts():
    with pytest.raises(InvalidRequest):
        PromptPayload(system_instruction=PERSONA, parts=())


def test_knowledge_appended_to_persona():
    payload = assemble_prompt(PERSONA, "Hi", knowledge="  Built a compiler in 2021.\n")
    assert payload.system_instruction == PERSONA + KNOWLEDGE_HEADER + "Built a compiler in 2021."


def test_no_knowledge_keeps_persona():
    assert build_system_instruction(PERSONA, "") == PERSONA
    assert build_system_instruction(PERSONA, "   ") == PERSONA
