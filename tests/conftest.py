"""Pytest configuration and fixtures."""

import io
import sys
import threading
from pathlib import Path

import pytest
from PIL import Image

# Add project root to sys.path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from app.config import Settings  # noqa: E402
from app.models import DispatchOutcome  # noqa: E402

MODELS = ("model-a", "model-b", "model-c")


class ScriptedClient:
    """
    Fake upstream client. `script` maps model -> DispatchOutcome (or a
    callable returning one); unlisted models succeed with "reply from <model>".
    """

    def __init__(self, script=None):
        self.script = script or {}
        self.calls = []
        self.payloads = []
        self._lock = threading.Lock()

    def generate(self, model, payload, timeout=None):
        with self._lock:
            self.calls.append(model)
            self.payloads.append(payload)
        entry = self.script.get(model)
        if entry is None:
            return DispatchOutcome.ok(model, f"reply from {model}")
        if callable(entry):
            return entry(model, payload)
        return entry


def png_bytes(width=64, height=32, color=(200, 30, 30)):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        api_key="test-key",
        models=MODELS,
        request_timeout=2.0,
        max_upload_bytes=200_000,
        image_max_width=32,
        usage_log_dir=tmp_path / "logs",
    )


@pytest.fixture
def client_factory():
    return ScriptedClient
