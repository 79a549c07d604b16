"""Shared fixtures: generated images and scripted AI clients."""

import io
import random
from typing import List, Optional

import pytest
from PIL import Image

from site_safety.hazard_analysis.base import CompletionClient
from site_safety.hazard_analysis.models import CompletionRequest


def noise_image_bytes(width: int, height: int, fmt: str = "PNG", mode: str = "RGB", seed: int = 0, **save_kwargs) -> bytes:
    """Encode a random-noise image, which compresses about as badly as a photo can."""
    channels = len(mode)
    rng = random.Random(seed)
    img = Image.frombytes(mode, (width, height), rng.randbytes(width * height * channels))
    buffer = io.BytesIO()
    img.save(buffer, format=fmt, **save_kwargs)
    return buffer.getvalue()


class ScriptedClient(CompletionClient):
    """Completion client that replies with a fixed text and records requests."""

    def __init__(self, reply: Optional[str]):
        self.reply = reply
        self.requests: List[CompletionRequest] = []

    @property
    def model(self) -> str:
        return "scripted"

    def complete(self, request: CompletionRequest) -> Optional[str]:
        self.requests.append(request)
        return self.reply


@pytest.fixture
def small_png() -> bytes:
    """A 64x48 PNG, far below any realistic ceiling."""
    return noise_image_bytes(64, 48)


@pytest.fixture
def medium_png() -> bytes:
    """A 600x450 noise PNG of roughly 800 KB."""
    return noise_image_bytes(600, 450)


@pytest.fixture
def make_client():
    """Factory for scripted completion clients."""
    return ScriptedClient
