import io
from typing import List, Tuple

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from tryon_relay.config import Settings
from tryon_relay.main import create_app
from tryon_relay.schemas.tryon import TryOnOptions, TryOnResult
from tryon_relay.services.uploads import ImagePayload


def _image_bytes(fmt: str, size=(8, 12), color=(200, 40, 40)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color=color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return _image_bytes("JPEG", color=(30, 30, 160))


class StubCollaborator:
    """Records every call and answers with fixed encoded strings."""

    def __init__(self, output_image="data:image/png;base64,T1VU", masked_image="data:image/png;base64,TUFTSw=="):
        self.output_image = output_image
        self.masked_image = masked_image
        self.calls: List[Tuple[ImagePayload, ImagePayload, TryOnOptions]] = []

    async def generate(self, human, garment, options):
        self.calls.append((human, garment, options))
        return TryOnResult(output_image=self.output_image, masked_image=self.masked_image)


@pytest.fixture
def settings() -> Settings:
    return Settings(collaborator="mock", max_upload_mb=1, collaborator_timeout_seconds=5)


@pytest.fixture
def stub() -> StubCollaborator:
    return StubCollaborator()


@pytest.fixture
def client(settings, stub) -> TestClient:
    return TestClient(create_app(settings, collaborator=stub))
