import asyncio
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from tryon_relay.config import Settings
from tryon_relay.main import create_app


def _files(human=None, garment=None):
    files = {}
    if human is not None:
        files["human"] = human
    if garment is not None:
        files["garment"] = garment
    return files


def test_success_returns_collaborator_images(client, stub, png_bytes, jpeg_bytes):
    r = client.post(
        "/api/virtual-tryon",
        files=_files(("me.png", png_bytes, "image/png"), ("shirt.jpg", jpeg_bytes, "image/jpeg")),
    )
    assert r.status_code == 200, r.text
    assert r.json() == {
        "success": True,
        "data": {
            "outputImage": "data:image/png;base64,T1VU",
            "maskedImage": "data:image/png;base64,TUFTSw==",
        },
    }
    assert len(stub.calls) == 1
    human, garment, _ = stub.calls[0]
    assert human.data == png_bytes
    assert human.content_type == "image/png"
    assert garment.data == jpeg_bytes
    assert garment.content_type == "image/jpeg"


def test_defaults_applied_when_only_images_sent(client, stub, png_bytes):
    r = client.post(
        "/api/virtual-tryon",
        files=_files(("me.png", png_bytes, "image/png"), ("shirt.png", png_bytes, "image/png")),
    )
    assert r.status_code == 200
    options = stub.calls[0][2]
    assert options.masking_mode == "auto"
    assert options.denoising_steps == 3
    assert options.seed == 3
    assert options.use_auto_mask is True
    assert options.enhance_output is True


def test_optional_fields_are_forwarded(client, stub, png_bytes):
    r = client.post(
        "/api/virtual-tryon",
        files=_files(("me.png", png_bytes, "image/png"), ("shirt.png", png_bytes, "image/png")),
        data={
            "maskingMode": "manual",
            "denoisingSteps": "30",
            "seed": "42",
            "useAutoMask": "false",
            "enhanceOutput": "FALSE",
        },
    )
    assert r.status_code == 200
    options = stub.calls[0][2]
    assert options.masking_mode == "manual"
    assert options.denoising_steps == 30
    assert options.seed == 42
    assert options.use_auto_mask is False
    assert options.enhance_output is False


@pytest.mark.parametrize("missing", ["human", "garment"])
def test_missing_file_is_rejected(client, stub, png_bytes, missing):
    files = {
        "human": ("me.png", png_bytes, "image/png"),
        "garment": ("shirt.png", png_bytes, "image/png"),
    }
    files.pop(missing)
    r = client.post("/api/virtual-tryon", files=files)
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert missing in body["error"]
    assert stub.calls == []


def test_no_body_is_rejected(client, stub):
    r = client.post("/api/virtual-tryon")
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert stub.calls == []


@pytest.mark.parametrize("content_type", ["image/gif", "text/plain", "application/octet-stream"])
def test_unsupported_media_type(client, stub, png_bytes, content_type):
    r = client.post(
        "/api/virtual-tryon",
        files=_files(("me.png", png_bytes, "image/png"), ("shirt.bin", png_bytes, content_type)),
    )
    assert r.status_code == 415
    assert r.json()["success"] is False
    assert stub.calls == []


def test_oversized_file_is_rejected(client, stub, png_bytes, settings):
    too_big = b"\x89PNG" + b"\0" * settings.max_upload_bytes
    r = client.post(
        "/api/virtual-tryon",
        files=_files(("me.png", too_big, "image/png"), ("shirt.png", png_bytes, "image/png")),
    )
    assert r.status_code == 400
    assert "limit" in r.json()["error"]
    assert stub.calls == []


def test_undecodable_image_is_rejected(client, stub, png_bytes):
    r = client.post(
        "/api/virtual-tryon",
        files=_files(("me.jpg", b"not really a jpeg", "image/jpeg"), ("shirt.png", png_bytes, "image/png")),
    )
    assert r.status_code == 400
    assert stub.calls == []


def test_invalid_option_is_rejected(client, stub, png_bytes):
    r = client.post(
        "/api/virtual-tryon",
        files=_files(("me.png", png_bytes, "image/png"), ("shirt.png", png_bytes, "image/png")),
        data={"denoisingSteps": "0"},
    )
    assert r.status_code == 400
    assert "denoisingSteps" in r.json()["error"]
    assert stub.calls == []


class _FailingCollaborator:
    def __init__(self):
        self.calls = 0

    async def generate(self, human, garment, options):
        self.calls += 1
        raise RuntimeError("upstream exploded at 10.0.0.7 with token sk-secret")


def test_collaborator_failure_is_generic_500(settings, png_bytes):
    failing = _FailingCollaborator()
    client = TestClient(create_app(settings, collaborator=failing))
    r = client.post(
        "/api/virtual-tryon",
        files=_files(("me.png", png_bytes, "image/png"), ("shirt.png", png_bytes, "image/png")),
    )
    assert r.status_code == 500
    body = r.json()
    assert body["success"] is False
    assert "sk-secret" not in body["error"]
    assert "exploded" not in body["error"]
    assert failing.calls == 1


class _SlowCollaborator:
    async def generate(self, human, garment, options):
        await asyncio.sleep(5)


def test_collaborator_timeout_is_500(png_bytes):
    settings = Settings(collaborator="mock", collaborator_timeout_seconds=0.05)
    client = TestClient(create_app(settings, collaborator=_SlowCollaborator()))
    r = client.post(
        "/api/virtual-tryon",
        files=_files(("me.png", png_bytes, "image/png"), ("shirt.png", png_bytes, "image/png")),
    )
    assert r.status_code == 500
    assert r.json()["success"] is False


class _MalformedCollaborator:
    async def generate(self, human, garment, options):
        return {"outputImage": "only-one"}


def test_malformed_collaborator_result_is_500(settings, png_bytes):
    client = TestClient(create_app(settings, collaborator=_MalformedCollaborator()))
    r = client.post(
        "/api/virtual-tryon",
        files=_files(("me.png", png_bytes, "image/png"), ("shirt.png", png_bytes, "image/png")),
    )
    assert r.status_code == 500
    assert r.json() == {"success": False, "error": "Virtual try-on generation failed"}


def test_mock_collaborator_end_to_end(png_bytes, jpeg_bytes):
    client = TestClient(create_app(Settings(collaborator="mock")))
    r = client.post(
        "/api/virtual-tryon",
        files=_files(("me.png", png_bytes, "image/png"), ("shirt.jpg", jpeg_bytes, "image/jpeg")),
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["outputImage"].startswith("data:image/png;base64,")
    assert data["maskedImage"].startswith("data:image/png;base64,")


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "collaborator": "mock"}
    assert "x-request-id" in r.headers


def test_phone_camera_jpeg_is_accepted(client, stub, png_bytes):
    buf = io.BytesIO()
    Image.new("RGB", (8, 8)).save(buf, format="MPO", save_all=True, append_images=[Image.new("RGB", (8, 8))])
    r = client.post(
        "/api/virtual-tryon",
        files=_files(("camera.jpg", buf.getvalue(), "image/jpeg"), ("shirt.png", png_bytes, "image/png")),
    )
    assert r.status_code == 200, r.text
    assert stub.calls[0][0].content_type == "image/jpeg"


def test_empty_file_with_unsupported_type_is_400(client, stub, png_bytes):
    r = client.post(
        "/api/virtual-tryon",
        files=_files(("me.gif", b"", "image/gif"), ("shirt.png", png_bytes, "image/png")),
    )
    assert r.status_code == 400
    assert stub.calls == []
