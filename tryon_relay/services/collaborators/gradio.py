import asyncio
import mimetypes
import os
import tempfile
from typing import Any, Dict
from urllib.parse import urlsplit
import httpx
import structlog
from gradio_client import Client, handle_file

from ...config import Settings
from ...errors import CollaboratorError
from ...schemas.tryon import TryOnOptions, TryOnResult
from ..uploads import ImagePayload
from .base import tryon_arguments


logger = structlog.get_logger("tryon_relay")


def _suffix(image: ImagePayload) -> str:
    return mimetypes.guess_extension(image.content_type) or os.path.splitext(image.filename)[1] or ".img"


class GradioTryOnCollaborator:
    """Calls a hosted Gradio try-on app through ``gradio_client``.

    The client resolves the app's API routes and file handling itself; this
    class stages the uploads as temporary files, submits one job and turns the
    two returned images into self-contained data URLs.
    """

    def __init__(self, settings: Settings) -> None:
        self.space = settings.tryon_space
        self.api_name = "/" + settings.tryon_api_name.strip("/")
        self.hf_token = settings.hf_token
        self.timeout = settings.collaborator_timeout_seconds
        self.remote_host = urlsplit(settings.collaborator_base_url).hostname

    def _predict(self, human: ImagePayload, garment: ImagePayload, options: TryOnOptions) -> Any:
        with tempfile.TemporaryDirectory(prefix="tryon_") as workdir:
            paths = []
            for image in (human, garment):
                path = os.path.join(workdir, f"{image.field}{_suffix(image)}")
                with open(path, "wb") as f:
                    f.write(image.data)
                paths.append(path)

            client = Client(self.space, hf_token=self.hf_token, verbose=False)
            job = client.submit(
                *tryon_arguments(handle_file(paths[0]), handle_file(paths[1]), options),
                api_name=self.api_name,
            )
            logger.info("collaborator_submitted", space=self.space, api_name=self.api_name)
            return job.result(timeout=self.timeout)

    def _auth_headers(self, url: str) -> Dict[str, str]:
        # The token is only ever sent back to the hosted app itself
        if self.hf_token and urlsplit(url).hostname == self.remote_host:
            return {"Authorization": f"Bearer {self.hf_token}"}
        return {}

    async def _download(self, url: str, field: str) -> ImagePayload:
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=False) as client:
            resp = await client.get(url, headers=self._auth_headers(url))
            resp.raise_for_status()
        content_type = resp.headers.get("content-type", "").split(";", 1)[0].strip()
        if not content_type.startswith("image/"):
            content_type = mimetypes.guess_type(urlsplit(url).path)[0] or "image/png"
        return ImagePayload(field=field, filename=os.path.basename(urlsplit(url).path), content_type=content_type, data=resp.content)

    @staticmethod
    def _read_local(path: str, field: str) -> ImagePayload:
        with open(path, "rb") as f:
            data = f.read()
        content_type = mimetypes.guess_type(path)[0] or "image/png"
        return ImagePayload(field=field, filename=os.path.basename(path), content_type=content_type, data=data)

    async def _encode_output(self, item: Any, field: str) -> str:
        # gradio_client hands back local file paths; some apps return URLs or inline data instead
        if isinstance(item, dict):
            item = item.get("path") or item.get("url") or item.get("value")
        if isinstance(item, str) and item:
            if item.startswith("data:"):
                return item
            if item.startswith(("http://", "https://")):
                return (await self._download(item, field)).to_data_url()
            if os.path.isfile(item):
                return self._read_local(item, field).to_data_url()
        raise CollaboratorError(f"Remote model returned an unusable {field}: {type(item).__name__}")

    async def generate(self, human: ImagePayload, garment: ImagePayload, options: TryOnOptions) -> TryOnResult:
        outputs = await asyncio.to_thread(self._predict, human, garment, options)
        if not isinstance(outputs, (list, tuple)) or len(outputs) < 2:
            count = len(outputs) if isinstance(outputs, (list, tuple)) else 0
            raise CollaboratorError(f"Remote model returned {count} images, expected 2")

        return TryOnResult(
            output_image=await self._encode_output(outputs[0], "outputImage"),
            masked_image=await self._encode_output(outputs[1], "maskedImage"),
        )
