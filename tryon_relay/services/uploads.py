import base64
import io
from dataclasses import dataclass
from typing import Optional, Sequence
from fastapi import UploadFile
from PIL import Image

from ..errors import TryOnValidationError, UnsupportedMediaTypeError


_MEDIA_TYPE_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg", "image/x-png": "image/png"}
# Pillow reports multi-picture camera JPEGs as MPO
_FORMAT_MEDIA_TYPES = {"JPEG": "image/jpeg", "MPO": "image/jpeg", "PNG": "image/png"}


@dataclass(frozen=True)
class ImagePayload:
    field: str
    filename: str
    content_type: str
    data: bytes

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"


def normalize_media_type(content_type: Optional[str]) -> str:
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    return _MEDIA_TYPE_ALIASES.get(media_type, media_type)


def _detected_media_type(field: str, data: bytes) -> str:
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            img.verify()
    except Exception as exc:
        raise TryOnValidationError(f"{field} is not a readable image") from exc
    return _FORMAT_MEDIA_TYPES.get(fmt or "", Image.MIME.get(fmt or "", ""))


async def read_image_upload(
    upload: Optional[UploadFile],
    field: str,
    max_bytes: int,
    accepted_media_types: Sequence[str],
) -> ImagePayload:
    """Read one uploaded image into memory, rejecting anything the model cannot take.

    Checks run in order: presence and emptiness, declared media type, size, and finally
    that the bytes decode as an image of an accepted type.
    """
    if upload is None:
        raise TryOnValidationError(f"{field} image is required")

    # One byte past the limit is enough to know it is too large
    data = await upload.read(max_bytes + 1)
    if not data:
        raise TryOnValidationError(f"{field} image is empty")

    accepted = {normalize_media_type(t) for t in accepted_media_types}
    media_type = normalize_media_type(upload.content_type)
    if media_type not in accepted:
        raise UnsupportedMediaTypeError(
            f"{field} must be one of: {', '.join(sorted(accepted))}"
        )

    if len(data) > max_bytes:
        raise TryOnValidationError(f"{field} image exceeds the {max_bytes} byte upload limit")

    detected = _detected_media_type(field, data)
    if detected not in accepted:
        raise UnsupportedMediaTypeError(f"{field} content is not an accepted image type")

    return ImagePayload(
        field=field,
        filename=upload.filename or f"{field}.{media_type.rsplit('/', 1)[-1]}",
        content_type=detected,
        data=data,
    )
