import os
from typing import Literal, Tuple
from pydantic import BaseModel, ConfigDict


def _csv(value: str) -> Tuple[str, ...]:
    return tuple(part.strip().lower() for part in value.split(",") if part.strip())


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 8000

    # Remote try-on model
    collaborator: Literal["gradio", "mock"] = "gradio"
    tryon_space: str = "yisol/IDM-VTON"
    tryon_api_name: str = "tryon"
    hf_token: str | None = None
    collaborator_timeout_seconds: float = 120.0

    # Uploads
    max_upload_mb: int = 10
    accepted_media_types: Tuple[str, ...] = ("image/jpeg", "image/png")

    cors_origins: Tuple[str, ...] = ("*",)

    log_level: str = "INFO"
    json_logs: bool = False
    strict_config: bool = False

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def collaborator_base_url(self) -> str:
        """Base URL of the hosted model, from a URL or an ``owner/space`` id."""
        space = self.tryon_space.strip()
        if space.startswith(("http://", "https://")):
            return space.rstrip("/")
        subdomain = space.lower()
        for ch in ("/", "_", "."):
            subdomain = subdomain.replace(ch, "-")
        return f"https://{subdomain}.hf.space"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            collaborator=os.getenv("TRYON_COLLABORATOR", "gradio").lower(),
            tryon_space=os.getenv("TRYON_SPACE", "yisol/IDM-VTON"),
            tryon_api_name=os.getenv("TRYON_API_NAME", "tryon"),
            hf_token=os.getenv("HF_TOKEN") or None,
            collaborator_timeout_seconds=float(os.getenv("COLLABORATOR_TIMEOUT_SECONDS", "120")),
            max_upload_mb=int(os.getenv("MAX_UPLOAD_MB", "10")),
            accepted_media_types=_csv(os.getenv("ACCEPTED_MEDIA_TYPES", "image/jpeg,image/png")),
            cors_origins=tuple(o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            json_logs=os.getenv("JSON_LOGS", "0") == "1",
            strict_config=os.getenv("STRICT_CONFIG", "0") == "1",
        )
