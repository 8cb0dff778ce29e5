from typing import Any, Dict, List, Protocol

from ...schemas.tryon import TryOnOptions, TryOnResult
from ..uploads import ImagePayload


class TryOnCollaborator(Protocol):
    async def generate(self, human: ImagePayload, garment: ImagePayload, options: TryOnOptions) -> TryOnResult:
        ...


def editor_value(background: Any) -> Dict[str, Any]:
    """Wrap the human image as an image-editor value with no drawn mask layers."""
    return {"background": background, "layers": [], "composite": None}


def tryon_arguments(human: Any, garment: Any, options: TryOnOptions) -> List[Any]:
    # Positional order expected by the hosted model's try-on endpoint
    return [
        editor_value(human),
        garment,
        options.masking_mode,
        options.use_auto_mask,
        options.enhance_output,
        options.denoising_steps,
        options.seed,
    ]
