import asyncio
import time
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
import structlog

from ..config import Settings
from ..dependencies import get_settings, get_tryon_collaborator
from ..errors import CollaboratorError, TryOnValidationError
from ..schemas.tryon import TryOnResponse, parse_tryon_options
from ..services.collaborators import TryOnCollaborator
from ..services.uploads import read_image_upload


logger = structlog.get_logger("tryon_relay")

router = APIRouter(prefix="/api", tags=["try-on"])


@router.post("/virtual-tryon", response_model=TryOnResponse)
async def virtual_tryon(
    human: Optional[UploadFile] = File(None),
    garment: Optional[UploadFile] = File(None),
    masking_mode: Optional[str] = Form(None, alias="maskingMode"),
    denoising_steps: Optional[str] = Form(None, alias="denoisingSteps"),
    seed: Optional[str] = Form(None),
    use_auto_mask: Optional[str] = Form(None, alias="useAutoMask"),
    enhance_output: Optional[str] = Form(None, alias="enhanceOutput"),
    settings: Settings = Depends(get_settings),
    collaborator: TryOnCollaborator = Depends(get_tryon_collaborator),
) -> TryOnResponse:
    """Relay a human photo and a garment photo to the hosted try-on model.

    Every validation failure is raised before the model is contacted. The model
    is called exactly once, bounded by the configured timeout, and any failure
    it produces is reported to the caller without internal detail.
    """
    try:
        human_image = await read_image_upload(
            human, "human", settings.max_upload_bytes, settings.accepted_media_types
        )
        garment_image = await read_image_upload(
            garment, "garment", settings.max_upload_bytes, settings.accepted_media_types
        )
        options = parse_tryon_options(
            masking_mode=masking_mode,
            denoising_steps=denoising_steps,
            seed=seed,
            use_auto_mask=use_auto_mask,
            enhance_output=enhance_output,
        )
    except TryOnValidationError as e:
        logger.warning("tryon_rejected", status=e.status_code, reason=e.message)
        raise

    start = time.time()
    try:
        result = await asyncio.wait_for(
            collaborator.generate(human_image, garment_image, options),
            timeout=settings.collaborator_timeout_seconds,
        )
        response = TryOnResponse(success=True, data=result)
    except Exception as e:
        duration_ms = int((time.time() - start) * 1000)
        logger.error("tryon_failed",
                     error=str(e) or type(e).__name__,
                     error_type=type(e).__name__,
                     duration_ms=duration_ms,
                     exc_info=True)
        raise CollaboratorError(str(e) or type(e).__name__) from e

    logger.info("tryon_completed",
                duration_ms=int((time.time() - start) * 1000),
                masking_mode=options.masking_mode,
                denoising_steps=options.denoising_steps,
                seed=options.seed)
    return response
