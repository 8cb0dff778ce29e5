import re
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from ..errors import TryOnValidationError


DEFAULT_MASKING_MODE = "auto"
DEFAULT_DENOISING_STEPS = 3
DEFAULT_SEED = 3
DEFAULT_USE_AUTO_MASK = True
DEFAULT_ENHANCE_OUTPUT = True

_INT_RE = re.compile(r"^[+-]?\d+$")
_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


class TryOnOptions(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    masking_mode: str = Field(DEFAULT_MASKING_MODE, alias="maskingMode")
    denoising_steps: int = Field(DEFAULT_DENOISING_STEPS, alias="denoisingSteps", gt=0)
    seed: int = Field(DEFAULT_SEED)
    use_auto_mask: bool = Field(DEFAULT_USE_AUTO_MASK, alias="useAutoMask")
    enhance_output: bool = Field(DEFAULT_ENHANCE_OUTPUT, alias="enhanceOutput")


class TryOnResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    output_image: str = Field(..., alias="outputImage")
    masked_image: str = Field(..., alias="maskedImage")


class TryOnResponse(BaseModel):
    success: bool = True
    data: TryOnResult


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


def _blank(raw: Optional[str]) -> bool:
    return raw is None or not raw.strip()


def _parse_int(field: str, raw: Optional[str], default: int, minimum: Optional[int] = None) -> int:
    if _blank(raw):
        return default
    text = raw.strip()
    if not _INT_RE.match(text):
        raise TryOnValidationError(f"{field} must be an integer")
    value = int(text)
    if minimum is not None and value < minimum:
        raise TryOnValidationError(f"{field} must be at least {minimum}")
    return value


def _parse_bool(field: str, raw: Optional[str], default: bool) -> bool:
    if _blank(raw):
        return default
    text = raw.strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise TryOnValidationError(f"{field} must be 'true' or 'false'")


def parse_tryon_options(
    masking_mode: Optional[str] = None,
    denoising_steps: Optional[str] = None,
    seed: Optional[str] = None,
    use_auto_mask: Optional[str] = None,
    enhance_output: Optional[str] = None,
) -> TryOnOptions:
    """Build generation options from raw multipart text fields.

    Missing or blank fields take their defaults. Anything that does not parse
    raises ``TryOnValidationError`` naming the offending field.
    """
    return TryOnOptions(
        masking_mode=DEFAULT_MASKING_MODE if _blank(masking_mode) else masking_mode.strip(),
        denoising_steps=_parse_int("denoisingSteps", denoising_steps, DEFAULT_DENOISING_STEPS, minimum=1),
        seed=_parse_int("seed", seed, DEFAULT_SEED),
        use_auto_mask=_parse_bool("useAutoMask", use_auto_mask, DEFAULT_USE_AUTO_MASK),
        enhance_output=_parse_bool("enhanceOutput", enhance_output, DEFAULT_ENHANCE_OUTPUT),
    )
