import base64
import io
from PIL import Image, ImageOps

from ...schemas.tryon import TryOnOptions, TryOnResult
from ..uploads import ImagePayload


def _png_data_url(img: Image.Image) -> str:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


class MockTryOnCollaborator:
    """Local stand-in for the hosted model: a side-by-side composite plus a greyscale mask preview."""

    async def generate(self, human: ImagePayload, garment: ImagePayload, options: TryOnOptions) -> TryOnResult:
        user_img = Image.open(io.BytesIO(human.data)).convert("RGB")
        garment_img = Image.open(io.BytesIO(garment.data)).convert("RGB")

        # Resize garment image to match user height proportionally
        target_h = user_img.height
        ratio = target_h / max(1, garment_img.height)
        garment_resized = garment_img.resize((max(1, int(garment_img.width * ratio)), target_h))

        canvas = Image.new("RGB", (user_img.width + garment_resized.width, target_h), color=(240, 240, 240))
        canvas.paste(user_img, (0, 0))
        canvas.paste(garment_resized, (user_img.width, 0))
        if options.enhance_output:
            canvas = ImageOps.autocontrast(canvas)

        masked = ImageOps.grayscale(user_img)
        return TryOnResult(output_image=_png_data_url(canvas), masked_image=_png_data_url(masked))
