import base64
import binascii
import io
import logging
from typing import Any, Dict, Optional

import cloudinary
import cloudinary.uploader
from openai import OpenAI
from PIL import Image, ImageOps, UnidentifiedImageError

from .config import Settings
from .errors import ImageGenerationError, InvalidImageError

logger = logging.getLogger("coloriai.images")

MAX_SELFIE_SIDE = 1024
MIN_PROMPT_LENGTH = 10
DISABLED_NOTICE = "Image generation is disabled. Using static placeholder."


# ------------------ SELFIE HELPERS ------------------

def decode_data_url(data_url: str) -> bytes:
    """Raw bytes of a ``data:image/...;base64,....`` URL."""
    parts = (data_url or "").split(",", 1)
    if len(parts) < 2 or not parts[0].startswith("data:") or ";base64" not in parts[0]:
        raise InvalidImageError("Invalid imageBase64 format. Expected a data URL.")
    mime = parts[0][len("data:"):].split(";", 1)[0]
    if not mime.startswith("image/"):
        raise InvalidImageError(f"Expected an image data URL, got {mime or 'no MIME type'}.")
    try:
        return base64.b64decode(parts[1], validate=False)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError("Invalid imageBase64 format. Expected a data URL.") from e


def prepare_selfie(raw: bytes) -> str:
    """
    Normalize an uploaded selfie for the vision model: honor EXIF rotation,
    drop alpha, cap the longest side and re-encode as JPEG data URL.
    """
    try:
        img = Image.open(io.BytesIO(raw))
        img = ImageOps.exif_transpose(img).convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImageError("Uploaded file is not a readable image.") from e

    img.thumbnail((MAX_SELFIE_SIDE, MAX_SELFIE_SIDE))
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=90)
    encoded = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


# ------------------ OUTFIT IMAGE ------------------

class OutfitImageService:
    """Text-to-image outfit flatlay, re-hosted on Cloudinary."""

    def __init__(self, settings: Settings, client: Optional[Any] = None, uploader: Optional[Any] = None):
        self.settings = settings
        self._client = client
        self.uploader = uploader or cloudinary.uploader
        if settings.cloudinary_cloud_name:
            cloudinary.config(
                cloud_name=settings.cloudinary_cloud_name,
                api_key=settings.cloudinary_api_key,
                api_secret=settings.cloudinary_api_secret,
                secure=True,
            )

    @property
    def client(self):
        if self._client is None:
            self._client = OpenAI(api_key=self.settings.openai_api_key)
        return self._client

    def placeholder(self) -> Dict[str, str]:
        return {"imageUrl": self.settings.placeholder_outfit_url, "imagePrompt": DISABLED_NOTICE}

    def generate(self, image_prompt: str) -> Dict[str, str]:
        if not self.settings.image_generation_enabled:
            logger.info("Skipping image generation, returning placeholder. Prompt was: %s", image_prompt)
            return self.placeholder()

        prompt = (image_prompt or "").strip()
        if len(prompt) < MIN_PROMPT_LENGTH:
            raise ImageGenerationError("Could not generate style prompt. Please try again.")

        try:
            resp = self.client.images.generate(
                model=self.settings.image_model,
                prompt=prompt,
                size="1024x1792",
                quality="hd",
                n=1,
            )
            generated_url = resp.data[0].url
        except Exception as e:
            logger.error("Image generation failed: %s", e)
            raise ImageGenerationError(f"Image generation failed: {e}") from e

        try:
            upload = self.uploader.upload(
                generated_url,
                folder=self.settings.cloudinary_folder,
                resource_type="image",
                format="png",
            )
        except Exception as e:
            logger.error("Cloudinary upload failed: %s", e)
            raise ImageGenerationError(f"Image upload failed: {e}") from e

        logger.info("Outfit image uploaded: %s", upload["secure_url"])
        return {"imageUrl": upload["secure_url"], "imagePrompt": prompt}
