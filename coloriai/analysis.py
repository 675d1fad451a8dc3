import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI

from .config import Settings
from .errors import AnalysisError
from .parser import has_season_section

logger = logging.getLogger("coloriai.analysis")

DEFAULT_AGE = "35"
DEFAULT_STYLE = "Daily"

SYSTEM_PROMPT = (
    "You are a professional Korean 16-season color stylist. "
    "Do not identify or describe the person in the photo."
)

ANALYSIS_PROMPT = """
The following image is a user-submitted photo for seasonal color analysis.
The user is approximately **{age} years old** and prefers a **{style}** style.

Focus only on visible visual traits:
- Skin undertone (avoid makeup)
- Natural eye color
- Natural hair color

Answer in Markdown using EXACTLY these bold headers, each on its own line:

**Seasonal Color Type:** <type, e.g. Soft Autumn>

**Color Extraction:**
Label, HEX rows for Face, Eye and Hair, e.g.
Face, #EDC1A8

**9-Color Seasonal Palette:**
Nine rows of Name, HEX, e.g.
Dusty Rose, #C0A6A1

**Jewelry Tone:** <Name>, <HEX>, e.g. Gold, #D4AF37

**Flattering Hair Colors:**
Two rows of Name, HEX

**Foundations:**
- Brand, Product, Shade, HEX, URL   (2 rows)
**Korean Cushion:**
- Brand, Product, Shade, HEX, URL   (1 row)
**Lipsticks:**
- Brand, Product, Shade, HEX, URL   (4 rows)
**Blushes:**
- Brand, Product, Shade, HEX, URL   (2 rows)
**Eyeshadow Palettes:**
- Brand, Product, Shade, HEX, URL   (2 rows)
Use only real, purchasable products with their HEX and product URL.

**Similar Celebrities:**
- Name   (2 rows, names only)

**Image Prompt:** a single sentence for a text-to-image model describing a flatlay of a
**{style}** summer outfit for a person around age **{age}** with exactly 5 items:
1 top, 1 bottom, 1 pair of shoes, 1 bag, 1 pair of glasses. Use only 3 HEX colors
from the seasonal palette. No people, no shadows, no accessories. Clean background,
layout visible.
"""


def prompt_age(age: Optional[str]) -> str:
    if not age or age == "Prefer not to say":
        return DEFAULT_AGE
    return age


def prompt_style(style: Optional[str]) -> str:
    return style or DEFAULT_STYLE


def build_prompt(age: Optional[str], style: Optional[str]) -> str:
    return ANALYSIS_PROMPT.format(age=prompt_age(age), style=prompt_style(style))


def _model_unavailable(err: Exception) -> bool:
    text = str(err)
    return "model" in text and ("does not exist" in text or "do not have access" in text)


class ColorAnalyzer:
    """Sends a selfie to the OpenAI vision model and returns its Markdown report."""

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self.settings = settings
        self.client = client or OpenAI(api_key=settings.openai_api_key)

    def chat_with_fallback(self, messages: List[Dict[str, Any]]) -> str:
        """
        Try the primary model first. If it doesn't exist or the key lacks access,
        fall back to the secondary one.

        gpt-5 models do not accept a custom temperature, so it is omitted there.
        """
        models = [self.settings.analysis_model, self.settings.fallback_model]
        for model in models:
            try:
                kwargs: Dict[str, Any] = {"model": model, "messages": messages}
                if not model.startswith("gpt-5"):
                    kwargs["temperature"] = 0.4
                resp = self.client.chat.completions.create(**kwargs)
                return resp.choices[0].message.content or ""
            except Exception as e:
                if _model_unavailable(e):
                    logger.warning("Model %s not available, trying fallback...", model)
                    continue
                logger.error("OpenAI call failed on model %s: %s", model, e)
                raise AnalysisError(f"Failed to analyze image: {e}") from e

        raise AnalysisError(f"All OpenAI models failed ({', '.join(models)})")

    def analyze(self, image_data_url: str, age: Optional[str] = None, style: Optional[str] = None) -> str:
        logger.info(
            "Sending selfie for analysis (age=%s, style=%s, payload=%d chars)",
            prompt_age(age), prompt_style(style), len(image_data_url),
        )
        text = self.chat_with_fallback([
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": build_prompt(age, style)},
                    {"type": "image_url", "image_url": {"url": image_data_url}},
                ],
            },
        ])
        logger.info("Analysis received, %d chars", len(text))

        if not has_season_section(text):
            logger.error("Missing required color analysis sections. Full result: %s", text)
            raise AnalysisError("Missing required color analysis sections.")
        return text
