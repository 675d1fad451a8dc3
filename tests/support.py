from __future__ import annotations

import io
import time
from types import SimpleNamespace
from typing import Any

import mongomock
from jose import jwt
from PIL import Image

from coloriai.config import Settings
from coloriai.errors import IdentityProviderError, UserNotFound
from coloriai.store import ReportStore

TEST_SECRET = "coloriai-test-secret"

SAMPLE_REPORT = """
Here is your personal color analysis.

1. **Seasonal Color Type:** Soft Autumn

2. **Color Extraction:**
Label, HEX
Face, #EDC1A8
Eye, #6A5554
Hair, #3C3334

3. **9-Color Seasonal Palette:**
Name, HEX
Dusty Rose, #C0A6A1
Olive, #808000
Camel, #C19A6B
Terracotta, #E2725B
Moss, #8A9A5B
Mustard, #E1AD01
Teal, #367588
Warm Taupe, #AF9483
Cream, #FFFDD0

4. **Jewelry Tone:** Gold, #D4AF37

5. **Flattering Hair Colors:**
Chestnut Brown, #954535
Soft Black, #2B2B2B

6. **Makeup Suggestions**
**Foundations:**
- Estee Lauder, Double Wear, 2W1 Dawn, #E8C4A2, https://www.esteelauder.com/double-wear
- Fenty Beauty, Pro Filt'r, 240W, #D9A77F, https://fentybeauty.com/pro-filtr
**Korean Cushion:**
- Hera, Black Cushion, 21N1, #EBC8A9, https://hera.com/black-cushion
**Lipsticks:**
- MAC, Matte Lipstick, Whirl, #A0645A, https://maccosmetics.com/whirl
- Dior, Rouge Dior, 100 Nude Look, #C08A7A, https://dior.com/rouge
- Clinique, Pop, Blush Pop, #C56B6B
- Rom&nd, Juicy Lasting Tint, Fig Fig, #9C4E4E, https://romand.co.kr/tint
**Blushes:**
- NARS, Blush, Torrid, #E9967A, https://narscosmetics.com/torrid
- Rare Beauty, Soft Pinch, Hope, #D98C7A, https://rarebeauty.com/soft-pinch
**Eyeshadow Palettes:**
- Urban Decay, Naked3, Palette, #B08D85, https://urbandecay.com/naked3
- 3CE, Multi Eye Color Palette, Overtake, #A67B5B, https://3cecosmetics.com/overtake

7. **Similar Celebrities:**
- Kim Tae-ri
- Jennifer Aniston

8. **Image Prompt:** Flatlay of a Daily summer outfit with a #C0A6A1 top, #808000 trousers, #C19A6B loafers, a bag and glasses on a clean background.
"""


def make_settings(**overrides: Any) -> Settings:
    values = dict(
        mongo_uri="mongodb://localhost:27017",
        openai_api_key="sk-test",
        auth_key=TEST_SECRET,
        auth_algorithm="HS256",
        clerk_secret_key="sk_clerk_test",
    )
    values.update(overrides)
    return Settings(**values)


def make_token(user_id: str, secret: str = TEST_SECRET, **claims: Any) -> str:
    payload = {"sub": user_id, "exp": int(time.time()) + 3600}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_header(user_id: str, **claims: Any) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, **claims)}"}


def make_store() -> ReportStore:
    return ReportStore(mongomock.MongoClient()["coloriai"]["reports"])


def jpeg_bytes(size=(64, 48), color=(200, 150, 120), fmt="JPEG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


def png_bytes(size=(32, 32)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", size, (10, 200, 30, 255)).save(buf, format="PNG")
    return buf.getvalue()


class FakeAnalyzer:
    def __init__(self, text: str = SAMPLE_REPORT, error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[tuple] = []

    def analyze(self, image_data_url: str, age=None, style=None) -> str:
        self.calls.append((image_data_url, age, style))
        if self.error:
            raise self.error
        return self.text


class FakeImages:
    PLACEHOLDER = "https://cdn.example.com/placeholder.png"

    def __init__(self, url: str = "https://cdn.example.com/outfit.png") -> None:
        self.url = url
        self.prompts: list[str] = []

    def placeholder(self) -> dict:
        return {"imageUrl": self.PLACEHOLDER, "imagePrompt": "disabled"}

    def generate(self, image_prompt: str) -> dict:
        self.prompts.append(image_prompt)
        return {"imageUrl": self.url, "imagePrompt": image_prompt}


class FakeIdentity:
    def __init__(self, users: dict | None = None, fail: bool = False) -> None:
        self.users = users or {}
        self.fail = fail
        self.deleted: list[str] = []

    def get_user(self, user_id: str) -> dict:
        if self.fail:
            raise IdentityProviderError("provider down")
        if user_id not in self.users:
            raise UserNotFound(user_id)
        return self.users[user_id]

    def is_admin(self, user_id: str) -> bool:
        user = self.get_user(user_id)
        return (user.get("public_metadata") or {}).get("role") == "admin"

    def delete_user(self, user_id: str) -> None:
        if self.fail:
            raise IdentityProviderError("Failed to delete user")
        if user_id not in self.users:
            raise UserNotFound(user_id)
        self.deleted.append(user_id)
        del self.users[user_id]


def chat_response(text: str) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])
