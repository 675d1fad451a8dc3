import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

PLACEHOLDER_OUTFIT_URL = (
    "https://res.cloudinary.com/dtxmgotbr/image/upload/v1750092887/"
    "colori/outfits/a1b98ghz1kjzqj2mbenq.png"
)


def _to_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


@dataclass
class Settings:
    mongo_uri: str = ""
    mongo_db: str = "coloriai"
    mongo_tls: bool = False

    openai_api_key: str = ""
    # gpt-5 models reject a custom temperature, see analysis.chat_with_fallback
    analysis_model: str = "gpt-5-mini"
    fallback_model: str = "gpt-4o-mini"
    image_model: str = "dall-e-3"
    image_generation_enabled: bool = False
    placeholder_outfit_url: str = PLACEHOLDER_OUTFIT_URL

    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_folder: str = "coloriai/outfits"

    clerk_secret_key: str = ""
    clerk_api_url: str = "https://api.clerk.com/v1"
    auth_key: str = ""
    auth_algorithm: str = "RS256"
    authorized_parties: List[str] = field(default_factory=list)

    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            mongo_uri=os.getenv("MONGO_URI", ""),
            mongo_db=os.getenv("MONGO_DB", "coloriai"),
            mongo_tls=_to_bool(os.getenv("MONGO_TLS"), False),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            analysis_model=os.getenv("OPENAI_ANALYSIS_MODEL", "gpt-5-mini"),
            fallback_model=os.getenv("OPENAI_FALLBACK_MODEL", "gpt-4o-mini"),
            image_model=os.getenv("OPENAI_IMAGE_MODEL", "dall-e-3"),
            image_generation_enabled=_to_bool(os.getenv("IMAGE_GENERATION_ENABLED"), False),
            placeholder_outfit_url=os.getenv("PLACEHOLDER_OUTFIT_URL", PLACEHOLDER_OUTFIT_URL),
            cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME", ""),
            cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY", ""),
            cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET", ""),
            cloudinary_folder=os.getenv("CLOUDINARY_FOLDER", "coloriai/outfits"),
            clerk_secret_key=os.getenv("CLERK_SECRET_KEY", ""),
            clerk_api_url=os.getenv("CLERK_API_URL", "https://api.clerk.com/v1").rstrip("/"),
            auth_key=os.getenv("CLERK_JWT_KEY", "").replace("\\n", "\n"),
            auth_algorithm=os.getenv("AUTH_ALGORITHM", "RS256"),
            authorized_parties=_to_list(os.getenv("AUTH_AUTHORIZED_PARTIES")),
            cors_origins=_to_list(os.getenv("CORS_ORIGINS")) or ["*"],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def require(self) -> "Settings":
        """Fail fast on the keys the app cannot start without."""
        if not self.mongo_uri:
            raise RuntimeError("Missing MONGO_URI in .env")
        if not self.openai_api_key:
            raise RuntimeError("Missing OPENAI_API_KEY in .env")
        if not self.auth_key:
            raise RuntimeError("Missing CLERK_JWT_KEY in .env")
        return self
