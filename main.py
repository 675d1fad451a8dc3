# main.py – ColoriAI backend entrypoint
"""
Backend for ColoriAI seasonal color analysis.

Features:
- Auth: session tokens issued by the hosted identity provider (verified locally with jose)
- Onboarding: age -> style -> selfie, choices kept in cookies
- Analysis: selfie -> OpenAI vision -> Markdown report -> parsed swatches / makeup / celebrities
- Outfit image: OpenAI text-to-image -> Cloudinary (or a placeholder when disabled)
- Reports: stored in Mongo, listed, soft-deleted by owners, exported as PDF
- Admin: browse and delete any user's reports, look up / delete users
"""

import logging

from coloriai.api import create_app
from coloriai.config import Settings

# ------------------ ENV + CONFIG ------------------
settings = Settings.from_env().require()

# ------------------ LOGGING ------------------
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger("coloriai")

# ------------------ FASTAPI APP ------------------
app = create_app(settings)

# ------------------ LOCAL RUN ------------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
