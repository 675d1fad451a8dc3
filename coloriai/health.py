"""
Connectivity checks for the services ColoriAI depends on.

Run ``python -m coloriai.health`` to verify a fresh .env before starting the app.
"""

import logging
from typing import Any, Callable, Dict

import cloudinary
import cloudinary.api

from .config import Settings

logger = logging.getLogger("coloriai.health")


def check_mongo(ping: Callable[[], Any]) -> Dict[str, Any]:
    try:
        ping()
        return {"ok": True}
    except Exception as e:
        logger.warning("MongoDB connection failed: %s", e)
        return {"ok": False, "error": str(e)}


def check_cloudinary(settings: Settings, ping: Callable[[], Any] = None) -> Dict[str, Any]:
    if not settings.cloudinary_cloud_name:
        return {"ok": False, "error": "CLOUDINARY_CLOUD_NAME not set"}
    try:
        (ping or cloudinary.api.ping)()
        return {"ok": True}
    except Exception as e:
        logger.warning("Cloudinary ping failed: %s", e)
        return {"ok": False, "error": str(e)}


def run_checks(settings: Settings, mongo_ping: Callable[[], Any], cloudinary_ping: Callable[[], Any] = None) -> Dict[str, Any]:
    checks = {
        "mongo": check_mongo(mongo_ping),
        "cloudinary": check_cloudinary(settings, cloudinary_ping),
        "imageGeneration": {"ok": True, "enabled": settings.image_generation_enabled},
    }
    return {"ok": all(c["ok"] for c in checks.values()), "checks": checks}


def main() -> int:
    from .store import connect

    logging.basicConfig(level=logging.INFO)
    settings = Settings.from_env()
    if not settings.mongo_uri:
        print("Error: MONGO_URI not found in .env file")
        return 1

    client = connect(settings)
    if settings.cloudinary_cloud_name:
        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True,
        )
    report = run_checks(settings, lambda: client.admin.command("ping"))
    for name, result in report["checks"].items():
        mark = "✅" if result["ok"] else "❌"
        print(f"{mark} {name}: {result.get('error', 'ok')}")
    return 0 if report["ok"] else 1


if __name__ == "__main__":
    raise SystemExit(main())
