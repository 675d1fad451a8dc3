"""
HTTP API for ColoriAI.

Flow: onboarding (age -> style -> selfie) -> vision analysis -> outfit image ->
parsed report saved in Mongo -> report history / PDF export. Admins can browse
every user's reports and manage users at the identity provider.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote, unquote

from fastapi import Body, Cookie, Depends, FastAPI, File, Form, Header, HTTPException, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import onboarding
from .analysis import ColorAnalyzer
from .auth import SESSION_COOKIE, CurrentUser, resolve_user
from .config import Settings
from .errors import AnalysisError, IdentityProviderError, ImageGenerationError, InvalidImageError, UserNotFound
from .health import run_checks
from .identity import IdentityClient, display_name
from .images import OutfitImageService, decode_data_url, prepare_selfie
from .models import AnalyzeRequest, OutfitImageRequest, SaveReportRequest
from .parser import extract_image_prompt, parse_report
from .pdf import PDF_FILENAME, fetch_image, render_report_pdf
from .store import ReportStore, connect, serialize

logger = logging.getLogger("coloriai")


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[ReportStore] = None,
    analyzer: Optional[ColorAnalyzer] = None,
    images: Optional[OutfitImageService] = None,
    identity: Optional[IdentityClient] = None,
    image_fetcher: Callable[[str], bytes] = fetch_image,
) -> FastAPI:
    if settings is None:
        settings = Settings.from_env().require()
    if store is None:
        store = ReportStore.from_client(connect(settings), settings.mongo_db)
    analyzer = analyzer or ColorAnalyzer(settings)
    images = images or OutfitImageService(settings)
    identity = identity or IdentityClient(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        try:
            store.ensure_indexes()
        except Exception as e:
            logger.warning("Could not ensure report indexes: %s", e)
        yield

    app = FastAPI(title="ColoriAI – Seasonal Color Analysis", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------------ ERROR HANDLERS ------------------

    @app.exception_handler(AnalysisError)
    async def analysis_failed(_request: Request, exc: AnalysisError):
        logger.error("Analysis error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Failed to analyze image. Please try again."})

    @app.exception_handler(ImageGenerationError)
    async def image_failed(_request: Request, exc: ImageGenerationError):
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(InvalidImageError)
    async def invalid_image(_request: Request, exc: InvalidImageError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(IdentityProviderError)
    async def identity_failed(_request: Request, exc: IdentityProviderError):
        logger.error("Identity provider error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Server error"})

    # ------------------ AUTH DEPENDENCIES ------------------

    def current_user(
        authorization: Optional[str] = Header(None),
        session: Optional[str] = Cookie(None, alias=SESSION_COOKIE),
    ) -> CurrentUser:
        return resolve_user(authorization, session, settings)

    def check_admin(user: CurrentUser) -> bool:
        """Admin status, treating an unreachable identity provider as "not admin"."""
        if user.claims_admin:
            return True
        try:
            return identity.is_admin(user.user_id)
        except IdentityProviderError as e:
            logger.warning("Admin lookup failed for %s: %s", user.user_id, e)
            return False

    def require_admin(user: CurrentUser = Depends(current_user)) -> CurrentUser:
        if user.claims_admin:
            return user
        try:
            ok = identity.is_admin(user.user_id)
        except IdentityProviderError:
            raise HTTPException(status_code=403, detail="Failed to fetch user data")
        if not ok:
            raise HTTPException(status_code=403, detail="Admin access required")
        return user

    def lookup_name(user_id: str) -> Optional[str]:
        try:
            return display_name(identity.get_user(user_id))
        except IdentityProviderError as e:
            logger.warning("Could not resolve name for %s: %s", user_id, e)
            return None

    def read_cookie(request: Request, name: str) -> Optional[str]:
        value = request.cookies.get(name)
        return unquote(value) if value else None

    def write_cookie(response: Response, name: str, value: str) -> None:
        # same encoding browsers' cookie helpers use, values contain spaces
        response.set_cookie(name, quote(value), max_age=onboarding.COOKIE_MAX_AGE, samesite="lax")

    # ------------------ SESSION ROUTES ------------------

    @app.get("/me")
    def me(user: CurrentUser = Depends(current_user)):
        admin = check_admin(user)
        return {"userId": user.user_id, "isAdmin": admin, "next": "/admin" if admin else "/age"}

    @app.get("/check-admin")
    def check_admin_route(user: CurrentUser = Depends(current_user)):
        return {"isAdmin": check_admin(user)}

    @app.get("/health")
    def health():
        report = run_checks(settings, store.ping)
        return JSONResponse(status_code=200 if report["ok"] else 503, content=report)

    # ------------------ ONBOARDING ROUTES ------------------

    @app.get("/onboarding/options")
    def onboarding_options():
        return {"ages": onboarding.AGE_OPTIONS, "styles": onboarding.STYLE_OPTIONS}

    @app.get("/onboarding/state")
    def onboarding_state(request: Request, user: CurrentUser = Depends(current_user)):
        age = read_cookie(request, onboarding.AGE_COOKIE)
        style = read_cookie(request, onboarding.STYLE_COOKIE)
        return {"step": onboarding.next_step(age, style, check_admin(user)), "age": age, "style": style}

    @app.post("/onboarding/age")
    def onboarding_age(response: Response, age: str = Form(...), user: CurrentUser = Depends(current_user)):
        if not onboarding.valid_age(age):
            raise HTTPException(status_code=400, detail=f"Unknown age option: {age}")
        write_cookie(response, onboarding.AGE_COOKIE, age)
        return {"age": age, "next": "style"}

    @app.post("/onboarding/style")
    def onboarding_style(
        request: Request,
        response: Response,
        style: str = Form(...),
        user: CurrentUser = Depends(current_user),
    ):
        if not read_cookie(request, onboarding.AGE_COOKIE) and not check_admin(user):
            raise HTTPException(status_code=409, detail={"error": "Age not selected", "next": "age"})
        if not onboarding.valid_style(style):
            raise HTTPException(status_code=400, detail=f"Unknown style option: {style}")
        response.delete_cookie(onboarding.STALE_STYLE_COOKIE)
        write_cookie(response, onboarding.STYLE_COOKIE, style)
        return {"style": style, "next": "selfie"}

    @app.post("/onboarding/selfie")
    def onboarding_selfie(
        request: Request,
        file: UploadFile = File(...),
        age: Optional[str] = Form(None),
        style: Optional[str] = Form(None),
        user: CurrentUser = Depends(current_user),
    ):
        """
        Runs the whole pipeline behind the loading screen: analyze the selfie,
        produce the outfit image, parse the reply and save the report.
        """
        if age and not onboarding.valid_age(age):
            raise HTTPException(status_code=400, detail=f"Unknown age option: {age}")
        if style and not onboarding.valid_style(style):
            raise HTTPException(status_code=400, detail=f"Unknown style option: {style}")
        age = age or read_cookie(request, onboarding.AGE_COOKIE)
        style = style or read_cookie(request, onboarding.STYLE_COOKIE)
        step = onboarding.next_step(age, style, check_admin(user))
        if step != "selfie":
            raise HTTPException(status_code=409, detail={"error": "Onboarding incomplete", "next": step})

        raw = file.file.read()
        if not raw:
            raise HTTPException(status_code=400, detail="No image provided")
        logger.info("Selfie received from %s (%d bytes)", user.user_id, len(raw))

        text = analyzer.analyze(prepare_selfie(raw), age, style)
        image = images.generate(extract_image_prompt(text))
        parsed = parse_report(text, style=style or "Casual", outfit_image=image["imageUrl"])

        doc = store.create(
            user.user_id,
            parsed.model_dump(),
            image["imageUrl"],
            user_name=lookup_name(user.user_id),
            raw_result=text,
            age=age,
            style=style,
        )
        return {"reportId": str(doc["_id"]), "report": serialize(doc), "next": "report"}

    # ------------------ ANALYSIS ROUTES ------------------

    @app.post("/generate-prompt")
    def generate_prompt(
        request: Request,
        payload: AnalyzeRequest = Body(...),
        user: CurrentUser = Depends(current_user),
    ):
        logger.info(
            "Analysis request: imageBase64=%s age=%s style=%s",
            "present" if payload.imageBase64 else "missing", payload.age, payload.style,
        )
        if not payload.imageBase64:
            return JSONResponse(status_code=400, content={"error": "No image provided"})

        age = payload.age or read_cookie(request, onboarding.AGE_COOKIE)
        style = payload.style or read_cookie(request, onboarding.STYLE_COOKIE)

        raw = decode_data_url(payload.imageBase64)
        text = analyzer.analyze(prepare_selfie(raw), age, style)
        placeholder = images.placeholder()
        return {
            "result": text,
            "parsed": parse_report(text, style=style or "Casual").model_dump(),
            "imagePrompt": extract_image_prompt(text),
            "imageUrl": placeholder["imageUrl"],
        }

    @app.post("/generate-and-upload-image")
    def generate_and_upload_image(payload: OutfitImageRequest, user: CurrentUser = Depends(current_user)):
        return images.generate(payload.imagePrompt)

    # ------------------ REPORT ROUTES ------------------

    @app.post("/reports")
    def save_report(payload: SaveReportRequest, user: CurrentUser = Depends(current_user)):
        result = payload.result.model_dump() if payload.result is not None else None
        if result is None and payload.rawResult:
            result = parse_report(
                payload.rawResult, style=payload.style or "Casual", outfit_image=payload.outfitImage
            ).model_dump()
        if result is None:
            raise HTTPException(status_code=400, detail="Missing required fields")

        logger.info("Saving report for userId: %s", user.user_id)
        doc = store.create(
            user.user_id,
            result,
            payload.outfitImage,
            user_name=lookup_name(user.user_id),
            raw_result=payload.rawResult,
            age=payload.age,
            style=payload.style,
        )
        return serialize(doc)

    @app.get("/reports")
    def list_reports(user: CurrentUser = Depends(current_user)):
        # Regular users never see their soft-deleted reports, admins do.
        try:
            admin = check_admin(user)
            reports = store.list_for_user(user.user_id, include_deleted=admin)
        except Exception:
            logger.exception("Error fetching reports for %s", user.user_id)
            return []
        logger.info("Found %d reports for user %s (admin: %s)", len(reports), user.user_id, admin)
        return [serialize(r) for r in reports]

    def owned_report(report_id: str, user: CurrentUser) -> Dict[str, Any]:
        doc = store.get(report_id)
        if not doc or doc.get("userId") != user.user_id or doc.get("isDeleted") is True:
            raise HTTPException(status_code=404, detail="Not found")
        return doc

    @app.get("/reports/{report_id}")
    def get_report(report_id: str, user: CurrentUser = Depends(current_user)):
        return serialize(owned_report(report_id, user))

    @app.get("/reports/{report_id}/pdf")
    def report_pdf(report_id: str, user: CurrentUser = Depends(current_user)):
        doc = store.get(report_id)
        if not doc:
            raise HTTPException(status_code=404, detail="Not found")
        if doc.get("userId") != user.user_id or doc.get("isDeleted") is True:
            if not check_admin(user):
                raise HTTPException(status_code=404, detail="Not found")

        content = render_report_pdf(doc, user_name=doc.get("userName") or "User", fetcher=image_fetcher)
        return Response(
            content=content,
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{PDF_FILENAME}"'},
        )

    @app.delete("/reports/{report_id}")
    def delete_report(report_id: str, user: CurrentUser = Depends(current_user)):
        doc = store.get(report_id)
        if not doc or doc.get("userId") != user.user_id:
            raise HTTPException(status_code=403, detail="Not allowed")
        store.soft_delete(report_id)
        logger.info("Report %s deleted by owner %s", report_id, user.user_id)
        return {"success": True}

    # ------------------ ADMIN ROUTES ------------------

    @app.get("/admin/reports")
    def admin_reports(admin: CurrentUser = Depends(require_admin)):
        return store.summaries()

    @app.get("/admin/reports/{user_id}")
    def admin_user_reports(user_id: str, admin: CurrentUser = Depends(require_admin)):
        return [serialize(r) for r in store.list_for_user(user_id, include_deleted=True)]

    @app.delete("/admin/reports/{report_id}")
    def admin_delete_report(report_id: str, admin: CurrentUser = Depends(require_admin)):
        if not store.delete(report_id):
            raise HTTPException(status_code=404, detail="Report not found")
        logger.info("Report %s deleted by admin %s", report_id, admin.user_id)
        return {"success": True}

    @app.get("/admin/users/{user_id}")
    def admin_get_user(user_id: str, admin: CurrentUser = Depends(require_admin)):
        try:
            return identity.get_user(user_id)
        except UserNotFound:
            raise HTTPException(status_code=404, detail="Failed to fetch target user data")

    @app.delete("/admin/users/{user_id}")
    def admin_delete_user(user_id: str, admin: CurrentUser = Depends(require_admin)):
        if user_id == admin.user_id:
            raise HTTPException(status_code=400, detail="Cannot delete your own account")
        try:
            identity.delete_user(user_id)
        except UserNotFound:
            raise HTTPException(status_code=404, detail="User not found")
        logger.info("User %s deleted by admin %s", user_id, admin.user_id)
        return {"success": True}

    return app
