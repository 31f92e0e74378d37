"""
LLM Visibility Checker
FastAPI application: lead intake plus multi-platform AI visibility analysis.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import FastAPI, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from services.config import (
    LOG_LEVEL, MAX_HISTORICAL_DAYS, get_enabled_providers, load_visibility_config,
    is_anthropic_enabled, is_gemini_enabled, is_openai_enabled, is_perplexity_enabled
)
from services.database import init_db, save_lead
from services.email_service import send_lead_notification
from services.lead_forwarder import forward_lead, is_sheet_configured
from services.visibility_hub import VisibilityHub
from services.visibility_models import UserInfo, VisibilityRequest

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="LLM Visibility Checker")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

MISSING_FIELDS_ERROR = "Missing required fields: fullName, email, website, keywords"

_hub: Optional[VisibilityHub] = None


def get_visibility_hub() -> VisibilityHub:
    """Shared hub built once from the environment configuration."""
    global _hub
    if _hub is None:
        _hub = VisibilityHub(load_visibility_config())
    return _hub


@app.on_event("startup")
async def startup():
    init_db()
    print(f"[STARTUP] OpenAI enabled: {is_openai_enabled()}")
    print(f"[STARTUP] Gemini enabled: {is_gemini_enabled()}")
    print(f"[STARTUP] Perplexity enabled: {is_perplexity_enabled()}")
    print(f"[STARTUP] Anthropic enabled: {is_anthropic_enabled()}")
    print(f"[STARTUP] All enabled platforms: {get_enabled_providers() or 'None'}")


def split_list(value: Any) -> List[str]:
    """Accept either a comma separated string or a list from the form."""
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return []


def text_field(value: Any) -> Optional[str]:
    """Form scalars arrive as strings, numbers or null; keep them as text."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def parse_days(value: Any) -> Optional[int]:
    """
    Read the day count the way the form sends it: an int, a float, or a string
    with leading digits ("7", "7 days"). Returns None when no number is found.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        match = re.match(r"\s*([+-]?\d+)", value)
        if match:
            return int(match.group(1))
    return None


def build_lead_data(body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "fullName": text_field(body.get("fullName")),
        "email": text_field(body.get("email")),
        "company": text_field(body.get("company")),
        "phone": text_field(body.get("phone")),
        "website": text_field(body.get("website")),
        "competitors": split_list(body.get("competitors")),
        "keywords": split_list(body.get("keywords")),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def has_required_fields(lead: Dict[str, Any]) -> bool:
    return bool(lead["fullName"] and lead["email"] and lead["website"] and lead["keywords"])


async def read_json_body(request: Request) -> Optional[Dict[str, Any]]:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def build_analysis_request(
    lead: Dict[str, Any],
    historical: bool = False,
    days: int = 7,
) -> Tuple[VisibilityRequest, UserInfo]:
    """Validate the lead into the analysis request. Raises ValidationError."""
    request = VisibilityRequest(
        website=lead["website"],
        company=lead.get("company"),
        competitors=lead["competitors"],
        keywords=lead["keywords"],
        historical=historical,
        days=days,
    )
    user = UserInfo(
        name=lead["fullName"],
        email=lead["email"],
        company=lead.get("company"),
        website=lead["website"],
    )
    return request, user


def invalid_lead_response(error: ValidationError) -> JSONResponse:
    logger.warning("Rejected lead: %s", error)
    return JSONResponse({
        "error": "Invalid request body",
        "details": str(error)
    }, status_code=400)


async def run_lead_analysis(
    hub: VisibilityHub,
    lead: Dict[str, Any],
    request: VisibilityRequest,
    user: UserInfo,
) -> Dict[str, Any]:
    """Save the lead, notify sales, then run the visibility analysis for it."""
    save_lead(lead)

    email_sent = await send_lead_notification(lead)
    if email_sent:
        logger.info("Form submission email sent for %s", lead["email"])

    results = await hub.analyze_visibility(request)
    results.user = user

    return {
        "results": results.model_dump(),
        "emailNotification": "Email sent to sales team" if email_sent else "Email notification skipped",
    }


@app.post("/api/analyze")
async def api_analyze(request: Request, hub: VisibilityHub = Depends(get_visibility_hub)):
    """Standard single-pass visibility analysis for a submitted lead."""
    body = await read_json_body(request)
    if body is None:
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    lead = build_lead_data(body)
    if not has_required_fields(lead):
        return JSONResponse({"error": MISSING_FIELDS_ERROR}, status_code=400)

    try:
        analysis_request, user = build_analysis_request(lead)
    except ValidationError as e:
        return invalid_lead_response(e)

    try:
        logger.info("Starting analysis for %s...", lead["website"])
        outcome = await run_lead_analysis(hub, lead, analysis_request, user)
    except Exception as e:
        logger.exception("Analysis error")
        return JSONResponse({
            "error": "Analysis failed. Please try again later.",
            "details": str(e)
        }, status_code=500)

    return JSONResponse({"success": True, **outcome})


@app.post("/api/analyze-historical")
async def api_analyze_historical(request: Request, hub: VisibilityHub = Depends(get_visibility_hub)):
    """
    Historical visibility analysis.
    Each simulated day re-asks the platforms live with a different phrasing.
    """
    body = await read_json_body(request)
    if body is None:
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    lead = build_lead_data(body)
    if not has_required_fields(lead):
        return JSONResponse({"error": MISSING_FIELDS_ERROR}, status_code=400)

    days = parse_days(body.get("days", 7))
    if days is None or days < 1 or days > MAX_HISTORICAL_DAYS:
        return JSONResponse({"error": "Days must be a number between 1 and 30"}, status_code=400)

    lead["analysisType"] = "historical"
    lead["days"] = days

    try:
        analysis_request, user = build_analysis_request(lead, historical=True, days=days)
    except ValidationError as e:
        return invalid_lead_response(e)

    try:
        logger.info("Starting %d-day historical analysis for %s...", days, lead["website"])
        outcome = await run_lead_analysis(hub, lead, analysis_request, user)
    except Exception as e:
        logger.exception("Historical analysis error")
        return JSONResponse({
            "error": "Historical analysis failed. Please try again later.",
            "details": str(e)
        }, status_code=500)

    return JSONResponse({
        "success": True,
        "results": outcome["results"],
        "message": f"Historical analysis completed for {days} days",
        "emailNotification": outcome["emailNotification"],
    })


@app.post("/api/submit")
async def api_submit(request: Request):
    """Collector-only intake: forward the raw form to the lead sheet, no analysis."""
    if not is_sheet_configured():
        return JSONResponse({"ok": False, "error": "GS endpoint not configured"}, status_code=500)

    content_type = request.headers.get("content-type", "").lower()
    if "application/json" in content_type:
        data = await read_json_body(request)
        if data is None:
            return JSONResponse({"ok": False, "error": "Invalid JSON"}, status_code=400)
    else:
        form = await request.form()
        data = dict(form)

    result = await forward_lead(data)
    return JSONResponse(result)


@app.get("/api/health")
async def api_health():
    return JSONResponse({
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "apis": {
            "openai": is_openai_enabled(),
            "anthropic": is_anthropic_enabled(),
            "google": is_gemini_enabled(),
            "perplexity": is_perplexity_enabled(),
        }
    })
