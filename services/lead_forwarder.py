"""
Lead Forwarder for the LLM Visibility Checker.
Posts raw form submissions to the spreadsheet webhook and keeps a local
line-per-lead backup file.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

import httpx

from services.config import GS_ENDPOINT, GS_SECRET, LEADS_BACKUP_FILE

logger = logging.getLogger(__name__)


def is_sheet_configured(endpoint: str = None) -> bool:
    endpoint = GS_ENDPOINT if endpoint is None else endpoint
    return bool(endpoint) and "paste_exec_url" not in endpoint.lower()


def append_lead_backup(lead: Dict[str, Any], path: str = None) -> bool:
    """Append one JSON line for the lead. Returns False if the file could not be written."""
    path = path or LEADS_BACKUP_FILE
    record = {"ts": datetime.now(timezone.utc).isoformat(), "lead": lead}
    try:
        with open(path, "a") as f:
            f.write(json.dumps(record) + "\n")
        return True
    except OSError as e:
        logger.warning("Could not append lead backup to %s: %s", path, e)
        return False


async def forward_lead(
    lead: Dict[str, Any],
    endpoint: str = None,
    secret: str = None,
    timeout: float = 15.0,
) -> Dict[str, Any]:
    """
    Forward a lead to the spreadsheet webhook.

    Returns a dict with "ok", "status", "error" and "body"; transport failures
    are reported in "error" rather than raised.
    """
    endpoint = GS_ENDPOINT if endpoint is None else endpoint
    secret = GS_SECRET if secret is None else secret

    status = 0
    body = None
    error = None
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                endpoint,
                json={"secret": secret, "payload": lead},
                headers={"Content-Type": "application/json"},
            )
        status = response.status_code
        body = response.text
    except httpx.HTTPError as e:
        logger.error("Lead forward to sheet failed: %s", e)
        error = str(e) or e.__class__.__name__

    append_lead_backup(lead)

    return {
        "ok": 200 <= status < 300,
        "status": status,
        "error": error,
        "body": body,
    }
