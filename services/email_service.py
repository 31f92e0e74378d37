import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

import httpx

from services.config import MAILER_URL, MAILER_TOKEN, EMAIL_FROM, SALES_EMAIL

logger = logging.getLogger(__name__)


class MailerNotConfiguredError(Exception):
    """Raised when no mailer endpoint or token is configured."""
    pass


async def send_email(
    to: str | List[str],
    subject: str,
    text: Optional[str] = None,
    html: Optional[str] = None,
    cc: Optional[str | List[str]] = None,
    reply_to: Optional[str] = None
) -> Dict[str, Any]:
    if not MAILER_URL or not MAILER_TOKEN:
        raise MailerNotConfiguredError("Email credentials not configured")

    payload = {
        "to": to,
        "subject": subject
    }

    if EMAIL_FROM:
        payload["from"] = EMAIL_FROM
    if text:
        payload["text"] = text
    if html:
        payload["html"] = html
    if cc:
        payload["cc"] = cc
    if reply_to:
        payload["replyTo"] = reply_to

    async with httpx.AsyncClient() as client:
        response = await client.post(
            MAILER_URL,
            json=payload,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {MAILER_TOKEN}"
            },
            timeout=30.0
        )

        if response.status_code not in (200, 201, 202):
            error_data = response.json() if response.content else {}
            raise Exception(error_data.get("message", f"Email send failed: {response.status_code}"))

        return response.json() if response.content else {}


def build_lead_email(lead: Dict[str, Any]) -> Dict[str, str]:
    """Render the subject, HTML and plain-text bodies for a new lead notification."""
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    company = lead.get("company") or "Not provided"
    phone = lead.get("phone") or "Not provided"
    keywords = ", ".join(lead.get("keywords", []))
    competitors = lead.get("competitors") or []

    if competitors:
        competitors_html = "".join(f'<li><a href="{c}">{c}</a></li>' for c in competitors)
        competitors_text = "\n".join(f"{i + 1}. {c}" for i, c in enumerate(competitors))
    else:
        competitors_html = "<li>No competitors provided</li>"
        competitors_text = "No competitors provided"

    html = f"""
<h2>New AI Visibility Audit Form Submission</h2>
<p><strong>Timestamp:</strong> {timestamp}</p>

<h3>Contact Information</h3>
<ul>
    <li><strong>Full Name:</strong> {lead.get("fullName")}</li>
    <li><strong>Email:</strong> {lead.get("email")}</li>
    <li><strong>Company:</strong> {company}</li>
    <li><strong>Phone:</strong> {phone}</li>
</ul>

<h3>Business Information</h3>
<ul>
    <li><strong>Website:</strong> <a href="{lead.get("website")}">{lead.get("website")}</a></li>
    <li><strong>Keywords:</strong> {keywords}</li>
</ul>

<h3>Competitors</h3>
<ul>
    {competitors_html}
</ul>

<hr>
<p><em>This is an automated email from the LLM Visibility Checker tool.</em></p>
"""

    text = f"""New AI Visibility Audit Form Submission
Timestamp: {timestamp}

CONTACT INFORMATION
Full Name: {lead.get("fullName")}
Email: {lead.get("email")}
Company: {company}
Phone: {phone}

BUSINESS INFORMATION
Website: {lead.get("website")}
Keywords: {keywords}

COMPETITORS
{competitors_text}
"""

    subject = f"New Lead: {lead.get('fullName')} - {lead.get('company') or 'No Company'}"
    return {"subject": subject, "html": html, "text": text}


async def send_lead_notification(lead: Dict[str, Any]) -> bool:
    """Email the sales team (cc the submitter) about a new lead. Never raises."""
    if not MAILER_URL or not MAILER_TOKEN:
        logger.warning("Email credentials not configured. Skipping email send.")
        return False

    message = build_lead_email(lead)
    try:
        await send_email(
            to=SALES_EMAIL,
            subject=message["subject"],
            html=message["html"],
            text=message["text"],
            cc=lead.get("email"),
            reply_to=lead.get("email")
        )
        logger.info("Email sent successfully to %s", SALES_EMAIL)
        return True
    except Exception as e:
        logger.error("Error sending lead email for %s: %s", lead.get("email"), e)
        return False
