"""Transactional email through the ``proxy-sendgrid`` Edge Function.

Form submissions must not fail because mail failed, so these helpers log
errors and return False instead of raising.
"""

from __future__ import annotations

import logging
from typing import Any

from .edge_functions import EdgeFunctionClient

logger = logging.getLogger(__name__)


async def _send(client: EdgeFunctionClient | None, kind: str, data: dict[str, Any]) -> bool:
    if client is None:
        logger.error("Email service not configured; dropping %s email", kind)
        return False
    try:
        response = await client.send_email(kind, data)
    except Exception as e:
        logger.error("Email service error (%s): %s", kind, e)
        return False
    if isinstance(response, dict) and response.get("success"):
        logger.info("Sent %s email via edge function", kind)
        return True
    logger.error("Edge function %s email error: %s", kind, response)
    return False


async def send_email(
    client: EdgeFunctionClient | None,
    to: str,
    sender: str,
    subject: str,
    text: str | None = None,
    html: str | None = None,
    reply_to: str | None = None,
) -> bool:
    params: dict[str, Any] = {"to": to, "from": sender, "subject": subject}
    if text is not None:
        params["text"] = text
    if html is not None:
        params["html"] = html
    if reply_to is not None:
        params["replyTo"] = reply_to
    return await _send(client, "custom", params)


async def send_contact_form_email(
    client: EdgeFunctionClient | None, contact: dict[str, Any]
) -> bool:
    return await _send(client, "contact-form", contact)


async def send_site_survey_email(
    client: EdgeFunctionClient | None, survey: dict[str, Any]
) -> bool:
    return await _send(client, "site-survey", survey)
