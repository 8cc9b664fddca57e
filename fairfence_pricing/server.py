"""HTTP routes for pricing, status and the public forms.

``create_app`` wires the Edge Function client, the pricing source selected by
PRICING_SOURCE and the pricing cache into a FastAPI application.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from . import database, notifications
from .edge_functions import EdgeFunctionClient
from .errors import ConfigurationError
from .models.forms import ContactForm, SiteSurvey
from .models.settings import DatabaseConfig, EdgeFunctionConfig, Settings
from .pricing import (
    PricingCache,
    PricingSource,
    database_pricing_source,
    edge_pricing_source,
    unavailable_source,
)
from .runtime import STARTUP_TIME

logger = logging.getLogger(__name__)


def _build_edge_client(settings: Settings) -> EdgeFunctionClient | None:
    try:
        return EdgeFunctionClient(EdgeFunctionConfig.from_settings(settings))
    except ConfigurationError as e:
        logger.error("Edge functions disabled: %s", e)
        return None


def _build_db_config(settings: Settings) -> DatabaseConfig | None:
    try:
        return DatabaseConfig.from_settings(settings)
    except ConfigurationError as e:
        logger.warning("Direct pricing reads disabled: %s", e)
        return None


def _select_source(
    settings: Settings,
    edge_client: EdgeFunctionClient | None,
    db_config: DatabaseConfig | None,
) -> PricingSource:
    if settings.PRICING_SOURCE == "database":
        if db_config is None:
            return unavailable_source("Supabase configuration missing for database reads")
        return database_pricing_source(db_config)
    if edge_client is None:
        return unavailable_source("Supabase configuration missing for Edge Function client")
    return edge_pricing_source(edge_client)


def _error(status: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status, content={"success": False, "error": message, **extra}
    )


def create_app(
    settings: Settings,
    cache: PricingCache | None = None,
    edge_client: EdgeFunctionClient | None = None,
    db_config: DatabaseConfig | None = None,
) -> FastAPI:
    edge_client = edge_client or _build_edge_client(settings)
    db_config = db_config or _build_db_config(settings)
    cache = cache or PricingCache(_select_source(settings, edge_client, db_config))

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("Pricing source: %s", settings.PRICING_SOURCE)
        yield
        if edge_client is not None:
            await edge_client.aclose()

    app = FastAPI(title="FairFence", lifespan=lifespan)
    app.state.settings = settings
    app.state.pricing_cache = cache
    app.state.edge_client = edge_client
    app.state.db_config = db_config

    @app.get("/api/pricing")
    async def get_pricing() -> dict[str, Any]:
        result = await cache.get_pricing()
        return result.to_response()

    @app.get("/api/pricing/{fence_type}")
    async def get_pricing_by_type(fence_type: str):
        if db_config is None:
            return _error(500, "Failed to fetch pricing")
        try:
            rows = await database.fetch_pricing_by_type(db_config, fence_type)
        except Exception as e:
            logger.error("Error fetching %s pricing: %s", fence_type, e)
            return _error(500, "Failed to fetch pricing")
        return {"success": True, "data": rows}

    @app.get("/api/status")
    async def status() -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        return {
            "success": True,
            "status": {
                "server": "running",
                "timestamp": now.isoformat(),
                "uptime_s": int((now - STARTUP_TIME).total_seconds()),
                "config": "loaded" if edge_client is not None else "missing",
                "pricing_source": settings.PRICING_SOURCE,
                "pricing": cache.stats(),
            },
        }

    @app.post("/api/contact")
    async def contact(request: Request):
        try:
            form = ContactForm.model_validate(await request.json())
        except ValueError as e:
            details = e.errors(include_url=False) if isinstance(e, ValidationError) else str(e)
            logger.warning("Contact form validation failed: %s", details)
            return _error(400, "Invalid form data", details=details)

        email_sent = await notifications.send_contact_form_email(
            edge_client, form.model_dump()
        )
        if not email_sent:
            logger.warning("Contact form email failed to send")
        return {
            "success": True,
            "message": "Quote request received successfully",
            "emailSent": email_sent,
        }

    @app.post("/api/site-survey")
    async def site_survey(request: Request):
        try:
            survey = SiteSurvey.model_validate(await request.json())
        except ValueError as e:
            details = e.errors(include_url=False) if isinstance(e, ValidationError) else str(e)
            logger.warning("Site survey validation failed: %s", details)
            return _error(
                400,
                "customerName, phone, propertyAddress and at least one fence line are required",
                details=details,
            )

        email_sent = await notifications.send_site_survey_email(
            edge_client, survey.model_dump(by_alias=True)
        )
        if not email_sent:
            logger.warning("Site survey email failed to send")
        return {
            "success": True,
            "message": "Site survey submitted successfully",
            "emailSent": email_sent,
        }

    return app
