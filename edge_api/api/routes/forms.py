from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from edge_api.api.deps import get_runtime
from edge_api.core.runtime import Runtime
from edge_api.schemas.forms import FormAck
from edge_api.services.pipeline import EndpointPolicy, RequestContext
from edge_api.services.validation import (
    ContactSubmission,
    LeadSubmission,
    NewsletterSubscription,
    validate_contact,
    validate_lead,
    validate_newsletter,
)

router = APIRouter(prefix="/api/forms", tags=["Forms"])


@router.post("/contact", response_model=FormAck)
async def submit_contact(request: Request, runtime: Runtime = Depends(get_runtime)) -> JSONResponse:
    """Store a contact-page message. Requires a Turnstile token."""
    limits = runtime.settings.rate_limit
    policy = EndpointPolicy(
        bucket="forms:contact",
        limit=limits.contact_requests,
        window_seconds=limits.contact_window_seconds,
        verify_action="contact",
    )

    async def handle(ctx: RequestContext[ContactSubmission]) -> FormAck:
        return await runtime.forms.submit_contact(ctx.record)

    result = await runtime.pipeline.run(request, policy, handle, validator=validate_contact)
    return result.to_response()


@router.post("/lead", response_model=FormAck)
async def submit_lead(request: Request, runtime: Runtime = Depends(get_runtime)) -> JSONResponse:
    """Store an itinerary inquiry for a trip. Requires a Turnstile token."""
    limits = runtime.settings.rate_limit
    policy = EndpointPolicy(
        bucket="forms:lead",
        limit=limits.lead_requests,
        window_seconds=limits.lead_window_seconds,
        verify_action="lead",
    )

    async def handle(ctx: RequestContext[LeadSubmission]) -> FormAck:
        return await runtime.forms.submit_lead(ctx.record)

    result = await runtime.pipeline.run(request, policy, handle, validator=validate_lead)
    return result.to_response()


@router.post("/newsletter", response_model=FormAck)
async def subscribe_newsletter(request: Request, runtime: Runtime = Depends(get_runtime)) -> JSONResponse:
    """Subscribe an email. Subscribing twice returns ``{ok: true, duplicate: true}``."""
    limits = runtime.settings.rate_limit
    policy = EndpointPolicy(
        bucket="forms:newsletter",
        limit=limits.newsletter_requests,
        window_seconds=limits.newsletter_window_seconds,
        verify_action="newsletter",
    )

    async def handle(ctx: RequestContext[NewsletterSubscription]) -> FormAck:
        return await runtime.forms.subscribe_newsletter(ctx.record)

    result = await runtime.pipeline.run(request, policy, handle, validator=validate_newsletter)
    return result.to_response()
