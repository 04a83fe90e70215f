"""HTTP routes receiving the site's lead-generation forms."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from australis.common.config import ServiceSettings

from ..challenge import provider_for_submission
from ..dependencies import get_dispatch_client, get_settings
from ..dispatch import NotificationDispatchClient
from ..schemas import (
    ContactForm,
    CtaForm,
    DemoRequestForm,
    DispatchMode,
    DispatchResponse,
    ExpertPanelApplicationForm,
    ExpertPanelInterestForm,
    FormSubmission,
    NewsletterForm,
    SupportRequestForm,
    WaitingListForm,
)

router = APIRouter(prefix="/forms", tags=["forms"])

_STATUS_BY_ERROR_KIND = {
    "validation": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "configuration": status.HTTP_503_SERVICE_UNAVAILABLE,
    "transport": status.HTTP_502_BAD_GATEWAY,
    "remote_rejection": status.HTTP_502_BAD_GATEWAY,
}

_MODE_QUERY = Query(default=None, description="Defaults to the form's usual delivery mode")


async def _submit(
    form: FormSubmission,
    mode: DispatchMode | None,
    client: NotificationDispatchClient,
    settings: ServiceSettings,
) -> JSONResponse:
    provider = provider_for_submission(form.recaptcha_token, bypass=settings.challenge_bypass)
    token = await provider.obtain_token(form.template)
    if (mode or form.default_mode) == "optimistic":
        result = await client.send_notification_optimistic(form.template, form.to_fields(), token)
    else:
        result = await client.send_notification(form.template, form.to_fields(), token)

    if result.success:
        status_code = status.HTTP_200_OK
    else:
        status_code = _STATUS_BY_ERROR_KIND.get(result.error_kind or "", status.HTTP_500_INTERNAL_SERVER_ERROR)
    body = DispatchResponse.model_validate(result.as_response())
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, exclude_none=True))


@router.post("/contact", response_model=DispatchResponse)
async def submit_contact(
    form: ContactForm,
    mode: DispatchMode | None = _MODE_QUERY,
    client: NotificationDispatchClient = Depends(get_dispatch_client),
    settings: ServiceSettings = Depends(get_settings),
) -> JSONResponse:
    return await _submit(form, mode, client, settings)


@router.post("/support", response_model=DispatchResponse)
async def submit_support_request(
    form: SupportRequestForm,
    mode: DispatchMode | None = _MODE_QUERY,
    client: NotificationDispatchClient = Depends(get_dispatch_client),
    settings: ServiceSettings = Depends(get_settings),
) -> JSONResponse:
    return await _submit(form, mode, client, settings)


@router.post("/newsletter", response_model=DispatchResponse)
async def submit_newsletter(
    form: NewsletterForm,
    mode: DispatchMode | None = _MODE_QUERY,
    client: NotificationDispatchClient = Depends(get_dispatch_client),
    settings: ServiceSettings = Depends(get_settings),
) -> JSONResponse:
    return await _submit(form, mode, client, settings)


@router.post("/expert-panel/interest", response_model=DispatchResponse)
async def submit_expert_panel_interest(
    form: ExpertPanelInterestForm,
    mode: DispatchMode | None = _MODE_QUERY,
    client: NotificationDispatchClient = Depends(get_dispatch_client),
    settings: ServiceSettings = Depends(get_settings),
) -> JSONResponse:
    return await _submit(form, mode, client, settings)


@router.post("/expert-panel/application", response_model=DispatchResponse)
async def submit_expert_panel_application(
    form: ExpertPanelApplicationForm,
    mode: DispatchMode | None = _MODE_QUERY,
    client: NotificationDispatchClient = Depends(get_dispatch_client),
    settings: ServiceSettings = Depends(get_settings),
) -> JSONResponse:
    return await _submit(form, mode, client, settings)


@router.post("/waiting-list", response_model=DispatchResponse)
async def submit_waiting_list(
    form: WaitingListForm,
    mode: DispatchMode | None = _MODE_QUERY,
    client: NotificationDispatchClient = Depends(get_dispatch_client),
    settings: ServiceSettings = Depends(get_settings),
) -> JSONResponse:
    return await _submit(form, mode, client, settings)


@router.post("/demo-request", response_model=DispatchResponse)
async def submit_demo_request(
    form: DemoRequestForm,
    mode: DispatchMode | None = _MODE_QUERY,
    client: NotificationDispatchClient = Depends(get_dispatch_client),
    settings: ServiceSettings = Depends(get_settings),
) -> JSONResponse:
    return await _submit(form, mode, client, settings)


@router.post("/cta", response_model=DispatchResponse)
async def submit_cta(
    form: CtaForm,
    mode: DispatchMode | None = _MODE_QUERY,
    client: NotificationDispatchClient = Depends(get_dispatch_client),
    settings: ServiceSettings = Depends(get_settings),
) -> JSONResponse:
    return await _submit(form, mode, client, settings)
