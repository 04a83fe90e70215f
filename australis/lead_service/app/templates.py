"""Table-driven construction of lead notifications.

Every form on the site maps to one template: a set of required inputs and a
render function producing the sender name, subject and body. Building a
request validates the inputs locally and never touches the network.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from .errors import ValidationError
from .models import NotificationCategory, NotificationRequest

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
DEFAULT_PRODUCT_NAME = "Australis Energy"


Rendered = tuple[str, str, str]


@dataclass(frozen=True, slots=True)
class NotificationTemplate:
    key: str
    category: NotificationCategory
    required: tuple[str, ...]
    render: Callable[[dict[str, str]], Rendered]
    defaults: Mapping[str, str] = field(default_factory=dict)


def _contact(values: dict[str, str]) -> Rendered:
    name = values["name"]
    body = f"""Name: {name}
Email: {values["email"]}

Message:
{values["message"]}"""
    return name, f"Contact Form Submission from {name}", body


def _support(values: dict[str, str]) -> Rendered:
    name = values["name"]
    priority = values["priority"].lower()
    body = f"""Support Request Details:

Name: {name}
Email: {values["email"]}
Priority: {priority}
Subject: {values["subject"]}

Description:
{values["description"]}"""
    return name, f"[{priority.upper()}] Support Request: {values['subject']}", body


def _newsletter(values: dict[str, str]) -> Rendered:
    name = values["name"]
    product = values["product"]
    body = f"""Hello {name},

Thank you for subscribing to the {product} newsletter!

You'll receive updates about:
- New features and product updates
- Industry insights and renewable energy news
- Beta access opportunities
- Company announcements

Best regards,
The {product} Team"""
    return name, f"Newsletter Subscription - {product}", body


def _expert_panel_interest(values: dict[str, str]) -> Rendered:
    body = f"""Expert Panel Interest:

Email: {values["email"]}

A user has expressed interest in joining the expert panel.
Please follow up to collect additional details about their expertise and experience."""
    return "Expert Panel Interested User", "Expert Panel Interest Expression", body


def _expert_panel_application(values: dict[str, str]) -> Rendered:
    name = values["name"]
    body = f"""Expert Panel Application:

Name: {name}
Email: {values["email"]}

Area of Expertise:
{values["expertise"]}

Relevant Experience:
{values["experience"]}"""
    return name, f"Expert Panel Application from {name}", body


def _waiting_list(values: dict[str, str]) -> Rendered:
    body = f"""Waiting List Registration:

Email: {values["email"]}

A user has joined the waiting list for early access to the platform.
Please add them to the next onboarding cohort."""
    return "Waiting List User", "Waiting List Registration", body


def _demo_request(values: dict[str, str]) -> Rendered:
    body = f"""Demo Request:

Email: {values["email"]}

A user has requested a product demo.
Please follow up to schedule a walkthrough."""
    return "Demo Interested User", "Demo Request", body


def _cta(values: dict[str, str]) -> Rendered:
    name = values["name"]
    body = f"""CTA Form Submission:

Name: {name}
Work Email: {values["email"]}
Company / Role: {values["company_role"]}

Primary Challenge:
{values["challenge_answer"]}"""
    return name, f"CTA Form Submission from {name}", body


TEMPLATES: dict[str, NotificationTemplate] = {
    template.key: template
    for template in (
        NotificationTemplate("contact", NotificationCategory.CONTACT, ("name", "email", "message"), _contact),
        NotificationTemplate(
            "support",
            NotificationCategory.SUPPORT,
            ("name", "email", "subject", "description", "priority"),
            _support,
            defaults={"priority": "medium"},
        ),
        NotificationTemplate(
            "newsletter",
            NotificationCategory.NEWSLETTER,
            ("name", "email", "product"),
            _newsletter,
            defaults={"product": DEFAULT_PRODUCT_NAME},
        ),
        NotificationTemplate(
            "expert-panel-interest",
            NotificationCategory.EXPERT_PANEL,
            ("email",),
            _expert_panel_interest,
        ),
        NotificationTemplate(
            "expert-panel-application",
            NotificationCategory.EXPERT_PANEL,
            ("name", "email", "expertise", "experience"),
            _expert_panel_application,
        ),
        NotificationTemplate("waiting-list", NotificationCategory.WAITING_LIST, ("email",), _waiting_list),
        NotificationTemplate("demo-request", NotificationCategory.DEMO_REQUEST, ("email",), _demo_request),
        NotificationTemplate(
            "cta",
            NotificationCategory.CTA,
            ("name", "email", "company_role", "challenge_answer"),
            _cta,
        ),
    )
}


def resolve_template(category: NotificationCategory | str, fields: Mapping[str, Any]) -> NotificationTemplate:
    """Find the template for a category or template key.

    The bare ``expert-panel`` category picks the application template when
    the caller supplied application inputs, and the interest template
    otherwise.
    """

    key = category.value if isinstance(category, NotificationCategory) else str(category).strip().lower()
    if key == NotificationCategory.EXPERT_PANEL.value:
        has_application = any(fields.get(name) for name in ("expertise", "experience"))
        key = "expert-panel-application" if has_application else "expert-panel-interest"
    template = TEMPLATES.get(key)
    if template is None:
        raise ValidationError(f"Unknown notification category: {key}", field="category")
    return template


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def is_valid_email(value: str) -> bool:
    return EMAIL_PATTERN.fullmatch(value) is not None


def build_request(
    category: NotificationCategory | str,
    fields: Mapping[str, Any],
    *,
    challenge_token: str | None = None,
    to: str | None = None,
) -> NotificationRequest:
    """Validate caller inputs and render them into a :class:`NotificationRequest`."""

    template = resolve_template(category, fields)
    values = {key: _clean(value) for key, value in fields.items()}
    for key, default in template.defaults.items():
        if not values.get(key):
            values[key] = default

    missing = [name for name in template.required if not values.get(name)]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            field=missing[0],
        )
    if not is_valid_email(values["email"]):
        raise ValidationError("Invalid email format", field="email")

    name, subject, body = template.render(values)
    request = NotificationRequest(
        name=name,
        email=values["email"],
        subject=subject,
        body=body,
        category=template.category,
        challenge_token=challenge_token or None,
        to=to or None,
    )
    _check_invariants(request)
    return request


def _check_invariants(request: NotificationRequest) -> None:
    for attribute in ("name", "email", "subject", "body"):
        if not getattr(request, attribute).strip():
            raise ValidationError(f"Notification {attribute} must not be empty", field=attribute)
