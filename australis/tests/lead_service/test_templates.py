from typing import Any

import pytest

from australis.lead_service.app.errors import ValidationError
from australis.lead_service.app.models import NotificationCategory
from australis.lead_service.app.templates import (
    TEMPLATES,
    build_request,
    is_valid_email,
    resolve_template,
)

VALID_INPUTS: dict[str, dict[str, Any]] = {
    "contact": {"name": "Ada", "email": "ada@example.com", "message": "Interested in a pilot."},
    "support": {
        "name": "Ada",
        "email": "ada@example.com",
        "subject": "Map tiles missing",
        "description": "The constraints layer is blank.",
        "priority": "high",
    },
    "newsletter": {"name": "Ada", "email": "ada@example.com"},
    "expert-panel-interest": {"email": "ada@example.com"},
    "expert-panel-application": {
        "name": "Ada",
        "email": "ada@example.com",
        "expertise": "Grid connection",
        "experience": "Ten years at a DNO.",
    },
    "waiting-list": {"email": "ada@example.com"},
    "demo-request": {"email": "ada@example.com"},
    "cta": {
        "name": "Ada",
        "email": "ada@example.com",
        "company_role": "Head of Origination",
        "challenge_answer": "Accelerating site identification & screening",
    },
}


def test_every_template_has_valid_sample_inputs() -> None:
    assert set(VALID_INPUTS) == set(TEMPLATES)


@pytest.mark.parametrize("template_key", sorted(VALID_INPUTS))
def test_built_request_satisfies_invariants(template_key: str) -> None:
    request = build_request(template_key, VALID_INPUTS[template_key])

    assert request.name
    assert request.email == "ada@example.com"
    assert request.subject
    assert request.body
    assert is_valid_email(request.email)
    assert request.category is TEMPLATES[template_key].category


@pytest.mark.parametrize(
    ("template_key", "expected_name", "expected_subject"),
    [
        ("contact", "Ada", "Contact Form Submission from Ada"),
        ("support", "Ada", "[HIGH] Support Request: Map tiles missing"),
        ("newsletter", "Ada", "Newsletter Subscription - Australis Energy"),
        ("expert-panel-interest", "Expert Panel Interested User", "Expert Panel Interest Expression"),
        ("expert-panel-application", "Ada", "Expert Panel Application from Ada"),
        ("waiting-list", "Waiting List User", "Waiting List Registration"),
        ("demo-request", "Demo Interested User", "Demo Request"),
        ("cta", "Ada", "CTA Form Submission from Ada"),
    ],
)
def test_subjects_and_placeholder_names(template_key: str, expected_name: str, expected_subject: str) -> None:
    request = build_request(template_key, VALID_INPUTS[template_key])

    assert request.name == expected_name
    assert request.subject == expected_subject


def test_contact_body_embeds_fields() -> None:
    request = build_request("contact", VALID_INPUTS["contact"])

    assert request.body == "Name: Ada\nEmail: ada@example.com\n\nMessage:\nInterested in a pilot."


def test_support_priority_defaults_to_medium() -> None:
    fields = {key: value for key, value in VALID_INPUTS["support"].items() if key != "priority"}

    request = build_request(NotificationCategory.SUPPORT, fields)

    assert request.subject == "[MEDIUM] Support Request: Map tiles missing"
    assert "Priority: medium" in request.body


def test_newsletter_product_can_be_overridden() -> None:
    request = build_request("newsletter", {**VALID_INPUTS["newsletter"], "product": "Australis Pro"})

    assert request.subject == "Newsletter Subscription - Australis Pro"
    assert "The Australis Pro Team" in request.body


def test_expert_panel_category_picks_variant_from_inputs() -> None:
    interest = resolve_template(NotificationCategory.EXPERT_PANEL, {"email": "ada@example.com"})
    application = resolve_template("expert-panel", VALID_INPUTS["expert-panel-application"])

    assert interest.key == "expert-panel-interest"
    assert application.key == "expert-panel-application"


def test_inputs_are_stripped() -> None:
    request = build_request("waiting-list", {"email": "  ada@example.com  "})

    assert request.email == "ada@example.com"


@pytest.mark.parametrize("template_key", sorted(VALID_INPUTS))
def test_missing_required_field_is_rejected(template_key: str) -> None:
    template = TEMPLATES[template_key]
    removable = [name for name in template.required if name not in template.defaults]
    for field_name in removable:
        fields = {key: value for key, value in VALID_INPUTS[template_key].items() if key != field_name}
        with pytest.raises(ValidationError) as excinfo:
            build_request(template_key, fields)
        assert excinfo.value.field == field_name


def test_blank_field_counts_as_missing() -> None:
    with pytest.raises(ValidationError, match="Missing required fields: message"):
        build_request("contact", {**VALID_INPUTS["contact"], "message": "   "})


@pytest.mark.parametrize("template_key", sorted(VALID_INPUTS))
def test_malformed_email_fails_every_template(template_key: str) -> None:
    with pytest.raises(ValidationError, match="Invalid email format"):
        build_request(template_key, {**VALID_INPUTS[template_key], "email": "not-an-email"})


@pytest.mark.parametrize("template_key", sorted(VALID_INPUTS))
def test_short_email_passes_every_template(template_key: str) -> None:
    request = build_request(template_key, {**VALID_INPUTS[template_key], "email": "a@b.co"})

    assert request.email == "a@b.co"


def test_unknown_category_is_rejected() -> None:
    with pytest.raises(ValidationError, match="Unknown notification category"):
        build_request("press-enquiry", {"email": "ada@example.com"})


def test_wire_payload_omits_absent_optional_fields() -> None:
    bare = build_request("demo-request", {"email": "ada@example.com"})
    full = build_request(
        "demo-request",
        {"email": "ada@example.com"},
        challenge_token="token-123",
        to="sales@example.com",
    )

    assert bare.to_wire() == {
        "name": "Demo Interested User",
        "email": "ada@example.com",
        "subject": "Demo Request",
        "message": bare.body,
        "type": "demo-request",
    }
    assert full.to_wire()["recaptchaToken"] == "token-123"
    assert full.to_wire()["to"] == "sales@example.com"
