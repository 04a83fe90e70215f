"""Pydantic schemas for the lead service HTTP surface."""

from __future__ import annotations

from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

DispatchMode = Literal["sync", "optimistic"]

# Field checks (blank values, email format) happen in the request builder so
# every form reports them the same way.


class FormSubmission(BaseModel):
    template: ClassVar[str]
    default_mode: ClassVar[DispatchMode] = "sync"

    recaptcha_token: str | None = Field(default=None, alias="recaptchaToken", max_length=4096)

    model_config = ConfigDict(populate_by_name=True)

    def to_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude={"recaptcha_token"})


class ContactForm(FormSubmission):
    template: ClassVar[str] = "contact"

    name: str = Field(max_length=200)
    email: str = Field(max_length=320)
    message: str = Field(max_length=5000)


class SupportRequestForm(FormSubmission):
    template: ClassVar[str] = "support"

    name: str = Field(max_length=200)
    email: str = Field(max_length=320)
    subject: str = Field(max_length=255)
    description: str = Field(max_length=5000)
    priority: Literal["low", "medium", "high"] = "medium"


class NewsletterForm(FormSubmission):
    template: ClassVar[str] = "newsletter"

    name: str = Field(max_length=200)
    email: str = Field(max_length=320)


class ExpertPanelInterestForm(FormSubmission):
    template: ClassVar[str] = "expert-panel-interest"
    default_mode: ClassVar[DispatchMode] = "optimistic"

    email: str = Field(max_length=320)


class ExpertPanelApplicationForm(FormSubmission):
    template: ClassVar[str] = "expert-panel-application"

    name: str = Field(max_length=200)
    email: str = Field(max_length=320)
    expertise: str = Field(max_length=2000)
    experience: str = Field(max_length=5000)


class WaitingListForm(FormSubmission):
    template: ClassVar[str] = "waiting-list"
    default_mode: ClassVar[DispatchMode] = "optimistic"

    email: str = Field(max_length=320)


class DemoRequestForm(FormSubmission):
    template: ClassVar[str] = "demo-request"
    default_mode: ClassVar[DispatchMode] = "optimistic"

    email: str = Field(max_length=320)


class CtaForm(FormSubmission):
    template: ClassVar[str] = "cta"

    name: str = Field(max_length=200)
    work_email: str = Field(alias="workEmail", max_length=320)
    company_role: str = Field(alias="companyRole", max_length=200)
    challenge: str = Field(max_length=500)

    def to_fields(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "email": self.work_email,
            "company_role": self.company_role,
            "challenge_answer": self.challenge,
        }


class DispatchResponse(BaseModel):
    success: bool
    message: str | None = None
    error: str | None = None
    operation_id: str | None = Field(default=None, alias="operationId")

    model_config = ConfigDict(populate_by_name=True)


class CommunicationsHealthResponse(BaseModel):
    status: str
    timestamp: str


class CalculationRequest(BaseModel):
    project_id: str = Field(alias="projectId", min_length=1, max_length=128)
    site_geometry: dict[str, Any] = Field(alias="siteGeometry")
    calculation_type: Literal["solar", "wind", "battery", "all"] = Field(alias="calculationType")
    parameters: dict[str, Any] | None = None

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class GeometryRequest(BaseModel):
    geometry: dict[str, Any]
