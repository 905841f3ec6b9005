"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.

Section models perform the local validation of each wizard step. Their wire
names are camelCase (``npiNumber``, ``shippingAddress.zipCode``) and a
validated section is stored in the draft with the same names, so a draft
round-trips unchanged to the registration backend.
"""

import re
from datetime import date
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from src.domain.ports import StepId

PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")
ZIP_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")

US_STATES = frozenset(
    """
    AL AK AZ AR CA CO CT DE DC FL GA HI ID IL IN IA KS KY LA ME MD MA MI MN MS
    MO MT NE NV NH NJ NM NY NC ND OH OK OR PA RI SC SD TN TX UT VT VA WA WV WI WY
    """.split()
)

TIMEZONES = (
    "America/New_York",
    "America/Chicago",
    "America/Denver",
    "America/Los_Angeles",
    "America/Anchorage",
    "Pacific/Honolulu",
)

AccountType = Literal["Checking", "Savings", "Business Checking", "Business Savings"]


def _require_match(value: str, pattern: re.Pattern[str], message: str) -> str:
    if not pattern.match(value):
        raise ValueError(message)
    return value


class SectionModel(BaseModel):
    """Base for wizard step payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_section(self) -> dict[str, Any]:
        """Draft slot payload, keyed by wire names."""
        return self.model_dump(by_alias=True, mode="json")


class Address(SectionModel):
    line1: str = Field(..., min_length=1)
    line2: str | None = None
    city: str = Field(..., min_length=1)
    state: str
    zip_code: str

    @field_validator("state")
    @classmethod
    def _known_state(cls, value: str) -> str:
        if value.upper() not in US_STATES:
            raise ValueError("State is required")
        return value.upper()

    @field_validator("zip_code")
    @classmethod
    def _zip(cls, value: str) -> str:
        return _require_match(value, ZIP_PATTERN, "Invalid zip code format")


class MailingAddress(Address):
    is_same_as_shipping: bool = False


class PharmacyInfoSection(SectionModel):
    """Step 1 - pharmacy identity, addresses and tax identifiers."""

    npi_number: str
    legal_business_name: str = Field(..., min_length=1)
    dba: str = Field(..., min_length=1)
    shipping_address: Address
    mailing_address: MailingAddress
    phone: str
    fax: str | None = None
    timezone: str
    federal_ein: str = Field(..., alias="federalEIN")
    state_tax_id: str = Field(..., alias="stateTaxID", min_length=1)
    gln: str = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _copy_shipping_to_mailing(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        mailing = data.get("mailingAddress") or data.get("mailing_address")
        shipping = data.get("shippingAddress") or data.get("shipping_address")
        if isinstance(mailing, dict) and mailing.get("isSameAsShipping") and isinstance(shipping, dict):
            data = {**data, "mailingAddress": {**shipping, "isSameAsShipping": True}}
            data.pop("mailing_address", None)
        return data

    @field_validator("npi_number")
    @classmethod
    def _npi(cls, value: str) -> str:
        return _require_match(value, re.compile(r"^\d{10}$"), "Must be 10 digits")

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: str) -> str:
        return _require_match(value, PHONE_PATTERN, "Invalid phone number")

    @field_validator("fax")
    @classmethod
    def _fax(cls, value: str | None) -> str | None:
        if not value:
            return None
        return _require_match(value, PHONE_PATTERN, "Invalid fax number")

    @field_validator("timezone")
    @classmethod
    def _timezone(cls, value: str) -> str:
        if value not in TIMEZONES:
            raise ValueError("Timezone is required")
        return value

    @field_validator("federal_ein")
    @classmethod
    def _ein(cls, value: str) -> str:
        return _require_match(value, re.compile(r"^\d{2}-\d{7}$"), "Format: XX-XXXXXXX")


class PharmacyOwnerSection(SectionModel):
    """Step 2."""

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    mobile: str
    email: EmailStr
    confirm_email: str

    @field_validator("mobile")
    @classmethod
    def _mobile(cls, value: str) -> str:
        return _require_match(value, PHONE_PATTERN, "Invalid mobile number")

    @field_validator("confirm_email")
    @classmethod
    def _emails_match(cls, value: str, info: ValidationInfo) -> str:
        email = info.data.get("email")
        if email is not None and value.lower() != str(email).lower():
            raise ValueError("Emails do not match")
        return value


class PrimaryContactSection(SectionModel):
    """Step 3."""

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str
    title: str | None = None

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: str) -> str:
        return _require_match(value, PHONE_PATTERN, "Invalid phone number")


class PharmacyLicenseSection(SectionModel):
    """Step 4. Expiration dates may not lie in the past."""

    dea_number: str
    dea_expiration_date: date
    state_license_number: str = Field(..., min_length=1)
    state_license_expiration_date: date

    @field_validator("dea_number")
    @classmethod
    def _dea(cls, value: str) -> str:
        return _require_match(
            value,
            re.compile(r"^[A-Z]{2}\d{7}$"),
            "DEA# format: 2 letters followed by 7 digits (e.g., AB1234567)",
        )

    @field_validator("dea_expiration_date", "state_license_expiration_date")
    @classmethod
    def _not_expired(cls, value: date) -> date:
        if value < date.today():
            raise ValueError("Expiration date cannot be in the past")
        return value


class PharmacyQuestionsSection(SectionModel):
    """Step 5."""

    enterprise_type: str = Field(..., min_length=1)
    primary_wholesaler: str = Field(..., min_length=1)
    secondary_wholesaler: str | None = None
    pharmacy_type: str = Field(..., min_length=1)
    pharmacy_software: str = Field(..., min_length=1)
    hours_of_operation: str = Field(..., min_length=1)
    number_of_locations: int = Field(..., ge=1)


class ReferralInfoSection(SectionModel):
    """Step 6."""

    referral_source: str = Field(..., min_length=1)
    promo_code: str | None = None
    terms_accepted: bool

    @field_validator("terms_accepted")
    @classmethod
    def _accepted(cls, value: bool) -> bool:
        if not value:
            raise ValueError("You must accept the Terms & Conditions to continue.")
        return value


class BankAccountSection(SectionModel):
    """Step 7 - ACH payout account."""

    account_holder_name: str = Field(..., min_length=1)
    bank_name: str = Field(..., min_length=1)
    account_type: AccountType = "Checking"
    routing_number: str
    account_number: str
    confirmation_account_number: str
    bank_address: Address
    bank_phone: str
    ach_authorization: bool

    @field_validator("routing_number")
    @classmethod
    def _routing(cls, value: str) -> str:
        return _require_match(value, re.compile(r"^\d{9}$"), "Routing number must be exactly 9 digits")

    @field_validator("account_number")
    @classmethod
    def _account(cls, value: str) -> str:
        return _require_match(value, re.compile(r"^\d{10,17}$"), "Account number must be 10-17 digits")

    @field_validator("confirmation_account_number")
    @classmethod
    def _accounts_match(cls, value: str, info: ValidationInfo) -> str:
        if info.data.get("account_number") not in (None, value):
            raise ValueError("Account numbers do not match")
        return value

    @field_validator("bank_phone")
    @classmethod
    def _phone(cls, value: str) -> str:
        return _require_match(value, PHONE_PATTERN, "Invalid phone number")

    @field_validator("ach_authorization")
    @classmethod
    def _authorized(cls, value: bool) -> bool:
        if not value:
            raise ValueError("You must authorize ACH transactions")
        return value


# Step 8 (documentsMeta) is written by the submission pipeline, never by clients
SECTION_MODELS: dict[StepId, type[SectionModel]] = {
    StepId.PHARMACY_INFO: PharmacyInfoSection,
    StepId.PHARMACY_OWNER: PharmacyOwnerSection,
    StepId.PRIMARY_CONTACT: PrimaryContactSection,
    StepId.PHARMACY_LICENSE: PharmacyLicenseSection,
    StepId.PHARMACY_QUESTIONS: PharmacyQuestionsSection,
    StepId.REFERRAL_INFO: ReferralInfoSection,
    StepId.BANK_ACCOUNT: BankAccountSection,
}


def field_error_map(exc: ValidationError) -> dict[str, str]:
    """
    Flatten a ValidationError into ``{"dotted.wire.path": message}``.

    The first error reported for a field wins.
    """
    errors: dict[str, str] = {}
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"]) or "__root__"
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        errors.setdefault(path, message)
    return errors


class GotoRequest(BaseModel):
    """Request model for a direct step jump."""

    step: int = Field(..., description="Target step; clamped to the reachable range")


class CredentialsRequest(BaseModel):
    """Login credentials entered on the final step."""

    model_config = ConfigDict(populate_by_name=True)

    email: str = ""
    password: str = ""
    confirm_password: str = Field("", alias="confirmPassword")


class DocumentSlotResponse(BaseModel):
    """State of one document slot."""

    slot: int
    declared_type: str
    filled: bool
    filename: str | None = None
    size: int | None = None
    content_type: str | None = None
    validation_error: str | None = None
    has_preview: bool = False


class DraftResponse(BaseModel):
    """Response model describing a registration draft."""

    draft_id: str
    current_step: int
    completed_steps: list[int]
    furthest_reachable_step: int
    sections: dict[str, Any]
    documents: list[DocumentSlotResponse]
    persistence_degraded: bool = False


class StepMoveResponse(BaseModel):
    """Response model for cursor moves."""

    moved: bool
    draft: DraftResponse


class SubmissionResponse(BaseModel):
    """Response model for a completed registration."""

    message: str
    registration_id: str
    registration_complete: bool = True


class ProblemDetail(BaseModel):
    """Structured error payload with per-field messages."""

    message: str
    problem: str | None = None
    field_errors: dict[str, str] = {}
    status: str | None = None
    reason: str | None = None


class ProblemResponse(BaseModel):
    """Error response carrying a ProblemDetail."""

    detail: ProblemDetail


class GateDecisionResponse(BaseModel):
    """Render-or-redirect decision for one portal navigation."""

    outcome: Literal["loading", "render", "redirect"]
    location: str | None = None
    target: str | None = None
    from_path: str | None = None
    status: str | None = None
    reason: str | None = None


class VendorSummaryResponse(BaseModel):
    """Normalized vendor record for the admin console."""

    id: str
    business_name: str
    email: str
    npi_number: str
    phone: str
    status: str
    documents_count: int
    registered_at: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
