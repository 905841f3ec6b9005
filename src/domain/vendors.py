"""
Vendor summaries - Canonical admin display record.

Admin vendor records arrive in more than one shape (nested registration
sections, flattened legacy fields). normalize_vendor_summary() is the one
place that decides which field wins:

    business_name  pharmacyInfo.legalBusinessName > pharmacyInfo.name > businessName > "N/A"
    email          pharmacyOwner.email > email > "N/A"
    npi_number     pharmacyInfo.npiNumber > "Not provided"
    phone          pharmacyOwner.phone > pharmacyOwner.mobile > primaryContact.phone > "No phone"
    registered_at  registeredAt > createdAt
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class VendorSummary:
    id: str
    business_name: str
    email: str
    npi_number: str
    phone: str
    status: str
    documents_count: int
    registered_at: str | None


def _first(*candidates: Any, default: Any = None) -> Any:
    for candidate in candidates:
        if candidate not in (None, ""):
            return candidate
    return default


def _section(record: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = record.get(name)
    return section if isinstance(section, Mapping) else {}


def normalize_vendor_summary(record: Mapping[str, Any]) -> VendorSummary:
    info = _section(record, "pharmacyInfo")
    owner = _section(record, "pharmacyOwner")
    contact = _section(record, "primaryContact")
    documents = record.get("documents")

    return VendorSummary(
        id=str(_first(record.get("id"), record.get("_id"), default="")),
        business_name=_first(
            info.get("legalBusinessName"), info.get("name"), record.get("businessName"), default="N/A"
        ),
        email=_first(owner.get("email"), record.get("email"), default="N/A"),
        npi_number=_first(info.get("npiNumber"), default="Not provided"),
        phone=_first(owner.get("phone"), owner.get("mobile"), contact.get("phone"), default="No phone"),
        status=str(_first(record.get("status"), default="pending")),
        documents_count=len(documents) if isinstance(documents, list) else 0,
        registered_at=_first(record.get("registeredAt"), record.get("createdAt")),
    )


def normalize_vendor_summaries(records: Iterable[Any]) -> list[VendorSummary]:
    """Normalize a listing, skipping entries that are not records at all."""
    return [normalize_vendor_summary(record) for record in records if isinstance(record, Mapping)]
