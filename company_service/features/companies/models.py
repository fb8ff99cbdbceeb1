"""Company domain models and inbound event payloads."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Address(BaseModel):
    """Postal address of a company."""

    street: str | None = Field(default=None, max_length=200)
    city: str | None = Field(default=None, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20)
    country: str | None = Field(default=None, max_length=100)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Company(BaseModel):
    """Company record owned by this service.

    ``created_by`` is the id of the user that registered the company; it is
    unique per company and makes creation from auth events idempotent.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., pattern=r"^\S+@\S+\.\S+$")
    registration_number: str | None = None
    eik: str | None = Field(default=None, max_length=20)
    vat_number: str | None = None
    phone: str | None = None
    address: Address = Field(default_factory=Address)
    created_by: str
    is_active: bool = True
    is_verified: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class CompanyCreate(BaseModel):
    """Input for creating a company directly."""

    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., pattern=r"^\S+@\S+\.\S+$")
    registration_number: str | None = None
    eik: str | None = Field(default=None, max_length=20)
    vat_number: str | None = None
    phone: str | None = None
    address: Address | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CompanyUpdate(BaseModel):
    """Partial update; only fields that are set are applied."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    email: str | None = Field(default=None, pattern=r"^\S+@\S+\.\S+$")
    registration_number: str | None = None
    eik: str | None = Field(default=None, max_length=20)
    vat_number: str | None = None
    phone: str | None = None
    address: Address | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


# ──────────────────────────────────────────────────────────────────────────────
# Inbound payloads (data of user.* events)
# ──────────────────────────────────────────────────────────────────────────────


class RegisteredCompany(BaseModel):
    name: str
    registration_number: str | None = None
    eik: str | None = None
    vat_number: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class RegisteredContact(BaseModel):
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class UserCreatedPayload(BaseModel):
    """Data of a ``user.created`` event sent when a user registers a company.

    Example payload::

        {
            "userId": "u-1",
            "email": "owner@acme.test",
            "company": {"name": "Acme", "registrationNumber": "123"},
            "contact": {"phone": "+359 2 123", "city": "Sofia"}
        }
    """

    user_id: str = Field(..., min_length=1)
    email: str
    company: RegisteredCompany
    contact: RegisteredContact = Field(default_factory=RegisteredContact)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class UserEmailVerifiedPayload(BaseModel):
    """Data of a ``user.email_verified`` event."""

    user_id: str = Field(..., min_length=1)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


__all__ = [
    "Address",
    "Company",
    "CompanyCreate",
    "CompanyUpdate",
    "RegisteredCompany",
    "RegisteredContact",
    "UserCreatedPayload",
    "UserEmailVerifiedPayload",
]
