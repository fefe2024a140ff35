"""Client (visa applicant) domain models."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, EmailStr, field_validator

# Tried before pydantic's own ISO parsing
_SLASH_DATE_FORMATS = ("%m/%d/%Y", "%Y/%m/%d")


def parse_slash_date(value):
    """Turn "04/17/1988" or "1988/04/17" into a date; anything else passes through."""
    if not isinstance(value, str):
        return value

    text = value.strip()
    for fmt in _SLASH_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return value


class Gender(str, Enum):
    """Canonical gender values accepted after normalization."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer-not-to-say"


class EmergencyContact(BaseModel):
    name: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    relationship: str | None = Field(None, max_length=100)


class ClientCreate(BaseModel):
    """Data required to create a client."""

    client_id: str | None = Field(None, max_length=50)
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=50)
    date_of_birth: date
    gender: Gender
    address: str | None = Field(None, max_length=500)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    zip_code: str | None = Field(None, max_length=20)
    passport_number: str = Field(..., min_length=1, max_length=50)
    passport_country: str = Field(..., min_length=1, max_length=100)
    visa_type: str = Field(..., min_length=1, max_length=100)
    visa_application_date: date
    visa_expiration_date: date | None = None
    special_requirements: list[str] = Field(default_factory=list)
    current_applications: list[str] = Field(default_factory=list)
    travel_history: list[str] = Field(default_factory=list)
    emergency_contact: EmergencyContact | None = None

    @field_validator("email", mode="wrap")
    @classmethod
    def keep_email_as_written(cls, value, handler):
        """
        Validate the address but store it exactly as entered (trimmed).

        EmailStr lowercases the domain; duplicate detection and storage are
        case-sensitive on the address the user typed. Input such as
        "Maria <maria@example.com>" still collapses to the bare address.
        """
        normalized = handler(value)
        written = value.strip()
        return written if written.lower() == normalized.lower() else normalized

    @field_validator("date_of_birth", "visa_application_date", "visa_expiration_date", mode="before")
    @classmethod
    def accept_slash_dates(cls, value):
        return parse_slash_date(value)


class Client(BaseModel):
    """Full client entity as stored."""

    id: UUID
    client_id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    date_of_birth: date
    gender: Gender
    address: str | None
    city: str | None
    state: str | None
    zip_code: str | None
    passport_number: str
    passport_country: str
    visa_type: str
    visa_application_date: date
    visa_expiration_date: date | None
    special_requirements: list[str]
    current_applications: list[str]
    travel_history: list[str]
    emergency_contact: EmergencyContact | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
