"""
Client CSV import.

Turns loosely shaped spreadsheet rows into ClientCreate records and saves
them one by one. Every row stands alone: a bad row is reported and skipped,
rows saved before it stay saved, and the rows after it are still tried.

Column headers may be human readable ("First Name") or camelCase
("firstName"); the first non-empty match wins.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError, computed_field
from pydantic.alias_generators import to_camel

from core.models import ClientCreate, Gender

logger = logging.getLogger(__name__)

# Row 1 of the file is the header
FIRST_DATA_ROW = 2

UNKNOWN_LAST_NAME = "Unknown"

LIST_SEPARATOR = ";"

COLUMNS: dict[str, tuple[str, ...]] = {
    "client_id": ("Client ID", "clientId"),
    "name": ("Name", "name"),
    "first_name": ("First Name", "firstName"),
    "last_name": ("Last Name", "lastName"),
    "email": ("Email", "email"),
    "phone": ("Phone", "phone"),
    "date_of_birth": ("Date of Birth", "dateOfBirth"),
    "gender": ("Gender", "gender"),
    "address": ("Address", "address"),
    "city": ("City", "city"),
    "state": ("State", "state"),
    "zip_code": ("Zip Code", "zipCode"),
    "passport_number": ("Passport Number", "passportNumber"),
    "passport_country": ("Passport Country", "passportCountry"),
    "visa_type": ("Visa Type", "visaType"),
    "visa_application_date": (
        "Visa Application Date", "visaApplicationDate",
        "Application Date", "applicationDate",
    ),
    "visa_expiration_date": ("Visa Expiration Date", "visaExpirationDate"),
    "special_requirements": ("Special Requirements", "specialRequirements"),
    "current_applications": ("Current Applications", "currentApplications"),
    "travel_history": ("Travel History", "travelHistory"),
    "emergency_contact_name": ("Emergency Contact Name", "emergencyContactName"),
    "emergency_contact_phone": ("Emergency Contact Phone", "emergencyContactPhone"),
    "emergency_contact_relationship": (
        "Emergency Contact Relationship", "emergencyContactRelationship",
    ),
}

TEMPLATE_SAMPLE = {
    "Client ID": "",
    "First Name": "Maria",
    "Last Name": "Garcia Lopez",
    "Email": "maria.garcia@gmail.com",
    "Phone": "+1 555 010 2030",
    "Date of Birth": "1988-04-17",
    "Gender": "female",
    "Address": "742 Evergreen Terrace",
    "City": "Springfield",
    "State": "IL",
    "Zip Code": "62704",
    "Passport Number": "X1234567",
    "Passport Country": "Mexico",
    "Visa Type": "B1/B2 Tourist",
    "Visa Application Date": "2024-02-01",
    "Visa Expiration Date": "",
    "Special Requirements": "wheelchair access; dietary: vegan",
    "Current Applications": "B1/B2",
    "Travel History": "Canada 2019; Spain 2022",
    "Emergency Contact Name": "Luis Garcia",
    "Emergency Contact Phone": "+1 555 010 2031",
    "Emergency Contact Relationship": "Brother",
}


class RowImportError(Exception):
    """A single CSV row was rejected. The import carries on with the next row."""


class MissingFieldsError(RowImportError):
    """A required group of fields is empty."""


class DuplicateClientError(RowImportError):
    """A client with the same email already exists."""


class ImportReport(BaseModel):
    """Outcome of one import, serialized with camelCase keys for the UI."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    imported_count: int = 0
    error_count: int = 0
    errors: list[str] = []

    @computed_field
    @property
    def message(self) -> str:
        return f"Successfully imported {self.imported_count} clients"

    def add_error(self, row_number: int, email: str, message: str) -> None:
        self.error_count += 1
        if email:
            self.errors.append(f"Row {row_number} ({email}): {message}")
        else:
            self.errors.append(f"Row {row_number}: {message}")


@dataclass
class ClientImportRecord:
    """One CSV row after header mapping and normalization, before validation."""

    client_id: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    date_of_birth: str = ""
    gender: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    passport_number: str = ""
    passport_country: str = ""
    visa_type: str = ""
    visa_application_date: str = ""
    visa_expiration_date: str = ""
    special_requirements: list[str] = field(default_factory=list)
    current_applications: list[str] = field(default_factory=list)
    travel_history: list[str] = field(default_factory=list)
    emergency_contact: dict[str, str] | None = None

    def to_client_create(self) -> ClientCreate:
        """Strict validation; raises pydantic.ValidationError on bad dates, emails, etc."""
        return ClientCreate(
            client_id=self.client_id or None,
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            date_of_birth=self.date_of_birth,
            gender=self.gender,
            address=self.address or None,
            city=self.city or None,
            state=self.state or None,
            zip_code=self.zip_code or None,
            passport_number=self.passport_number,
            passport_country=self.passport_country,
            visa_type=self.visa_type,
            visa_application_date=self.visa_application_date,
            visa_expiration_date=self.visa_expiration_date or None,
            special_requirements=self.special_requirements,
            current_applications=self.current_applications,
            travel_history=self.travel_history,
            emergency_contact=self.emergency_contact,
        )


# =============================================================================
# FIELD NORMALIZATION
# =============================================================================


def column_value(raw: Mapping[str, Any], field_name: str) -> str:
    """First non-empty value among the headers accepted for field_name."""
    for header in COLUMNS[field_name]:
        value = raw.get(header)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def split_full_name(name: str) -> tuple[str, str]:
    """'Maria Garcia Lopez' -> ('Maria', 'Garcia Lopez'); 'Cher' -> ('Cher', 'Unknown')."""
    tokens = name.split()
    if not tokens:
        return "", ""
    return tokens[0], " ".join(tokens[1:]) or UNKNOWN_LAST_NAME


def normalize_gender(value: str) -> str:
    """Canonical gender value, or '' when the input is not recognized."""
    lowered = value.strip().lower()
    if lowered == "prefer not to say":
        return Gender.PREFER_NOT_TO_SAY.value
    if lowered in {g.value for g in Gender}:
        return lowered
    return ""


def split_list(value: str) -> list[str]:
    """'a; b; ' -> ['a', 'b']. Order kept, empty tokens dropped."""
    return [token.strip() for token in value.split(LIST_SEPARATOR) if token.strip()]


def map_record(raw: Mapping[str, Any]) -> ClientImportRecord:
    """Map one parsed CSV row onto a ClientImportRecord."""
    first_name = column_value(raw, "first_name")
    last_name = column_value(raw, "last_name")
    if not first_name and not last_name:
        first_name, last_name = split_full_name(column_value(raw, "name"))

    contact = {
        "name": column_value(raw, "emergency_contact_name"),
        "phone": column_value(raw, "emergency_contact_phone"),
        "relationship": column_value(raw, "emergency_contact_relationship"),
    }

    return ClientImportRecord(
        client_id=column_value(raw, "client_id"),
        first_name=first_name,
        last_name=last_name,
        email=column_value(raw, "email"),
        phone=column_value(raw, "phone"),
        date_of_birth=column_value(raw, "date_of_birth"),
        gender=normalize_gender(column_value(raw, "gender")),
        address=column_value(raw, "address"),
        city=column_value(raw, "city"),
        state=column_value(raw, "state"),
        zip_code=column_value(raw, "zip_code"),
        passport_number=column_value(raw, "passport_number"),
        passport_country=column_value(raw, "passport_country"),
        visa_type=column_value(raw, "visa_type"),
        visa_application_date=column_value(raw, "visa_application_date"),
        visa_expiration_date=column_value(raw, "visa_expiration_date"),
        special_requirements=split_list(column_value(raw, "special_requirements")),
        current_applications=split_list(column_value(raw, "current_applications")),
        travel_history=split_list(column_value(raw, "travel_history")),
        emergency_contact={k: v for k, v in contact.items() if v} or None,
    )


def check_required(record: ClientImportRecord) -> None:
    """
    Required-field gates, checked in order.

    Raises:
        MissingFieldsError: On the first gate that fails
    """
    if not all([record.first_name, record.last_name, record.email, record.phone]):
        raise MissingFieldsError("First name, last name, email, and phone are required")

    if not all([record.date_of_birth, record.gender]):
        raise MissingFieldsError("Date of birth and gender are required")

    if not all([
        record.passport_number, record.passport_country,
        record.visa_type, record.visa_application_date,
    ]):
        raise MissingFieldsError(
            "Passport number, passport country, visa type, and visa application date are required"
        )


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err["loc"])
        parts.append(f"{location}: {err['msg']}" if location else err["msg"])
    return "Invalid client data - " + "; ".join(parts)


# =============================================================================
# CSV I/O
# =============================================================================


class CsvRow(dict):
    """Header -> value mapping for one record, tagged with its spreadsheet row."""

    def __init__(self, values: Iterable[tuple[str, str]], row_number: int):
        super().__init__(values)
        self.row_number = row_number


def parse_csv_text(content: bytes) -> list[CsvRow]:
    """
    Parse an uploaded CSV (header row required) into dict rows.

    Handles the BOM Excel writes. Blank lines are skipped but still count
    toward row numbers, and a quoted value spanning several lines is one
    row, so row_number matches what a spreadsheet shows.

    Raises:
        UnicodeDecodeError: File is not UTF-8
        csv.Error: File is not well-formed CSV
    """
    text = content.decode("utf-8-sig")
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)

    header = next(reader, None)
    if header is None:
        return []

    rows = []
    for row_number, values in enumerate(reader, start=FIRST_DATA_ROW):
        if not values:
            continue
        rows.append(CsvRow(zip(header, values), row_number))
    return rows


def build_template_csv() -> str:
    """CSV text with every human-readable header and one sample row."""
    output = io.StringIO()
    headers = list(TEMPLATE_SAMPLE)
    writer = csv.writer(output)
    writer.writerow(headers)
    writer.writerow([TEMPLATE_SAMPLE[h] for h in headers])
    return output.getvalue()


# =============================================================================
# IMPORTER
# =============================================================================


class ClientImporter:
    """
    Imports client rows through a client store.

    The store needs find_by_email(email) and create(ClientCreate); in
    production that is core.services.client_service.ClientService.
    """

    def __init__(self, client_service):
        self.client_service = client_service

    def import_rows(self, rows: Iterable[Mapping[str, Any]]) -> ImportReport:
        """
        Import rows in file order, one at a time.

        Error messages use each row's row_number (set by parse_csv_text);
        plain mappings are numbered by position from FIRST_DATA_ROW.

        Returns:
            ImportReport with counts and one message per rejected row
        """
        report = ImportReport()

        for position, raw in enumerate(rows, start=FIRST_DATA_ROW):
            row_number = getattr(raw, "row_number", position)
            record = map_record(raw)
            try:
                self._import_record(record)
            except ValidationError as e:
                report.add_error(row_number, record.email, _describe_validation_error(e))
            except RowImportError as e:
                report.add_error(row_number, record.email, str(e))
            except Exception as e:
                logger.warning(f"Row {row_number}: failed to save client {record.email}: {e}", exc_info=True)
                report.add_error(row_number, record.email, f"Failed to save client: {e}")
            else:
                report.imported_count += 1

        logger.info(
            f"Client import finished: {report.imported_count} imported, {report.error_count} failed"
        )
        return report

    def _import_record(self, record: ClientImportRecord) -> None:
        check_required(record)
        data = record.to_client_create()

        if self.client_service.find_by_email(data.email) is not None:
            raise DuplicateClientError(f"Client with email {data.email} already exists")

        self.client_service.create(data)
