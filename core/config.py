"""Agency configuration."""

from pydantic import BaseModel, Field


class AgencyConfig(BaseModel):
    """
    Tunables for billing and list views.

    Defaults match what the agency runs with; overrides come from the
    visa-agency/settings secret (see clients.vault_client.get_agency_settings).
    """

    # Billing
    default_currency: str = Field(
        default="USD",
        description="Currency code used when an invoice does not specify one",
        min_length=3,
        max_length=3,
    )
    invoice_number_prefix: str = Field(
        default="INV",
        description="Prefix for sequential invoice numbers (INV-0001)",
        min_length=1,
        max_length=10,
        pattern="^[A-Z0-9]+$",
    )
    invoice_number_width: int = Field(
        default=4,
        description="Zero-padded width of the invoice sequence",
        ge=1,
        le=10,
    )

    # List views
    page_size: int = Field(
        default=10,
        description="Rows per page when the client does not ask for a limit",
        ge=1,
        le=500,
    )
    max_visible_pages: int = Field(
        default=5,
        description="Pager shows every page number up to this many pages",
        ge=3,
        le=20,
    )
