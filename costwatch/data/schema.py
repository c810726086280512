"""
Canonical cost record schema.

This module defines the standardized representation of a single cost record
(one invoice line item) after ingestion and normalization. Exported records
are converted to this schema before any context is built for the anomaly
engine.

Design rationale:
- Minimal fields (only what the anomaly checks and the context builder need)
- Billing periods are calendar dates, not timestamps
- Cost types normalized to a fixed set of categories
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CostType(str, Enum):
    """
    Categories of recurring business costs.

    Comparisons in the anomaly checks are always scoped to one cost type.
    """
    ELECTRICITY = "electricity"
    NATURAL_GAS = "natural_gas"
    HEATING_OIL = "heating_oil"
    DISTRICT_HEATING = "district_heating"
    DISTRICT_COOLING = "district_cooling"
    WATER = "water"
    SEWAGE = "sewage"
    WASTE = "waste"
    FUEL_DIESEL = "fuel_diesel"
    FUEL_PETROL = "fuel_petrol"
    FUEL_LPG = "fuel_lpg"
    FUEL_ELECTRIC = "fuel_electric"
    TELECOM_MOBILE = "telecom_mobile"
    TELECOM_LANDLINE = "telecom_landline"
    TELECOM_INTERNET = "telecom_internet"
    RENT = "rent"
    OPERATING_COSTS = "operating_costs"
    MAINTENANCE = "maintenance"
    INSURANCE = "insurance"
    IT_LICENSES = "it_licenses"
    IT_CLOUD = "it_cloud"
    IT_HARDWARE = "it_hardware"
    SUPPLIER_RECURRING = "supplier_recurring"
    OTHER = "other"


class CostRecord(BaseModel):
    """
    Canonical representation of a persisted cost record.

    This is the format produced by normalization and consumed by the
    context builder, which projects it into the engine's input types.

    Attributes:
        id: Unique record identifier
        location_id: Site the cost belongs to
        supplier_id: Supplier that issued the invoice
        cost_type: Category of the cost
        amount: Invoice amount (EUR)
        quantity: Consumed quantity (optional)
        unit: Unit of the quantity, e.g. "kWh" (optional)
        price_per_unit: Price per unit of quantity (optional)
        period_start: First day of the billing period
        period_end: Last day of the billing period
        invoice_number: Supplier invoice number (optional)

    Notes:
        - All fields are validated at instantiation
        - period_end may equal period_start for one-off charges
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Record identifier")
    location_id: str = Field(..., min_length=1, description="Location identifier")
    supplier_id: str = Field(..., min_length=1, description="Supplier identifier")
    cost_type: CostType = Field(..., description="Cost category")
    amount: float = Field(..., description="Invoice amount")
    quantity: Optional[float] = Field(default=None, description="Consumed quantity")
    unit: Optional[str] = Field(default=None, max_length=32, description="Quantity unit")
    price_per_unit: Optional[float] = Field(default=None, description="Price per unit")
    period_start: date = Field(..., description="Billing period start")
    period_end: date = Field(..., description="Billing period end")
    invoice_number: Optional[str] = Field(
        default=None, max_length=128, description="Supplier invoice number"
    )

    @model_validator(mode="after")
    def _check_period(self) -> "CostRecord":
        if self.period_end < self.period_start:
            raise ValueError(
                f"period_end {self.period_end} is before period_start {self.period_start}"
            )
        return self
