"""Custom VPS pricing engine.

Prices a customer-chosen resource bundle against the admin rate table::

    monthly_base      = sum(resource * unit price) + enabled add-ons + backup
    monthly_effective = monthly_base * (1 - discount for the billing period)
    total_for_term    = monthly_effective * months in the billing period

Nothing is rounded internally; ``PriceQuote.rounded()`` is for display.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from hostpanel.core.exceptions import ValidationError


class BillingPeriod(str, Enum):
    monthly = "monthly"
    one_year = "1year"
    two_years = "2years"
    three_years = "3years"


class Datacenter(BaseModel):
    id: str
    name: str
    flag: Optional[str] = None


def _default_datacenters() -> List[Datacenter]:
    return [
        Datacenter(id="uk", name="United Kingdom", flag="🇬🇧"),
        Datacenter(id="germany", name="Germany North", flag="🇩🇪"),
        Datacenter(id="spain", name="Spain", flag="🇪🇸"),
        Datacenter(id="usa", name="United States", flag="🇺🇸"),
    ]


class PricingConfig(BaseModel):
    """Admin rate table. Every field has a default so partial records still price."""

    cpu_price_per_core: float = 3.00
    ram_price_per_gb: float = 1.50
    storage_price_per_gb: float = 0.05
    bandwidth_price_per_tb: float = 1.00
    backup_price_per_gb: float = 0.05

    min_cpu: int = 1
    max_cpu: int = 32
    cpu_step: int = 1
    min_ram: int = 1
    max_ram: int = 128
    ram_step: int = 1
    min_storage: int = 20
    max_storage: int = 2000
    storage_step: int = 10
    min_bandwidth: int = 1
    max_bandwidth: int = 100
    bandwidth_step: int = 1
    min_backup_gb: int = 0
    max_backup_gb: int = 500
    backup_step: int = 10

    ddos_protection_price: float = 5.00
    control_panel_price: float = 10.00
    managed_support_price: float = 15.00

    # Whole-number percentages off the monthly price
    discount_1year: float = 10
    discount_2years: float = 15
    discount_3years: float = 20

    datacenters: List[Datacenter] = Field(default_factory=_default_datacenters)

    def datacenter(self, datacenter_id: str) -> Optional[Datacenter]:
        for dc in self.datacenters:
            if dc.id == datacenter_id:
                return dc
        return None


class VpsConfiguration(BaseModel):
    cpu: int = 2
    ram: int = 4
    storage: int = 80
    bandwidth: int = 3
    backup_gb: int = 0
    ddos: bool = False
    control_panel: bool = False
    managed: bool = False
    billing_period: BillingPeriod = BillingPeriod.monthly
    datacenter: str = "germany"


# configuration field -> (min, max, step) rate-table fields
RESOURCE_BOUNDS: Dict[str, Tuple[str, str, str]] = {
    "cpu": ("min_cpu", "max_cpu", "cpu_step"),
    "ram": ("min_ram", "max_ram", "ram_step"),
    "storage": ("min_storage", "max_storage", "storage_step"),
    "bandwidth": ("min_bandwidth", "max_bandwidth", "bandwidth_step"),
    "backup_gb": ("min_backup_gb", "max_backup_gb", "backup_step"),
}


@dataclass(frozen=True)
class PriceQuote:
    monthly_base: float
    discount_fraction: float
    term_months: int
    monthly_effective: float
    total_for_term: float

    def rounded(self) -> Dict[str, float]:
        return {
            "monthly_base": round(self.monthly_base, 2),
            "discount_fraction": self.discount_fraction,
            "term_months": self.term_months,
            "monthly_effective": round(self.monthly_effective, 2),
            "total_for_term": round(self.total_for_term, 2),
        }


def billing_terms(pricing: PricingConfig) -> Dict[BillingPeriod, Tuple[float, int]]:
    """Billing period -> (discount fraction, months)."""
    return {
        BillingPeriod.monthly: (0.0, 1),
        BillingPeriod.one_year: (pricing.discount_1year / 100, 12),
        BillingPeriod.two_years: (pricing.discount_2years / 100, 24),
        BillingPeriod.three_years: (pricing.discount_3years / 100, 36),
    }


def monthly_base(configuration: VpsConfiguration, pricing: PricingConfig) -> float:
    total = (
        configuration.cpu * pricing.cpu_price_per_core
        + configuration.ram * pricing.ram_price_per_gb
        + configuration.storage * pricing.storage_price_per_gb
        + configuration.bandwidth * pricing.bandwidth_price_per_tb
    )
    if configuration.ddos:
        total += pricing.ddos_protection_price
    if configuration.control_panel:
        total += pricing.control_panel_price
    if configuration.managed:
        total += pricing.managed_support_price
    if configuration.backup_gb > 0:
        total += configuration.backup_gb * pricing.backup_price_per_gb
    return total


def calculate_price(configuration: VpsConfiguration, pricing: PricingConfig) -> PriceQuote:
    """Price a configuration. Does not validate it; see ``validate_configuration``."""
    base = monthly_base(configuration, pricing)
    discount, months = billing_terms(pricing)[BillingPeriod(configuration.billing_period)]
    effective = base * (1 - discount)
    return PriceQuote(
        monthly_base=base,
        discount_fraction=discount,
        term_months=months,
        monthly_effective=effective,
        total_for_term=effective * months,
    )


def configuration_errors(configuration: VpsConfiguration, pricing: PricingConfig) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for field_name, (min_key, max_key, step_key) in RESOURCE_BOUNDS.items():
        value = getattr(configuration, field_name)
        low, high, step = getattr(pricing, min_key), getattr(pricing, max_key), getattr(pricing, step_key)
        if value < low or value > high:
            errors[field_name] = f"must be between {low} and {high}"
        elif step > 0 and (value - low) % step != 0:
            errors[field_name] = f"must be {low} plus a multiple of {step}"

    if pricing.datacenter(configuration.datacenter) is None:
        errors["datacenter"] = f"unknown datacenter '{configuration.datacenter}'"
    return errors


def validate_configuration(configuration: VpsConfiguration, pricing: PricingConfig) -> None:
    """Reject out-of-bounds or off-step values instead of clamping them."""
    errors = configuration_errors(configuration, pricing)
    if errors:
        raise ValidationError("Invalid VPS configuration", detail=errors)
