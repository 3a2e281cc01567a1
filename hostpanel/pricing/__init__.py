from hostpanel.pricing.engine import (
    BillingPeriod,
    Datacenter,
    PriceQuote,
    PricingConfig,
    VpsConfiguration,
    calculate_price,
    validate_configuration,
)

__all__ = [
    "BillingPeriod", "Datacenter", "PriceQuote", "PricingConfig",
    "VpsConfiguration", "calculate_price", "validate_configuration",
]
