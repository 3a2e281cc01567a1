"""Pricing settings service: custom VPS rate table storage and quoting."""

import json
import logging
from typing import Any, Dict, Optional

import pydantic
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hostpanel.core.config import settings
from hostpanel.core.identity import CallerIdentity
from hostpanel.db.session import retry_on_transient
from hostpanel.models.system_setting import SystemSetting
from hostpanel.pricing.engine import (
    PriceQuote, PricingConfig, VpsConfiguration, calculate_price, validate_configuration,
)
from hostpanel.services.audit_service import audit_service
from hostpanel.services.cache_service import cache_service

logger = logging.getLogger("hostpanel")

PRICING_KEY = "custom_vps_pricing"
CACHE_KEY = f"settings:{PRICING_KEY}"


def _parse(raw: Optional[str]) -> PricingConfig:
    """Stored JSON merged over defaults; unreadable records price with defaults."""
    if not raw:
        return PricingConfig()
    try:
        return PricingConfig.model_validate(json.loads(raw))
    except (ValueError, pydantic.ValidationError) as e:
        logger.warning("Stored %s is invalid, using defaults: %s", PRICING_KEY, e)
        return PricingConfig()


class PricingService:
    """Reads and writes the rate table kept in the settings store."""

    @staticmethod
    @retry_on_transient
    def get_pricing(db: Session) -> PricingConfig:
        cached = cache_service.get_json(CACHE_KEY)
        if cached is not None:
            try:
                return PricingConfig.model_validate(cached)
            except pydantic.ValidationError:
                cache_service.delete(CACHE_KEY)

        row = db.query(SystemSetting).filter(SystemSetting.key == PRICING_KEY).first()
        if row is None:
            pricing = PricingConfig()
            db.add(SystemSetting(
                key=PRICING_KEY,
                value=pricing.model_dump_json(),
                value_type="json",
                category="pricing",
                is_public=True,
            ))
            try:
                db.commit()
                logger.info("Created default %s record", PRICING_KEY)
            except IntegrityError:
                # another request created it first
                db.rollback()
                row = db.query(SystemSetting).filter(SystemSetting.key == PRICING_KEY).one()
                pricing = _parse(row.value)
        else:
            pricing = _parse(row.value)

        cache_service.set_json(
            CACHE_KEY, pricing.model_dump(mode="json"), settings.PRICING_CACHE_TTL_SECONDS,
        )
        return pricing

    @staticmethod
    @retry_on_transient
    def _store_pricing_tx(
        db: Session,
        pricing: PricingConfig,
        caller: CallerIdentity,
        origin: Optional[Dict[str, Any]],
    ) -> None:
        row = db.query(SystemSetting).filter(SystemSetting.key == PRICING_KEY).first()
        before = json.loads(row.value) if row and row.value else None
        value = pricing.model_dump_json()

        if row is None:
            row = SystemSetting(key=PRICING_KEY, value_type="json", category="pricing", is_public=True)
            db.add(row)
        row.value = value
        row.updated_by = caller.user_id

        audit_service.log(
            db, caller.user_id, caller.email, "pricing.updated", "setting", PRICING_KEY,
            old_value=before, new_value=pricing.model_dump(mode="json"),
            commit=False, **(origin or {}),
        )
        db.commit()

    @staticmethod
    def save_pricing(
        db: Session,
        pricing: PricingConfig,
        caller: CallerIdentity,
        origin: Optional[Dict[str, Any]] = None,
    ) -> PricingConfig:
        """Overwrite the whole rate table."""
        PricingService._store_pricing_tx(db, pricing, caller, origin)
        cache_service.delete(CACHE_KEY)
        logger.info("%s saved by user %s", PRICING_KEY, caller.user_id)
        return pricing

    @staticmethod
    def quote(
        db: Session,
        configuration: VpsConfiguration,
        pricing: Optional[PricingConfig] = None,
    ) -> PriceQuote:
        """Validate and price a configuration against the stored rate table."""
        pricing = pricing or PricingService.get_pricing(db)
        validate_configuration(configuration, pricing)
        return calculate_price(configuration, pricing)


pricing_service = PricingService()
