"""Loyalty program rules: redemption caps, earning and tiers."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import TYPE_CHECKING

from kassa.domain.discount import PercentageDiscount
from kassa.domain.errors import InvalidRedemption, LoyaltyDisabled
from kassa.domain.money import HUNDRED, ZERO, Number, round_cents, to_decimal

if TYPE_CHECKING:
    from kassa.domain.sale import Sale

logger = logging.getLogger(f"kassa_local.{__name__}")


@dataclass(frozen=True)
class LoyaltyConfig:
    """Program parameters, loaded once by the caller and passed explicitly."""

    enabled: bool = True
    points_per_euro: Decimal = Decimal("10")
    euro_per_point: Decimal = Decimal("0.01")
    min_points_to_redeem: int = 100
    max_redemption_percent: Decimal = Decimal("50")

    def __post_init__(self) -> None:
        object.__setattr__(self, "points_per_euro", to_decimal(self.points_per_euro))
        object.__setattr__(self, "euro_per_point", to_decimal(self.euro_per_point))
        object.__setattr__(self, "max_redemption_percent", to_decimal(self.max_redemption_percent))
        if self.euro_per_point <= 0:
            raise ValueError("euro_per_point must be positive")
        if self.points_per_euro < 0 or self.min_points_to_redeem < 0:
            raise ValueError("Loyalty rates and minimums must be non-negative")
        if not 0 <= self.max_redemption_percent <= HUNDRED:
            raise ValueError("max_redemption_percent must be within 0-100")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, object]) -> LoyaltyConfig:
        """Build a config from a settings table.

        Both snake_case keys and the camelCase keys stored by the back office
        (``pointsPerEuro``, ``euroPerPoint``...) are understood.
        """
        defaults = cls()

        def pick(snake: str, camel: str, default: object) -> object:
            return raw.get(snake, raw.get(camel, default))

        return cls(
            enabled=bool(pick("enabled", "enabled", defaults.enabled)),
            points_per_euro=to_decimal(pick("points_per_euro", "pointsPerEuro", defaults.points_per_euro)),  # type: ignore[arg-type]
            euro_per_point=to_decimal(pick("euro_per_point", "euroPerPoint", defaults.euro_per_point)),  # type: ignore[arg-type]
            min_points_to_redeem=int(pick("min_points_to_redeem", "minPointsToRedeem", defaults.min_points_to_redeem)),  # type: ignore[call-overload]
            max_redemption_percent=to_decimal(
                pick("max_redemption_percent", "maxRedemptionPercent", defaults.max_redemption_percent)  # type: ignore[arg-type]
            ),
        )


@dataclass(frozen=True)
class LoyaltyRedemption:
    points: int
    discount: Decimal
    new_total: Decimal


@dataclass(frozen=True)
class LoyaltyTier:
    """Spend-based tier (bronze, silver...) with its order discount and earning multiplier."""

    name: str
    min_spent: Decimal
    discount_percentage: Decimal = ZERO
    points_multiplier: Decimal = Decimal("1")

    @property
    def discount(self) -> PercentageDiscount | None:
        """Order discount members of this tier get, if any."""
        if self.discount_percentage <= 0:
            return None
        return PercentageDiscount(self.discount_percentage)


def _floor_int(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def _redemption_cap(config: LoyaltyConfig, total: Decimal) -> int:
    if total <= 0:
        return 0
    return _floor_int(total * config.max_redemption_percent / HUNDRED / config.euro_per_point)


def compute_max_redeemable(config: LoyaltyConfig, customer_points: int, cart_total: Number) -> int:
    """Return the largest number of points that may be redeemed on ``cart_total``."""
    if customer_points <= 0:
        return 0
    return max(0, min(customer_points, _redemption_cap(config, to_decimal(cart_total))))


def apply_redemption(
    config: LoyaltyConfig,
    points: int,
    cart_total: Number,
    *,
    customer_points: int | None = None,
) -> LoyaltyRedemption:
    """Convert ``points`` into a discount on ``cart_total``.

    Args:
        config: Loyalty program parameters.
        points: Points the customer wants to spend.
        cart_total: Amount due before redemption.
        customer_points: Customer balance. When omitted only the
            program's percentage cap limits the redemption.

    Raises:
        LoyaltyDisabled: If the program is switched off.
        InvalidRedemption: If ``points`` is below the program minimum or
            above the allowed maximum.
    """
    if not config.enabled:
        raise LoyaltyDisabled("The loyalty program is disabled")

    total = to_decimal(cart_total)
    if customer_points is None:
        max_points = _redemption_cap(config, total)
    else:
        max_points = compute_max_redeemable(config, customer_points, total)
    if points < config.min_points_to_redeem:
        raise InvalidRedemption(f"At least {config.min_points_to_redeem} points are required, got {points}")
    if points > max_points:
        raise InvalidRedemption(f"At most {max_points} points can be redeemed on {total}, got {points}")

    discount = round_cents(points * config.euro_per_point)
    new_total = max(ZERO, round_cents(total) - discount)
    logger.debug("Redeeming %d points for %s", points, discount)
    return LoyaltyRedemption(points=points, discount=discount, new_total=new_total)


def points_earned(config: LoyaltyConfig, sale_total: Number, multiplier: Number = 1) -> int:
    """Points earned for a completed sale of ``sale_total``."""
    if not config.enabled:
        return 0
    total = to_decimal(sale_total)
    if total <= 0:
        return 0
    return _floor_int(total * config.points_per_euro * to_decimal(multiplier))


def points_earned_for_sale(config: LoyaltyConfig, sale: Sale, multiplier: Number = 1) -> int:
    """Points earned for a finalized sale; cancelled sales earn nothing."""
    if sale.status != "finalized":
        return 0
    return points_earned(config, sale.total, multiplier)


def tier_for_spend(tiers: Sequence[LoyaltyTier], total_spent: Number) -> LoyaltyTier | None:
    """Return the highest tier reached by ``total_spent``, or None."""
    spent = to_decimal(total_spent)
    reached = [tier for tier in tiers if spent >= tier.min_spent]
    if not reached:
        return None
    return max(reached, key=lambda tier: tier.min_spent)
