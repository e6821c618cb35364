"""Promo codes and automatic promotions."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Literal

from kassa.domain.discount import Discount, FixedAmountDiscount
from kassa.domain.money import HUNDRED, ZERO, round_cents
from kassa.domain.pricing import CartLine

PromotionType = Literal["percentage", "fixed"]


def normalize_promo_code(code: str) -> str:
    return code.strip().upper()


class StaticPromoCodeRegistry:
    """Promo codes resolved from a fixed table (usually loaded from TOML)."""

    def __init__(self, codes: Mapping[str, Discount] | None = None) -> None:
        self._codes = {normalize_promo_code(code): discount for code, discount in (codes or {}).items()}

    def __len__(self) -> int:
        return len(self._codes)

    def lookup_promo_code(self, code: str) -> Discount | None:
        """Return the discount for ``code``, or None when the code is unknown."""
        normalized = normalize_promo_code(code)
        if not normalized:
            return None
        return self._codes.get(normalized)


@dataclass(frozen=True)
class Promotion:
    """An automatic promotion that applies without a code.

    When ``product_ids`` or ``categories`` are set, only matching lines
    count towards the discounted amount, and a fixed promotion needs at
    least one matching line and never exceeds what those lines cost.
    """

    name: str
    type: PromotionType
    value: Decimal
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    is_active: bool = True
    min_purchase: Decimal | None = None
    product_ids: frozenset[str] = field(default_factory=frozenset)
    categories: frozenset[str] = field(default_factory=frozenset)

    def is_running(self, at: datetime) -> bool:
        if not self.is_active:
            return False
        if self.starts_at is not None and at < self.starts_at:
            return False
        if self.ends_at is not None and at > self.ends_at:
            return False
        return True

    def eligible_lines(self, lines: Iterable[CartLine]) -> list[CartLine]:
        if self.product_ids:
            return [line for line in lines if line.product.id in self.product_ids]
        if self.categories:
            return [line for line in lines if line.product.category in self.categories]
        return list(lines)


@dataclass(frozen=True)
class PromotionMatch:
    promotion: Promotion
    discount: FixedAmountDiscount


def promotion_amount(promotion: Promotion, lines: Sequence[CartLine]) -> Decimal:
    """Reduction ``promotion`` grants on ``lines`` (zero when not applicable)."""
    cart_total = sum((line.pricing.total for line in lines), ZERO)
    if promotion.min_purchase is not None and cart_total < promotion.min_purchase:
        return ZERO
    eligible = sum((line.pricing.total for line in promotion.eligible_lines(lines)), ZERO)
    if promotion.type == "fixed":
        return min(round_cents(promotion.value), eligible)
    if promotion.type == "percentage":
        return round_cents(eligible * promotion.value / HUNDRED)
    raise ValueError(f"Unknown promotion type: {promotion.type!r}")


def select_best_promotion(
    lines: Sequence[CartLine],
    promotions: Iterable[Promotion],
    at: datetime,
) -> PromotionMatch | None:
    """Pick the running promotion giving the largest reduction, if any.

    The result carries a fixed-amount discount ready to be passed to the
    cart aggregator as the promo discount.
    """
    best: PromotionMatch | None = None
    best_amount = ZERO
    for promotion in promotions:
        if not promotion.is_running(at):
            continue
        amount = promotion_amount(promotion, lines)
        if amount > best_amount:
            best_amount = amount
            best = PromotionMatch(promotion=promotion, discount=FixedAmountDiscount(amount))
    return best
