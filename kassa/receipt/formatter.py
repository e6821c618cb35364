"""Format finalized sales as plain-text till tickets."""

from __future__ import annotations

from decimal import Decimal

from kassa.domain.cash import format_rounding_difference
from kassa.domain.discount import PercentageDiscount
from kassa.domain.money import format_eur
from kassa.domain.sale import Sale, SaleLine

DEFAULT_WIDTH = 40


def _row(label: str, value: str, width: int) -> str:
    """Left-aligned label, right-aligned value; long labels are truncated."""
    room = width - len(value) - 1
    if len(label) > room:
        label = label[: max(room - 1, 0)] + "…" if room > 1 else ""
    return f"{label.ljust(room)} {value}"


def _rate_label(rate: Decimal) -> str:
    return format(rate.normalize(), "f") + "%"


def _quantity_label(line: SaleLine) -> str:
    if line.quantity == line.quantity.to_integral_value():
        return f"{int(line.quantity)} x {line.unit_price:.2f}"
    return f"{line.quantity.normalize():f} kg x {line.unit_price:.2f}"


def _discount_label(line: SaleLine) -> str:
    if isinstance(line.discount, PercentageDiscount):
        return f"  Discount -{line.discount.value.normalize():f}%"
    return "  Discount"


def format_receipt_lines(sale: Sale, width: int = DEFAULT_WIDTH) -> list[str]:
    """
    Render a ticket as lines.

    Per line: name, quantity × unit price and line total, then any line
    discount. The footer lists totals, cart-level reductions, the cash
    rounding adjustment when there is one, payment (one row per part of a
    split payment) and change, and the VAT summary per rate.
    """
    rule = "-" * width
    lines: list[str] = []
    title = "INVOICE" if sale.is_invoice else "TICKET"
    lines.append(f"{title} {sale.sale_number}".center(width).rstrip())
    lines.append(sale.created_at.strftime("%Y-%m-%d %H:%M").center(width).rstrip())
    if sale.is_cancelled:
        lines.append("*** CANCELLED ***".center(width).rstrip())
    lines.append(rule)

    for line in sale.lines:
        lines.append(line.product_name[:width])
        lines.append(_row(f"  {_quantity_label(line)}", f"{line.total:.2f} {_rate_label(line.vat_rate)}", width))
        if line.discount_amount:
            lines.append(_row(_discount_label(line), f"-{line.discount_amount:.2f}", width))

    lines.append(rule)
    cart_discount = sale.total_discount - sum((line.discount_amount for line in sale.lines), Decimal("0"))
    cart_discount -= sale.loyalty_discount
    if cart_discount:
        label = f"Promo {sale.promo_code}" if sale.promo_code else "Cart discount"
        lines.append(_row(label, f"-{cart_discount:.2f}", width))
    if sale.loyalty_discount:
        lines.append(
            _row(f"Loyalty ({sale.loyalty_points_redeemed} pts)", f"-{sale.loyalty_discount:.2f}", width)
        )
    lines.append(_row("Subtotal excl. VAT", f"{sale.subtotal:.2f}", width))
    lines.append(_row("VAT", f"{sale.total_vat:.2f}", width))
    lines.append(_row("TOTAL", format_eur(sale.total), width))

    rounding = format_rounding_difference(sale.rounding_difference)
    if rounding:
        lines.append(_row("Cash rounding", rounding, width))
        lines.append(_row("Amount due", format_eur(sale.amount_due), width))

    if len(sale.payments) > 1:
        for part in sale.payments:
            lines.append(_row(f"Paid ({part.method})", f"{part.amount:.2f}", width))
        if sale.amount_tendered is not None:
            lines.append(_row("Cash tendered", f"{sale.amount_tendered:.2f}", width))
    else:
        paid = sale.amount_tendered if sale.amount_tendered is not None else sale.amount_due
        lines.append(_row(f"Paid ({sale.payment_method})", f"{paid:.2f}", width))
    if sale.change is not None:
        lines.append(_row("Change", f"{sale.change:.2f}", width))

    if sale.vat_breakdown:
        lines.append(rule)
        lines.append(_row("VAT rate    Net     VAT", "Total", width))
        for entry in sale.vat_breakdown:
            label = f"{_rate_label(entry.rate):<8}{entry.net:>7.2f} {entry.vat:>7.2f}"
            lines.append(_row(label, f"{entry.gross:.2f}", width))

    if sale.customer_id and (sale.loyalty_points_earned or sale.loyalty_points_redeemed):
        lines.append(rule)
        lines.append(_row("Points earned", str(sale.loyalty_points_earned), width))
        if sale.loyalty_points_redeemed:
            lines.append(_row("Points redeemed", str(sale.loyalty_points_redeemed), width))

    return lines


def format_receipt(sale: Sale, width: int = DEFAULT_WIDTH) -> str:
    """Render the ticket as a single newline-terminated string."""
    return "\n".join(format_receipt_lines(sale, width)) + "\n"
