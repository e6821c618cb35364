"""Bookkeeping export of sales as beancount transactions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal

from beancount.core import amount, data, flags

from kassa.domain.product import PaymentMethod
from kassa.domain.sale import Sale

logger = logging.getLogger(f"kassa_local.{__name__}")

JOURNAL_CURRENCY = "EUR"


@dataclass(frozen=True)
class LedgerAccounts:
    """Account names used when posting sales."""

    cash: str = "Assets:Till:Cash"
    card: str = "Assets:Till:Card"
    mobile: str = "Assets:Till:Mobile"
    check: str = "Assets:Till:Check"
    voucher: str = "Liabilities:Vouchers"
    sales_income: str = "Income:Sales"
    vat_payable: str = "Liabilities:Vat"
    cash_rounding: str = "Income:CashRounding"

    def payment_account(self, method: PaymentMethod) -> str:
        return {
            "cash": self.cash,
            "card": self.card,
            "mobile": self.mobile,
            "check": self.check,
            "voucher": self.voucher,
        }[method]

    def rate_component(self, rate: Decimal) -> str:
        # "21" -> "Vat21", "5.5" -> "Vat5-5"
        return "Vat" + format(rate.normalize(), "f").replace(".", "-")

    def sales_account(self, rate: Decimal) -> str:
        return f"{self.sales_income}:{self.rate_component(rate)}"

    def vat_account(self, rate: Decimal) -> str:
        return f"{self.vat_payable}:{self.rate_component(rate)}"

    def all_accounts(self, rates: list[Decimal]) -> list[str]:
        accounts = [self.cash, self.card, self.mobile, self.check, self.voucher, self.cash_rounding]
        for rate in rates:
            accounts.append(self.sales_account(rate))
            accounts.append(self.vat_account(rate))
        return accounts


def _posting(account: str, number: Decimal) -> data.Posting:
    return data.Posting(account, amount.Amount(number, JOURNAL_CURRENCY), None, None, None, None)


def _link(sale_number: str) -> str:
    return "sale-" + re.sub(r"[^A-Za-z0-9\-_/.]", "-", sale_number)


def _sale_postings(sale: Sale, accounts: LedgerAccounts, sign: int) -> list[data.Posting]:
    received: dict[str, Decimal] = {}
    payments = [(part.method, part.amount) for part in sale.payments] or [(sale.payment_method, sale.amount_due)]
    for method, paid in payments:
        account = accounts.payment_account(method)  # type: ignore[arg-type]
        received[account] = received.get(account, Decimal("0")) + paid
    postings = [_posting(account, sign * paid) for account, paid in received.items()]
    for entry in sale.vat_breakdown:
        if entry.net:
            postings.append(_posting(accounts.sales_account(entry.rate), -sign * entry.net))
        if entry.vat:
            postings.append(_posting(accounts.vat_account(entry.rate), -sign * entry.vat))
    if sale.rounding_difference:
        postings.append(_posting(accounts.cash_rounding, -sign * sale.rounding_difference))
    return postings


def sale_to_transaction(sale: Sale, accounts: LedgerAccounts | None = None) -> data.Transaction:
    """Build the balanced journal entry for a finalized sale.

    Each payment account receives what was paid with it; net sales and VAT
    are credited per rate, and any cash rounding goes to its own account.
    """
    accounts = accounts or LedgerAccounts()
    meta = data.new_metadata("<kassa>", 0, {"sale_number": sale.sale_number, "payment": sale.payment_method})
    if sale.customer_id:
        meta["customer"] = sale.customer_id
    tags = frozenset({"invoice"}) if sale.is_invoice else frozenset()
    return data.Transaction(
        meta=meta,
        date=sale.created_at.date(),
        flag=flags.FLAG_OKAY,
        payee=None,
        narration=f"Sale {sale.sale_number}",
        tags=tags,
        links=frozenset({_link(sale.sale_number)}),
        postings=_sale_postings(sale, accounts, 1),
    )


def cancellation_to_transaction(sale: Sale, accounts: LedgerAccounts | None = None) -> data.Transaction:
    """Build the reversing entry for a cancelled sale.

    The original entry stays in the journal; this one cancels it out and is
    dated at the cancellation.
    """
    if not sale.is_cancelled:
        raise ValueError(f"Sale {sale.sale_number} is not cancelled")
    accounts = accounts or LedgerAccounts()
    cancelled = [entry for entry in sale.audit_trail if entry.action == "cancelled"]
    when = cancelled[-1].at if cancelled else sale.created_at
    reason = cancelled[-1].reason if cancelled else ""
    meta = data.new_metadata("<kassa>", 0, {"sale_number": sale.sale_number})
    if reason:
        meta["reason"] = reason
    logger.debug("Building cancellation entry for sale %s", sale.sale_number)
    return data.Transaction(
        meta=meta,
        date=when.date(),
        flag=flags.FLAG_OKAY,
        payee=None,
        narration=f"Cancellation of sale {sale.sale_number}",
        tags=frozenset({"cancellation"}),
        links=frozenset({_link(sale.sale_number)}),
        postings=_sale_postings(sale, accounts, -1),
    )
