"""Append sale entries to the beancount sales journal."""

from __future__ import annotations

import re
from collections.abc import Sequence
from pathlib import Path

from beancount.core import data
from beancount.parser import printer

from kassa.domain.journal import JOURNAL_CURRENCY
from kassa.runtime.logging import get_logger

logger = get_logger(__name__)

_OPEN_RE = re.compile(r"^\d{4}-\d{2}-\d{2}\s+open\s+(\S+)", re.MULTILINE)


def _opened_accounts(content: str) -> set[str]:
    return set(_OPEN_RE.findall(content))


def append_sale_entries(path: Path, entries: Sequence[data.Transaction]) -> int:
    """
    Append transactions to ``path``, opening any account they use first.

    The file is created with an ``operating_currency`` option on first
    write. ``open`` directives are dated at the earliest appended entry.

    Returns:
        Number of transactions written.
    """
    if not entries:
        return 0

    existing = path.read_text() if path.exists() else ""
    opened = _opened_accounts(existing)
    needed = sorted({posting.account for entry in entries for posting in entry.postings} - opened)
    open_date = min(entry.date for entry in entries)

    chunks: list[str] = []
    if not existing:
        chunks.append(f'option "operating_currency" "{JOURNAL_CURRENCY}"\n\n')
    elif not existing.endswith("\n"):
        chunks.append("\n")
    for account in needed:
        meta = data.new_metadata(str(path), 0)
        chunks.append(printer.format_entry(data.Open(meta, open_date, account, [JOURNAL_CURRENCY], None)))
    if needed:
        chunks.append("\n")
    for entry in entries:
        chunks.append(printer.format_entry(entry))
        chunks.append("\n")

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write("".join(chunks))
    logger.info("Appended %d entr%s to %s", len(entries), "y" if len(entries) == 1 else "ies", path)
    return len(entries)
