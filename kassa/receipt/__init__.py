"""Till ticket rendering."""

from kassa.receipt.formatter import format_receipt, format_receipt_lines

__all__ = ["format_receipt", "format_receipt_lines"]
