"""Till sale engine: pricing, discounts, loyalty, cash rounding and finalized sales."""

__version__ = "0.1.0"
