"""
Data formatting utilities for the spa booking engine
"""

import zlib
from decimal import Decimal, ROUND_HALF_UP
from typing import Union


def customer_reference(customer_id: str) -> str:
    """Anonymised, stable customer label such as ``Customer #0412`` for staff views."""
    return f"Customer #{zlib.crc32(str(customer_id).encode('utf-8')) % 10000:04d}"


def money(amount: Union[Decimal, float, int, str]) -> Decimal:
    """Normalize an amount to two decimal places."""
    return Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
