from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]

TWO_PLACES = Decimal("0.01")


def to_money(amount: Number) -> Decimal:
    """Round to paise, half-up. Floats go through str() to avoid binary noise."""
    return Decimal(str(amount)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def group_indian(digits: str) -> str:
    """1234567 -> 12,34,567"""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_inr(amount: Number, decimals: bool = True) -> str:
    value = to_money(amount)
    sign = "-" if value < 0 else ""
    value = abs(value)

    if decimals:
        whole, fraction = f"{value:.2f}".split(".")
        return f"{sign}{group_indian(whole)}.{fraction}"

    # email templates show whole rupees unless paise are present
    whole, fraction = f"{value:.2f}".split(".")
    if fraction == "00":
        return f"{sign}{group_indian(whole)}"
    return f"{sign}{group_indian(whole)}.{fraction}"


def format_currency(amount: Number) -> str:
    return f"Rs. {format_inr(amount)}"


def format_date(value: Union[date, datetime], weekday: bool = False) -> str:
    """October 17, 2026 (or Saturday, October 17, 2026)."""
    text = f"{value.strftime('%B')} {value.day}, {value.year}"
    if weekday:
        return f"{value.strftime('%A')}, {text}"
    return text


def format_time(value: Union[str, time]) -> str:
    """'19:30' -> '7:30 pm'"""
    if isinstance(value, str):
        hours, minutes = value.split(":")[:2]
        value = time(int(hours), int(minutes))

    hour = value.hour % 12 or 12
    suffix = "am" if value.hour < 12 else "pm"
    return f"{hour}:{value.minute:02d} {suffix}"
