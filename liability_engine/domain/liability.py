# liability_engine/domain/liability.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from ..errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# NUMERIC(10,2): eight integer digits
MAX_MONEY = Decimal("99999999.99")

LIABILITY_DECISIONS = ("tenant", "landlord", "shared", "waived")


def quantize(v: Decimal) -> Decimal:
    return v.quantize(CENT, rounding=ROUND_HALF_UP)


def _fits(d: Decimal) -> bool:
    # checked before quantize, which cannot hold huge exponents in 28 digits
    if d and d.adjusted() > 7:
        return False
    return quantize(d) <= MAX_MONEY


def _to_decimal(v: Any) -> Decimal | None:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, Decimal):
        d = v
    elif isinstance(v, int):
        d = Decimal(v)
    elif isinstance(v, float):
        # via repr so 0.1 stays 0.1 instead of its binary expansion
        d = Decimal(repr(v))
    else:
        s = str(v).strip().replace(",", "")
        if not s:
            return None
        try:
            d = Decimal(s)
        except InvalidOperation:
            return None
    if not d.is_finite():
        return None
    return d


def parse_money(v: Any) -> Decimal:
    """
    Lenient money parse for the calculator: empty, malformed, negative or out-of-range
    input counts as zero.
    """
    d = _to_decimal(v)
    if d is None or d < 0 or not _fits(d):
        return ZERO
    return quantize(d)


def require_money(v: Any, *, field: str) -> Decimal:
    """Strict money parse for writes: malformed or negative input is rejected."""
    d = _to_decimal(v)
    if d is None:
        raise ValidationError(f"{field} must be a decimal amount", field=field)
    if d < 0:
        raise ValidationError(f"{field} must be non-negative", field=field)
    if not _fits(d):
        raise ValidationError(f"{field} must not exceed {MAX_MONEY}", field=field)
    return quantize(d)


def compute_final_cost(estimated_cost: Any, depreciation: Any) -> Decimal:
    """max(0, estimated - depreciation) to the cent."""
    est = parse_money(estimated_cost)
    dep = parse_money(depreciation)
    return max(ZERO, quantize(est - dep))


def total_estimated_cost(final_costs: Iterable[Any]) -> Decimal:
    total = ZERO
    for c in final_costs:
        total += parse_money(c)
    return quantize(total)


@dataclass(frozen=True)
class LiabilityBreakdown:
    tenant: Decimal
    landlord: Decimal
    shared: Decimal
    waived: Decimal

    @property
    def total(self) -> Decimal:
        return quantize(self.tenant + self.landlord + self.shared + self.waived)

    def as_dict(self) -> dict[str, str]:
        return {
            "tenant": str(self.tenant),
            "landlord": str(self.landlord),
            "shared": str(self.shared),
            "waived": str(self.waived),
        }


def liability_breakdown(items: Iterable[Any]) -> LiabilityBreakdown:
    """Subtotals of final_cost per liability decision (unknown decisions count as tenant)."""
    sums = {k: ZERO for k in LIABILITY_DECISIONS}
    for it in items:
        decision = (getattr(it, "liability_decision", None) or "tenant").strip().lower()
        if decision not in sums:
            decision = "tenant"
        sums[decision] += parse_money(getattr(it, "final_cost", None))
    return LiabilityBreakdown(**{k: quantize(v) for k, v in sums.items()})
