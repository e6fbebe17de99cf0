"""Financial calculation tool.

Deterministic arithmetic for the common corporate-finance measures. Inputs
that make an operation undefined (too few values, a zero denominator, no
sign change for IRR) raise ValueError, which dispatch turns into an error
output.
"""

from typing import Any, Literal

from pydantic import Field

from ...models import CalculationData, CalculationOutput, WireModel
from ..base import FinanceTool

Operation = Literal[
    "variance",
    "variance_percent",
    "roi",
    "npv",
    "irr",
    "ratio",
    "yoy",
    "qoq",
    "cagr",
    "ebitda_margin",
]

DEFAULT_DISCOUNT_RATE = 0.1
IRR_LOW = -0.99
IRR_HIGH = 10.0
IRR_TOLERANCE = 1e-7
IRR_MAX_STEPS = 200


class CalculationInput(WireModel):
    operation: Operation
    values: list[float] = Field(..., min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)


def _require(values: list[float], count: int, operation: str) -> None:
    if len(values) < count:
        raise ValueError(f"{operation} needs at least {count} values, got {len(values)}")


def _divide(numerator: float, denominator: float, operation: str) -> float:
    if denominator == 0:
        raise ValueError(f"Division by zero in {operation}")
    return numerator / denominator


def _percent(value: float) -> str:
    return f"{value:.2f}%"


def npv(rate: float, cash_flows: list[float]) -> float:
    """Net present value, the first cash flow at t=0."""
    return sum(cf / (1 + rate) ** t for t, cf in enumerate(cash_flows))


def irr(cash_flows: list[float]) -> float:
    """Internal rate of return by bisection.

    Raises:
        ValueError: If NPV does not change sign over the search interval
    """
    low, high = IRR_LOW, IRR_HIGH
    npv_low, npv_high = npv(low, cash_flows), npv(high, cash_flows)
    if npv_low * npv_high > 0:
        raise ValueError("IRR is undefined: cash flows never change the sign of NPV")

    for _ in range(IRR_MAX_STEPS):
        mid = (low + high) / 2
        npv_mid = npv(mid, cash_flows)
        if abs(npv_mid) < IRR_TOLERANCE:
            return mid
        if npv_low * npv_mid < 0:
            high = mid
        else:
            low, npv_low = mid, npv_mid
    return (low + high) / 2


def calculate(operation: str, values: list[float], params: dict[str, Any]) -> CalculationData:
    """Run one financial calculation.

    Args:
        operation: Operation name
        values: Numeric inputs (meaning depends on the operation)
        params: Extra parameters (discountRate, periods)

    Returns:
        Result with the formula used
    """
    if operation == "variance":
        _require(values, 2, operation)
        actual, budget = values[0], values[1]
        return CalculationData(
            operation=operation,
            result=round(actual - budget, 4),
            formula=f"{actual:g} - {budget:g}",
            details={"actual": actual, "budget": budget},
        )

    if operation in ("variance_percent", "roi", "yoy", "qoq"):
        _require(values, 2, operation)
        current, base = values[0], values[1]
        change = _divide(current - base, base, operation) * 100
        formulas = {
            "variance_percent": f"(({current:g} - {base:g}) / {base:g}) × 100",
            "roi": "((Gain - Cost) / Cost) × 100",
            "yoy": "((This Year - Last Year) / Last Year) × 100",
            "qoq": "((This Quarter - Last Quarter) / Last Quarter) × 100",
        }
        return CalculationData(
            operation=operation,
            result=round(change, 4),
            formula=formulas[operation],
            details={"current": current, "base": base, "display": _percent(change)},
        )

    if operation == "ebitda_margin":
        _require(values, 2, operation)
        ebitda, revenue = values[0], values[1]
        margin = _divide(ebitda, revenue, operation) * 100
        return CalculationData(
            operation=operation,
            result=round(margin, 4),
            formula="(EBITDA / Revenue) × 100",
            details={"ebitda": ebitda, "revenue": revenue, "display": _percent(margin)},
        )

    if operation == "ratio":
        _require(values, 2, operation)
        ratio = _divide(values[0], values[1], operation)
        return CalculationData(
            operation=operation,
            result=round(ratio, 4),
            formula=f"{values[0]:g} / {values[1]:g}",
            details={"numerator": values[0], "denominator": values[1]},
        )

    if operation == "npv":
        rate = float(params.get("discountRate", params.get("discount_rate", DEFAULT_DISCOUNT_RATE)))
        value = npv(rate, values)
        return CalculationData(
            operation=operation,
            result=round(value, 2),
            formula="Σ CF_t / (1 + r)^t",
            details={"discountRate": rate, "periods": len(values)},
        )

    if operation == "irr":
        _require(values, 2, operation)
        rate = irr(values)
        return CalculationData(
            operation=operation,
            result=round(rate * 100, 4),
            formula="r such that Σ CF_t / (1 + r)^t = 0",
            details={"display": _percent(rate * 100), "cashFlows": values},
        )

    if operation == "cagr":
        _require(values, 2, operation)
        start, end = values[0], values[-1]
        periods = int(params.get("periods", len(values) - 1))
        if periods <= 0:
            raise ValueError("cagr needs a positive number of periods")
        if start <= 0 or end < 0:
            raise ValueError("cagr needs a positive starting value and a non-negative ending value")
        growth = ((end / start) ** (1 / periods) - 1) * 100
        return CalculationData(
            operation=operation,
            result=round(growth, 4),
            formula="((Ending / Beginning)^(1 / periods) - 1) × 100",
            details={"beginning": start, "ending": end, "periods": periods, "display": _percent(growth)},
        )

    raise ValueError(f"Unknown operation: {operation}")


class FinancialCalculationTool(FinanceTool):
    """Performs variance, ROI, NPV, IRR and related calculations."""

    input_model = CalculationInput

    @property
    def name(self) -> str:
        return "financial_calculation"

    @property
    def description(self) -> str:
        return "Perform financial calculations like variance, ROI, NPV, IRR, CAGR, and ratios"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "operation": {
                    "type": "string",
                    "enum": [
                        "variance",
                        "variance_percent",
                        "roi",
                        "npv",
                        "irr",
                        "ratio",
                        "yoy",
                        "qoq",
                        "cagr",
                        "ebitda_margin",
                    ],
                    "description": "The type of calculation to perform",
                },
                "values": {
                    "type": "array",
                    "items": {"type": "number"},
                    "description": (
                        "Numeric values for the calculation: [actual, budget] for variance, "
                        "[current, prior] for yoy/qoq, [gain, cost] for roi, cash flows for npv/irr, "
                        "[beginning, ..., ending] for cagr, [ebitda, revenue] for ebitda_margin"
                    ),
                },
                "params": {
                    "type": "object",
                    "description": "Additional parameters (discountRate for npv, periods for cagr)",
                },
            },
            "required": ["operation", "values"],
        }

    async def run(self, params: CalculationInput) -> CalculationOutput:
        return CalculationOutput(data=calculate(params.operation, params.values, params.params))
