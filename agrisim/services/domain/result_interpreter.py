"""
Domain service: presentation derivatives of a simulation result.

Pure functions, no I/O. Values outside the known risk tiers map to an
unknown tier; probabilities outside [0, 1] are a backend contract violation
and raise instead of being clamped.
"""
import math
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Optional

from agrisim.domain.errors import SimulationResultInvalid
from agrisim.domain.models import SimulationResult, WeatherSnapshot

YIELD_UNIT = "kg/ha"

OVERRIDE_WARNING = (
    "This crop is not recommended for the selected location. The simulation "
    "has applied environmental mismatch penalties. Proceed with caution and "
    "consider alternative crops or mitigation strategies."
)


class RiskTier(str, Enum):
    """Display tier for a risk level."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    UNKNOWN = "unknown"


_RISK_TIERS: Dict[str, RiskTier] = {
    "Low": RiskTier.LOW,
    "Medium": RiskTier.MEDIUM,
    "High": RiskTier.HIGH,
}

RISK_STYLES: Dict[RiskTier, str] = {
    RiskTier.LOW: "green",
    RiskTier.MEDIUM: "yellow",
    RiskTier.HIGH: "red",
    RiskTier.UNKNOWN: "gray",
}


def risk_band(risk_level: Any) -> RiskTier:
    """
    Map a backend risk level to a display tier.

    Args:
        risk_level: Raw value from the result, expected Low, Medium or High

    Returns:
        The matching RiskTier, or RiskTier.UNKNOWN for anything else
    """
    if not isinstance(risk_level, str):
        return RiskTier.UNKNOWN
    return _RISK_TIERS.get(risk_level, RiskTier.UNKNOWN)


def risk_style(tier: RiskTier) -> str:
    return RISK_STYLES[tier]


def format_probability(success_probability: float) -> str:
    """
    Render a probability as a percentage with one decimal place.

    Args:
        success_probability: Value in [0, 1]

    Returns:
        e.g. "83.7%"

    Raises:
        SimulationResultInvalid: If the value is not a finite number in [0, 1]
    """
    if (
        isinstance(success_probability, bool)
        or not isinstance(success_probability, (int, float))
        or not math.isfinite(success_probability)
        or not 0.0 <= success_probability <= 1.0
    ):
        raise SimulationResultInvalid(
            f"{SimulationResultInvalid.default_message}: "
            f"success_probability {success_probability!r} is outside [0, 1]"
        )
    return f"{success_probability * 100:.1f}%"


def format_yield(expected_yield: float) -> str:
    """Render a yield with no decimals, halves rounded up: 3400.5 -> "3401"."""
    rounded = Decimal(str(expected_yield)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{rounded:f}"


def format_amount(value: float) -> str:
    """Render a figure as received, without trailing ".0": 1200.0 -> "1200"."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def show_override_banner(result: SimulationResult) -> bool:
    return result.is_override is True


def show_yield_range(result: SimulationResult) -> bool:
    return result.yield_range is not None


def format_weather(snapshot: WeatherSnapshot) -> Dict[str, str]:
    """Display strings for the current conditions panel."""
    return {
        "temperature": f"{snapshot.temp:g}°C",
        "humidity": f"{snapshot.humidity:g}%",
        "rainfall": f"{snapshot.rainfall:g} mm",
        "wind": f"{snapshot.wind:g} km/h",
    }


@dataclass
class ResultView:
    """Presentation-ready fields derived from a SimulationResult."""
    probability: str
    expected_yield: str
    yield_unit: str
    risk_level: Any
    risk_tier: RiskTier
    risk_style: str
    explanation: str
    show_override_banner: bool
    override_warning: Optional[str] = None
    show_yield_range: bool = False
    yield_range: Dict[str, str] = field(default_factory=dict)


def interpret(result: SimulationResult) -> ResultView:
    """
    Derive every display field for a result.

    Args:
        result: A parsed SimulationResult

    Returns:
        ResultView instance

    Raises:
        SimulationResultInvalid: If the probability breaks the [0, 1] contract
    """
    tier = risk_band(result.risk_level)
    override = show_override_banner(result)
    has_range = show_yield_range(result)

    yield_range = {}
    if has_range:
        yield_range = {
            "min": format_amount(result.yield_range.min),
            "avg": format_amount(result.yield_range.avg),
            "max": format_amount(result.yield_range.max),
        }

    return ResultView(
        probability=format_probability(result.success_probability),
        expected_yield=format_yield(result.expected_yield),
        yield_unit=YIELD_UNIT,
        risk_level=result.risk_level,
        risk_tier=tier,
        risk_style=risk_style(tier),
        explanation=result.explanation,
        show_override_banner=override,
        override_warning=OVERRIDE_WARNING if override else None,
        show_yield_range=has_range,
        yield_range=yield_range,
    )
