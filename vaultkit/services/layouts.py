"""Positional layouts of each strategy contract's ``getAllParameters`` tuple."""
from __future__ import annotations

import enum
from typing import Any, Callable, NamedTuple, Sequence

from vaultkit.errors import ArityError, NotFoundError, ParameterTypeError
from vaultkit.helpers.formatting import format_units


class SlotKind(enum.Enum):
    BASIS_POINTS = "basis-points"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FIAT = "fiat"
    SELECT = "select"


class Slot(NamedTuple):
    name: str
    kind: SlotKind


def _bps(*names: str) -> tuple[Slot, ...]:
    return tuple(Slot(name, SlotKind.BASIS_POINTS) for name in names)


RANGE_SLOTS = _bps("targetRangeUpper", "targetRangeLower", "rebalanceThresholdUpper", "rebalanceThresholdLower")
FEE_SLOTS = (
    Slot("feeReinvestment", SlotKind.BOOLEAN),
    Slot("reinvestmentTrigger", SlotKind.FIAT),
    Slot("reinvestmentRatio", SlotKind.BASIS_POINTS),
)


class StrategyKind(enum.Enum):
    BOB = "bob"
    PARRIS = "parris"
    FED = "fed"

    @property
    def layout(self) -> tuple[Slot, ...]:
        return LAYOUTS[self]

    @property
    def arity(self) -> int:
        return len(LAYOUTS[self])

    @classmethod
    def from_strategy_id(cls, strategy_id: str) -> "StrategyKind":
        try:
            return cls(strategy_id.lower())
        except ValueError as exc:
            raise NotFoundError(f"No parameter layout for strategy {strategy_id}") from exc


LAYOUTS: dict[StrategyKind, tuple[Slot, ...]] = {
    StrategyKind.BOB: (
        *RANGE_SLOTS,
        *FEE_SLOTS,
        *_bps("maxSlippage", "emergencyExitTrigger", "maxUtilization"),
    ),
    StrategyKind.PARRIS: (
        *RANGE_SLOTS,
        *FEE_SLOTS,
        *_bps("maxSlippage", "emergencyExitTrigger", "maxVaultUtilization"),
        Slot("adaptiveRanges", SlotKind.BOOLEAN),
        Slot("rebalanceCountThresholdHigh", SlotKind.INTEGER),
        Slot("rebalanceCountThresholdLow", SlotKind.INTEGER),
        Slot("adaptiveTimeframeHigh", SlotKind.INTEGER),
        Slot("adaptiveTimeframeLow", SlotKind.INTEGER),
        *_bps(
            "rangeAdjustmentPercentHigh",
            "thresholdAdjustmentPercentHigh",
            "rangeAdjustmentPercentLow",
            "thresholdAdjustmentPercentLow",
        ),
        Slot("oracleSource", SlotKind.SELECT),
        *_bps("priceDeviationTolerance", "maxPositionSizePercent"),
        Slot("minPositionSize", SlotKind.FIAT),
        Slot("targetUtilization", SlotKind.BASIS_POINTS),
        Slot("platformSelectionCriteria", SlotKind.SELECT),
        Slot("minPoolLiquidity", SlotKind.FIAT),
    ),
    StrategyKind.FED: (
        *_bps("targetRange", "rebalanceThreshold"),
        Slot("feeReinvestment", SlotKind.BOOLEAN),
        Slot("maxSlippage", SlotKind.BASIS_POINTS),
    ),
}

# Fixed-point currency values are stored with two decimals (cents)
FIAT_DECIMALS = 2


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


SLOT_DECODERS: dict[SlotKind, tuple[str, Callable[[Any], bool], Callable[[Any], Any]]] = {
    SlotKind.BASIS_POINTS: ("integer", _is_integer, lambda raw: raw / 100),
    SlotKind.BOOLEAN: ("boolean", lambda raw: isinstance(raw, bool), bool),
    SlotKind.INTEGER: ("integer", _is_integer, int),
    SlotKind.FIAT: ("integer", _is_integer, lambda raw: format_units(raw, FIAT_DECIMALS)),
    SlotKind.SELECT: ("integer", _is_integer, str),
}


def decode_parameters(strategy_id: str, raw_values: Sequence[Any]) -> dict[str, Any]:
    kind = StrategyKind.from_strategy_id(strategy_id)
    layout = kind.layout
    values = list(raw_values)
    if len(values) != len(layout):
        raise ArityError(kind.value, len(layout), len(values))
    decoded: dict[str, Any] = {}
    for index, (slot, raw) in enumerate(zip(layout, values)):
        expected, accepts, convert = SLOT_DECODERS[slot.kind]
        if not accepts(raw):
            raise ParameterTypeError(kind.value, index, slot.name, expected, raw)
        decoded[slot.name] = convert(raw)
    return decoded
