"""Strategy definitions: parameters, templates and contract setter groups.

Parameter ids are the on-chain field names and stay camelCase. Everything else
uses the attribute names of ``vaultkit.models.strategy.StrategySchema``.
"""
from __future__ import annotations

from vaultkit.configs.tokens import TOKENS

ALL_TOKENS = list(TOKENS)
STABLECOINS = [key for key, token in TOKENS.items() if token["isStablecoin"]]

CUSTOM_TEMPLATE = {
    "id": "custom",
    "name": "Custom",
    "description": "Fully customized parameter configuration",
}

REINVEST_GUARD = {"conditional_on": "feeReinvestment", "conditional_value": True}
ADAPTIVE_GUARD = {"conditional_on": "adaptiveRanges", "conditional_value": True}


def _percent(name, description, default, minimum, maximum, step, group, contract_group, **extra):
    return {
        "name": name,
        "description": description,
        "type": "percent",
        "default_value": default,
        "min": minimum,
        "max": maximum,
        "step": step,
        "suffix": "%",
        "group": group,
        "contract_group": contract_group,
        **extra,
    }


RANGE_PARAMETERS = {
    "targetRangeUpper": _percent(
        "Upper Range", "Range percentage above current price", 5.0, 0.1, 20.0, 0.1, 0, "range"
    ),
    "targetRangeLower": _percent(
        "Lower Range", "Range percentage below current price", 5.0, 0.1, 20.0, 0.1, 0, "range"
    ),
    "rebalanceThresholdUpper": _percent(
        "Upper Rebalance Trigger",
        "Percentage from top of range that triggers a rebalance",
        1.5, 0.1, 10.0, 0.1, 0, "range",
    ),
    "rebalanceThresholdLower": _percent(
        "Lower Rebalance Trigger",
        "Percentage from bottom of range that triggers a rebalance",
        1.5, 0.1, 10.0, 0.1, 0, "range",
    ),
}

FEE_PARAMETERS = {
    "feeReinvestment": {
        "name": "Reinvest Fees",
        "description": "Automatically reinvest collected fees",
        "type": "boolean",
        "default_value": True,
        "group": 1,
        "contract_group": "fee",
    },
    "reinvestmentTrigger": {
        "name": "Reinvestment Trigger",
        "description": "Minimum USD value of fees before reinvesting",
        "type": "fiat-currency",
        "default_value": 50,
        "min": 5,
        "max": 1000,
        "step": 5,
        "prefix": "$",
        "group": 1,
        "contract_group": "fee",
        **REINVEST_GUARD,
    },
    "reinvestmentRatio": _percent(
        "Reinvestment Ratio",
        "Percentage of collected fees to reinvest vs. hold as reserve",
        80, 0, 100, 5, 1, "fee",
        **REINVEST_GUARD,
    ),
}

RISK_PARAMETERS = {
    "maxSlippage": _percent(
        "Max Slippage", "Maximum acceptable slippage when executing trades", 0.5, 0.1, 5.0, 0.1, 2, "risk"
    ),
    "emergencyExitTrigger": _percent(
        "Emergency Exit",
        "Price change percentage that triggers emergency exit from positions",
        15, 1, 50, 1, 2, "risk",
    ),
}

RANGE_FEE_RISK_GROUPS = [
    {
        "id": 0,
        "name": "Range Settings",
        "description": "Control how your position responds to price movements",
        "setter_method": "setRangeParameters",
    },
    {
        "id": 1,
        "name": "Fee Settings",
        "description": "Configure how fees are handled and reinvested",
        "setter_method": "setFeeParameters",
    },
    {
        "id": 2,
        "name": "Risk Management",
        "description": "Set safeguards to protect your position",
        "setter_method": "setRiskParameters",
    },
]

STANDARD_TEMPLATE_ENUM = {"custom": 0, "conservative": 1, "moderate": 2, "aggressive": 3, "stablecoin": 4}

TEMPLATE_LABELS = {
    "conservative": ("Conservative", "Wider ranges with fewer rebalances, lower risk"),
    "moderate": ("Moderate", "Balanced approach to risk and yield"),
    "aggressive": ("Aggressive", "Tighter ranges for maximum fee generation"),
    "stablecoin": ("Stablecoin", "Very tight ranges for stablecoin pairs"),
}


def _templates(defaults_by_id: dict[str, dict]) -> list[dict]:
    templates = []
    for template_id, defaults in defaults_by_id.items():
        name, description = TEMPLATE_LABELS[template_id]
        templates.append({"id": template_id, "name": name, "description": description, "defaults": defaults})
    templates.append(CUSTOM_TEMPLATE)
    return templates


def _range_defaults(width: float, threshold: float) -> dict:
    return {
        "targetRangeUpper": width,
        "targetRangeLower": width,
        "rebalanceThresholdUpper": threshold,
        "rebalanceThresholdLower": threshold,
    }


BOB = {
    "id": "bob",
    "name": "Baby Steps",
    "subtitle": "Baby Step into Liquidity Management",
    "description": "A simplified strategy for beginner position management w/ only essential controls",
    "icon": "Steps",
    "color": "gold",
    "border_color": "black",
    "text_color": "black",
    "token_support": "all",
    "supported_tokens": ALL_TOKENS,
    "min_tokens": 2,
    "max_tokens": 2,
    "min_platforms": 1,
    "max_platforms": 1,
    "min_positions": 1,
    "max_positions": 1,
    "parameter_groups": RANGE_FEE_RISK_GROUPS,
    "contract_parameters_groups": [
        {"id": "range", "setter_method": "setRangeParameters", "parameters": list(RANGE_PARAMETERS)},
        {"id": "fee", "setter_method": "setFeeParameters", "parameters": list(FEE_PARAMETERS)},
        {
            "id": "risk",
            "setter_method": "setRiskParameters",
            "parameters": ["maxSlippage", "emergencyExitTrigger", "maxUtilization"],
        },
    ],
    "template_enum_map": STANDARD_TEMPLATE_ENUM,
    "templates": _templates(
        {
            "conservative": {
                **_range_defaults(10.0, 3.0),
                "feeReinvestment": False,
                "reinvestmentTrigger": 50,
                "reinvestmentRatio": 80,
                "maxSlippage": 0.3,
                "emergencyExitTrigger": 20,
                "maxUtilization": 60,
            },
            "moderate": {
                **_range_defaults(5.0, 1.5),
                "feeReinvestment": True,
                "reinvestmentTrigger": 50,
                "reinvestmentRatio": 80,
                "maxSlippage": 0.5,
                "emergencyExitTrigger": 15,
                "maxUtilization": 80,
            },
            "aggressive": {
                **_range_defaults(3.0, 0.8),
                "feeReinvestment": True,
                "reinvestmentTrigger": 25,
                "reinvestmentRatio": 100,
                "maxSlippage": 1.0,
                "emergencyExitTrigger": 10,
                "maxUtilization": 95,
            },
            "stablecoin": {
                **_range_defaults(0.5, 0.2),
                "feeReinvestment": True,
                "reinvestmentTrigger": 10,
                "reinvestmentRatio": 100,
                "maxSlippage": 0.1,
                "emergencyExitTrigger": 2.0,
                "maxUtilization": 90,
            },
        }
    ),
    "parameters": {
        **RANGE_PARAMETERS,
        **FEE_PARAMETERS,
        **RISK_PARAMETERS,
        "maxUtilization": _percent(
            "Max Utilization",
            "Maximum percentage of vault assets that can be deployed across all positions",
            80, 10, 100, 5, 2, "risk",
        ),
    },
}


ADAPTIVE_OFF = {
    "rebalanceCountThresholdHigh": 3,
    "rebalanceCountThresholdLow": 1,
    "adaptiveTimeframeHigh": 7,
    "adaptiveTimeframeLow": 7,
    "rangeAdjustmentPercentHigh": 20,
    "thresholdAdjustmentPercentHigh": 15,
    "rangeAdjustmentPercentLow": 20,
    "thresholdAdjustmentPercentLow": 15,
}


def _adaptive(count_high, count_low, timeframe, range_pct, threshold_pct) -> dict:
    return {
        "adaptiveRanges": True,
        "rebalanceCountThresholdHigh": count_high,
        "rebalanceCountThresholdLow": count_low,
        "adaptiveTimeframeHigh": timeframe,
        "adaptiveTimeframeLow": timeframe,
        "rangeAdjustmentPercentHigh": range_pct,
        "thresholdAdjustmentPercentHigh": threshold_pct,
        "rangeAdjustmentPercentLow": range_pct,
        "thresholdAdjustmentPercentLow": threshold_pct,
    }


def _count(name, description, default, minimum, maximum, **extra):
    return {
        "name": name,
        "description": description,
        "type": "number",
        "default_value": default,
        "min": minimum,
        "max": maximum,
        "step": 1,
        "group": 3,
        "contract_group": "adaptive",
        **ADAPTIVE_GUARD,
        **extra,
    }


PARRIS = {
    "id": "parris",
    "name": "Parris Island",
    "subtitle": "Advanced Liquidity Management",
    "description": (
        "A comprehensive strategy for automated liquidity position management with extensive controls"
    ),
    "icon": "Dumbbell",
    "color": "#1565C0",
    "border_color": "#B22234",
    "text_color": "#FFFFFF",
    "token_support": "all",
    "supported_tokens": ALL_TOKENS,
    "min_tokens": 2,
    "max_tokens": 3,
    "min_platforms": 1,
    "max_platforms": 2,
    "min_positions": 1,
    "max_positions": 1,
    "parameter_groups": [
        *RANGE_FEE_RISK_GROUPS[:2],
        {"id": 2, "name": "Risk Management", "description": "Set safeguards to protect your position"},
        {"id": 3, "name": "Advanced Settings", "description": "Fine-tune your strategy behavior"},
    ],
    "contract_parameters_groups": [
        {"id": "range", "setter_method": "setRangeParameters", "parameters": list(RANGE_PARAMETERS)},
        {"id": "fee", "setter_method": "setFeeParameters", "parameters": list(FEE_PARAMETERS)},
        {
            "id": "risk",
            "setter_method": "setRiskParameters",
            "parameters": ["maxSlippage", "emergencyExitTrigger", "maxVaultUtilization"],
        },
        {
            "id": "adaptive",
            "setter_method": "setAdaptiveParameters",
            "parameters": ["adaptiveRanges", *ADAPTIVE_OFF],
        },
        {
            "id": "oracle",
            "setter_method": "setOracleParameters",
            "parameters": ["oracleSource", "priceDeviationTolerance"],
        },
        {
            "id": "positionSizing",
            "setter_method": "setPositionSizingParameters",
            "parameters": ["maxPositionSizePercent", "minPositionSize", "targetUtilization"],
        },
        {
            "id": "platform",
            "setter_method": "setPlatformParameters",
            "parameters": ["platformSelectionCriteria", "minPoolLiquidity"],
        },
    ],
    "template_enum_map": STANDARD_TEMPLATE_ENUM,
    "templates": _templates(
        {
            "conservative": {
                **_range_defaults(10.0, 3.0),
                "feeReinvestment": False,
                "reinvestmentTrigger": 50,
                "reinvestmentRatio": 80,
                "maxSlippage": 0.3,
                "emergencyExitTrigger": 20,
                "maxVaultUtilization": 60,
                "adaptiveRanges": False,
                **ADAPTIVE_OFF,
                "oracleSource": "0",
                "priceDeviationTolerance": 0.5,
                "maxPositionSizePercent": 20,
                "minPositionSize": 200,
                "targetUtilization": 15,
                "platformSelectionCriteria": "0",
                "minPoolLiquidity": 200000,
            },
            "moderate": {
                **_range_defaults(5.0, 1.5),
                "feeReinvestment": True,
                "reinvestmentTrigger": 50,
                "reinvestmentRatio": 80,
                "maxSlippage": 0.5,
                "emergencyExitTrigger": 15,
                "maxVaultUtilization": 80,
                **_adaptive(3, 1, 7, 20, 15),
                "oracleSource": "0",
                "priceDeviationTolerance": 1.0,
                "maxPositionSizePercent": 30,
                "minPositionSize": 100,
                "targetUtilization": 20,
                "platformSelectionCriteria": "0",
                "minPoolLiquidity": 100000,
            },
            "aggressive": {
                **_range_defaults(3.0, 0.8),
                "feeReinvestment": True,
                "reinvestmentTrigger": 25,
                "reinvestmentRatio": 100,
                "maxSlippage": 1.0,
                "emergencyExitTrigger": 10,
                "maxVaultUtilization": 95,
                **_adaptive(4, 1, 5, 30, 20),
                "oracleSource": "0",
                "priceDeviationTolerance": 2.0,
                "maxPositionSizePercent": 50,
                "minPositionSize": 50,
                "targetUtilization": 30,
                "platformSelectionCriteria": "3",
                "minPoolLiquidity": 50000,
            },
            "stablecoin": {
                **_range_defaults(0.5, 0.2),
                "feeReinvestment": True,
                "reinvestmentTrigger": 10,
                "reinvestmentRatio": 100,
                "maxSlippage": 0.1,
                "emergencyExitTrigger": 2.0,
                "maxVaultUtilization": 90,
                **_adaptive(5, 2, 3, 10, 5),
                # Chainlink feed, lowest-fee platform, deeper liquidity floor
                "oracleSource": "1",
                "priceDeviationTolerance": 0.1,
                "maxPositionSizePercent": 40,
                "minPositionSize": 100,
                "targetUtilization": 25,
                "platformSelectionCriteria": "2",
                "minPoolLiquidity": 500000,
            },
        }
    ),
    "parameters": {
        **RANGE_PARAMETERS,
        "rebalanceThresholdUpper": {**RANGE_PARAMETERS["rebalanceThresholdUpper"], "max": 5.0},
        "rebalanceThresholdLower": {**RANGE_PARAMETERS["rebalanceThresholdLower"], "max": 5.0},
        **FEE_PARAMETERS,
        **RISK_PARAMETERS,
        "maxVaultUtilization": _percent(
            "Max Vault Utilization",
            "Maximum percentage of vault assets that can be deployed across all positions",
            80, 10, 100, 5, 2, "risk",
        ),
        "adaptiveRanges": {
            "name": "Adaptive Ranges",
            "description": "Automatically adjust ranges based on rebalance frequency",
            "type": "boolean",
            "default_value": True,
            "group": 3,
            "contract_group": "adaptive",
        },
        "rebalanceCountThresholdHigh": _count(
            "High Rebalance Count",
            "If more than this many rebalances occur in the timeframe, widen ranges",
            3, 1, 20,
        ),
        "rebalanceCountThresholdLow": _count(
            "Low Rebalance Count",
            "If fewer than this many rebalances occur in the timeframe, tighten ranges",
            1, 0, 10,
        ),
        "adaptiveTimeframeHigh": _count(
            "High Count Timeframe",
            "Days to look back when counting rebalances for widening ranges",
            7, 1, 30, suffix=" days",
        ),
        "adaptiveTimeframeLow": _count(
            "Low Count Timeframe",
            "Days to look back when counting rebalances for tightening ranges",
            7, 1, 30, suffix=" days",
        ),
        "rangeAdjustmentPercentHigh": _percent(
            "Range Expansion Amount",
            "Percentage to increase position ranges when too many rebalances occur",
            20, 5, 100, 5, 3, "adaptive", **ADAPTIVE_GUARD,
        ),
        "thresholdAdjustmentPercentHigh": _percent(
            "Threshold Expansion Amount",
            "Percentage to increase rebalance thresholds when too many rebalances occur",
            15, 5, 100, 5, 3, "adaptive", **ADAPTIVE_GUARD,
        ),
        "rangeAdjustmentPercentLow": _percent(
            "Range Contraction Amount",
            "Percentage to decrease position ranges when too few rebalances occur",
            20, 5, 100, 5, 3, "adaptive", **ADAPTIVE_GUARD,
        ),
        "thresholdAdjustmentPercentLow": _percent(
            "Threshold Contraction Amount",
            "Percentage to decrease rebalance thresholds when too few rebalances occur",
            15, 5, 100, 5, 3, "adaptive", **ADAPTIVE_GUARD,
        ),
        "oracleSource": {
            "name": "Price Oracle",
            "description": "Source of price data for strategy decisions",
            "type": "select",
            "options": [
                {"value": "0", "label": "DEX Price"},
                {"value": "1", "label": "Chainlink"},
                {"value": "2", "label": "Time-Weighted Average Price"},
            ],
            "default_value": "0",
            "group": 3,
            "contract_group": "oracle",
        },
        "priceDeviationTolerance": _percent(
            "Oracle Deviation Tolerance",
            "Maximum allowed deviation between different price sources",
            1.0, 0.1, 5.0, 0.1, 3, "oracle",
        ),
        "maxPositionSizePercent": _percent(
            "Max Position Size",
            "Maximum percentage of vault assets to allocate to any single position",
            30, 5, 100, 5, 2, "positionSizing",
        ),
        "minPositionSize": {
            "name": "Min Position Size",
            "description": "Minimum position size in USD value to avoid dust positions",
            "type": "fiat-currency",
            "default_value": 100,
            "min": 10,
            "max": 10000,
            "step": 10,
            "prefix": "$",
            "group": 2,
            "contract_group": "positionSizing",
        },
        "targetUtilization": _percent(
            "Target Utilization",
            "Target percentage of vault assets to deploy (per position)",
            20, 5, 100, 5, 2, "positionSizing",
        ),
        "platformSelectionCriteria": {
            "name": "Platform Selection",
            "description": "Criteria for selecting which platform to use for a position",
            "type": "select",
            "options": [
                {"value": "0", "label": "Highest TVL"},
                {"value": "1", "label": "Highest Volume"},
                {"value": "2", "label": "Lowest Fees"},
                {"value": "3", "label": "Best Rewards"},
            ],
            "default_value": "1",
            "group": 3,
            "contract_group": "platform",
        },
        "minPoolLiquidity": {
            "name": "Min Pool Liquidity",
            "description": "Minimum pool liquidity threshold to enter a position",
            "type": "fiat-currency",
            "default_value": 100000,
            "min": 10000,
            "max": 10000000,
            "step": 10000,
            "prefix": "$",
            "group": 2,
            "contract_group": "platform",
        },
    },
}


def _fed_number(name, description, default, maximum, group, contract_group):
    return {
        "name": name,
        "description": description,
        "type": "number",
        "default_value": default,
        "min": 0.1,
        "max": maximum,
        "step": 0.1,
        "suffix": "%",
        "group": group,
        "contract_group": contract_group,
    }


FED = {
    "id": "fed",
    "name": "The Fed",
    "subtitle": "Stablecoin Optimization",
    "description": "Automated stablecoin strategy with peg deviation positioning and range optimization",
    "icon": "Banknote",
    "color": "#1B5E20",
    "border_color": "#1B5E20",
    "text_color": "#F5F5F5",
    "token_support": "stablecoins",
    "supported_tokens": STABLECOINS,
    "min_tokens": 2,
    "max_tokens": 2,
    "min_platforms": 1,
    "max_platforms": 1,
    "min_positions": 1,
    "max_positions": 1,
    "parameter_groups": RANGE_FEE_RISK_GROUPS,
    "contract_parameters_groups": [
        {"id": "range", "setter_method": "setRangeParameters", "parameters": ["targetRange", "rebalanceThreshold"]},
        {"id": "fee", "setter_method": "setFeeParameters", "parameters": ["feeReinvestment"]},
        {"id": "risk", "setter_method": "setRiskParameters", "parameters": ["maxSlippage"]},
    ],
    "template_enum_map": {"custom": 0, "stability": 1, "yield": 2, "defense": 3},
    "templates": [
        {
            "id": "stability",
            "name": "Stability Focus",
            "description": "Prioritize maintaining peg with minimal deviation",
            "defaults": {"targetRange": 0.3, "rebalanceThreshold": 0.2, "feeReinvestment": True, "maxSlippage": 0.1},
        },
        {
            "id": "yield",
            "name": "Yield Optimized",
            "description": "Balance peg maintenance with fee generation",
            "defaults": {"targetRange": 0.5, "rebalanceThreshold": 0.3, "feeReinvestment": True, "maxSlippage": 0.3},
        },
        {
            "id": "defense",
            "name": "Peg Defense",
            "description": "React quickly to peg deviations",
            "defaults": {"targetRange": 0.2, "rebalanceThreshold": 0.1, "feeReinvestment": False, "maxSlippage": 0.5},
        },
        CUSTOM_TEMPLATE,
    ],
    "parameters": {
        "targetRange": _fed_number(
            "Range", "Range around the current price to set the position boundaries", 0.5, 5.0, 0, "range"
        ),
        "rebalanceThreshold": _fed_number(
            "Rebalance Trigger", "Price movement percentage that triggers a rebalance", 1.0, 10.0, 0, "range"
        ),
        "feeReinvestment": {
            "name": "Reinvest Fees",
            "description": "Automatically reinvest collected fees",
            "type": "boolean",
            "default_value": True,
            "group": 1,
            "contract_group": "fee",
        },
        "maxSlippage": _fed_number(
            "Max Slippage", "Maximum acceptable slippage when executing trades", 0.5, 5.0, 2, "risk"
        ),
    },
}


NONE = {
    "id": "none",
    "name": "Manual Management",
    "subtitle": "No Automated Strategy",
    "description": "Manually manage your positions without automation",
    "icon": "Ban",
    "color": "#6c757d",
    "border_color": "#6c757d",
    "text_color": "#FFFFFF",
    "token_support": "all",
    "supported_tokens": ALL_TOKENS,
    "min_tokens": 0,
    "max_tokens": 0,
    "min_platforms": 0,
    "max_platforms": 0,
    "min_positions": 0,
    "max_positions": 0,
    "parameter_groups": [
        {"id": 0, "name": "Deposits", "description": "Tokens held directly by the vault"},
    ],
    "contract_parameters_groups": [
        {"id": "deposits", "setter_method": "depositTokens", "parameters": ["tokenDeposits"]},
    ],
    "template_enum_map": {"custom": 0},
    "templates": [CUSTOM_TEMPLATE],
    "parameters": {
        "tokenDeposits": {
            "name": "Token Deposits",
            "description": "Select tokens and amounts to deposit into your vault",
            "type": "token-deposits",
            "default_value": {"tokens": [], "amounts": {}},
            "group": 0,
            "contract_group": "deposits",
        },
    },
}


STRATEGIES: dict[str, dict] = {
    "none": NONE,
    "bob": BOB,
    "parris": PARRIS,
    "fed": FED,
}
