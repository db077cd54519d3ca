"""Strategy schema lookups and client-side parameter validation."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Iterable, Mapping, Optional, Sequence

from pydantic import ValidationError

from vaultkit.configs.strategies import STRATEGIES
from vaultkit.errors import NotFoundError, SchemaInvalidError
from vaultkit.models.strategy import NUMERIC_TYPES, ParameterDefinition, StrategySchema, is_number
from vaultkit.services.layouts import decode_parameters

logger = logging.getLogger(__name__)

MANUAL_STRATEGY_ID = "none"
CUSTOM_TEMPLATE_ID = "custom"

__all__ = [
    "decode_parameters",
    "format_parameter_value",
    "get_default_params",
    "get_parameters_by_contract_group",
    "get_parameters_by_group",
    "get_setter_method",
    "get_strategy",
    "get_strategy_parameters",
    "get_strategy_templates",
    "get_template_defaults",
    "list_available_strategies",
    "list_strategy_ids",
    "should_show_parameter",
    "strategy_supports_tokens",
    "validate_params",
    "validate_strategy_id",
    "validate_tokens_for_strategy",
]


def validate_strategy_id(strategy_id) -> str:
    if not isinstance(strategy_id, str) or not strategy_id.strip():
        raise ValueError("strategy_id must be a non-empty string")
    return strategy_id


def list_strategy_ids() -> list[str]:
    return list(STRATEGIES)


@lru_cache(maxsize=None)
def _load_schema(strategy_id: str) -> StrategySchema:
    try:
        return StrategySchema.model_validate(STRATEGIES[strategy_id])
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "<root>"
        logger.error("Strategy %s failed schema validation at %s: %s", strategy_id, field, error["msg"])
        raise SchemaInvalidError(strategy_id, field, error["msg"]) from exc


def get_strategy(strategy_id: str) -> StrategySchema:
    validate_strategy_id(strategy_id)
    if strategy_id not in STRATEGIES:
        raise NotFoundError(f"Strategy {strategy_id} not found")
    return _load_schema(strategy_id)


def list_available_strategies() -> list[StrategySchema]:
    return [get_strategy(strategy_id) for strategy_id in STRATEGIES if strategy_id != MANUAL_STRATEGY_ID]


def get_strategy_templates(strategy_id: str) -> list[dict]:
    return [template.model_dump(by_alias=True) for template in get_strategy(strategy_id).templates]


def get_strategy_parameters(strategy_id: str) -> dict[str, ParameterDefinition]:
    return dict(get_strategy(strategy_id).parameters)


def get_default_params(strategy_id: str) -> dict[str, Any]:
    return {
        parameter_id: parameter.default_value
        for parameter_id, parameter in get_strategy(strategy_id).parameters.items()
    }


def get_template_defaults(strategy_id: str, template_id: str) -> dict[str, Any]:
    """Parameter values for a template; ``custom`` yields each parameter's default."""
    validate_strategy_id(template_id)
    schema = get_strategy(strategy_id)
    if template_id == CUSTOM_TEMPLATE_ID:
        return get_default_params(strategy_id)
    template = schema.get_template(template_id)
    if template is None or template.defaults is None:
        raise NotFoundError(f"Template {template_id} not found in strategy {strategy_id}")
    return dict(template.defaults)


def get_parameters_by_group(strategy_id: str, group_id: int) -> dict[str, ParameterDefinition]:
    if isinstance(group_id, bool) or not isinstance(group_id, int) or group_id < 0:
        raise ValueError("group_id must be a non-negative integer")
    schema = get_strategy(strategy_id)
    return {
        parameter_id: parameter
        for parameter_id, parameter in schema.parameters.items()
        if parameter.group == group_id
    }


def get_parameters_by_contract_group(strategy_id: str, contract_group: str) -> dict[str, ParameterDefinition]:
    if not isinstance(contract_group, str) or not contract_group.strip():
        raise ValueError("contract_group must be a non-empty string")
    schema = get_strategy(strategy_id)
    return {
        parameter_id: parameter
        for parameter_id, parameter in schema.parameters.items()
        if parameter.contract_group == contract_group
    }


def get_setter_method(strategy_id: str, contract_group_id: str) -> str:
    group = get_strategy(strategy_id).get_contract_group(contract_group_id)
    if group is None:
        raise NotFoundError(f"Contract group {contract_group_id} not configured for strategy {strategy_id}")
    if not group.setter_method:
        raise NotFoundError(f"No setter method configured for {strategy_id}.{contract_group_id}")
    return group.setter_method


def should_show_parameter(parameter: ParameterDefinition, values: Mapping[str, Any]) -> bool:
    return parameter.is_applicable(dict(values))


def _limit(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _as_number(value: Any) -> Optional[float]:
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _check_parameter(parameter: ParameterDefinition, value: Any) -> Optional[str]:
    if value is None or value == "":
        return f"{parameter.name} is required"
    if parameter.type == "boolean" and not isinstance(value, bool):
        return f"{parameter.name} must be true or false"
    if parameter.type in NUMERIC_TYPES:
        number = _as_number(value)
        if number is None:
            return f"{parameter.name} must be a number"
        if parameter.min is not None and number < parameter.min:
            return f"{parameter.name} must be at least {_limit(parameter.min)}{parameter.suffix or ''}"
        if parameter.max is not None and number > parameter.max:
            return f"{parameter.name} must be at most {_limit(parameter.max)}{parameter.suffix or ''}"
    if parameter.type == "select" and parameter.option_label(value) is None:
        return f"{parameter.name} must be one of the provided options"
    if parameter.type == "token-deposits":
        if not isinstance(value, dict) or not isinstance(value.get("tokens"), list):
            return f"{parameter.name} must list the tokens to deposit"
    return None


def validate_params(strategy_id: str, values: Mapping[str, Any]) -> dict:
    """Check ``values`` against a strategy's parameters.

    Guarded parameters are only checked when their guard holds; keys the
    strategy does not declare are reported as unknown. Every applicable
    parameter is checked so the caller receives all errors at once.
    """
    schema = get_strategy(strategy_id)
    errors: dict[str, str] = {}
    for parameter_id, parameter in schema.parameters.items():
        if not parameter.is_applicable(dict(values)):
            continue
        message = _check_parameter(parameter, values.get(parameter_id))
        if message:
            errors[parameter_id] = message
    for key in values:
        if key not in schema.parameters:
            errors[key] = f"Unknown parameter: {key}"
    return {"isValid": not errors, "errors": errors}


def strategy_supports_tokens(strategy_id: str, token_symbols: Iterable[str]) -> bool:
    supported = set(get_strategy(strategy_id).supported_tokens)
    return all(symbol in supported for symbol in token_symbols)


def format_parameter_value(value: Any, parameter: ParameterDefinition) -> str:
    if value is None:
        return ""
    if parameter.type == "boolean":
        return "Yes" if value else "No"
    if parameter.type == "select":
        label = parameter.option_label(value)
        return label if label is not None else str(value)
    if parameter.type == "percent":
        return f"{value}{parameter.suffix or '%'}"
    if parameter.type == "fiat-currency":
        return f"{parameter.prefix or '$'}{value}"
    return f"{value}{parameter.suffix or ''}"


def validate_tokens_for_strategy(vault_tokens: Mapping[str, Any], strategy_tokens: Sequence[str]) -> list[str]:
    """Warn about vault tokens that the strategy would swap away."""
    if not vault_tokens:
        return []
    allowed = set(strategy_tokens or ())
    unmatched = [symbol for symbol in vault_tokens if symbol not in allowed]
    if not unmatched:
        return []
    return [
        f"The following tokens in your vault are not part of your strategy: {', '.join(unmatched)}. "
        "These tokens will be swapped into the selected strategy tokens."
    ]
