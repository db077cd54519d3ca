"""Strategy schema models.

Attributes are snake_case; ``model_dump(by_alias=True)`` produces the camelCase
shape consumed by front-ends. Model validators enforce schema completeness so a
``ValidationError`` always names the offending field.
"""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

STEP_TOLERANCE = 1e-10

ParameterType = Literal["boolean", "percent", "number", "fiat-currency", "select", "token-deposits"]
NUMERIC_TYPES = ("percent", "number", "fiat-currency")


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def step_aligned(value: float, minimum: float, step: float) -> bool:
    steps = (value - minimum) / step
    return abs(steps - round(steps)) <= STEP_TOLERANCE


def _non_empty(value: str, label: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{label} must be a non-empty string")
    return value


class SchemaModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ParameterOption(SchemaModel):
    value: Any
    label: str

    @field_validator("label")
    @classmethod
    def validate_label(cls, value: str) -> str:
        return _non_empty(value, "label")


class ParameterDefinition(SchemaModel):
    name: str
    description: str
    type: ParameterType
    default_value: Any
    group: int = Field(ge=0)
    contract_group: str
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    suffix: Optional[str] = None
    prefix: Optional[str] = None
    options: list[ParameterOption] = []
    conditional_on: Optional[str] = None
    conditional_value: Any = None

    @field_validator("name", "description", "contract_group")
    @classmethod
    def validate_text(cls, value: str, info) -> str:
        return _non_empty(value, info.field_name)

    @model_validator(mode="after")
    def validate_type_rules(self) -> "ParameterDefinition":
        if (self.conditional_on is None) != (self.conditional_value is None):
            raise ValueError("conditional_on and conditional_value must be set together")
        if self.type == "boolean" and not isinstance(self.default_value, bool):
            raise ValueError("boolean default_value must be true or false")
        if self.type in NUMERIC_TYPES:
            self._validate_numeric()
        if self.type == "select":
            self._validate_select()
        if self.type == "token-deposits":
            default = self.default_value
            if not isinstance(default, dict) or not isinstance(default.get("tokens"), list):
                raise ValueError("token-deposits default_value needs a 'tokens' list")
            if not isinstance(default.get("amounts"), dict):
                raise ValueError("token-deposits default_value needs an 'amounts' mapping")
        return self

    def _validate_numeric(self) -> None:
        if not is_number(self.default_value):
            raise ValueError("default_value must be a finite number")
        if self.min is None or self.max is None or self.step is None:
            raise ValueError(f"{self.type} parameters need min, max and step")
        if self.type == "fiat-currency" and self.min <= 0:
            raise ValueError("min must be greater than 0")
        if self.min < 0:
            raise ValueError("min must be >= 0")
        if self.min >= self.max:
            raise ValueError(f"min ({self.min}) must be less than max ({self.max})")
        if self.step <= 0:
            raise ValueError("step must be positive")
        if not self.min <= self.default_value <= self.max:
            raise ValueError(f"default_value ({self.default_value}) must be between min and max")
        if not step_aligned(self.default_value, self.min, self.step):
            raise ValueError(f"default_value ({self.default_value}) is not reachable from min using step")
        if self.type == "percent" and self.suffix != "%":
            raise ValueError("percent parameters must use the '%' suffix")
        if self.type == "fiat-currency" and self.prefix != "$":
            raise ValueError("fiat-currency parameters must use the '$' prefix")

    def _validate_select(self) -> None:
        if not self.options:
            raise ValueError("select parameters need at least one option")
        values = [option.value for option in self.options]
        if len(set(values)) != len(values):
            raise ValueError("select option values must be unique")
        if self.default_value not in values:
            raise ValueError(f"default_value {self.default_value!r} is not one of the options")

    @property
    def guard(self) -> Optional[tuple[str, Any]]:
        if self.conditional_on is None:
            return None
        return self.conditional_on, self.conditional_value

    def is_applicable(self, values: dict[str, Any]) -> bool:
        """True when the parameter has no guard or its guard is met exactly."""
        if self.guard is None:
            return True
        parameter_id, required = self.guard
        current = values.get(parameter_id)
        return type(current) is type(required) and current == required

    def option_label(self, value: Any) -> Optional[str]:
        for option in self.options:
            if option.value == value:
                return option.label
        return None


class ParameterGroup(SchemaModel):
    id: int = Field(ge=0)
    name: str
    description: str
    setter_method: Optional[str] = None

    @field_validator("name", "description")
    @classmethod
    def validate_text(cls, value: str, info) -> str:
        return _non_empty(value, info.field_name)


class ContractParametersGroup(SchemaModel):
    id: str
    setter_method: str
    parameters: list[str] = []

    @field_validator("id", "setter_method")
    @classmethod
    def validate_text(cls, value: str, info) -> str:
        return _non_empty(value, info.field_name)


class StrategyTemplate(SchemaModel):
    id: str
    name: str
    description: str
    defaults: Optional[dict[str, Any]] = None

    @field_validator("id", "name", "description")
    @classmethod
    def validate_text(cls, value: str, info) -> str:
        return _non_empty(value, info.field_name)


class StrategySchema(SchemaModel):
    id: str
    name: str
    subtitle: str
    description: str
    icon: str
    color: str
    border_color: str
    text_color: str
    token_support: Literal["all", "stablecoins", "custom"]
    supported_tokens: list[str] = []
    min_tokens: int = Field(ge=0)
    max_tokens: int = Field(ge=0)
    min_platforms: int = Field(ge=0)
    max_platforms: int = Field(ge=0)
    min_positions: int = Field(ge=0)
    max_positions: int = Field(ge=0)
    parameters: dict[str, ParameterDefinition]
    parameter_groups: list[ParameterGroup]
    contract_parameters_groups: list[ContractParametersGroup]
    template_enum_map: dict[str, int]
    templates: list[StrategyTemplate]

    @field_validator("id", "name", "subtitle", "description", "icon", "color", "border_color", "text_color")
    @classmethod
    def validate_text(cls, value: str, info) -> str:
        return _non_empty(value, info.field_name)

    @model_validator(mode="after")
    def validate_consistency(self) -> "StrategySchema":
        if self.token_support == "custom" and not self.supported_tokens:
            raise ValueError("supported_tokens must be non-empty when token_support is 'custom'")
        group_ids = {group.id for group in self.parameter_groups}
        contract_group_ids = {group.id for group in self.contract_parameters_groups}
        for parameter_id, parameter in self.parameters.items():
            if parameter.group not in group_ids:
                raise ValueError(f"parameter {parameter_id} references unknown group {parameter.group}")
            if parameter.contract_group not in contract_group_ids:
                raise ValueError(
                    f"parameter {parameter_id} references unknown contract group '{parameter.contract_group}'"
                )
            if parameter.conditional_on is not None and parameter.conditional_on not in self.parameters:
                raise ValueError(f"parameter {parameter_id} is conditional on unknown '{parameter.conditional_on}'")
        self._validate_template_enum_map()
        for template in self.templates:
            self._validate_template(template)
        return self

    def _validate_template_enum_map(self) -> None:
        enum_map = self.template_enum_map
        if enum_map.get("custom") != 0:
            raise ValueError("template_enum_map must map 'custom' to 0")
        values = sorted(enum_map.values())
        if values != list(range(len(values))):
            raise ValueError(f"template_enum_map values must be unique and sequential from 0, got {values}")
        template_ids = {template.id for template in self.templates}
        missing = [key for key in enum_map if key not in template_ids]
        if missing:
            raise ValueError(f"template_enum_map keys without a template: {', '.join(missing)}")

    def _validate_template(self, template: StrategyTemplate) -> None:
        label = f"template {template.id}"
        if template.id not in self.template_enum_map:
            raise ValueError(f"{label} has no template_enum_map entry")
        if template.id == "custom":
            return
        if template.defaults is None:
            raise ValueError(f"{label} defaults must be configured")
        missing = [key for key in self.parameters if key not in template.defaults]
        if missing:
            raise ValueError(f"{label} missing defaults for parameters: {', '.join(missing)}")
        extra = [key for key in template.defaults if key not in self.parameters]
        if extra:
            raise ValueError(f"{label} has defaults for unknown parameters: {', '.join(extra)}")
        for parameter_id, value in template.defaults.items():
            parameter = self.parameters[parameter_id]
            if parameter.type == "boolean" and not isinstance(value, bool):
                raise ValueError(f"{label} default for {parameter_id} must be boolean")
            if parameter.type in NUMERIC_TYPES:
                if not is_number(value):
                    raise ValueError(f"{label} default for {parameter_id} must be a number")
                if not parameter.min <= value <= parameter.max:
                    raise ValueError(f"{label} default for {parameter_id} ({value}) is out of range")
                if not step_aligned(value, parameter.min, parameter.step):
                    raise ValueError(f"{label} default for {parameter_id} ({value}) does not align with step")
            if parameter.type == "select" and parameter.option_label(value) is None:
                raise ValueError(f"{label} default for {parameter_id} ({value!r}) is not an option")

    def get_template(self, template_id: str) -> Optional[StrategyTemplate]:
        for template in self.templates:
            if template.id == template_id:
                return template
        return None

    def get_contract_group(self, contract_group_id: str) -> Optional[ContractParametersGroup]:
        for group in self.contract_parameters_groups:
            if group.id == contract_group_id:
                return group
        return None
