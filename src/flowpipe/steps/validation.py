"""
Validation Step

Validates payloads against compact rule strings (``"required|email"``,
``"numeric|min:18"``) or a pydantic model before continuing.

Rule strings are compiled once, at construction, into a pydantic model.
Supported rules:

- ``required``  field must be present and not empty
- ``nullable``  None is accepted
- ``string``, ``numeric``, ``integer``, ``boolean``  type (lax coercion)
- ``email``     string shaped like an e-mail address
- ``min:N`` / ``max:N``  bounds on the value (numbers) or the length
  (strings and collections)

Author: flowpipe Team
Date: 2025-06-12
"""

import re
from collections.abc import Mapping
from typing import Annotated, Any, Callable, Dict, List, Optional, Tuple, Type, Union

from loguru import logger
from pydantic import AfterValidator, BaseModel, Field, ValidationError, create_model

from ..core.errors import FlowValidationError, PayloadValidationError
from ..core.step import Continuation, Step

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_TYPES: Dict[str, Any] = {
    "string": str,
    "numeric": Union[int, float],
    "integer": int,
    "boolean": bool,
}

_FLAGS = {"required", "nullable", "email"}


def _size(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value)
    return None


def _min_check(field: str, limit: float) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        size = _size(value)
        if size is not None and size < limit:
            unit = "" if isinstance(value, (int, float)) else " characters" if isinstance(value, str) else " items"
            raise ValueError(f"The {field} field must be at least {limit:g}{unit}.")
        return value
    return check


def _max_check(field: str, limit: float) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        size = _size(value)
        if size is not None and size > limit:
            unit = "" if isinstance(value, (int, float)) else " characters" if isinstance(value, str) else " items"
            raise ValueError(f"The {field} field must not be greater than {limit:g}{unit}.")
        return value
    return check


def _required_check(field: str, nullable: bool) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        if value is None and not nullable:
            raise ValueError(f"The {field} field is required.")
        if isinstance(value, str) and not value.strip():
            raise ValueError(f"The {field} field is required.")
        if isinstance(value, (list, tuple, dict, set)) and not value:
            raise ValueError(f"The {field} field is required.")
        return value
    return check


def _email_check(field: str) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        if value is not None and not (isinstance(value, str) and _EMAIL_PATTERN.match(value)):
            raise ValueError(f"The {field} field must be a valid email address.")
        return value
    return check


def parse_rules(rules: Union[str, List[str]]) -> Tuple[List[str], Dict[str, str]]:
    """
    Split a rule string into plain rules and ``name:argument`` rules.

    Raises:
        FlowValidationError: On an unknown rule or a malformed argument
    """
    parts = rules.split("|") if isinstance(rules, str) else list(rules)
    plain: List[str] = []
    parametrized: Dict[str, str] = {}

    for part in (p.strip() for p in parts):
        if not part:
            continue
        name, _, argument = part.partition(":")
        if name in ("min", "max"):
            try:
                float(argument)
            except ValueError:
                raise FlowValidationError(f"Rule '{part}' needs a numeric argument") from None
            parametrized[name] = argument
        elif name in _TYPES or name in _FLAGS:
            plain.append(name)
        else:
            raise FlowValidationError(f"Unknown validation rule: {name}")

    return plain, parametrized


def _field_definition(field: str, rules: Union[str, List[str]]) -> Tuple[Any, Any]:
    plain, parametrized = parse_rules(rules)

    base: Any = Any
    for rule in plain:
        if rule in _TYPES:
            base = _TYPES[rule]

    checks: List[Any] = []
    required = "required" in plain
    if required:
        checks.append(AfterValidator(_required_check(field, "nullable" in plain)))
    if "email" in plain:
        checks.append(AfterValidator(_email_check(field)))
        if base is Any:
            base = str
    if "min" in parametrized:
        checks.append(AfterValidator(_min_check(field, float(parametrized["min"]))))
    if "max" in parametrized:
        checks.append(AfterValidator(_max_check(field, float(parametrized["max"]))))

    annotation = base
    if "nullable" in plain or not required:
        annotation = Optional[base]
    if checks:
        annotation = Annotated[(annotation, *checks)]

    default = ... if required else None
    return annotation, Field(default, alias=field)


def build_model(rules: Dict[str, Union[str, List[str]]], name: str = "ValidatedPayload") -> Type[BaseModel]:
    """Compile a ``{field: rules}`` mapping into a pydantic model."""
    definitions = {
        f"field_{index}": _field_definition(field, field_rules)
        for index, (field, field_rules) in enumerate(rules.items())
    }
    return create_model(name, **definitions)


class ValidationStep(Step):
    """
    Validate the payload, then continue with the validated data.

    Mapping payloads are validated field by field and only the fields named
    in the rules (and present in the payload) are forwarded, coerced to
    their declared types. A scalar payload is accepted when there is exactly
    one rule: it is validated as that field and unwrapped again afterwards.

    With :meth:`model` a pydantic model is used directly and the validated
    model instance is forwarded.

    Raises:
        PayloadValidationError: When validation fails
        ValueError: For a scalar payload with more than one rule

    Example:
        ValidationStep({"email": "required|email", "age": "integer|min:18"})
        ValidationStep.model(SignupForm)
    """

    def __init__(
        self,
        rules: Dict[str, Union[str, List[str]]],
        messages: Optional[Dict[str, str]] = None
    ):
        """
        Initialize validation step.

        Args:
            rules: Mapping of field name to rule string (or list of rules)
            messages: Optional per-field messages replacing the generated ones
        """
        self.rules = dict(rules)
        self.messages = dict(messages or {})
        self._model: Type[BaseModel] = build_model(self.rules)
        self._forward_model = False

    @classmethod
    def model(cls, model: Type[BaseModel]) -> 'ValidationStep':
        """Validate against an existing pydantic model."""
        step = cls({})
        step.rules = {name: "" for name in model.model_fields}
        step._model = model
        step._forward_model = True
        return step

    @classmethod
    def required(cls, fields: List[str]) -> 'ValidationStep':
        return cls({field: "required" for field in fields})

    @classmethod
    def email(cls, field: str = "email") -> 'ValidationStep':
        return cls({field: "required|email"})

    @classmethod
    def numeric(cls, field: str, min: Optional[float] = None, max: Optional[float] = None) -> 'ValidationStep':
        rule = "required|numeric"
        if min is not None:
            rule += f"|min:{min}"
        if max is not None:
            rule += f"|max:{max}"
        return cls({field: rule})

    def validate(self, data: Mapping) -> Any:
        """
        Validate a mapping.

        Returns:
            The model instance (model mode) or a dict of validated fields

        Raises:
            PayloadValidationError: When validation fails
        """
        try:
            instance = self._model.model_validate(dict(data))
        except ValidationError as ve:
            raise PayloadValidationError(self._collect_errors(ve)) from ve

        if self._forward_model:
            return instance

        dumped = instance.model_dump(by_alias=True)
        return {field: dumped[field] for field in self.rules if field in data}

    def _collect_errors(self, error: ValidationError) -> Dict[str, List[str]]:
        errors: Dict[str, List[str]] = {}
        for item in error.errors():
            loc = item.get("loc") or ("payload",)
            field = str(loc[0])
            if not self._forward_model and field.startswith("field_") and field[6:].isdigit():
                field = list(self.rules)[int(field[6:])]
            message = self.messages.get(field) or self._message(field, item)
            errors.setdefault(field, []).append(message)
        return errors

    @staticmethod
    def _message(field: str, item: Dict[str, Any]) -> str:
        if item.get("type") == "missing":
            return f"The {field} field is required."
        ctx_error = (item.get("ctx") or {}).get("error")
        if isinstance(ctx_error, ValueError):
            return str(ctx_error)
        return f"The {field} field is invalid: {item.get('msg')}"

    def handle(self, payload: Any, next: Continuation) -> Any:
        if isinstance(payload, Mapping):
            return next(self.validate(payload))

        if isinstance(payload, BaseModel):
            return next(self.validate(payload.model_dump()))

        if len(self.rules) != 1:
            raise ValueError("ValidationStep expects a mapping payload for multiple rules.")

        field = list(self.rules)[0]
        validated = self.validate({field: payload})
        logger.debug(f"Validated scalar payload as '{field}'")
        if self._forward_model:
            return next(getattr(validated, field))
        return next(validated[field])

    def __repr__(self) -> str:
        return f"ValidationStep(fields={list(self.rules)})"
