"""
Dynamic Pydantic model builder for the document form engine.
Compiles a field specification list into a validation schema.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Any, Type, Optional, List, Sequence, Tuple, Mapping
import logging
import math
import re

from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    create_model,
    field_validator,
)
from pydantic_core import PydanticCustomError

from .exceptions import ErrorKind
from .field_spec import FieldKind, FieldSpec, check_field_tree, parse_field_specs

logger = logging.getLogger(__name__)

# Pattern only; calendar validity is not checked (2024-13-40 passes).
DATE_PATTERN = re.compile(r'[0-9]{4}-[0-9]{2}-[0-9]{2}')

_URL_ADAPTER = TypeAdapter(AnyUrl)

ERROR_MESSAGES = {
    ErrorKind.REQUIRED_FIELD: "This field is required",
    ErrorKind.TOO_LONG: "Value is too long",
    ErrorKind.BELOW_MINIMUM: "Value is too small",
    ErrorKind.ABOVE_MAXIMUM: "Value is too large",
    ErrorKind.INVALID_DATE: "Invalid date format (YYYY-MM-DD)",
    ErrorKind.INVALID_OPTION: "Please choose one of the available options",
    ErrorKind.INVALID_URL: "Must be a valid URL",
    ErrorKind.INVALID_TYPE: "Invalid value",
}

# Error types pydantic raises for the Field constraints set below
_PYDANTIC_ERROR_KINDS = {
    'string_too_long': ErrorKind.TOO_LONG,
    'too_long': ErrorKind.TOO_LONG,
    'greater_than_equal': ErrorKind.BELOW_MINIMUM,
    'less_than_equal': ErrorKind.ABOVE_MAXIMUM,
}

@dataclass(frozen=True)
class FieldError:
    """One validation failure attached to a field path."""
    kind: str
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating form data against a ValidationSchema.

    Either ``value`` holds the structured value (every key of the field list,
    arrays as ordered lists of item dictionaries) or ``errors`` maps dotted
    field paths such as ``dependents.0.name`` to one FieldError each.
    """
    value: Optional[Dict[str, Any]] = None
    errors: Dict[str, FieldError] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors and self.value is not None

    def error_kinds(self) -> Dict[str, str]:
        return {path: error.kind for path, error in self.errors.items()}

    def error_messages(self) -> Dict[str, str]:
        return {path: error.message for path, error in self.errors.items()}


class ValidationSchema:
    """
    Compiled acceptance rules for one field list.

    Mirrors the field tree: one pydantic model for the list and one
    sub-schema per array item shape. Instances are never mutated; compile a
    new schema when the specification changes.
    """

    def __init__(self, fields: Sequence[FieldSpec], model: Type[BaseModel],
                 item_schemas: Mapping[str, 'ValidationSchema']):
        self._fields = tuple(fields)
        self._model = model
        self._item_schemas = MappingProxyType(dict(item_schemas))

    @property
    def fields(self) -> Tuple[FieldSpec, ...]:
        return self._fields

    @property
    def model(self) -> Type[BaseModel]:
        return self._model

    @property
    def item_schemas(self) -> Mapping[str, 'ValidationSchema']:
        return self._item_schemas

    @property
    def keys(self) -> List[str]:
        return [spec.key for spec in self._fields]

    def item_schema(self, key: str) -> Optional['ValidationSchema']:
        return self._item_schemas.get(key)

    def validate(self, data: Mapping[str, Any]) -> ValidationResult:
        """
        Validate form data in a single pass.

        Args:
            data: Mapping of field key to value (arrays as lists of dicts)

        Returns:
            ValidationResult with either the structured value or all field errors
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"Form data must be a mapping, got {type(data).__name__}")

        try:
            instance = self._model.model_validate(self._with_all_keys(data))
        except ValidationError as e:
            errors = collect_field_errors(e)
            logger.debug(f"Validation failed for '{self._model.__name__}': {list(errors)}")
            return ValidationResult(errors=errors)

        return ValidationResult(value=instance.model_dump(by_alias=True))

    def _with_all_keys(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        # Absent keys would be reported under the internal attribute name
        filled = dict(data)
        for key in self.keys:
            filled.setdefault(key, None)
        for key, item_schema in self._item_schemas.items():
            items = filled.get(key)
            if isinstance(items, (list, tuple)):
                filled[key] = [
                    item_schema._with_all_keys(item) if isinstance(item, Mapping) else item
                    for item in items
                ]
        return filled


def compile_schema(fields: Sequence[Any], model_name: str = "FormModel") -> ValidationSchema:
    """
    Compile a field specification list into a ValidationSchema.

    Args:
        fields: FieldSpec instances (or raw descriptor dictionaries)
        model_name: Name for the generated model class

    Returns:
        ValidationSchema for the list

    Raises:
        InvalidSpecificationError: If the list violates the specification invariants
    """
    specs = parse_field_specs(list(fields))
    check_field_tree(specs)
    schema = _compile_fields(specs, model_name)
    logger.info(f"Compiled schema '{model_name}' with {len(specs)} fields")
    return schema


def _compile_fields(specs: List[FieldSpec], model_name: str) -> ValidationSchema:
    model_fields = {}
    validators_dict = {}
    item_schemas = {}

    for index, spec in enumerate(specs):
        # Keys are arbitrary template names; they live on as aliases only.
        field_name = f"field_{index}"

        item_schema = None
        if spec.is_array and spec.item_shape is not None:
            item_schema = _compile_fields(
                spec.child_fields(),
                f"{model_name}_{_safe_name(spec.key)}_item"
            )
            item_schemas[spec.key] = item_schema

        model_fields[field_name] = create_field_from_spec(spec, item_schema)
        validators_dict.update(create_validators_for_field(field_name, spec))

    model = create_model(
        model_name,
        __config__=ConfigDict(extra='ignore'),
        __validators__=validators_dict,
        **model_fields
    )
    return ValidationSchema(specs, model, item_schemas)


def create_field_from_spec(spec: FieldSpec, item_schema: Optional[ValidationSchema] = None) -> tuple:
    """
    Create a pydantic field definition for one field spec.

    Returns:
        Tuple of (field_type, FieldInfo)
    """
    field_kwargs: Dict[str, Any] = {
        'default': None,
        'alias': spec.key,
        'validate_default': True,
    }

    if spec.kind == FieldKind.TEXT.value:
        field_type = Optional[str]
        if spec.max_length is not None:
            field_kwargs['max_length'] = spec.max_length

    elif spec.kind == FieldKind.NUMBER.value:
        field_type = Optional[float]
        if spec.min is not None:
            field_kwargs['ge'] = spec.min
        if spec.max is not None:
            field_kwargs['le'] = spec.max

    elif spec.kind == FieldKind.ARRAY.value:
        if item_schema is not None:
            field_type = Optional[List[item_schema.model]]
        else:
            # No item shape: only an empty list is acceptable
            field_type = Optional[List[Any]]
            field_kwargs['max_length'] = 0

    else:
        # date, select, image and unrecognised kinds are strings
        field_type = Optional[str]

    return field_type, Field(**field_kwargs)


def create_validators_for_field(field_name: str, spec: FieldSpec) -> Dict[str, Any]:
    """
    Create the validators for one field.

    Args:
        field_name: Internal model attribute name of the field
        spec: Field specification

    Returns:
        Dictionary of validator functions
    """
    validators = {}

    @field_validator(field_name, mode='before')
    @classmethod
    def presence_validator_func(cls, v):
        return _check_presence(spec, v)
    validators[f'validate_{field_name}_presence'] = presence_validator_func

    if spec.kind == FieldKind.DATE.value:

        @field_validator(field_name)
        @classmethod
        def date_validator_func(cls, v):
            if v is not None and not DATE_PATTERN.fullmatch(v):
                raise PydanticCustomError(
                    ErrorKind.INVALID_DATE, ERROR_MESSAGES[ErrorKind.INVALID_DATE]
                )
            return v
        validators[f'validate_{field_name}_date'] = date_validator_func

    elif spec.kind == FieldKind.SELECT.value and spec.options:
        options = tuple(spec.options)
        message = f"Value must be one of: {', '.join(options)}"

        @field_validator(field_name)
        @classmethod
        def option_validator_func(cls, v):
            if v is not None and v not in options:
                raise PydanticCustomError(ErrorKind.INVALID_OPTION, message)
            return v
        validators[f'validate_{field_name}_option'] = option_validator_func

    elif spec.kind == FieldKind.IMAGE.value:

        @field_validator(field_name)
        @classmethod
        def url_validator_func(cls, v):
            if v is not None and not is_absolute_url(v):
                raise PydanticCustomError(
                    ErrorKind.INVALID_URL, ERROR_MESSAGES[ErrorKind.INVALID_URL]
                )
            return v
        validators[f'validate_{field_name}_url'] = url_validator_func

    return validators


def is_absolute_url(value: str) -> bool:
    """Check whether a string parses as an absolute URL."""
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError:
        return False
    return True


def is_empty_value(value: Any) -> bool:
    """Missing, blank, NaN and empty-list values count as not filled in."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float):
        return math.isnan(value)
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _check_presence(spec: FieldSpec, value: Any) -> Any:
    if is_empty_value(value):
        if spec.required:
            message = ERROR_MESSAGES[ErrorKind.REQUIRED_FIELD]
            if spec.is_array:
                message = "At least one item is required"
            raise PydanticCustomError(ErrorKind.REQUIRED_FIELD, message)
        if spec.is_array:
            return []
        if spec.kind == FieldKind.TEXT.value and value == "":
            return ""
        return None

    if spec.kind == FieldKind.NUMBER.value:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise PydanticCustomError(ErrorKind.INVALID_TYPE, "Must be a number")
        if not math.isfinite(value):
            raise PydanticCustomError(ErrorKind.INVALID_TYPE, "Must be a finite number")
    elif spec.kind == FieldKind.ARRAY.value:
        if not isinstance(value, (list, tuple)):
            raise PydanticCustomError(ErrorKind.INVALID_TYPE, "Must be a list of items")
        return list(value)
    elif not isinstance(value, str):
        raise PydanticCustomError(ErrorKind.INVALID_TYPE, "Must be text")

    return value


def collect_field_errors(error: ValidationError) -> Dict[str, FieldError]:
    """
    Convert a pydantic ValidationError into one FieldError per field path.

    Args:
        error: Pydantic validation error

    Returns:
        Dictionary of dotted field path to FieldError
    """
    field_errors: Dict[str, FieldError] = {}
    for item in error.errors():
        path = '.'.join(str(part) for part in item.get('loc', ()))
        if path in field_errors:
            continue

        error_type = item.get('type', '')
        if error_type in ERROR_MESSAGES:
            # Raised by our own validators with the kind as the error type
            field_errors[path] = FieldError(error_type, item.get('msg') or ERROR_MESSAGES[error_type])
            continue

        kind = _PYDANTIC_ERROR_KINDS.get(error_type, ErrorKind.INVALID_TYPE)
        field_errors[path] = FieldError(kind, _constraint_message(error_type, kind, item.get('ctx') or {}))

    return field_errors


def _constraint_message(error_type: str, kind: str, ctx: Dict[str, Any]) -> str:
    if error_type == 'string_too_long':
        return f"Must be at most {ctx.get('max_length')} characters"
    if error_type == 'too_long':
        return "This field does not accept any items"
    if error_type == 'greater_than_equal':
        return f"Must be at least {_format_number(ctx.get('ge'))}"
    if error_type == 'less_than_equal':
        return f"Must be at most {_format_number(ctx.get('le'))}"
    return ERROR_MESSAGES.get(kind, "Invalid value")


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _safe_name(key: str) -> str:
    return re.sub(r'\W', '_', key)
