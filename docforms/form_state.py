"""
Form state for the document form engine.

FormState holds the live values of one rendered form. Repeatable groups
(array fields) are kept as an arena of ArrayItem instances: every appended
instance gets an id from a counter that only ever grows, so an instance keeps
its identity when earlier instances are removed. Paths into the state use
those ids (``("dependents", 4, "name")``); error paths use positions
(``"dependents.0.name"``).
"""

import copy
import logging
from types import MappingProxyType
from typing import Dict, Any, List, Optional, Sequence, Tuple, Union, Mapping, Callable

from .field_spec import FieldSpec, empty_value, parse_field_specs
from .model_builder import FieldError, ValidationResult, ValidationSchema, compile_schema
from .submission_handler import submit_form

logger = logging.getLogger(__name__)

FieldPath = Tuple[Union[str, int], ...]


class ArrayItem:
    """One instance of a repeatable group."""

    __slots__ = ('item_id', 'values')

    def __init__(self, item_id: int, values: Dict[str, Any]):
        self.item_id = item_id
        self.values = values

    def __repr__(self) -> str:
        return f"ArrayItem(item_id={self.item_id}, values={self.values!r})"


class FormState:
    """Mutable values of one form, keyed by field key."""

    def __init__(self, fields: Sequence[FieldSpec], defaults: Optional[Mapping[str, Any]] = None):
        self._fields = {spec.key: spec for spec in fields}
        self._next_item_id = 0
        self._values = self._build_values(self._fields, defaults or {})

    def _build_values(self, specs: Mapping[str, FieldSpec], defaults: Mapping[str, Any]) -> Dict[str, Any]:
        values = {}
        for key, spec in specs.items():
            seeded = defaults.get(key)
            if spec.is_array:
                rows = seeded if isinstance(seeded, (list, tuple)) else []
                values[key] = [self._new_item(spec, row) for row in rows]
            elif seeded is not None:
                values[key] = copy.deepcopy(seeded)
            else:
                values[key] = empty_value(spec)
        return values

    def _new_item(self, spec: FieldSpec, defaults: Any = None) -> ArrayItem:
        item_id = self._next_item_id
        self._next_item_id += 1
        seeded = defaults if isinstance(defaults, Mapping) else {}
        return ArrayItem(item_id, self._build_values(spec.item_shape or {}, seeded))

    @staticmethod
    def _find_item(items: List[ArrayItem], item_id: Any) -> ArrayItem:
        for item in items:
            if item.item_id == item_id:
                return item
        raise KeyError(f"No array item with id {item_id!r}")

    def _locate(self, path: FieldPath) -> Tuple[Dict[str, Any], FieldSpec, str]:
        """Return the value container, spec and key addressed by an identity path."""
        if not path:
            raise KeyError("Empty field path")

        values, specs = self._values, self._fields
        index = 0
        while True:
            key = path[index]
            spec = specs.get(key)
            if spec is None:
                raise KeyError(f"Unknown field {key!r} in path {path!r}")
            if index == len(path) - 1:
                return values, spec, key
            if not spec.is_array or index + 2 >= len(path):
                raise KeyError(f"Invalid field path {path!r}")
            item = self._find_item(values[key], path[index + 1])
            values, specs = item.values, spec.item_shape or {}
            index += 2

    def get_value(self, path: FieldPath) -> Any:
        values, spec, key = self._locate(path)
        if spec.is_array:
            return [self._plain(item.values) for item in values[key]]
        return values[key]

    def set_value(self, path: FieldPath, value: Any) -> None:
        values, spec, key = self._locate(path)
        if spec.is_array:
            raise ValueError(f"Array field '{key}' is changed through append_item/remove_item")
        values[key] = value

    def items(self, path: FieldPath) -> List[ArrayItem]:
        """Return the instances of an array field in position order."""
        values, spec, key = self._locate(path)
        if not spec.is_array:
            raise ValueError(f"Field '{key}' is not an array field")
        return list(values[key])

    def append_item(self, path: FieldPath) -> int:
        """
        Append one instance to an array field.

        Returns:
            The new instance's id
        """
        values, spec, key = self._locate(path)
        if not spec.is_array:
            raise ValueError(f"Field '{key}' is not an array field")
        item = self._new_item(spec)
        values[key].append(item)
        logger.debug(f"Appended item {item.item_id} to {path!r} ({len(values[key])} items)")
        return item.item_id

    def remove_item(self, path: FieldPath, position: int) -> ArrayItem:
        """Remove the instance at a position of an array field."""
        values, spec, key = self._locate(path)
        if not spec.is_array:
            raise ValueError(f"Field '{key}' is not an array field")
        items = values[key]
        if not 0 <= position < len(items):
            raise IndexError(f"No item at position {position} of {path!r}")
        removed = items.pop(position)
        logger.debug(f"Removed item {removed.item_id} from {path!r} ({len(items)} items left)")
        return removed

    def position_path(self, path: FieldPath) -> Optional[str]:
        """
        Convert an identity path into the dotted positional path used for errors.

        Returns:
            Path such as ``dependents.0.name``, or None if an instance no longer exists
        """
        parts: List[str] = []
        values, specs = self._values, self._fields
        index = 0
        while index < len(path):
            key = path[index]
            spec = specs.get(key)
            if spec is None:
                return None
            parts.append(str(key))
            if index + 1 >= len(path):
                break
            if not spec.is_array:
                return None
            items = values[key]
            positions = [item.item_id for item in items]
            if path[index + 1] not in positions:
                return None
            position = positions.index(path[index + 1])
            parts.append(str(position))
            values, specs = items[position].values, spec.item_shape or {}
            index += 2
        return '.'.join(parts)

    def snapshot(self) -> Dict[str, Any]:
        """Deep, plain copy of the current values with arrays as lists of dicts."""
        return self._plain(self._values)

    def _plain(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        plain = {}
        for key, value in values.items():
            if isinstance(value, list) and all(isinstance(item, ArrayItem) for item in value):
                plain[key] = [self._plain(item.values) for item in value]
            else:
                plain[key] = copy.deepcopy(value)
        return plain


class FormBinding:
    """
    A field specification bound to its compiled schema and live form state.

    This is the object the UI works against: it exposes the current values,
    per-field errors, the array append/remove API and the submit trigger.
    """

    def __init__(self, fields: Sequence[Any], defaults: Optional[Mapping[str, Any]] = None,
                 version: int = 0, schema: Optional[ValidationSchema] = None):
        self._fields = tuple(parse_field_specs(list(fields)))
        self._schema = schema if schema is not None else compile_schema(self._fields)
        self._state = FormState(self._fields, defaults)
        self._version = version
        self._errors: Dict[str, FieldError] = {}
        self._submitted = False

    @property
    def fields(self) -> Tuple[FieldSpec, ...]:
        return self._fields

    @property
    def schema(self) -> ValidationSchema:
        return self._schema

    @property
    def state(self) -> FormState:
        return self._state

    @property
    def version(self) -> int:
        return self._version

    @property
    def values(self) -> Dict[str, Any]:
        return self._state.snapshot()

    @property
    def submitted(self) -> bool:
        """Whether submit has been triggered at least once."""
        return self._submitted

    @property
    def errors(self) -> Mapping[str, FieldError]:
        return MappingProxyType(dict(self._errors))

    def get_value(self, path: FieldPath) -> Any:
        return self._state.get_value(path)

    def set_value(self, path: FieldPath, value: Any) -> None:
        self._state.set_value(path, value)

    def items(self, path: FieldPath) -> List[ArrayItem]:
        return self._state.items(path)

    def append_item(self, path: FieldPath) -> int:
        return self._state.append_item(path)

    def remove_item(self, path: FieldPath, position: int) -> ArrayItem:
        prefix = self._state.position_path(path)
        removed = self._state.remove_item(path, position)
        if prefix and self._errors:
            # Positions after the removed one shift, so their errors are stale
            self._errors = {
                error_path: error for error_path, error in self._errors.items()
                if not error_path.startswith(f"{prefix}.")
            }
        return removed

    def error_for(self, path: FieldPath) -> Optional[FieldError]:
        """Look up the error of the control at an identity path."""
        position = self._state.position_path(path)
        if position is None:
            return None
        return self._errors.get(position)

    def clear_errors(self) -> None:
        self._errors = {}

    def validate(self) -> ValidationResult:
        """Validate the current values and record the field errors."""
        result = self._schema.validate(self._state.snapshot())
        self._errors = dict(result.errors)
        return result

    def submit(self, on_valid: Optional[Callable[[Dict[str, Any]], Any]] = None) -> ValidationResult:
        """
        Run one full validation pass and hand a valid structured value on.

        Args:
            on_valid: Called exactly once with the structured value when valid

        Returns:
            ValidationResult of the pass
        """
        result = submit_form(self._state, self._schema)
        self._submitted = True
        self._errors = dict(result.errors)
        if result.is_valid and on_valid is not None:
            on_valid(result.value)
        return result
