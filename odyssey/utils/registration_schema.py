"""Registration Schema - validation rules derived from a tournament's fields.

generate_schema() turns an ordered list of FieldDefinitions into an
immutable RegistrationSchema with one rule per field, nested under the
``customData`` namespace of a submission:

    {"customData": {"Team Name": "Ghost Squad", "Roster Photo": <file>}}

Rules per type:
    text:              required -> non-empty string; optional -> any string
    number:            string input coerced to int/float; required -> present
    email:             valid address; optional accepts "" or omission
    file / screenshot: single selected file; required -> a file is selected
    anything else:     any value, optional

The same schema is used by the browser form and by the registration
endpoint, so both sides share one source of truth for scalar rules. The
endpoint additionally enforces required files through check_uploads().

compile_schema() caches compiled schemas per tournament id and field-list
fingerprint, so editing the form builder invalidates the cached copy.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple

from .registration_fields import (
    FieldDefinition, FieldValidationError, OMIT, get_field_kind
)

NAMESPACE = 'customData'


@dataclass
class ValidationError:
    """Represents a single field error."""
    field: str
    message: str


@dataclass
class ValidationResult:
    """Result of validating one submission."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    values: Dict[str, Any] = field(default_factory=dict)

    def add_error(self, field_name: str, message: str):
        self.errors.append(ValidationError(field_name, message))
        self.is_valid = False

    def errors_by_field(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for error in self.errors:
            grouped.setdefault(error.field, []).append(error.message)
        return grouped


@dataclass(frozen=True)
class FieldRule:
    definition: FieldDefinition

    @property
    def kind(self):
        return get_field_kind(self.definition.type)

    def apply(self, value):
        return self.kind.clean(self.definition, value)


class RegistrationSchema:
    """Immutable validator compiled from a field-definition list."""

    def __init__(self, definitions):
        self.fields: Tuple[FieldDefinition, ...] = tuple(definitions)
        self.rules: Mapping[str, FieldRule] = MappingProxyType(
            {d.name: FieldRule(d) for d in self.fields}
        )

    def __repr__(self):
        return f"<RegistrationSchema {list(self.rules)}>"

    @property
    def file_fields(self):
        return tuple(d for d in self.fields if d.is_file)

    @property
    def scalar_fields(self):
        return tuple(d for d in self.fields if not d.is_file)

    def validate(self, submission: Mapping[str, Any], only=None) -> ValidationResult:
        """Validate ``{"customData": {...}}`` against every rule.

        Args:
            submission: mapping with a ``customData`` mapping inside
            only: optional iterable of field names to check (others skipped)

        Returns:
            ValidationResult with cleaned values keyed by field name. Keys
            that have no rule are carried over unchanged.
        """
        result = ValidationResult(is_valid=True)
        custom_data = submission.get(NAMESPACE) if submission else None
        if custom_data is None:
            custom_data = {}
        if not isinstance(custom_data, Mapping):
            result.add_error(NAMESPACE, "Registration data must be an object.")
            return result

        selected = set(only) if only is not None else None
        for key, value in custom_data.items():
            if key not in self.rules:
                result.values[key] = value

        for name, rule in self.rules.items():
            if selected is not None and name not in selected:
                if name in custom_data:
                    result.values[name] = custom_data[name]
                continue
            try:
                cleaned = rule.apply(custom_data.get(name))
            except FieldValidationError as e:
                result.add_error(name, e.message)
                continue
            if cleaned is not OMIT:
                result.values[name] = cleaned
        return result

    def validate_scalars(self, custom_data: Mapping[str, Any]) -> ValidationResult:
        """Validate only the non-file fields (what travels as JSON)."""
        return self.validate(
            {NAMESPACE: custom_data},
            only=[d.name for d in self.scalar_fields],
        )

    def check_uploads(self, files: Mapping[str, Any]) -> ValidationResult:
        """Server-side file check: every required file field has a part."""
        result = ValidationResult(is_valid=True)
        for definition in self.file_fields:
            upload = files.get(definition.name)
            try:
                upload = get_field_kind(definition.type).check_upload(definition, upload)
            except FieldValidationError as e:
                result.add_error(definition.name, e.message)
                continue
            if upload is not None:
                result.values[definition.name] = upload
        return result


def generate_schema(definitions) -> RegistrationSchema:
    return RegistrationSchema(definitions or ())


@lru_cache(maxsize=256)
def _compiled_schema(tournament_id, fingerprint, definitions):
    return RegistrationSchema(definitions)


def compile_schema(tournament) -> RegistrationSchema:
    """Cached schema for ``tournament``'s current field list."""
    return _compiled_schema(tournament.id, tournament.fields_version, tournament.field_definitions)


def clear_schema_cache():
    _compiled_schema.cache_clear()
