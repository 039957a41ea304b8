"""Registration Field Kinds - admin-authored form fields for tournament signup.

A tournament carries an ordered list of field definitions
(``{"name", "type", "required"}``). Each ``type`` selects a FieldKind which
knows how to:

    - form_field():   build the WTForms control used to render and bind it
    - clean():        validate/coerce a submitted value (form-side check)
    - check_upload(): enforce file constraints on the server

Supported types: text, number, email, file, screenshot. Unknown types are
kept as-is when read from storage and accept any value.

Usage:
    fields = parse_field_definitions(json.loads(raw))
    validate_field_definitions(fields)
    kind = get_field_kind(fields[0].type)
    value = kind.clean(fields[0], request_value)
"""

from dataclasses import dataclass
import hashlib
import json
import math

from email_validator import validate_email, EmailNotValidError
from flask_wtf.file import FileField
from wtforms import StringField
from wtforms.widgets import EmailInput, NumberInput, TextInput


FILE_TYPES = ('file', 'screenshot')

# Marker returned by FieldKind.clean() when the value should be left out
# of the cleaned customData mapping.
OMIT = object()


class FieldValidationError(ValueError):
    """A single field value failed its rule."""

    def __init__(self, field_name, message):
        super().__init__(message)
        self.field_name = field_name
        self.message = message


@dataclass(frozen=True)
class FieldDefinition:
    name: str
    type: str
    required: bool = False

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError("Each registration field must be an object.")
        name = data.get('name')
        if not isinstance(name, str):
            raise ValueError("Each registration field needs a name.")
        field_type = data.get('type')
        return cls(
            name=name,
            type=str(field_type) if field_type is not None else '',
            required=bool(data.get('required', False)),
        )

    @property
    def is_file(self):
        return self.type in FILE_TYPES

    def to_dict(self):
        return {'name': self.name, 'type': self.type, 'required': self.required}


def _is_blank(value):
    return value is None or (isinstance(value, str) and value == '')


def _selected_file(field_name, value):
    """Return the single selected upload in ``value`` or None."""
    if isinstance(value, (list, tuple)):
        selected = [v for v in value if getattr(v, 'filename', None)]
        if len(selected) > 1:
            raise FieldValidationError(field_name, f"{field_name} accepts a single file.")
        return selected[0] if selected else None
    if getattr(value, 'filename', None):
        return value
    return None


class FieldKind:
    type_name = None
    widget = TextInput()

    def form_field(self, definition, **render_kw):
        return StringField(definition.name, widget=self.widget, render_kw=render_kw or None)

    def clean(self, definition, value):
        return OMIT if value is None else value

    def check_upload(self, definition, upload):
        return None

    def _missing(self, definition):
        if definition.required:
            raise FieldValidationError(definition.name, f"{definition.name} is required.")
        return OMIT


class TextKind(FieldKind):
    type_name = 'text'

    def clean(self, definition, value):
        if value is None:
            return self._missing(definition)
        if not isinstance(value, str):
            raise FieldValidationError(definition.name, f"{definition.name} must be text.")
        if definition.required and value == '':
            raise FieldValidationError(definition.name, f"{definition.name} is required.")
        return value


class NumberKind(FieldKind):
    type_name = 'number'
    widget = NumberInput(step='any')

    def clean(self, definition, value):
        if isinstance(value, str):
            value = value.strip()
        if _is_blank(value):
            return self._missing(definition)
        if isinstance(value, bool):
            raise FieldValidationError(definition.name, f"{definition.name} must be a number.")
        if isinstance(value, (int, float)):
            number = value
        else:
            try:
                number = int(value)
            except (TypeError, ValueError):
                try:
                    number = float(value)
                except (TypeError, ValueError):
                    raise FieldValidationError(definition.name, f"{definition.name} must be a number.")
        if isinstance(number, float) and not math.isfinite(number):
            raise FieldValidationError(definition.name, f"{definition.name} must be a number.")
        return number


class EmailKind(FieldKind):
    type_name = 'email'
    widget = EmailInput()

    def clean(self, definition, value):
        if value is None:
            return self._missing(definition)
        if not isinstance(value, str):
            raise FieldValidationError(definition.name, "Invalid email address.")
        if value == '':
            if definition.required:
                raise FieldValidationError(definition.name, f"{definition.name} is required.")
            return value
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            raise FieldValidationError(definition.name, "Invalid email address.")
        return value


class FileKind(FieldKind):
    type_name = 'file'

    def form_field(self, definition, **render_kw):
        return FileField(definition.name, render_kw=render_kw or None)

    def clean(self, definition, value):
        upload = _selected_file(definition.name, value)
        if upload is None:
            return self._missing(definition)
        return upload

    def check_upload(self, definition, upload):
        if upload is None or not getattr(upload, 'filename', None):
            if definition.required:
                raise FieldValidationError(
                    definition.name, f"Required file for {definition.name} is missing."
                )
            return None
        return upload


class ScreenshotKind(FileKind):
    type_name = 'screenshot'

    def form_field(self, definition, **render_kw):
        render_kw.setdefault('accept', 'image/*')
        return super().form_field(definition, **render_kw)


class AnyKind(FieldKind):
    """Fallback for types this build does not know."""


FIELD_KINDS = {
    kind.type_name: kind
    for kind in (TextKind(), NumberKind(), EmailKind(), FileKind(), ScreenshotKind())
}
FIELD_TYPES = tuple(FIELD_KINDS)

_ANY_KIND = AnyKind()


def get_field_kind(field_type):
    return FIELD_KINDS.get(field_type, _ANY_KIND)


def parse_field_definitions(raw):
    """Build FieldDefinitions from decoded JSON (a list of dicts or None)."""
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValueError("Registration fields must be a list.")
    return tuple(FieldDefinition.from_dict(item) for item in raw)


def validate_field_definitions(definitions, allow_unknown_types=False):
    """Check names are present and unique, and types are known.

    Raises:
        ValueError: describing the first problem found
    """
    seen = set()
    for definition in definitions:
        name = definition.name.strip()
        if not name:
            raise ValueError("Field name is required.")
        if name in seen:
            raise ValueError(f'Duplicate field name "{name}".')
        seen.add(name)
        if not allow_unknown_types and definition.type not in FIELD_KINDS:
            raise ValueError(f'Unknown field type "{definition.type}" for "{name}".')
    return definitions


def fields_fingerprint(definitions):
    payload = json.dumps([d.to_dict() for d in definitions], sort_keys=True)
    return hashlib.sha256(payload.encode()).hexdigest()
