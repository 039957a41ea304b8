import pytest

from conftest import make_file
from odyssey.models.tournaments import Tournament
from odyssey.utils.registration_fields import (
    FieldDefinition, FieldValidationError, OMIT, FIELD_TYPES,
    get_field_kind, parse_field_definitions, validate_field_definitions, fields_fingerprint,
)


def test_supported_types():
    assert set(FIELD_TYPES) == {'text', 'number', 'email', 'file', 'screenshot'}


def test_parse_keeps_order_and_unknown_types():
    definitions = parse_field_definitions([
        {'name': 'Team Name', 'type': 'text', 'required': True},
        {'name': 'Favourite Map', 'type': 'dropdown'},
    ])
    assert definitions == (
        FieldDefinition('Team Name', 'text', True),
        FieldDefinition('Favourite Map', 'dropdown', False),
    )
    assert parse_field_definitions(None) == ()


def test_parse_rejects_malformed_lists():
    with pytest.raises(ValueError):
        parse_field_definitions({'name': 'Team Name'})
    with pytest.raises(ValueError):
        parse_field_definitions([{'type': 'text'}])


def test_duplicate_names_are_rejected():
    definitions = [FieldDefinition('Team Name', 'text'), FieldDefinition('Team Name ', 'number')]
    with pytest.raises(ValueError, match='Duplicate field name "Team Name"'):
        validate_field_definitions(definitions)


def test_blank_and_unknown_fields_are_rejected():
    with pytest.raises(ValueError, match='Field name is required'):
        validate_field_definitions([FieldDefinition('  ', 'text')])
    with pytest.raises(ValueError, match='Unknown field type'):
        validate_field_definitions([FieldDefinition('Map', 'dropdown')])
    assert validate_field_definitions([FieldDefinition('Map', 'dropdown')], allow_unknown_types=True)


def test_tournament_replaces_fields_wholesale():
    tournament = Tournament(registration_fields=[{'name': 'Old', 'type': 'text', 'required': False}])
    tournament.set_registration_fields([
        {'name': ' Team Name ', 'type': 'text', 'required': True},
        FieldDefinition('Seed', 'number'),
    ])
    assert tournament.registration_fields == [
        {'name': 'Team Name', 'type': 'text', 'required': True},
        {'name': 'Seed', 'type': 'number', 'required': False},
    ]

    with pytest.raises(ValueError):
        tournament.set_registration_fields([FieldDefinition('Seed', 'number'), FieldDefinition('Seed', 'text')])
    assert [d.name for d in tournament.field_definitions] == ['Team Name', 'Seed']


def test_fingerprint_tracks_changes():
    a = (FieldDefinition('Team Name', 'text', True),)
    b = (FieldDefinition('Team Name', 'text', False),)
    assert fields_fingerprint(a) == fields_fingerprint(tuple(a))
    assert fields_fingerprint(a) != fields_fingerprint(b)


def test_number_kind_rejects_booleans_and_infinity():
    kind = get_field_kind('number')
    definition = FieldDefinition('Seed', 'number', True)
    for bad in (True, 'inf', 'NaN'):
        with pytest.raises(FieldValidationError):
            kind.clean(definition, bad)
    assert kind.clean(definition, ' 12 ') == 12


def test_optional_missing_values_are_omitted():
    for field_type in ('text', 'number', 'email', 'file', 'screenshot'):
        definition = FieldDefinition('Extra', field_type, False)
        assert get_field_kind(field_type).clean(definition, None) is OMIT


def test_file_check_upload():
    kind = get_field_kind('file')
    required = FieldDefinition('Roster Photo', 'file', True)
    optional = FieldDefinition('Logo', 'file', False)
    upload = make_file()

    with pytest.raises(FieldValidationError, match='Required file for Roster Photo is missing.'):
        kind.check_upload(required, None)
    assert kind.check_upload(optional, None) is None
    assert kind.check_upload(required, upload) is upload
