from io import BytesIO
import json

import pytest
from werkzeug.formparser import parse_form_data

from conftest import make_file
from odyssey.models.auth import User
from odyssey.utils.registration_fields import FieldDefinition
from odyssey.utils.submission_encoder import encode_submission, SubmissionEncodingError

FIELDS = (
    FieldDefinition('Team Name', 'text', True),
    FieldDefinition('Roster Photo', 'file', True),
    FieldDefinition('Rank Proof', 'screenshot', False),
)


def test_splits_files_from_scalars():
    upload = make_file()
    user = User(id='uid-1', email='captain@ghostsquad.gg')

    payload = encode_submission(4, user, FIELDS, {'Team Name': 'Ghost Squad', 'Roster Photo': upload})

    assert payload.form['tournamentId'] == '4'
    assert payload.form['userId'] == 'uid-1'
    assert json.loads(payload.form['registrationFields']) == [d.to_dict() for d in FIELDS]
    assert payload.custom_data == {'Team Name': 'Ghost Squad'}
    assert payload.files.getlist('Roster Photo') == [upload]
    assert 'Rank Proof' not in payload.files


def test_requires_identity():
    with pytest.raises(SubmissionEncodingError):
        encode_submission(4, None, FIELDS, {'Team Name': 'Ghost Squad'})


def test_multipart_body_round_trips_through_werkzeug():
    user = User(id='uid-1')
    payload = encode_submission(4, user, FIELDS, {
        'Team Name': 'Ghost Squad',
        'Roster Photo': make_file(b'roster bytes'),
    })

    content_type, body = payload.to_multipart()
    environ = {
        'REQUEST_METHOD': 'POST',
        'CONTENT_TYPE': content_type,
        'CONTENT_LENGTH': str(len(body)),
        'wsgi.input': BytesIO(body),
    }
    _, form, files = parse_form_data(environ)

    assert json.loads(form['customData']) == {'Team Name': 'Ghost Squad'}
    assert files['Roster Photo'].filename == 'roster photo.png'
    assert files['Roster Photo'].read() == b'roster bytes'
