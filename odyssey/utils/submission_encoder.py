"""Packages a validated registration into the multipart shape /api/register takes.

Parts:
    tournamentId        tournament id (string)
    userId              registrant uid
    registrationFields  JSON list of the tournament's field definitions
    customData          JSON object of every non-file value
    <field name>        one binary part per selected file, named after its field
"""

from dataclasses import dataclass, field
import json

from werkzeug.datastructures import MultiDict
from werkzeug.test import encode_multipart

from .registration_fields import FieldDefinition


class SubmissionEncodingError(Exception):
    """Raised before any request is made (e.g. no signed-in identity)."""


@dataclass
class SubmissionPayload:
    form: MultiDict = field(default_factory=MultiDict)
    files: MultiDict = field(default_factory=MultiDict)

    @property
    def custom_data(self):
        return json.loads(self.form['customData'])

    def to_multipart(self, boundary=None):
        """Encode as a multipart/form-data body.

        Reads every file part from its start; returns ``(content_type, body)``.
        """
        values = MultiDict(self.form)
        for name, upload in self.files.items(multi=True):
            stream = getattr(upload, 'stream', upload)
            if hasattr(stream, 'seek'):
                stream.seek(0)
            values.add(name, upload)
        boundary, body = encode_multipart(values, boundary=boundary)
        return f'multipart/form-data; boundary={boundary}', body


def _has_file(value):
    return bool(getattr(value, 'filename', None))


def encode_submission(tournament_id, user, definitions, custom_data):
    """Split ``custom_data`` into scalar JSON and file parts.

    Args:
        tournament_id: id of the tournament being registered for
        user: signed-in identity (anything with an ``id``), or None
        definitions: the tournament's FieldDefinitions, in order
        custom_data: validated mapping of field name to value

    Raises:
        SubmissionEncodingError: when no identity is available
    """
    user_id = getattr(user, 'id', None)
    if not user_id:
        raise SubmissionEncodingError("You must be logged in to register.")

    definitions = [
        d if isinstance(d, FieldDefinition) else FieldDefinition.from_dict(d)
        for d in definitions or ()
    ]
    by_name = {d.name: d for d in definitions}

    payload = MultiDict()
    scalars = {}
    files = MultiDict()
    for name, value in custom_data.items():
        definition = by_name.get(name)
        if definition is not None and definition.is_file:
            if isinstance(value, (list, tuple)):
                value = next((v for v in value if _has_file(v)), None)
            if _has_file(value):
                files.add(name, value)
            continue
        scalars[name] = value

    payload.add('tournamentId', str(tournament_id))
    payload.add('userId', str(user_id))
    payload.add('registrationFields', json.dumps([d.to_dict() for d in definitions]))
    payload.add('customData', json.dumps(scalars))
    return SubmissionPayload(form=payload, files=files)
