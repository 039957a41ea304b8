"""Registration Form - renders and binds a tournament's registration fields.

build_registration_form() creates a Flask-WTF form class on the fly with one
control per field definition (in list order) plus a read-only username. The
controls carry no validators of their own: on submit the bound values are
collected with custom_data() and checked against the compiled
RegistrationSchema, whose errors are attached back to the matching control.

When the tournament asks for an email and the signed-in user has one, the
first email control is pre-filled from the account and disabled. Browsers do
not post disabled inputs, so the value is re-bound from the account on every
request.
"""

from flask_wtf import FlaskForm
from wtforms import StringField, SubmitField

from .registration_fields import get_field_kind


class RegistrationForm(FlaskForm):
    username = StringField('Username', render_kw={'readonly': True, 'disabled': True})
    submit = SubmitField('Submit Registration')

    field_map = ()
    identity_email_field = None

    def custom_fields(self):
        """Yield ``(definition, bound field)`` pairs in form order."""
        for attr, definition in self.field_map:
            yield definition, self[attr]

    def field_for(self, name):
        for definition, bound in self.custom_fields():
            if definition.name == name:
                return bound
        return None

    def custom_data(self):
        return {definition.name: bound.data for definition, bound in self.custom_fields()}

    def add_field_error(self, name, message):
        bound = self.field_for(name)
        if bound is None:
            return
        bound.errors = list(bound.errors) + [message]

    def validate_custom_data(self, schema):
        """Validate the bound values; errors are attached per field."""
        result = schema.validate({'customData': self.custom_data()})
        for name, messages in result.errors_by_field().items():
            for message in messages:
                self.add_field_error(name, message)
        return result


def build_registration_form_class(definitions, identity_email=None):
    attrs = {}
    field_map = []
    email_attr = None
    for index, definition in enumerate(definitions):
        attr = f'field_{index}'
        render_kw = {}
        if definition.type == 'email' and identity_email and email_attr is None:
            render_kw['disabled'] = True
            email_attr = attr
        attrs[attr] = get_field_kind(definition.type).form_field(definition, **render_kw)
        field_map.append((attr, definition))
    attrs['field_map'] = tuple(field_map)
    attrs['identity_email_field'] = email_attr
    return type('TournamentRegistrationForm', (RegistrationForm,), attrs)


def build_registration_form(definitions, user, **kwargs):
    """Instantiate the form for ``user``; kwargs go to FlaskForm."""
    identity_email = getattr(user, 'email', None)
    form_class = build_registration_form_class(definitions, identity_email)
    form = form_class(**kwargs)
    form.username.data = getattr(user, 'display_name', None) or ''
    if form.identity_email_field:
        form[form.identity_email_field].data = identity_email
    return form
