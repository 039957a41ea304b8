from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired, FileAllowed
from wtforms import StringField, TextAreaField, FloatField, IntegerField, DateTimeLocalField, SelectField, BooleanField, SubmitField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional, URL, ValidationError

from odyssey.utils.registration_fields import FIELD_TYPES

IMAGE_EXTENSIONS = ['png', 'jpg', 'jpeg', 'gif', 'webp']


class TournamentForm(FlaskForm):
    name = StringField('Tournament Name', validators=[DataRequired(), Length(min=5, message="Tournament name must be at least 5 characters.")])
    game = StringField('Game', validators=[DataRequired(message="Please select a game.")])
    prize = FloatField('Prize Pool', default=0, validators=[InputRequired(), NumberRange(min=0, message="Prize pool must be a positive number.")])
    participants = IntegerField('Participants', validators=[DataRequired(), NumberRange(min=2, message="A tournament must have at least 2 participants.")])
    start_date = DateTimeLocalField('Start Date', format='%Y-%m-%dT%H:%M', validators=[DataRequired(message="A start date is required.")])
    end_date = DateTimeLocalField('End Date', format='%Y-%m-%dT%H:%M', validators=[DataRequired(message="An end date is required.")])
    description = TextAreaField('Description', validators=[Optional()])
    photo = FileField('Banner', validators=[FileRequired('A photo is required.'), FileAllowed(IMAGE_EXTENSIONS, 'Images only.')])
    submit = SubmitField('Create Tournament')

    def validate_end_date(self, field):
        if self.start_date.data and field.data and field.data < self.start_date.data:
            raise ValidationError("End date must be after the start date.")


class FieldDefinitionForm(FlaskForm):
    name = StringField('Field Name', validators=[DataRequired(message="Field name is required.")])
    type = SelectField('Field Type', choices=[(t, t.capitalize()) for t in FIELD_TYPES], default='text')
    required = BooleanField('Required', default=True)
    submit = SubmitField('Add Field to Form')


class ProfileForm(FlaskForm):
    username = StringField('Username', validators=[DataRequired(), Length(max=255)])
    photo_url = StringField('Photo URL', validators=[Optional(), URL(require_tld=False)])
    submit = SubmitField('Update')
