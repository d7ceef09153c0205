"""WTForms form classes for the JSON API payloads."""

from __future__ import annotations

from flask_wtf import FlaskForm
from wtforms import (
    BooleanField,
    DateField,
    DecimalField,
    IntegerField,
    SelectMultipleField,
    SelectField,
    StringField,
    TextAreaField,
    TimeField,
)
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional, ValidationError


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class JsonForm(FlaskForm):
    """Identity comes from a request header, so these forms carry no CSRF token."""

    class Meta:
        csrf = False


class CorrectionRequestForm(JsonForm):
    work_date = DateField("Date", validators=[InputRequired()])
    requested_check_in = TimeField("Check-in", validators=[InputRequired()])
    requested_check_out = TimeField("Check-out", validators=[Optional()])
    reason = TextAreaField("Reason", validators=[DataRequired(), Length(max=1000)], filters=[_strip])

    def validate_requested_check_out(self, field: TimeField) -> None:
        if field.data is not None and field.data == self.requested_check_in.data:
            raise ValidationError("Check-out time must differ from check-in time.")


class LeaveRequestForm(JsonForm):
    leave_type_id = IntegerField("Leave type", validators=[InputRequired()])
    from_date = DateField("From", validators=[InputRequired()])
    to_date = DateField("To", validators=[InputRequired()])
    reason = TextAreaField("Reason", validators=[DataRequired(), Length(max=1000)], filters=[_strip])
    is_half_day = BooleanField("Half day")

    def validate_to_date(self, field: DateField) -> None:
        if self.from_date.data and field.data and field.data < self.from_date.data:
            raise ValidationError("End date must not be before start date.")


class ReviewForm(JsonForm):
    decision = SelectField(
        "Decision",
        choices=[("approved", "Approve"), ("rejected", "Reject")],
        validators=[DataRequired()],
    )
    admin_comment = TextAreaField("Comment", validators=[Optional(), Length(max=1000)], filters=[_strip])


class LeaveAllocationForm(JsonForm):
    total_days_allocated = DecimalField(
        "Allocated days",
        places=2,
        validators=[InputRequired(), NumberRange(min=0, max=366)],
    )


class BroadcastForm(JsonForm):
    message = TextAreaField("Message", validators=[DataRequired(), Length(max=2000)], filters=[_strip])


class TargetedNotificationForm(BroadcastForm):
    employee_id = IntegerField("Employee", validators=[InputRequired()])


class HolidayForm(JsonForm):
    holiday_date = DateField("Date", validators=[InputRequired()])
    name = StringField("Name", validators=[DataRequired(), Length(max=255)], filters=[_strip])


class LeaveTypeForm(JsonForm):
    name = StringField("Name", validators=[DataRequired(), Length(max=128)], filters=[_strip])
    description = TextAreaField("Description", validators=[Optional(), Length(max=1000)], filters=[_strip])
    is_paid = BooleanField("Paid")
    default_days_per_year = DecimalField(
        "Default days per year",
        places=2,
        validators=[Optional(), NumberRange(min=0, max=366)],
    )


WEEKDAY_CHOICES = [
    (0, "Sunday"),
    (1, "Monday"),
    (2, "Tuesday"),
    (3, "Wednesday"),
    (4, "Thursday"),
    (5, "Friday"),
    (6, "Saturday"),
]


class WeeklyOffForm(JsonForm):
    employee_id = IntegerField("Employee", validators=[InputRequired()])
    weekly_off_days = SelectMultipleField(
        "Weekly off days",
        choices=WEEKDAY_CHOICES,
        coerce=int,
        validators=[InputRequired()],
    )
    effective_date = DateField("Effective from", validators=[InputRequired()])
    end_date = DateField("Until", validators=[Optional()])

    def validate_end_date(self, field: DateField) -> None:
        if self.effective_date.data and field.data and field.data < self.effective_date.data:
            raise ValidationError("End date must not be before the effective date.")
