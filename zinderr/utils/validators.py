import re

from zinderr.utils.exceptions import ValidationError

GHANA_PHONE = re.compile(r"^(\+233|0)[2-9]\d{8}$")


def coordinate(value, field, bound):
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", field=field)
    if not -bound <= value <= bound:
        raise ValidationError(f"{field} is out of range", field=field)
    return value


def optional_coordinate(value, field, bound):
    if value in (None, ""):
        return None
    return coordinate(value, field, bound)


def non_negative(value, field):
    if value in (None, ""):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", field=field)
    if value != value or value < 0 or value == float("inf"):
        raise ValidationError(f"{field} must be zero or more", field=field)
    return value


def phone_number(value, field="phone"):
    value = str(value or "").strip().replace(" ", "")
    if not value:
        return None
    if not GHANA_PHONE.match(value):
        raise ValidationError("Enter a valid Ghana phone number", field=field)
    return value
