"""Server-side validation of submitted values against form field definitions"""
import logging
import re
from typing import Any, Dict, List, Optional

from formrelay.models.forms import FormFieldDefinition, ValidationError

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_FORMATTING = re.compile(r"[\s\-\(\)\.\+]")
PHONE_DIGITS = re.compile(r"^\d{7,15}$")
# Plain decimal literals; no underscores, hex or infinities
NUMBER_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def validate_form_data(
    fields: List[FormFieldDefinition],
    data: Dict[str, Any]
) -> List[ValidationError]:
    """
    Validate form data against field configurations

    Args:
        fields: Field definitions of the form
        data: Submitted (sanitized) values keyed by field name

    Returns:
        Every failed constraint, in field order. Empty when the data is valid.
    """
    errors: List[ValidationError] = []
    for field in fields:
        errors.extend(validate_field(field, data.get(field.name)))
    return errors


def validate_field(field: FormFieldDefinition, value: Any) -> List[ValidationError]:
    """Validate a single field value"""
    errors: List[ValidationError] = []
    string_value = _as_text(value)

    def fail(message: str):
        errors.append(ValidationError(field=field.name, message=message))

    if not string_value:
        # Nothing else to check on an empty value
        if field.required:
            fail(f"{field.label} is required")
        return errors

    if field.type == "email":
        if not is_valid_email(string_value):
            fail("Please enter a valid email address")

    elif field.type == "phone":
        if not is_valid_phone(string_value):
            fail("Please enter a valid phone number")

    elif field.type == "number":
        number = _as_number(value)
        if number is None:
            fail(f"{field.label} must be a valid number")
        elif field.validation:
            if field.validation.min is not None and number < field.validation.min:
                fail(f"{field.label} must be at least {_format_bound(field.validation.min)}")
            if field.validation.max is not None and number > field.validation.max:
                fail(f"{field.label} must be no more than {_format_bound(field.validation.max)}")

    elif field.type in ("select", "radio"):
        allowed = [option.value for option in field.options]
        if string_value not in allowed:
            fail(f"Please select a valid option for {field.label}")

    rules = field.validation
    if rules:
        if rules.min_length and len(string_value) < rules.min_length:
            fail(f"{field.label} must be at least {rules.min_length} characters")

        if rules.max_length and len(string_value) > rules.max_length:
            fail(f"{field.label} must be no more than {rules.max_length} characters")

        if rules.pattern:
            try:
                regex = re.compile(rules.pattern)
            except re.error as e:
                logger.warning(f"Invalid regex pattern for field {field.name}: {e}")
            else:
                if not regex.search(string_value):
                    fail(rules.pattern_message or f"{field.label} has an invalid format")

    return errors


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def is_valid_phone(phone: str) -> bool:
    """Flexible phone check: 7-15 digits once common formatting is removed"""
    return bool(PHONE_DIGITS.match(PHONE_FORMATTING.sub("", phone)))


def _as_text(value: Any) -> str:
    if value is None or value is False:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value).strip()
    return str(value).strip()


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    text = str(value).strip()
    if not NUMBER_PATTERN.match(text):
        return None
    return float(text)


def _format_bound(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)
