"""
Template engine for form actions

Replaces {{fieldName}} placeholders with submitted values. Besides the
submitted fields, a few reserved placeholders are available:

    {{_formName}}   name of the form
    {{_formId}}     id of the form
    {{_timestamp}}  ISO timestamp of the submission
    {{_userAgent}}  submitting browser's user agent
    {{_referrer}}   page the form was submitted from
    {{_allFields}}  "Label: value" lines for every submitted field

Unknown placeholders are left in the output untouched. Templates are written
by site operators, so a typo should show up in the delivered message rather
than drop the whole submission.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from formrelay.models.forms import FormMeta, RESERVED_PREFIX
from formrelay.utils.timestamps import format_display_time, utc_now_iso

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}", re.ASCII)


@dataclass
class TemplateContext:
    """Values available to placeholders"""
    form_data: Dict[str, Any] = field(default_factory=dict)
    form_name: Optional[str] = None
    form_id: Optional[str] = None
    timestamp: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None

    @classmethod
    def for_form(cls, form_data: Dict[str, Any], form: FormMeta) -> "TemplateContext":
        return cls(
            form_data=form_data,
            form_name=form.name,
            form_id=form.id,
            timestamp=utc_now_iso(),
            user_agent=form.user_agent,
            referrer=form.referrer,
        )

    def as_dict(self) -> Dict[str, Any]:
        """Submitted data merged with the reserved placeholders"""
        return {
            **self.form_data,
            "_formName": self.form_name or "Form",
            "_formId": self.form_id or "",
            "_timestamp": self.timestamp or utc_now_iso(),
            "_userAgent": self.user_agent or "",
            "_referrer": self.referrer or "",
            "_allFields": format_all_fields(self.form_data),
        }


def stringify_value(value: Any) -> str:
    """Render a submitted value as text"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(stringify_value(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def display_value(value: Any) -> str:
    """Like stringify_value, but empty values show as "-" """
    if value is None or value == "" or value == []:
        return "-"
    return stringify_value(value)


def format_field_label(field_name: str) -> str:
    """
    Convert camelCase/snake_case field names to readable labels

    firstName -> First Name, company_name -> Company Name
    """
    label = re.sub(r"([A-Z])", r" \1", field_name).replace("_", " ")
    label = re.sub(r"^\s", "", label)
    return " ".join(word[:1].upper() + word[1:].lower() for word in label.split(" "))


def public_fields(form_data: Dict[str, Any]) -> Dict[str, Any]:
    """Submitted fields without internal (underscore-prefixed) keys"""
    return {key: value for key, value in form_data.items() if not key.startswith(RESERVED_PREFIX)}


def format_all_fields(form_data: Dict[str, Any]) -> str:
    """Format all fields as a readable list"""
    return "\n".join(
        f"{format_field_label(key)}: {display_value(value)}"
        for key, value in public_fields(form_data).items()
    )


def resolve(template: str, context: TemplateContext) -> str:
    """Replace {{placeholder}} patterns with values from context"""
    values = context.as_dict()

    def substitute(match: re.Match) -> str:
        value = values.get(match.group(1))
        if value is None:
            logger.debug(f"Unresolved template placeholder: {match.group(0)}")
            return match.group(0)
        return stringify_value(value)

    return PLACEHOLDER_PATTERN.sub(substitute, template)


def build_json_payload(template: str, context: TemplateContext) -> Any:
    """
    Resolve a JSON payload template and parse it

    Falls back to a default payload carrying all fields when the resolved
    template is not valid JSON.
    """
    try:
        return json.loads(resolve(template, context))
    except ValueError as e:
        logger.warning(f"Payload template for form {context.form_id} is not valid JSON, using default payload: {e}")
        return {
            "formName": context.form_name,
            "formId": context.form_id,
            "data": context.form_data,
            "timestamp": context.timestamp or utc_now_iso(),
        }


def build_html_email_body(
    template: Optional[str],
    context: TemplateContext,
    include_all_fields: bool = True
) -> str:
    """Build HTML email body from form data"""
    if template:
        return resolve(template, context)

    fields_html = ""
    if include_all_fields:
        rows = []
        for key, value in public_fields(context.form_data).items():
            shown = display_value(value).replace("\n", "<br>")
            rows.append(f"""
        <tr>
          <td style="padding: 8px 12px; border-bottom: 1px solid #eee; font-weight: 500; color: #555;">{format_field_label(key)}</td>
          <td style="padding: 8px 12px; border-bottom: 1px solid #eee; color: #333;">{shown}</td>
        </tr>""")
        fields_html = "".join(rows)

    return f"""
    <!DOCTYPE html>
    <html>
    <head>
      <meta charset="utf-8">
      <meta name="viewport" content="width=device-width, initial-scale=1">
    </head>
    <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
      <div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); padding: 24px; border-radius: 8px 8px 0 0;">
        <h1 style="color: white; margin: 0; font-size: 24px;">New Form Submission</h1>
        <p style="color: rgba(255,255,255,0.9); margin: 8px 0 0; font-size: 14px;">{context.form_name or "Form"} - {format_display_time(context.timestamp)}</p>
      </div>
      <div style="background: #fff; border: 1px solid #eee; border-top: none; border-radius: 0 0 8px 8px; padding: 0;">
        <table style="width: 100%; border-collapse: collapse;">{fields_html}
        </table>
      </div>
      <p style="color: #888; font-size: 12px; margin-top: 20px; text-align: center;">
        This email was sent automatically from your website form.
      </p>
    </body>
    </html>
    """
