"""Form-related Pydantic models"""
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, Any, Dict, List, Literal, Optional, Union


FieldType = Literal[
    "text", "email", "textarea", "select", "checkbox",
    "radio", "number", "phone", "date", "file",
]

# Prefix shared by the honeypot keys and the template metadata keys
RESERVED_PREFIX = "_"


class CamelModel(BaseModel):
    """Base for documents that come from the CMS or go back to the browser"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Form fields
# ---------------------------------------------------------------------------

class FieldOption(CamelModel):
    """Choice for select/radio fields"""
    model_config = ConfigDict(frozen=True)

    label: str
    value: str


class FieldValidation(CamelModel):
    """Extra validation rules configured on a field"""
    model_config = ConfigDict(frozen=True)

    pattern: Optional[str] = None
    pattern_message: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None


class FormFieldDefinition(CamelModel):
    """One field of a form definition"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=r"^[A-Za-z][A-Za-z0-9_]*$")
    label: str
    type: FieldType = "text"
    required: bool = False
    options: List[FieldOption] = []
    validation: Optional[FieldValidation] = None

    # Display-only, passed through to the public config endpoint
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    default_value: Optional[str] = None
    width: Optional[Literal["full", "half"]] = None
    rows: Optional[int] = None
    accept: Optional[str] = None
    multiple: Optional[bool] = None

    @model_validator(mode="after")
    def check_options(self):
        if self.type in ("select", "radio") and not self.options:
            raise ValueError(f"Field '{self.name}' of type {self.type} needs at least one option")
        return self


# ---------------------------------------------------------------------------
# Form actions
# ---------------------------------------------------------------------------

class WebhookHeader(CamelModel):
    key: Optional[str] = None
    value: Optional[str] = None


class WebhookAction(CamelModel):
    """Send the submission to an arbitrary HTTP endpoint"""
    type: Literal["webhook"] = "webhook"
    enabled: bool = True
    name: Optional[str] = None
    url: str
    method: Literal["POST", "PUT", "PATCH"] = "POST"
    headers: List[WebhookHeader] = []
    payload_template: Optional[str] = None
    include_all_fields: bool = True


class DiscordAction(CamelModel):
    """Post the submission to a Discord channel webhook"""
    type: Literal["discord"] = "discord"
    enabled: bool = True
    name: Optional[str] = None
    webhook_url: str
    message_template: str
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    use_embed: bool = False
    embed_color: Optional[str] = None


class EmailAction(CamelModel):
    """Email the submission through one of the supported providers"""
    type: Literal["email"] = "email"
    enabled: bool = True
    name: Optional[str] = None
    provider: Literal["resend", "sendgrid", "mailgun"]
    to: str
    cc: Optional[str] = None
    bcc: Optional[str] = None
    reply_to_field: Optional[str] = None
    subject: str
    body_template: Optional[str] = None
    include_all_fields: bool = True


class SanityStorageAction(CamelModel):
    """Store the submission as a formSubmission document"""
    type: Literal["sanityStorage"] = "sanityStorage"
    enabled: bool = True
    name: Optional[str] = None
    form_name_override: Optional[str] = None


FormAction = Annotated[
    Union[WebhookAction, DiscordAction, EmailAction, SanityStorageAction],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Form definition
# ---------------------------------------------------------------------------

class FormSettings(CamelModel):
    enable_spam_protection: bool = False
    submit_button_text: Optional[str] = None
    submit_button_loading_text: Optional[str] = None
    success_title: Optional[str] = None
    success_message: Optional[str] = None
    error_message: Optional[str] = None


class FormPublicConfig(CamelModel):
    """Form configuration safe to hand to the browser (no actions)"""
    id: str
    name: str
    identifier: Optional[str] = None
    description: Optional[str] = None
    fields: List[FormFieldDefinition] = []
    settings: FormSettings = FormSettings()


class FormDefinition(FormPublicConfig):
    """Full form definition as used by the submission pipeline"""
    actions: List[FormAction] = []

    def public_config(self) -> FormPublicConfig:
        return FormPublicConfig.model_validate(self.model_dump(exclude={"actions"}))

    def storage_action(self) -> Optional[SanityStorageAction]:
        """First enabled storage action, if any"""
        for action in self.actions:
            if isinstance(action, SanityStorageAction) and action.enabled:
                return action
        return None


class FormMeta(BaseModel):
    """What action handlers get to know about the form and the request"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    user_agent: Optional[str] = None
    referrer: Optional[str] = None


# ---------------------------------------------------------------------------
# Submission in / result out
# ---------------------------------------------------------------------------

class SubmissionMetadata(CamelModel):
    user_agent: Optional[str] = None
    referrer: Optional[str] = None


class FormSubmission(CamelModel):
    """Form submission request"""
    form_id: Optional[str] = None
    form_identifier: Optional[str] = None
    data: Dict[str, Any] = {}
    metadata: Optional[SubmissionMetadata] = None

    @model_validator(mode="after")
    def check_form_reference(self):
        if not self.form_id and not self.form_identifier:
            raise ValueError("Missing form ID")
        return self


class ActionResult(CamelModel):
    """Outcome of one action for one submission"""
    action_type: str
    action_name: Optional[str] = None
    success: bool
    error: Optional[str] = None


class ValidationError(CamelModel):
    """A failed field constraint"""
    field: str
    message: str


class FormSubmissionResult(CamelModel):
    """Form submission response"""
    success: bool
    submission_id: Optional[str] = None
    action_results: Optional[List[ActionResult]] = None
    errors: Optional[List[ValidationError]] = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Newsletter
# ---------------------------------------------------------------------------

class SubscribeRequest(CamelModel):
    """Newsletter subscription request"""
    email: str
    source: Optional[str] = None


class SubscribeResult(CamelModel):
    """Newsletter subscription response"""
    success: bool
    id: Optional[str] = None
    already_subscribed: Optional[bool] = None
    error: Optional[str] = None
