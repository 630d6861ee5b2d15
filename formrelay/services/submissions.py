"""
Form submission service

Runs one submission through the pipeline:

1. Fetch the form definition from the CMS
2. Honeypot spam check (when enabled on the form)
3. Sanitize submitted values
4. Validate them against the form fields
5. Execute the enabled actions (Discord, webhooks, email) concurrently
6. Store the submission in the CMS when storage is enabled, or when the
   form has no actions at all
7. Report the result

Once validation passes the submission counts as successful, even if some
actions fail; the per-action results tell operators what went wrong.
"""
import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

import httpx

from formrelay.config import Settings, get_settings
from formrelay.database import FormRepository, get_form_repository
from formrelay.models.forms import (
    ActionResult,
    FormDefinition,
    FormMeta,
    FormSubmission,
    FormSubmissionResult,
    SanityStorageAction,
)
from formrelay.services.actions.dispatcher import execute_form_actions
from formrelay.services.sanitization import is_spam_submission, sanitize_form_data
from formrelay.services.validation import validate_form_data
from formrelay.utils.timestamps import utc_now_iso

logger = logging.getLogger(__name__)

BLOCKED_SUBMISSION_ID = "blocked"
STORAGE_ACTION_TYPE = "sanityStorage"
DEFAULT_STORAGE_ACTION_NAME = "Store in Sanity"

# Copied into the structured part of the stored document
COMMON_FIELDS = ("name", "email", "phone", "company", "message", "subject")


async def submit_dynamic_form(
    submission: FormSubmission,
    repository: Optional[FormRepository] = None,
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None
) -> FormSubmissionResult:
    """
    Process a dynamic form submission

    Args:
        submission: Form reference, submitted values and client metadata
        repository: Where form definitions and submissions live
        settings: Credentials for the action handlers
        client: HTTP client shared by all actions; one is opened for the
            submission if omitted

    Returns:
        FormSubmissionResult with action results, or validation errors
    """
    settings = settings or get_settings()

    if client is None:
        async with httpx.AsyncClient(timeout=settings.outbound_timeout) as client:
            return await _process_submission(submission, repository, settings, client)
    return await _process_submission(submission, repository, settings, client)


async def _process_submission(
    submission: FormSubmission,
    repository: Optional[FormRepository],
    settings: Settings,
    client: httpx.AsyncClient
) -> FormSubmissionResult:
    timestamp = utc_now_iso()
    repository = repository or get_form_repository(settings, client)

    try:
        # 1. Fetch form configuration
        form = await fetch_form(submission, repository)
        if form is None:
            return FormSubmissionResult(success=False, error="Form configuration not found")

        # 2. Honeypot. Report success so bots learn nothing
        if form.settings.enable_spam_protection and is_spam_submission(submission.data):
            logger.info(f"Spam submission detected and blocked for form {form.id}")
            return FormSubmissionResult(success=True, submission_id=BLOCKED_SUBMISSION_ID)

        # 3. Sanitize
        sanitized_data = sanitize_form_data(submission.data)

        # 4. Validate
        if form.fields:
            validation_errors = validate_form_data(form.fields, sanitized_data)
            if validation_errors:
                return FormSubmissionResult(success=False, errors=validation_errors)

        # 5. Actions
        metadata = submission.metadata
        form_meta = FormMeta(
            id=form.id,
            name=form.name,
            user_agent=metadata.user_agent if metadata else None,
            referrer=metadata.referrer if metadata else None,
        )
        action_results: List[ActionResult] = []
        if form.actions:
            action_results = await execute_form_actions(form.actions, sanitized_data, form_meta, settings, client)

        # 6. Storage
        submission_id = None
        storage_action = form.storage_action()
        if should_store_submission(form):
            submission_id, storage_result = await store_submission(
                repository, form, storage_action, form_meta, sanitized_data, action_results, timestamp
            )
            action_results.append(storage_result)

        # 7. Result
        failed = [r for r in action_results if not r.success]
        if failed:
            logger.warning(
                f"Some form actions failed for form {form.id}: "
                + ", ".join(f"{r.action_type} ({r.error})" for r in failed)
            )

        return FormSubmissionResult(
            success=True,
            submission_id=submission_id,
            action_results=action_results,
        )

    except Exception as e:
        logger.error(f"Error processing form submission: {e}")
        return FormSubmissionResult(success=False, error=str(e) or "Failed to process submission")


async def fetch_form(submission: FormSubmission, repository: FormRepository) -> Optional[FormDefinition]:
    """Look the form up by id, falling back to its identifier"""
    if submission.form_id:
        form = await repository.get_form(submission.form_id)
        if form is not None or not submission.form_identifier:
            return form
    return await repository.get_form_by_identifier(submission.form_identifier)


def should_store_submission(form: FormDefinition) -> bool:
    """
    Storage runs when enabled explicitly, and by default for forms
    without any actions so their submissions are not lost.
    """
    return form.storage_action() is not None or len(form.actions) == 0


def build_submission_document(
    form: FormDefinition,
    storage_action: Optional[SanityStorageAction],
    form_meta: FormMeta,
    form_data: Dict[str, Any],
    action_results: List[ActionResult],
    timestamp: str
) -> Dict[str, Any]:
    """formSubmission document as stored in the CMS"""
    structured_data = {
        field: str(form_data[field])
        for field in COMMON_FIELDS
        if form_data.get(field)
    }

    return {
        "_type": "formSubmission",
        "formId": form.id,
        "formName": (storage_action.form_name_override if storage_action else None) or form.name,
        "formType": "dynamic",
        "data": structured_data,
        "rawData": json.dumps(form_data),
        "metadata": {
            "userAgent": form_meta.user_agent,
            "referrer": form_meta.referrer,
        },
        "actionResults": [
            {
                "_key": uuid.uuid4().hex[:12],
                "action": result.action_type,
                "success": result.success,
                "error": result.error,
                "timestamp": timestamp,
            }
            for result in action_results
        ],
        "submittedAt": timestamp,
        "status": "new",
    }


async def store_submission(
    repository: FormRepository,
    form: FormDefinition,
    storage_action: Optional[SanityStorageAction],
    form_meta: FormMeta,
    form_data: Dict[str, Any],
    action_results: List[ActionResult],
    timestamp: str
) -> Tuple[Optional[str], ActionResult]:
    """Store the submission; failures come back as a failed ActionResult"""
    action_name = (storage_action.name if storage_action else None) or DEFAULT_STORAGE_ACTION_NAME
    document = build_submission_document(form, storage_action, form_meta, form_data, action_results, timestamp)

    try:
        submission_id = await repository.create_submission(document)
    except Exception as e:
        logger.error(f"Error storing submission for form {form.id}: {e}")
        return None, ActionResult(
            action_type=STORAGE_ACTION_TYPE,
            action_name=action_name,
            success=False,
            error=str(e) or "Storage failed",
        )

    logger.info(f"Stored submission {submission_id} for form {form.id}")
    return submission_id, ActionResult(action_type=STORAGE_ACTION_TYPE, action_name=action_name, success=True)
