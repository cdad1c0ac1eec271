from __future__ import annotations

import asyncio
import logging
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from .assembler import AssembledDocument, AssemblyStage, DocumentAssembler
from .config import get_settings
from .errors import AssemblyError, InvalidSubmissionError
from .pricing import apply_unit_pricing
from .state import (
    create_application,
    fail_application,
    load_application_form,
    mutate_application_state,
    resolve_application,
    set_status,
    write_application_pdf,
)
from .storage import append_event
from .types import ApplicationState, ApplicationStatus, ApplicationSubmission


logger = logging.getLogger(__name__)


def parse_submission(payload: Any) -> ApplicationSubmission:
    if not isinstance(payload, dict):
        raise InvalidSubmissionError('Submission body must be a JSON object')
    try:
        return ApplicationSubmission.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        location = '.'.join(str(part) for part in first.get('loc', ()))
        reason = first.get('msg', 'invalid value')
        raise InvalidSubmissionError(
            f'Invalid submission at {location or "body"}: {reason}',
            cause=exc,
            stage='validate',
        ) from exc


def prepare_submission(submission: ApplicationSubmission) -> ApplicationSubmission:
    priced = apply_unit_pricing(submission.form_data)
    return submission.model_copy(update={'form_data': priced, 'bhk_type': priced.bhk_type})


async def generate_document(
    submission: ApplicationSubmission,
    *,
    assembler: DocumentAssembler | None = None,
) -> AssembledDocument:
    """Assemble the PDF for one submission without touching the store."""
    assembler = assembler or DocumentAssembler()
    return await assembler.assemble_from_path(submission.form_data, submission.applicant_count)


async def generate_application_async(
    submission: ApplicationSubmission,
    *,
    assembler: DocumentAssembler | None = None,
) -> tuple[ApplicationState, AssembledDocument | None]:
    settings = get_settings()
    submission = prepare_submission(submission)
    state = create_application(
        submission.form_data,
        applicant_count=submission.applicant_count,
        metadata={'included_slots': submission.form_data.included_slots()},
    )
    application_id = state.id
    set_status(application_id, ApplicationStatus.rendering, 'Assembling application PDF...')

    stages: list[str] = []

    def on_stage(stage: AssemblyStage) -> None:
        stages.append(stage.value)

    if assembler is None:
        assembler = DocumentAssembler(on_stage=on_stage)
    elif assembler.on_stage is None:
        assembler.on_stage = on_stage

    try:
        document = await assembler.assemble_from_path(submission.form_data, submission.applicant_count)
    except AssemblyError as exc:
        append_event(application_id, 'assembly_stages', stages=stages)
        state = fail_application(application_id, message='PDF generation failed.', error=exc)
        logger.error('Application %s failed: %s', state.display_id, exc)
        return state, None

    if len(document.pdf_bytes) > settings.max_pdf_bytes:
        logger.warning(
            'Application %s PDF is %.2fMB, above the %.2fMB storage guideline',
            state.display_id,
            len(document.pdf_bytes) / (1024 * 1024),
            settings.max_pdf_bytes / (1024 * 1024),
        )
        append_event(application_id, 'pdf_size_warning', pdf_bytes=len(document.pdf_bytes))

    stored_path = write_application_pdf(application_id, document.pdf_bytes)

    def apply_completed(state_obj: ApplicationState) -> None:
        state_obj.status = ApplicationStatus.completed
        state_obj.message = 'Application PDF generated.'
        state_obj.error = None
        state_obj.pdf_ready = True
        state_obj.artifacts.pdf_path = stored_path
        state_obj.metadata.update(document.summary())

    state = mutate_application_state(application_id, apply_completed)
    append_event(
        application_id,
        'completed',
        pdf_path=stored_path,
        page_count=document.page_count,
        stages=stages,
    )
    logger.info('Application %s stored (%d pages)', state.display_id, document.page_count)
    return state, document


def generate_application(
    submission: ApplicationSubmission,
    *,
    assembler: DocumentAssembler | None = None,
) -> tuple[ApplicationState, AssembledDocument | None]:
    return asyncio.run(generate_application_async(submission, assembler=assembler))


def regenerate_pdf(
    application_id: UUID | str,
    *,
    assembler: DocumentAssembler | None = None,
) -> tuple[ApplicationState, AssembledDocument] | None:
    """Rebuild a stored application's PDF from its saved form; the stored copy is left as is."""
    state = resolve_application(application_id)
    if state is None:
        return None
    form = load_application_form(state.id)
    if form is None:
        return None
    submission = prepare_submission(
        ApplicationSubmission(form_data=form, applicant_count=state.applicant_count, bhk_type=form.bhk_type)
    )
    document = asyncio.run(generate_document(submission, assembler=assembler))
    append_event(state.id, 'regenerated', page_count=document.page_count)
    return state, document
