from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import UUID

from .config import get_settings
from .errors import AssemblyError
from .storage import (
    append_event,
    application_dir,
    applications_root,
    as_display_id,
    form_path,
    lookup_display_id,
    new_display_id,
    pdf_path,
    read_json,
    register_display_id,
    state_path,
    write_bytes_atomic,
    write_json_atomic,
)
from .types import (
    ApplicationError,
    ApplicationForm,
    ApplicationState,
    ApplicationStatus,
    ApplicationSummary,
)


_STATE_LOCK = threading.RLock()


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _new_display_id() -> str:
    return new_display_id(get_settings().display_id_prefix)


def save_application_state(state: ApplicationState) -> ApplicationState:
    with _STATE_LOCK:
        state.updated_at = now_utc()
        application_dir(state.id)
        write_json_atomic(state_path(state.id), state.model_dump(mode='json'))
    return state


def load_application_state(application_id: UUID | str) -> ApplicationState | None:
    try:
        path = state_path(application_id)
    except ValueError:
        return None
    if not path.exists():
        return None
    with _STATE_LOCK:
        payload = read_json(path)
    return ApplicationState.model_validate(payload)


def iter_application_states() -> list[ApplicationState]:
    states: list[ApplicationState] = []
    with _STATE_LOCK:
        for child in applications_root().iterdir():
            path = child / 'application.json'
            if not child.is_dir() or not path.exists():
                continue
            states.append(ApplicationState.model_validate(read_json(path)))
    return states


def resolve_application(token: UUID | str) -> ApplicationState | None:
    """Look an application up by its UUID or by its display id (e.g. SUNMON-7K2Q9X)."""
    raw = str(token or '').strip()
    if not raw:
        return None
    display_id = as_display_id(raw)
    if display_id is None:
        return load_application_state(raw)

    indexed = lookup_display_id(display_id)
    if indexed is not None:
        state = load_application_state(indexed)
        if state is not None and state.display_id.upper() == display_id:
            return state
    # Applications stored before the index existed.
    for candidate in iter_application_states():
        if candidate.display_id.upper() == display_id:
            return candidate
    return None


def create_application(
    form: ApplicationForm,
    *,
    applicant_count: int,
    metadata: dict[str, Any] | None = None,
) -> ApplicationState:
    with _STATE_LOCK:
        taken = {state.display_id for state in iter_application_states()}
        display_id = _new_display_id()
        while display_id in taken:
            display_id = _new_display_id()

        state = ApplicationState(
            display_id=display_id,
            display_name=form.display_name(),
            applicant_count=applicant_count,
            bhk_type=form.bhk_type,
            metadata=dict(metadata or {}),
        )
        application_dir(state.id)
        write_json_atomic(form_path(state.id), form.model_dump(mode='json', by_alias=True))
        state.artifacts.form_path = str(form_path(state.id))
        save_application_state(state)
        register_display_id(display_id, state.id)
    append_event(state.id, 'created', display_id=display_id, applicant_count=applicant_count)
    return state


def update_application_state(application_id: UUID | str, **fields: Any) -> ApplicationState:
    with _STATE_LOCK:
        existing = load_application_state(application_id)
        if existing is None:
            raise FileNotFoundError(f'Application not found: {application_id}')
        for key, value in fields.items():
            setattr(existing, key, value)
        existing.updated_at = now_utc()
        write_json_atomic(state_path(application_id), existing.model_dump(mode='json'))
    return existing


def mutate_application_state(
    application_id: UUID | str,
    fn: Callable[[ApplicationState], None],
) -> ApplicationState:
    with _STATE_LOCK:
        existing = load_application_state(application_id)
        if existing is None:
            raise FileNotFoundError(f'Application not found: {application_id}')
        fn(existing)
        existing.updated_at = now_utc()
        write_json_atomic(state_path(application_id), existing.model_dump(mode='json'))
    return existing


def set_status(
    application_id: UUID | str,
    status: ApplicationStatus,
    message: str,
    *,
    event: str | None = None,
) -> ApplicationState:
    state = update_application_state(application_id, status=status, message=message)
    append_event(application_id, event or 'status', status=status.value, message=message)
    return state


def fail_application(application_id: UUID | str, *, message: str, error: AssemblyError) -> ApplicationState:
    payload = error.to_payload()
    record = ApplicationError(
        kind=error.kind,
        message=error.message,
        retryable=error.retryable,
        stage=error.stage,
        page=error.page,
        details=payload.get('details'),
    )

    def apply(state: ApplicationState) -> None:
        state.status = ApplicationStatus.failed
        state.message = message
        state.error = record
        state.pdf_ready = False
        state.artifacts.pdf_path = None

    state = mutate_application_state(application_id, apply)
    append_event(application_id, 'failed', summary=message, **record.model_dump(exclude_none=True))
    return state


def write_application_pdf(application_id: UUID | str, content: bytes) -> str:
    path = pdf_path(application_id)
    write_bytes_atomic(path, content)
    return str(path)


def read_application_pdf(application_id: UUID | str) -> bytes | None:
    try:
        path = pdf_path(application_id)
    except ValueError:
        return None
    if not path.exists():
        return None
    return path.read_bytes()


def load_application_form(application_id: UUID | str) -> ApplicationForm | None:
    try:
        path = form_path(application_id)
    except ValueError:
        return None
    if not path.exists():
        return None
    return ApplicationForm.model_validate(read_json(path))


def summarize(state: ApplicationState) -> ApplicationSummary:
    return ApplicationSummary(
        id=str(state.id),
        application_id=state.display_id,
        created_at=state.created_at,
        updated_at=state.updated_at,
        applicant_count=state.applicant_count,
        bhk_type=state.bhk_type,
        first_applicant_name=state.display_name,
        status=state.status,
    )


def list_applications() -> list[ApplicationSummary]:
    states = sorted(iter_application_states(), key=lambda item: item.created_at, reverse=True)
    return [summarize(state) for state in states]
