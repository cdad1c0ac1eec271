from __future__ import annotations

import json
import re
import secrets
import string
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import UUID

from .config import get_settings


DISPLAY_ID_ALPHABET = string.ascii_uppercase + string.digits
DISPLAY_ID_LENGTH = 6
_DISPLAY_ID = re.compile(rf'^[A-Z][A-Z0-9]*-[{DISPLAY_ID_ALPHABET}]{{{DISPLAY_ID_LENGTH}}}$')

# applications/<uuid>/ holds one application; the index maps display ids to those directories.
STATE_FILE = 'application.json'
FORM_FILE = 'form.json'
PDF_FILE = 'application.pdf'
EVENTS_FILE = 'events.jsonl'
DISPLAY_INDEX_FILE = 'display_ids.json'


def applications_root() -> Path:
    root = get_settings().data_dir / 'applications'
    root.mkdir(parents=True, exist_ok=True)
    return root


def new_display_id(prefix: str) -> str:
    prefix = re.sub(r'[^A-Z0-9]', '', prefix.upper()) or 'APP'
    if not prefix[0].isalpha():
        prefix = f'A{prefix}'
    suffix = ''.join(secrets.choice(DISPLAY_ID_ALPHABET) for _ in range(DISPLAY_ID_LENGTH))
    return f'{prefix}-{suffix}'


def as_display_id(token: Any) -> str | None:
    """Canonical (upper-case) display id, or None if `token` is not shaped like one."""
    candidate = str(token or '').strip().upper()
    return candidate if _DISPLAY_ID.match(candidate) else None


def storage_key(application_id: UUID | str) -> str:
    """Directory name for an application. Only UUIDs address storage directly."""
    if isinstance(application_id, UUID):
        return str(application_id)
    token = str(application_id or '').strip()
    if not token:
        raise ValueError('application id is required')
    if as_display_id(token) is not None:
        raise ValueError(f'display id {token} must be resolved to its application id first')
    try:
        return str(UUID(token))
    except ValueError as exc:
        raise ValueError(f'not an application id: {application_id}') from exc


def application_dir(application_id: UUID | str, *, create: bool = True) -> Path:
    path = applications_root() / storage_key(application_id)
    if create:
        path.mkdir(parents=True, exist_ok=True)
    return path


def state_path(application_id: UUID | str) -> Path:
    return application_dir(application_id, create=False) / STATE_FILE


def form_path(application_id: UUID | str) -> Path:
    return application_dir(application_id, create=False) / FORM_FILE


def pdf_path(application_id: UUID | str) -> Path:
    return application_dir(application_id, create=False) / PDF_FILE


def events_path(application_id: UUID | str) -> Path:
    return application_dir(application_id, create=False) / EVENTS_FILE


def _atomic_write(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f'.{path.name}.tmp')
    tmp.write_bytes(content)
    tmp.replace(path)


def write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    _atomic_write(path, json.dumps(payload, ensure_ascii=False, indent=2).encode('utf-8'))


def write_bytes_atomic(path: Path, content: bytes) -> None:
    _atomic_write(path, content)


def read_json(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding='utf-8'))


def _display_index_path() -> Path:
    return applications_root() / DISPLAY_INDEX_FILE


def read_display_index() -> dict[str, str]:
    path = _display_index_path()
    if not path.exists():
        return {}
    return {str(key): str(value) for key, value in read_json(path).items()}


def register_display_id(display_id: str, application_id: UUID | str) -> None:
    """Record display id -> application id. Callers serialize writes."""
    canonical = as_display_id(display_id)
    if canonical is None:
        raise ValueError(f'malformed display id: {display_id}')
    index = read_display_index()
    key = storage_key(application_id)
    if index.get(canonical, key) != key:
        raise ValueError(f'display id {canonical} already belongs to {index[canonical]}')
    index[canonical] = key
    write_json_atomic(_display_index_path(), dict(sorted(index.items())))


def lookup_display_id(display_id: str) -> str | None:
    canonical = as_display_id(display_id)
    if canonical is None:
        return None
    return read_display_index().get(canonical)


def append_event(application_id: UUID | str, event: str, **extra: Any) -> None:
    row = {**extra, 'ts': datetime.now(timezone.utc).isoformat(), 'event': event}
    path = events_path(application_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open('a', encoding='utf-8') as f:
        f.write(json.dumps(row, ensure_ascii=False, default=str) + '\n')


def read_events(application_id: UUID | str) -> list[dict[str, Any]]:
    path = events_path(application_id)
    if not path.exists():
        return []
    with path.open(encoding='utf-8') as f:
        return [json.loads(line) for line in f if line.strip()]
