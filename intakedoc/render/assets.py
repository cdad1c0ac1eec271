from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from ..errors import MissingAssetError


logger = logging.getLogger(__name__)

_MIME_BY_SUFFIX = {
    '.svg': 'image/svg+xml',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
}
FLOOR_PLAN_SUFFIXES = ('.png', '.jpg', '.jpeg')
_UNIT_TYPE_TOKEN = re.compile(r'^[a-z0-9_-]+$')


@dataclass(frozen=True)
class PageLogos:
    primary: str = ''
    secondary: str = ''


def file_to_data_uri(path: Path) -> str:
    mime = _MIME_BY_SUFFIX.get(path.suffix.lower(), 'application/octet-stream')
    encoded = base64.b64encode(path.read_bytes()).decode('ascii')
    return f'data:{mime};base64,{encoded}'


def load_logo(assets_dir: Path, relative: str, *, required: bool = False) -> str:
    path = assets_dir / relative.lstrip('/')
    try:
        return file_to_data_uri(path)
    except OSError as exc:
        if required:
            raise MissingAssetError(f'Logo not found: {path}', cause=exc, stage='load_source') from exc
        logger.warning('Logo %s unavailable, omitting from page: %s', path, exc)
        return ''


def load_page_logos(
    assets_dir: Path,
    primary: str,
    secondary: str,
    *,
    required: bool = False,
) -> PageLogos:
    return PageLogos(
        primary=load_logo(assets_dir, primary, required=required),
        secondary=load_logo(assets_dir, secondary, required=required),
    )


def read_source_document(path: Path) -> bytes:
    try:
        payload = path.read_bytes()
    except OSError as exc:
        raise MissingAssetError(f'Source document not found: {path}', cause=exc, stage='load_source') from exc
    if not payload:
        raise MissingAssetError(f'Source document is empty: {path}', stage='load_source')
    return payload


def find_floor_plan(assets_dir: Path, bhk_type: str) -> Path | None:
    token = str(bhk_type or '').strip().lower()
    if not token or not _UNIT_TYPE_TOKEN.match(token):
        return None
    folder = assets_dir / 'images' / token
    if not folder.is_dir():
        logger.info('No floor-plan folder for unit type %s at %s', token, folder)
        return None
    candidates = sorted(
        child for child in folder.iterdir()
        if child.is_file() and child.suffix.lower() in FLOOR_PLAN_SUFFIXES
    )
    if not candidates:
        logger.info('Floor-plan folder %s holds no image', folder)
        return None
    return candidates[0]
