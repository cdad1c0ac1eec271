from __future__ import annotations

import base64
import io

import pytest
from pypdf import PdfReader

from helpers import PNG_1PX_B64, FakeSessionFactory, pdf_with_lines, source_marker
from intakedoc.assembler import DocumentAssembler
from intakedoc.config import get_settings


@pytest.fixture
def make_source_pdf():
    def build(page_count: int = 26) -> bytes:
        return pdf_with_lines([source_marker(n) for n in range(1, page_count + 1)])

    return build


@pytest.fixture
def page_texts():
    def extract(pdf_bytes: bytes) -> list[str]:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        return [page.extract_text() or '' for page in reader.pages]

    return extract


@pytest.fixture
def settings(tmp_path, monkeypatch, make_source_pdf):
    assets_dir = tmp_path / 'public'
    (assets_dir / 'images').mkdir(parents=True)
    source_path = assets_dir / 'form.pdf'
    source_path.write_bytes(make_source_pdf(26))

    monkeypatch.setenv('INTAKE_DATA_DIR', str(tmp_path / 'data'))
    monkeypatch.setenv('SOURCE_PDF_PATH', str(source_path))
    monkeypatch.setenv('ASSETS_DIR', str(assets_dir))
    monkeypatch.setenv('ADMIN_TOKEN', 'test-admin-token')
    monkeypatch.delenv('OVERLAY_SKIP_PAGES', raising=False)
    monkeypatch.delenv('REQUIRE_LOGOS', raising=False)

    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def session_factory():
    return FakeSessionFactory()


@pytest.fixture
def assembler(settings, session_factory):
    return DocumentAssembler(settings=settings, session_factory=session_factory)


@pytest.fixture
def floor_plan_image(settings):
    folder = settings.assets_dir / 'images' / '3bhk'
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / 'plan.png'
    path.write_bytes(base64.b64decode(PNG_1PX_B64))
    return path
