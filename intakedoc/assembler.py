from __future__ import annotations

import io
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Protocol

from pypdf import PdfReader, PdfWriter

from .adapters.browser import BrowserConfig, launch_browser_session
from .config import Settings, get_settings
from .errors import AssemblyError, MergeError, MissingAssetError
from .layout import PageLayout
from .render.assets import PageLogos, find_floor_plan, load_page_logos, read_source_document
from .render.overlay import build_overlay
from .render.templates import render_apartment_declaration, render_applicant
from .stamping import stamp_floor_plan
from .types import ApplicationForm


logger = logging.getLogger(__name__)

APARTMENT_LABEL = 'apartment-declaration'
OVERLAY_LABEL = 'signature-overlay'


class AssemblyStage(str, Enum):
    init = 'init'
    load_source = 'load_source'
    render_dynamic_pages = 'render_dynamic_pages'
    render_overlay = 'render_overlay'
    release_browser = 'release_browser'
    merge_leading_static = 'merge_leading_static'
    append_dynamic = 'append_dynamic'
    merge_trailing_static = 'merge_trailing_static'
    serialize = 'serialize'
    done = 'done'
    failed = 'failed'


class RenderSession(Protocol):
    async def render_html_to_pdf(self, html: str, *, label: str) -> bytes: ...

    async def close(self) -> None: ...


SessionFactory = Callable[[], Awaitable[RenderSession]]
StageCallback = Callable[[AssemblyStage], None]


@dataclass
class RenderedFragment:
    label: str
    pdf_bytes: bytes


@dataclass
class PlannedPage:
    output_number: int
    origin: str
    source_number: int | None = None
    label: str | None = None
    overlay: bool = False


@dataclass
class AssembledDocument:
    pdf_bytes: bytes
    source_page_count: int
    page_plan: list[PlannedPage] = field(default_factory=list)
    fragment_labels: list[str] = field(default_factory=list)
    overlay_pages: list[int] = field(default_factory=list)
    floor_plan_stamped: bool = False
    stage_timings: dict[str, float] = field(default_factory=dict)

    @property
    def page_count(self) -> int:
        return len(self.page_plan)

    def summary(self) -> dict[str, Any]:
        return {
            'source_page_count': self.source_page_count,
            'page_count': self.page_count,
            'dynamic_pages': list(self.fragment_labels),
            'overlay_pages': list(self.overlay_pages),
            'floor_plan_stamped': self.floor_plan_stamped,
            'stage_timings': dict(self.stage_timings),
            'pdf_bytes': len(self.pdf_bytes),
        }


class _StageTracker:
    def __init__(self, callback: StageCallback | None):
        self.callback = callback
        self.current = AssemblyStage.init
        self.timings: dict[str, float] = {}
        self._started = time.monotonic()
        self._notify()

    def enter(self, stage: AssemblyStage) -> None:
        now = time.monotonic()
        self.timings[self.current.value] = round(now - self._started, 4)
        self._started = now
        self.current = stage
        logger.debug('Assembly stage -> %s', stage.value)
        self._notify()

    def _notify(self) -> None:
        if self.callback is not None:
            self.callback(self.current)


def default_session_factory(settings: Settings | None = None) -> SessionFactory:
    settings = settings or get_settings()
    cfg = BrowserConfig(
        timeout_ms=settings.render_timeout_ms,
        executable_path=settings.browser_executable_path,
        launch_args=settings.browser_launch_args(),
        viewport_width=settings.browser_viewport_width,
        viewport_height=settings.browser_viewport_height,
    )

    async def factory() -> RenderSession:
        return await launch_browser_session(cfg)

    return factory


class DocumentAssembler:
    """Builds the final application PDF from the source document and rendered pages.

    Stages run strictly in order. The render session is acquired only after the
    source document and logos are available and is released exactly once, before
    any merging starts, whether rendering succeeded or not.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        session_factory: SessionFactory | None = None,
        layout: PageLayout | None = None,
        on_stage: StageCallback | None = None,
    ):
        self.settings = settings or get_settings()
        self.session_factory = session_factory or default_session_factory(self.settings)
        self.layout = layout or PageLayout.with_skip_pages(self.settings.skip_pages())
        self.on_stage = on_stage

    async def assemble_from_path(
        self,
        form: ApplicationForm,
        applicant_count: int | None = None,
        source_path: Path | None = None,
    ) -> AssembledDocument:
        source_bytes = read_source_document(Path(source_path or self.settings.source_pdf_path))
        return await self.assemble(source_bytes, form, applicant_count)

    async def assemble(
        self,
        source_bytes: bytes,
        form: ApplicationForm,
        applicant_count: int | None = None,
    ) -> AssembledDocument:
        tracker = _StageTracker(self.on_stage)
        started = time.monotonic()
        try:
            tracker.enter(AssemblyStage.load_source)
            source = self._load_source(source_bytes)
            logos = load_page_logos(
                Path(self.settings.assets_dir),
                self.settings.primary_logo,
                self.settings.secondary_logo,
                required=self.settings.require_logos,
            )
            self._check_applicant_count(form, applicant_count)

            fragments, overlay_pdf = await self._render(form, logos, tracker)
            document = self._merge(source, fragments, overlay_pdf, form, tracker)
        except AssemblyError as exc:
            exc.with_context(stage=tracker.current.value)
            logger.error('Assembly failed at %s: %s', tracker.current.value, exc)
            tracker.enter(AssemblyStage.failed)
            raise
        except Exception as exc:
            logger.exception('Unexpected assembly failure at %s', tracker.current.value)
            stage = tracker.current.value
            tracker.enter(AssemblyStage.failed)
            raise AssemblyError(f'Unexpected failure: {exc}', cause=exc, stage=stage) from exc

        tracker.enter(AssemblyStage.done)
        document.stage_timings = dict(tracker.timings)
        logger.info(
            'Assembled %d pages (%d dynamic, %d stamped) in %.2fs',
            document.page_count,
            len(document.fragment_labels),
            len(document.overlay_pages),
            time.monotonic() - started,
        )
        return document

    def _load_source(self, source_bytes: bytes) -> PdfReader:
        if not source_bytes:
            raise MissingAssetError('Source document is empty')
        try:
            reader = PdfReader(io.BytesIO(source_bytes))
            page_count = len(reader.pages)
        except Exception as exc:
            raise MissingAssetError('Source document is not a readable PDF', cause=exc) from exc
        if page_count == 0:
            raise MissingAssetError('Source document has no pages')
        logger.info('Loaded source document with %d pages', page_count)
        return reader

    def _check_applicant_count(self, form: ApplicationForm, applicant_count: int | None) -> None:
        if applicant_count is None:
            return
        included = form.included_slots()
        if applicant_count != len(included):
            logger.warning(
                'Submitted applicant count %s differs from filled slots %s; using filled slots',
                applicant_count,
                included,
            )

    async def _render(
        self,
        form: ApplicationForm,
        logos: PageLogos,
        tracker: _StageTracker,
    ) -> tuple[list[RenderedFragment], bytes | None]:
        tracker.enter(AssemblyStage.render_dynamic_pages)
        session: RenderSession | None = None
        try:
            session = await self.session_factory()

            fragments: list[RenderedFragment] = []
            for slot in form.included_slots():
                label = f'applicant-{slot}'
                html = render_applicant(form.applicant(slot), slot, form, logos=logos)
                fragments.append(RenderedFragment(label, await session.render_html_to_pdf(html, label=label)))

            html = render_apartment_declaration(form, logos=logos)
            fragments.append(
                RenderedFragment(APARTMENT_LABEL, await session.render_html_to_pdf(html, label=APARTMENT_LABEL))
            )

            tracker.enter(AssemblyStage.render_overlay)
            overlay_pdf: bytes | None = None
            overlay_html = build_overlay(form)
            if overlay_html is None:
                logger.info('No applicant signed; static pages stay unmodified')
            else:
                overlay_pdf = await session.render_html_to_pdf(overlay_html, label=OVERLAY_LABEL)

            tracker.enter(AssemblyStage.release_browser)
        finally:
            if session is not None:
                await self._release(session)
        return fragments, overlay_pdf

    async def _release(self, session: RenderSession) -> None:
        try:
            await session.close()
        except Exception as exc:
            logger.warning('Releasing render session failed: %s', exc)

    def _merge(
        self,
        source: PdfReader,
        fragments: list[RenderedFragment],
        overlay_pdf: bytes | None,
        form: ApplicationForm,
        tracker: _StageTracker,
    ) -> AssembledDocument:
        layout = self.layout
        page_count = len(source.pages)
        plan: list[PlannedPage] = []
        overlay_pages: list[int] = []
        page_label: str | None = None

        try:
            tracker.enter(AssemblyStage.merge_leading_static)
            writer = PdfWriter()
            overlay_page = PdfReader(io.BytesIO(overlay_pdf)).pages[0] if overlay_pdf else None

            def copy_static(number: int) -> None:
                page = writer.add_page(source.pages[number - 1])
                stamped = overlay_page is not None and layout.receives_overlay(number)
                if stamped:
                    page.merge_page(overlay_page)
                    overlay_pages.append(number)
                plan.append(PlannedPage(len(writer.pages), 'source', source_number=number, overlay=stamped))

            for number in layout.leading_numbers(page_count):
                page_label = f'source-{number}'
                copy_static(number)

            tracker.enter(AssemblyStage.append_dynamic)
            for fragment in fragments:
                page_label = fragment.label
                fragment_pages = PdfReader(io.BytesIO(fragment.pdf_bytes)).pages
                if len(fragment_pages) == 0:
                    raise MergeError(
                        f'Rendered page {fragment.label} is empty',
                        stage=tracker.current.value,
                        page=fragment.label,
                    )
                if len(fragment_pages) != 1:
                    logger.warning('Fragment %s printed %d pages', fragment.label, len(fragment_pages))
                for fragment_page in fragment_pages:
                    writer.add_page(fragment_page)
                    plan.append(PlannedPage(len(writer.pages), 'fragment', label=fragment.label))

            tracker.enter(AssemblyStage.merge_trailing_static)
            for number in layout.trailing_numbers(page_count):
                page_label = f'source-{number}'
                copy_static(number)

            floor_plan_stamped = False
            if self.settings.stamp_floor_plan and form.bhk_type:
                target = layout.floor_plan_page
                page_label = target.name
                dynamic_count = sum(1 for p in plan if p.origin == 'fragment')
                output_number = layout.output_number_of(target.number, page_count, dynamic_count)
                image_path = find_floor_plan(Path(self.settings.assets_dir), form.bhk_type)
                if output_number is not None:
                    floor_plan_stamped = stamp_floor_plan(writer, output_number - 1, image_path, target)
                else:
                    logger.info('Source document has no page %d; floor plan not stamped', target.number)

            tracker.enter(AssemblyStage.serialize)
            page_label = None
            out = io.BytesIO()
            writer.write(out)
            pdf_bytes = out.getvalue()
        except AssemblyError:
            raise
        except Exception as exc:
            raise MergeError(
                f'Could not build the final document: {exc}',
                cause=exc,
                stage=tracker.current.value,
                page=page_label,
            ) from exc

        return AssembledDocument(
            pdf_bytes=pdf_bytes,
            source_page_count=page_count,
            page_plan=plan,
            fragment_labels=[fragment.label for fragment in fragments],
            overlay_pages=overlay_pages,
            floor_plan_stamped=floor_plan_stamped,
        )
