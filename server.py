"""
Application Intake Server - Flask front for the application PDF pipeline
========================================================================
Endpoints:
  - GET  /health
  - POST /api/submit-application
  - POST /api/generate-pdf
  - GET  /api/applications                        (admin)
  - GET  /api/applications/<id>                   (admin)
  - GET  /api/applications/<id>/form-data         (admin)
  - GET  /api/applications/<id>/pdf-with-html     (admin)
  - POST /api/test-render-html
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, Response, jsonify, request
from flask_cors import CORS

from intakedoc.assembler import DocumentAssembler
from intakedoc.auth import admin_required
from intakedoc.config import get_settings
from intakedoc.errors import AssemblyError, InvalidSubmissionError
from intakedoc.render.assets import load_page_logos
from intakedoc.render.overlay import build_overlay
from intakedoc.render.templates import render_apartment_declaration, render_applicant
from intakedoc.runner import generate_application, parse_submission, regenerate_pdf
from intakedoc.state import (
    list_applications,
    load_application_form,
    read_application_pdf,
    resolve_application,
)
from intakedoc.types import ApplicantRecord, ApplicationError, ApplicationForm, ApplicationState, MAX_APPLICANTS


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger('intake_server')

app = Flask(__name__)
CORS(app)
app.config['MAX_CONTENT_LENGTH'] = 32 * 1024 * 1024
# Callable returning a DocumentAssembler; None means the Playwright-backed default.
app.config.setdefault('ASSEMBLER_FACTORY', None)


def _assembler() -> DocumentAssembler | None:
    factory = app.config.get('ASSEMBLER_FACTORY')
    return factory() if factory else None


def _status_for(kind: str, retryable: bool) -> int:
    if kind == InvalidSubmissionError.kind:
        return 400
    if kind == 'missing_asset':
        return 404
    if retryable:
        return 503
    return 500


def _error_response(error: AssemblyError):
    return jsonify(error.to_payload()), _status_for(error.kind, error.retryable)


def _failed_state_response(state: ApplicationState):
    error = state.error or ApplicationError(kind='assembly_error', message=state.message)
    payload: dict[str, Any] = {
        'error': 'Failed to generate PDF',
        'id': str(state.id),
        'applicationId': state.display_id,
        **error.model_dump(),
    }
    return jsonify(payload), _status_for(error.kind, error.retryable)


def _pdf_response(pdf_bytes: bytes, name: str) -> Response:
    return Response(
        pdf_bytes,
        status=200,
        mimetype='application/pdf',
        headers={'Content-Disposition': f'inline; filename="application-{name}.pdf"'},
    )


def _submit(data: Any) -> tuple[ApplicationState, bytes | None]:
    submission = parse_submission(data)
    state, document = generate_application(submission, assembler=_assembler())
    return state, (document.pdf_bytes if document is not None else None)


@app.route('/health', methods=['GET'])
def health():
    settings = get_settings()
    source_ready = settings.source_pdf_path.is_file()
    payload = {
        'status': 'healthy' if source_ready else 'degraded',
        'service': settings.app_name,
        'source_pdf': str(settings.source_pdf_path),
        'source_pdf_present': source_ready,
        'assets_dir': str(settings.assets_dir),
        'admin_gate_configured': bool(settings.admin_token),
    }
    return jsonify(payload), 200


@app.route('/api/submit-application', methods=['POST'])
def submit_application():
    data = request.get_json(silent=True)
    try:
        state, _ = _submit(data)
    except AssemblyError as exc:
        logger.warning('Rejected submission: %s', exc)
        return _error_response(exc)

    if state.error is not None:
        return _failed_state_response(state)
    return jsonify(
        {
            'success': True,
            'id': str(state.id),
            'applicationId': state.display_id,
            'status': state.status.value,
            'message': 'Application submitted successfully',
        }
    ), 200


@app.route('/api/generate-pdf', methods=['POST'])
def generate_pdf():
    data = request.get_json(silent=True)
    try:
        state, pdf_bytes = _submit(data)
    except AssemblyError as exc:
        logger.warning('Rejected submission: %s', exc)
        return _error_response(exc)

    if pdf_bytes is None:
        return _failed_state_response(state)
    return _pdf_response(pdf_bytes, state.display_id)


@app.route('/api/applications', methods=['GET'])
@admin_required
def applications_index():
    rows = [summary.model_dump(mode='json', by_alias=True) for summary in list_applications()]
    return jsonify(rows), 200


@app.route('/api/applications/<application_id>', methods=['GET'])
@admin_required
def application_pdf(application_id: str):
    state = resolve_application(application_id)
    if state is None:
        return jsonify({'error': 'Application not found'}), 404
    pdf_bytes = read_application_pdf(state.id)
    if pdf_bytes is None:
        return jsonify({'error': 'PDF not available', 'status': state.status.value}), 404
    return _pdf_response(pdf_bytes, state.display_id)


@app.route('/api/applications/<application_id>/form-data', methods=['GET'])
@admin_required
def application_form_data(application_id: str):
    state = resolve_application(application_id)
    if state is None:
        return jsonify({'error': 'Application not found'}), 404
    form = load_application_form(state.id)
    if form is None:
        return jsonify({'error': 'Form data not available'}), 404
    return jsonify(
        {
            'id': str(state.id),
            'applicationId': state.display_id,
            'formData': form.model_dump(mode='json', by_alias=True),
            'applicantCount': state.applicant_count,
            'bhkType': state.bhk_type,
            'status': state.status.value,
            'createdAt': state.created_at.isoformat(),
        }
    ), 200


@app.route('/api/applications/<application_id>/pdf-with-html', methods=['GET'])
@admin_required
def application_pdf_with_html(application_id: str):
    try:
        result = regenerate_pdf(application_id, assembler=_assembler())
    except AssemblyError as exc:
        logger.error('Regenerating %s failed: %s', application_id, exc)
        return _error_response(exc)
    if result is None:
        return jsonify({'error': 'Application not found'}), 404
    state, document = result
    return _pdf_response(document.pdf_bytes, state.display_id)


@app.route('/api/test-render-html', methods=['POST'])
def test_render_html():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON request'}), 400

    settings = get_settings()
    kind = str(data.get('type') or 'applicant').strip().lower()
    try:
        logos = load_page_logos(
            settings.assets_dir,
            settings.primary_logo,
            settings.secondary_logo,
            required=settings.require_logos,
        )
        form = ApplicationForm.model_validate(data.get('formData') or {})
        if kind == 'apartment':
            html = render_apartment_declaration(form, logos=logos)
        elif kind == 'overlay':
            html = build_overlay(form)
            if html is None:
                return Response(status=204)
        elif kind == 'applicant':
            slot = int(data.get('applicantNumber') or 1)
            if slot < 1 or slot > MAX_APPLICANTS:
                raise ValueError(f'applicantNumber must be between 1 and {MAX_APPLICANTS}')
            applicant = data.get('applicant')
            record = ApplicantRecord.model_validate(applicant) if applicant is not None else form.applicant(slot)
            html = render_applicant(record, slot, form, logos=logos)
        else:
            return jsonify({'error': f'Unknown render type: {kind}'}), 400
    except AssemblyError as exc:
        return _error_response(exc)
    except ValueError as exc:
        # pydantic's ValidationError is a ValueError
        return jsonify({'error': 'Invalid render request', 'message': str(exc)}), 400

    return Response(html, status=200, mimetype='text/html')


def run_server(host: str | None = None, port: int | None = None) -> None:
    settings = get_settings()
    host = host or settings.server_host
    port = port or settings.server_port
    logger.info('Starting %s on http://%s:%s', settings.app_name, host, port)
    app.run(host=host, port=port, debug=False, threaded=True)


if __name__ == '__main__':
    run_server()
