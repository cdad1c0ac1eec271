from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from intakedoc.config import get_settings
from intakedoc.errors import AssemblyError
from intakedoc.render.assets import load_page_logos
from intakedoc.render.overlay import build_overlay
from intakedoc.render.templates import render_apartment_declaration, render_applicant
from intakedoc.runner import generate_application, generate_document, parse_submission, prepare_submission
from intakedoc.state import list_applications, read_application_pdf, resolve_application
from intakedoc.types import ApplicationForm, ApplicationState, ApplicationStatus


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _status_snapshot(state: ApplicationState) -> dict:
    return {
        'id': str(state.id),
        'application_id': state.display_id,
        'display_name': state.display_name,
        'status': state.status.value,
        'message': state.message,
        'error': state.error.model_dump(mode='json') if state.error else None,
        'applicant_count': state.applicant_count,
        'bhk_type': state.bhk_type,
        'pdf_ready': state.pdf_ready,
        'created_at': state.created_at.isoformat(),
        'updated_at': state.updated_at.isoformat(),
        'artifacts': state.artifacts.model_dump(mode='json'),
        'metadata': state.metadata,
    }


def _load_submission_payload(path_value: str, args: argparse.Namespace) -> dict:
    path = Path(path_value).expanduser().resolve()
    payload = json.loads(path.read_text(encoding='utf-8'))
    # A bare form is accepted as well as a full submission body.
    if isinstance(payload, dict) and 'formData' not in payload and 'form_data' not in payload:
        payload = {'formData': payload}
    if getattr(args, 'applicant_count', None) is not None:
        payload['applicantCount'] = args.applicant_count
    if getattr(args, 'bhk_type', None):
        payload['bhkType'] = args.bhk_type
    return payload


def _read_form_file(path: Path) -> tuple[ApplicationForm, str | None]:
    try:
        payload = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, json.JSONDecodeError) as exc:
        return ApplicationForm(), f'Could not read form JSON {path}: {exc}'
    form_payload = payload.get('formData', payload) if isinstance(payload, dict) else payload
    try:
        return ApplicationForm.model_validate(form_payload), None
    except ValueError as exc:
        return ApplicationForm(), f'Invalid form data: {exc}'


def cmd_generate(args: argparse.Namespace) -> int:
    try:
        submission = prepare_submission(parse_submission(_load_submission_payload(args.form, args)))
        document = asyncio.run(generate_document(submission))
    except (OSError, json.JSONDecodeError) as exc:
        _print_json({'status': 'error', 'message': f'Could not read form JSON: {exc}'})
        return 2
    except AssemblyError as exc:
        _print_json({'status': 'error', **exc.to_payload()})
        return 1

    out_path = Path(args.out).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(document.pdf_bytes)
    _print_json({'status': 'ok', 'output': str(out_path), **document.summary()})
    return 0


def cmd_submit(args: argparse.Namespace) -> int:
    try:
        submission = parse_submission(_load_submission_payload(args.form, args))
        state, document = generate_application(submission)
    except (OSError, json.JSONDecodeError) as exc:
        _print_json({'status': 'error', 'message': f'Could not read form JSON: {exc}'})
        return 2
    except AssemblyError as exc:
        _print_json({'status': 'error', **exc.to_payload()})
        return 2

    _print_json(_status_snapshot(state))
    return 0 if document is not None else 1


def cmd_status(args: argparse.Namespace) -> int:
    state = resolve_application(args.id)
    if state is None:
        _print_json({'status': 'error', 'message': f'Application not found: {args.id}'})
        return 2

    _print_json(_status_snapshot(state))
    return 0


def cmd_result(args: argparse.Namespace) -> int:
    state = resolve_application(args.id)
    if state is None:
        _print_json({'status': 'error', 'message': f'Application not found: {args.id}'})
        return 2

    if state.status != ApplicationStatus.completed:
        _print_json(
            {
                'status': 'not_ready',
                'id': str(state.id),
                'application_id': state.display_id,
                'current_status': state.status.value,
                'message': state.message,
                'error': state.error.model_dump(mode='json') if state.error else None,
            }
        )
        return 0

    pdf_bytes = read_application_pdf(state.id)
    if pdf_bytes is None:
        _print_json({'status': 'error', 'message': f'Stored PDF missing for {state.display_id}'})
        return 2

    if args.out:
        out_path = Path(args.out).expanduser().resolve()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(pdf_bytes)
    _print_json(
        {
            'id': str(state.id),
            'application_id': state.display_id,
            'pdf_path': state.artifacts.pdf_path,
            'output': str(Path(args.out).expanduser().resolve()) if args.out else None,
            'pdf_bytes': len(pdf_bytes),
        }
    )
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    rows = [summary.model_dump(mode='json', by_alias=True) for summary in list_applications()]
    if args.limit is not None:
        rows = rows[: max(0, int(args.limit))]
    _print_json(rows)
    return 0


def cmd_render_html(args: argparse.Namespace) -> int:
    settings = get_settings()
    form, problem = _read_form_file(Path(args.form).expanduser().resolve())
    if problem:
        _print_json({'status': 'error', 'message': problem})
        return 2

    try:
        logos = load_page_logos(
            settings.assets_dir,
            settings.primary_logo,
            settings.secondary_logo,
            required=settings.require_logos,
        )
    except AssemblyError as exc:
        _print_json({'status': 'error', **exc.to_payload()})
        return 2

    if args.type == 'apartment':
        html = render_apartment_declaration(form, logos=logos)
    elif args.type == 'overlay':
        html = build_overlay(form) or ''
    else:
        html = render_applicant(form.applicant(args.slot), args.slot, form, logos=logos)

    if not html:
        _print_json({'status': 'empty', 'type': args.type, 'slot': args.slot})
        return 0
    if args.out:
        out_path = Path(args.out).expanduser().resolve()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(html, encoding='utf-8')
        _print_json({'status': 'ok', 'output': str(out_path)})
        return 0
    print(html)
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from server import run_server

    run_server(host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Property application intake CLI')
    parser.add_argument('--log-level', default='INFO', help='Logging level (default: INFO)')
    sub = parser.add_subparsers(dest='command', required=True)

    generate = sub.add_parser('generate', help='Assemble an application PDF without storing it')
    generate.add_argument('--form', required=True, help='Path to form or submission JSON')
    generate.add_argument('--out', required=True, help='Where to write the PDF')
    generate.add_argument('--applicant-count', type=int, required=False)
    generate.add_argument('--bhk-type', required=False, help='Unit type, e.g. 3bhk')
    generate.set_defaults(func=cmd_generate)

    submit = sub.add_parser('submit', help='Generate and store an application')
    submit.add_argument('--form', required=True, help='Path to form or submission JSON')
    submit.add_argument('--applicant-count', type=int, required=False)
    submit.add_argument('--bhk-type', required=False, help='Unit type, e.g. 3bhk')
    submit.set_defaults(func=cmd_submit)

    status = sub.add_parser('status', help='Get application status')
    status.add_argument('--id', required=True, help='Application UUID or display id')
    status.set_defaults(func=cmd_status)

    result = sub.add_parser('result', help='Fetch a stored application PDF')
    result.add_argument('--id', required=True, help='Application UUID or display id')
    result.add_argument('--out', required=False, help='Copy the stored PDF to this path')
    result.set_defaults(func=cmd_result)

    list_cmd = sub.add_parser('list', help='List stored applications, newest first')
    list_cmd.add_argument('--limit', type=int, required=False)
    list_cmd.set_defaults(func=cmd_list)

    render = sub.add_parser('render-html', help='Print the HTML of one generated page')
    render.add_argument('--form', required=True, help='Path to form or submission JSON')
    render.add_argument('--type', choices=['applicant', 'apartment', 'overlay'], default='applicant')
    render.add_argument('--slot', type=int, choices=[1, 2, 3], default=1)
    render.add_argument('--out', required=False, help='Write HTML to this path instead of stdout')
    render.set_defaults(func=cmd_render_html)

    serve = sub.add_parser('serve', help='Run the HTTP server')
    serve.add_argument('--host', required=False)
    serve.add_argument('--port', type=int, required=False)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    return int(args.func(args))


if __name__ == '__main__':
    raise SystemExit(main())
