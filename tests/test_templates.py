import re

from helpers import SIGNATURE, form_payload
from intakedoc.pricing import apply_unit_pricing
from intakedoc.render.assets import PageLogos
from intakedoc.render.overlay import build_overlay
from intakedoc.render.templates import applicant_heading, render_apartment_declaration, render_applicant
from intakedoc.types import ApplicantKind, ApplicantRecord, ApplicationForm


def _field_value(html, field):
    match = re.search(rf'data-field="{field}"[^>]*>([^<]*)<', html)
    return match.group(1) if match else None


def test_blank_second_applicant_renders_nothing():
    form = ApplicationForm.model_validate(form_payload(first={"name": "Asha Rao"}))
    assert render_applicant(form.applicant(2), 2, form) == ""


def test_applicant_page_is_standalone_a4_document():
    form = ApplicationForm.model_validate(form_payload(first={"name": "Asha Rao", "pan": "ABCDE1234F"}))
    html = render_applicant(form.applicant(1), 1, form)
    assert html.startswith("<!DOCTYPE html>")
    assert "size: A4" in html
    assert "210mm" in html and "297mm" in html
    assert "1. SOLE OR FIRST APPLICANT(S):-" in html
    assert "http://" not in html and "https://" not in html


def test_third_slot_organization_only():
    form = ApplicationForm.model_validate(
        form_payload(third={"companyName": "Rao Holdings", "companyEmail": "ops@rao.example"})
    )
    html = render_applicant(form.applicant(3), 3, form)
    assert "3. JOINT APPLICANT 2:-" in html
    assert "M/s." in html
    assert "personal-section" not in html
    assert ">OR<" not in html


def test_third_slot_person_and_organization_get_separator():
    form = ApplicationForm.model_validate(form_payload(third={"name": "Ravi", "companyName": "Rao Holdings"}))
    html = render_applicant(form.applicant(3), 3, form)
    assert "personal-section" in html
    assert ">OR<" in html


def test_address_keeps_three_rows():
    form = ApplicationForm.model_validate(form_payload(first={"name": "Asha"}))
    html = render_applicant(form.applicant(1), 1, form)
    address = html.split("Correspondence Address:")[1].split("Tel No.:")[0]
    assert address.count('class="grid-row"') == 3


def test_residential_status_ticks_one_box():
    form = ApplicationForm.model_validate(form_payload(first={"name": "Asha", "residentialStatus": "Non-Resident"}))
    html = render_applicant(form.applicant(1), 1, form)
    assert html.count('data-checked="true"') == 1
    assert html.count('data-checked="false"') == 2


def test_user_text_is_escaped():
    form = ApplicationForm.model_validate(
        form_payload(first={"name": "<img src=x>", "photograph": "javascript:alert(1)"}, declarationPlace="<b>Delhi</b>")
    )
    html = render_applicant(form.applicant(1), 1, form)
    assert "<img src=x>" not in html
    assert "javascript:" not in html
    declaration = render_apartment_declaration(form)
    assert "<b>Delhi</b>" not in declaration


def test_signature_footer_shows_every_signer():
    form = ApplicationForm.model_validate(
        form_payload(
            first={"name": "Asha", "signature": SIGNATURE},
            second={"name": "Meera"},
            third={"name": "Ravi", "signature": SIGNATURE},
        )
    )
    html = render_applicant(form.applicant(2), 2, form)
    assert "Sole/First Applicant" in html
    assert "Third Applicant, if any" in html
    assert "Second Applicant, if any" not in html


def test_logos_are_embedded_when_available():
    form = ApplicationForm.model_validate(form_payload(first={"name": "Asha"}))
    logos = PageLogos(primary="data:image/svg+xml;base64,PHN2Zy8+", secondary="")
    html = render_applicant(form.applicant(1), 1, form, logos=logos)
    assert 'src="data:image/svg+xml;base64,PHN2Zy8+"' in html


def test_apartment_page_fields():
    form = apply_unit_pricing(ApplicationForm.model_validate(form_payload(first={"name": "Asha"})))
    html = render_apartment_declaration(form)
    assert _field_value(html, "tower") == "T2"
    assert _field_value(html, "apartment_number") == "1204"
    assert _field_value(html, "bhk_type") == "3 BHK"
    assert _field_value(html, "carpet_area_sqm") == "121.41"
    assert _field_value(html, "carpet_area_sqft") == "1306.77"
    assert _field_value(html, "unit_price") == "50000"
    assert _field_value(html, "total_price") == "6374025.00"
    assert _field_value(html, "declaration_date") == "07-03-2025"
    assert _field_value(html, "declaration_place") == "Gurugram"


def test_headings():
    assert applicant_heading(2) == "2. JOINT APPLICANT 1:-"


def test_overlay_is_none_without_signatures():
    form = ApplicationForm.model_validate(form_payload(first={"name": "Asha"}, third={"name": "Ravi"}))
    assert build_overlay(form) is None


def test_overlay_has_transparent_bottom_row():
    form = ApplicationForm.model_validate(
        form_payload(first={"name": "Asha", "signature": SIGNATURE}, third={"name": "Ravi", "signature": SIGNATURE})
    )
    html = build_overlay(form)
    assert "background: transparent" in html
    assert "bottom: 10mm" in html
    assert "Sole/First Applicant" in html
    assert "Third Applicant" in html
    assert "Second Applicant" not in html
    assert html.count('class="signature-block"') == 2


def test_standalone_organization_record_renders_as_organization():
    form = ApplicationForm.model_validate(form_payload(first={"name": "Asha Rao"}))
    record = ApplicantRecord.model_validate({"companyName": "Rao Holdings", "companyPanOrTin": "AAACR1234Q"})

    html = render_applicant(record, 3, form)
    assert record.kind == ApplicantKind.organization
    assert "M/s." in html
    assert "personal-section" not in html
