from __future__ import annotations

from ..pricing import unit_type_label
from ..types import (
    ApplicantKind,
    ApplicantRecord,
    ApplicationForm,
    OrganizationDetails,
    ResidentialStatus,
    THIRD_SLOT,
    is_applicant_included,
)
from .assets import PageLogos
from .formatting import clean_amount, format_date_ddmmyyyy, image_src, text
from .grid import BOX_HEIGHT_PX, BOX_WIDTH_PX, render_grid


PAGE_WIDTH_MM = 210
PAGE_HEIGHT_MM = 297

LABEL_WIDTH_PX = 100
WIDE_LABEL_WIDTH_PX = LABEL_WIDTH_PX * 2
PHOTO_WIDTH_PX = 162

TEXT_COLOR = '#58595b'
ACCENT_COLOR = '#ee1e23'
CHECKBOX_COLOR = '#ff7f82'

# Boxes per printed row, per field.
FIELD_BOXES: dict[str, int] = {
    'name': 20,
    'son_wife_daughter_of': 20,
    'nationality': 20,
    'age': 20,
    'dob': 20,
    'profession': 20,
    'aadhaar': 12,
    'pan': 23,
    'it_ward': 23,
    'correspondence_address': 28,
    'tel_no': 12,
    'phone': 12,
    'email': 28,
    'company_name': 28,
    'reg_office': 28,
    'authorized_signatory': 28,
    'board_resolution_date': 28,
    'company_pan_or_tin': 23,
    'company_tel_no': 12,
    'company_mobile_no': 12,
    'company_email': 28,
    'company_fax_no': 12,
}
# Minimum printed rows for multi-line fields.
FIELD_MIN_ROWS: dict[str, int] = {
    'it_ward': 2,
    'correspondence_address': 3,
}

SIGNER_LABELS: dict[int, str] = {
    1: 'Sole/First Applicant',
    2: 'Second Applicant, if any',
    3: 'Third Applicant, if any',
}

RESIDENTIAL_OPTIONS: tuple[tuple[ResidentialStatus, str], ...] = (
    (ResidentialStatus.resident, 'Resident'),
    (ResidentialStatus.non_resident, 'Non- Resident'),
    (ResidentialStatus.foreign_national, 'Foreign National of Indian Origin'),
)


def _base_css() -> str:
    page = (
        f'width: {PAGE_WIDTH_MM}mm; min-width: {PAGE_WIDTH_MM}mm; max-width: {PAGE_WIDTH_MM}mm; '
        f'height: {PAGE_HEIGHT_MM}mm; min-height: {PAGE_HEIGHT_MM}mm; max-height: {PAGE_HEIGHT_MM}mm;'
    )
    return f"""
      @page {{ size: A4; margin: 0; }}
      * {{ margin: 0; padding: 0; box-sizing: border-box; }}
      html, body {{
        {page}
        font-family: Arial, sans-serif;
        font-size: 13px;
        background: white;
        overflow: hidden;
        color: {TEXT_COLOR};
      }}
      main {{ padding: 24px; {page} }}
      .container {{
        width: 100%;
        height: 100%;
        padding: 20px;
        border: 1px solid {TEXT_COLOR};
        overflow: hidden;
        display: grid;
        grid-template-rows: 86px auto auto;
      }}
      .header {{ margin-bottom: 24px; }}
      .header-logos {{ display: flex; justify-content: space-between; align-items: center; gap: 8px; width: 100%; }}
      .section-title {{ text-transform: uppercase; font-size: 12px; margin: 0; }}
      .fields-area {{ display: flex; flex-direction: column; gap: 12px; margin-bottom: 12px; }}
      .field-row {{ display: flex; align-items: center; gap: 10px; margin-bottom: 6px; }}
      .field-row.top {{ align-items: flex-start; }}
      .label {{
        font-weight: bold;
        font-size: 12px;
        width: {LABEL_WIDTH_PX}px;
        min-width: {LABEL_WIDTH_PX}px;
        flex-shrink: 0;
      }}
      .label.wide {{ width: {WIDE_LABEL_WIDTH_PX}px; min-width: {WIDE_LABEL_WIDTH_PX}px; line-height: 1.25; }}
      .signature-footer {{ padding-top: 12px; display: flex; align-items: flex-start; gap: 32px; align-self: end; }}
      .signature-block {{ display: flex; flex-direction: column; gap: 4px; }}
      .signature-caption {{ font-style: italic; font-size: 11px; text-align: center; }}
      .signature-box {{
        border: 1px dashed {ACCENT_COLOR};
        background-color: white;
        border-radius: 12px;
        width: 170px;
        height: 45px;
        display: flex;
        align-items: center;
        justify-content: center;
        overflow: hidden;
      }}
      .signature-box img {{ max-width: 100%; max-height: 100%; object-fit: contain; }}
    """


def _document(title: str, body: str, extra_css: str = '') -> str:
    return (
        '<!DOCTYPE html>\n'
        '<html>\n<head>\n'
        '<meta charset="UTF-8">\n'
        '<meta name="viewport" content="width=612, initial-scale=1.0">\n'
        f'<title>{text(title)}</title>\n'
        f'<style>{_base_css()}{extra_css}</style>\n'
        '</head>\n<body>\n'
        f'{body}\n'
        '</body>\n</html>\n'
    )


def _header(logos: PageLogos | None) -> str:
    logos = logos or PageLogos()
    primary = (
        f'<img src="{logos.primary}" alt="Developer logo" style="width: auto; height: 40px;" />'
        if logos.primary
        else ''
    )
    secondary = (
        f'<img src="{logos.secondary}" alt="Project logo" style="width: auto; height: 48px;" />'
        if logos.secondary
        else ''
    )
    return (
        '<div class="header"><div class="header-logos">'
        f'<div>{primary}</div><div>{secondary}</div>'
        '</div></div>'
    )


def _boxes(field: str, value: str) -> str:
    return render_grid(
        value,
        FIELD_BOXES[field],
        BOX_WIDTH_PX,
        BOX_HEIGHT_PX,
        min_rows=FIELD_MIN_ROWS.get(field, 1),
    )


def _field_row(label: str, field: str, value: str, *, wide: bool = False, top: bool = False) -> str:
    label_class = 'label wide' if wide else 'label'
    row_class = 'field-row top' if top else 'field-row'
    return (
        f'<div class="{row_class}">'
        f'<div class="{label_class}">{label}</div>'
        f'{_boxes(field, value)}'
        '</div>'
    )


def signature_block(slot: int, signature: str, label: str | None = None) -> str:
    src = image_src(signature)
    if not src:
        return ''
    caption = text(label or SIGNER_LABELS[slot])
    return (
        '<div class="signature-block">'
        f'<div class="signature-caption">{caption}</div>'
        '<div class="signature-label" style="font-weight: bold; font-size: 11px;">Signature:</div>'
        f'<div class="signature-box"><img src="{src}" alt="Applicant {slot} signature" /></div>'
        '</div>'
    )


def render_signature_footer(form: ApplicationForm) -> str:
    """Footer shared by every generated page: every signature on the form."""
    blocks = [signature_block(slot, signature) for slot, signature in form.signers()]
    blocks = [block for block in blocks if block]
    if not blocks:
        return ''
    return '<div class="signature-footer">' + ''.join(blocks) + '</div>'


def _residential_status(status: ResidentialStatus) -> str:
    items: list[str] = []
    for option, caption in RESIDENTIAL_OPTIONS:
        checked = status == option
        fill = CHECKBOX_COLOR if checked else 'white'
        mark = '<span style="color: white; font-weight: bold; font-size: 9px;">&#10003;</span>' if checked else ''
        items.append(
            '<div style="display: flex; align-items: center; gap: 6px;">'
            f'<div class="checkbox" data-checked="{str(checked).lower()}" style="width: 12px; height: 12px; '
            f'border: 1px solid {CHECKBOX_COLOR}; background: {fill}; display: flex; '
            f'align-items: center; justify-content: center;">{mark}</div>'
            f'<span style="font-weight: bold; font-size: 9px;">{caption}</span>'
            '</div>'
        )
    return (
        '<div class="field-row top">'
        '<div class="label" style="padding-top: 4px;">Residential Status:</div>'
        '<div style="display: flex; flex-direction: row; gap: 40px;">' + ''.join(items) + '</div>'
        '</div>'
    )


def _photo(applicant: ApplicantRecord) -> str:
    src = image_src(applicant.photograph)
    inner = (
        f'<img src="{src}" alt="Applicant photo" style="width: 100%; height: 100%; object-fit: cover;" />'
        if src
        else '<span style="color: #9ca3af; font-size: 8px; text-align: center; padding: 4px;">Photo</span>'
    )
    return (
        f'<div class="photo-section" style="width: {PHOTO_WIDTH_PX}px; flex-shrink: 0;">'
        f'<div style="border: 1px solid {ACCENT_COLOR}; background: white; padding: 8px; width: 100%;">'
        '<div style="aspect-ratio: 3/4; border: 1px solid #9ca3af; display: flex; align-items: center; '
        f'justify-content: center; overflow: hidden; width: 100%;">{inner}</div>'
        '</div></div>'
    )


def _personal_section(applicant: ApplicantRecord) -> str:
    identity_rows = ''.join(
        [
            _field_row(text(applicant.title) or 'Name:', 'name', applicant.name.strip()),
            _field_row(text(applicant.relation) or 'S/W/D of:', 'son_wife_daughter_of', applicant.son_wife_daughter_of),
            _field_row('Nationality:', 'nationality', applicant.nationality),
            _field_row('Age:', 'age', applicant.age),
            _field_row('DOB:', 'dob', applicant.dob),
            _field_row('Profession:', 'profession', applicant.profession),
            _field_row('Aadhar No.:', 'aadhaar', applicant.aadhaar.replace(' ', '')),
        ]
    )
    detail_rows = ''.join(
        [
            _residential_status(applicant.residential_status),
            _field_row('Income Tax Permanent Account No.:', 'pan', applicant.pan, wide=True),
            _field_row(
                'Ward / Circle / Special Range / Place, where assessed to income tax:',
                'it_ward',
                applicant.it_ward,
                wide=True,
                top=True,
            ),
            _field_row('Correspondence Address:', 'correspondence_address', applicant.correspondence_address, top=True),
            _field_row('Tel No.:', 'tel_no', applicant.tel_no),
            _field_row('Mobile:', 'phone', applicant.phone),
            _field_row('E-Mail ID:', 'email', applicant.email),
        ]
    )
    return (
        '<div class="personal-section" style="display: flex; flex-direction: column; gap: 6px;">'
        '<div style="display: flex; gap: 12px;">'
        f'<div style="flex: 1; display: flex; flex-direction: column; gap: 6px; min-width: 0;">{identity_rows}</div>'
        f'{_photo(applicant)}'
        '</div>'
        f'<div style="display: flex; flex-direction: column; gap: 6px;">{detail_rows}</div>'
        '</div>'
    )


def _organization_section(organization: OrganizationDetails, *, with_separator: bool) -> str:
    separator = (
        '<div style="font-weight: bold; font-size: 12px; text-align: center; margin: 4px 0;">OR</div>'
        if with_separator
        else ''
    )
    rows = ''.join(
        [
            _field_row('M/s.', 'company_name', organization.company_name),
            _field_row('Reg. Office / Corporate Office:', 'reg_office', organization.reg_office_line1, top=True),
            _field_row('', 'reg_office', organization.reg_office_line2),
            _field_row('Authorized Signatory:', 'authorized_signatory', organization.authorized_signatory_line1, top=True),
            _field_row('', 'authorized_signatory', organization.authorized_signatory_line2),
            _field_row('Board Resolution dated / Power of Attorney:', 'board_resolution_date', organization.board_resolution_date, wide=True),
            _field_row('PAN No. / TIN No.:', 'company_pan_or_tin', organization.company_pan_or_tin),
            _field_row('Tel No.:', 'company_tel_no', organization.company_tel_no),
            _field_row('Mobile No.:', 'company_mobile_no', organization.company_mobile_no),
            _field_row('E-mail ID:', 'company_email', organization.company_email),
            _field_row('Fax No.:', 'company_fax_no', organization.company_fax_no),
        ]
    )
    return (
        f'{separator}'
        '<div class="organization-section" style="display: flex; flex-direction: column; gap: 4px;">'
        '<div style="font-size: 11px; font-style: italic;">Company / Firm / HUF</div>'
        f'{rows}'
        '</div>'
    )


def applicant_heading(slot: int) -> str:
    if slot == 1:
        return '1. SOLE OR FIRST APPLICANT(S):-'
    return f'{slot}. JOINT APPLICANT {slot - 1}:-'


def render_applicant(
    applicant: ApplicantRecord | None,
    slot: int,
    form: ApplicationForm,
    *,
    logos: PageLogos | None = None,
) -> str:
    """Render one applicant page, or '' when the slot is not included."""
    if applicant is None or not is_applicant_included(applicant, slot):
        return ''

    sections: list[str] = []
    if applicant.tag_for_slot(slot).kind == ApplicantKind.organization:
        sections.append(_organization_section(applicant.organization, with_separator=False))
    else:
        sections.append(_personal_section(applicant))
        # A named third applicant may also represent an organization.
        if slot == THIRD_SLOT and applicant.organization.has_data():
            sections.append(_organization_section(applicant.organization, with_separator=True))

    body = (
        '<main><div class="container">'
        f'{_header(logos)}'
        '<div class="fields-area">'
        f'<h2 class="section-title">{applicant_heading(slot)}</h2>'
        f'{"".join(sections)}'
        '</div>'
        f'{render_signature_footer(form)}'
        '</div></main>'
    )
    return _document(f'Applicant {slot}', body)


_APARTMENT_CSS = f"""
      .fields-section {{ display: flex; flex-direction: column; margin-bottom: 32px; border: 1px solid {TEXT_COLOR}; }}
      .value-row {{ display: flex; align-items: center; gap: 10px; margin-bottom: 10px; }}
      .value-label {{ font-size: 12px; width: 85px; min-width: 85px; flex-shrink: 0; }}
      .value-field {{
        border-bottom: 1px solid {TEXT_COLOR};
        flex: 1;
        min-width: 150px;
        height: 20px;
        font-size: 13px;
        padding-left: 4px;
      }}
      .rate-box {{ border-left: 1px solid {TEXT_COLOR}; padding: 24px; min-height: 200px; flex-grow: 1; flex-basis: 0; }}
      .note-section {{ margin-bottom: 32px; }}
      .declaration-text {{ font-size: 13px; line-height: 1.5; }}
      .declaration-footer {{ margin-top: 20px; }}
      .date-place-row {{ display: flex; flex-direction: column; width: max-content; gap: 20px; }}
      .date-place-item {{ display: flex; align-items: center; gap: 12px; }}
"""


def _value_row(label: str, value: str, *, field: str, label_style: str = '') -> str:
    style = f' style="{label_style}"' if label_style else ''
    return (
        '<div class="value-row">'
        f'<div class="value-label"{style}>{label}</div>'
        f'<div class="value-field" data-field="{field}">{text(value)}</div>'
        '</div>'
    )


def render_apartment_declaration(form: ApplicationForm, *, logos: PageLogos | None = None) -> str:
    unit_label = unit_type_label(form.bhk_type) or form.bhk_type.upper()
    declaration_date = format_date_ddmmyyyy(form.declaration_date)

    area_row = (
        '<div class="value-row">'
        '<div class="value-label" style="width: auto; min-width: 50px;">Carpet Area:</div>'
        '<div style="display: flex; align-items: center; gap: 8px;">'
        f'<div class="value-field" data-field="carpet_area_sqm" style="min-width: 55px;">{text(form.carpet_area_sqm)}</div>'
        '<span style="font-size: 11px;">sq.mtr. (</span>'
        f'<div class="value-field" data-field="carpet_area_sqft" style="min-width: 55px;">{text(form.carpet_area_sqft)}</div>'
        '<span style="font-size: 11px;">sq.ft.)</span>'
        '</div></div>'
    )

    details = (
        '<div class="fields-section">'
        '<div style="flex: 1 0 0; display: flex;">'
        '<div style="display: flex; flex-direction: column; gap: 10px; padding: 20px; width: 55%;">'
        f'{_value_row("Tower", form.tower, field="tower")}'
        f'{_value_row("Apartment No.", form.apartment_number, field="apartment_number")}'
        f'{_value_row("Type", unit_label, field="bhk_type")}'
        f'{_value_row("Floor", form.floor, field="floor")}'
        f'{area_row}'
        f'{_value_row("Unit Price (in rupees)", clean_amount(form.unit_price), field="unit_price", label_style="width: auto; min-width: 50px;")}'
        '<p style="font-size: 12px;">Applicable taxes and cesses payable by the <strong>Applicant(s)</strong> '
        'which are in addition to total unit price (this includes GST payable at rates as specified from '
        'time to time, which at present is 5%)</p>'
        '</div>'
        '<div class="rate-box"><div style="margin-bottom: 8px; font-size: 11px;">'
        'Rate of <b>Said Apartment</b> per square meter*</div><div style="min-height: 160px;"></div></div>'
        '</div>'
        f'<div style="display: flex; border-top: 1px solid {TEXT_COLOR};">'
        f'<div class="value-row" style="margin-bottom: 0; padding: 15px 20px; width: calc(55% + 1px); border-right: 1px solid {TEXT_COLOR};">'
        '<div class="value-label" style="width: auto; min-width: 100px;">Total Price <span style="font-weight: 500;">(in rupees)</span></div>'
        f'<div class="value-field" data-field="total_price">{text(clean_amount(form.total_price))}</div>'
        '</div></div>'
        '</div>'
    )

    notes = (
        '<div class="note-section">'
        '<h2 class="section-title" style="margin-bottom: 15px;">*NOTE:</h2>'
        '<div style="margin-bottom: 7px;">1. The <strong>Total Price</strong> for the <strong>Said Apartment</strong> '
        'is based on the <strong>Carpet Area</strong>.</div>'
        '<div>2. The <strong>Promoter</strong> has taken the conversion factor of 10.764 sq.ft. per sqm. for the '
        'purpose of this <strong>Application</strong> (1 feet = 304.8 mm)</div>'
        '</div>'
    )

    declaration = (
        '<div class="declaration-section">'
        '<h2 class="section-title" style="margin-bottom: 15px;">5. DECLARATION</h2>'
        '<div class="declaration-text">The <strong>Applicant(s)</strong> hereby declares that the above particulars / '
        'information given by the <strong>Applicant(s)</strong> are true and correct and nothing has been concealed '
        'therefrom.</div>'
        '<div class="declaration-footer">'
        '<div style="font-size: 13px; margin-bottom: 20px;">Yours Faithfully</div>'
        '<div class="date-place-row">'
        '<div class="date-place-item"><label style="font-size: 12px; flex-shrink: 0;">Date:</label>'
        f'<div class="value-field" data-field="declaration_date" style="min-width: 100px;">{text(declaration_date)}</div></div>'
        '<div class="date-place-item"><label style="font-size: 12px; flex-shrink: 0;">Place:</label>'
        f'<div class="value-field" data-field="declaration_place" style="min-width: 150px;">{text(form.declaration_place)}</div></div>'
        '</div></div>'
        '</div>'
    )

    body = (
        '<main><div class="container">'
        f'{_header(logos)}'
        '<div class="fields-area">'
        '<h2 class="section-title">4. DETAILS OF THE SAID APARTMENT AND ITS PRICING</h2>'
        f'{details}{notes}{declaration}'
        '</div>'
        f'{render_signature_footer(form)}'
        '</div></main>'
    )
    return _document('Apartment details and declaration', body, _APARTMENT_CSS)
