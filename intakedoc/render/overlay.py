from __future__ import annotations

from ..types import ApplicationForm
from .templates import PAGE_HEIGHT_MM, PAGE_WIDTH_MM, signature_block


OVERLAY_LABELS: dict[int, str] = {
    1: 'Sole/First Applicant',
    2: 'Second Applicant',
    3: 'Third Applicant',
}


def build_overlay(form: ApplicationForm) -> str | None:
    """Return a transparent A4 page holding every signature, or None if unsigned.

    The page is printed once and stamped onto the static pages of the source
    document, so everything except the bottom signature row stays empty.
    """
    blocks: list[str] = []
    for slot, signature in form.signers():
        block = signature_block(slot, signature, OVERLAY_LABELS[slot])
        if block:
            blocks.append(block)
    if not blocks:
        return None

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>Signature overlay</title>
<style>
  @page {{ size: A4; margin: 0; }}
  * {{ margin: 0; padding: 0; box-sizing: border-box; }}
  html, body {{
    width: {PAGE_WIDTH_MM}mm;
    height: {PAGE_HEIGHT_MM}mm;
    overflow: hidden;
    background: transparent;
    font-family: Arial, sans-serif;
    color: #58595b;
  }}
  .overlay-row {{
    position: absolute;
    left: 0;
    right: 0;
    bottom: 10mm;
    display: flex;
    justify-content: center;
    align-items: flex-end;
    gap: 24px;
  }}
  .signature-block {{ display: flex; flex-direction: column; align-items: center; gap: 2px; }}
  .signature-caption {{ font-style: italic; font-size: 9px; }}
  .signature-label {{ display: none; }}
  .signature-box {{
    width: 140px;
    height: 38px;
    display: flex;
    align-items: center;
    justify-content: center;
    overflow: hidden;
  }}
  .signature-box img {{ max-width: 100%; max-height: 100%; object-fit: contain; }}
</style>
</head>
<body>
<div class="overlay-row">{''.join(blocks)}</div>
</body>
</html>
"""
