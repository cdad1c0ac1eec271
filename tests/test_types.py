import pytest
from pydantic import ValidationError

from helpers import SIGNATURE, form_payload
from intakedoc.types import (
    ApplicantKind,
    ApplicantRecord,
    ApplicationForm,
    ApplicationSubmission,
    is_applicant_included,
)


def test_named_applicant_is_included_in_any_slot():
    record = ApplicantRecord(name="  Asha Rao ")
    for slot in (1, 2, 3):
        assert is_applicant_included(record, slot)


def test_blank_name_excludes_slots_one_and_two():
    record = ApplicantRecord.model_validate({"name": "   ", "companyName": "Rao Holdings"})
    assert not is_applicant_included(record, 1)
    assert not is_applicant_included(record, 2)


@pytest.mark.parametrize(
    "key",
    [
        "companyName",
        "regOfficeLine1",
        "regOfficeLine2",
        "authorizedSignatoryLine1",
        "authorizedSignatoryLine2",
        "boardResolutionDate",
        "companyPanOrTin",
        "companyTelNo",
        "companyMobileNo",
        "companyEmail",
        "companyFaxNo",
    ],
)
def test_any_organization_field_includes_slot_three(key):
    record = ApplicantRecord.model_validate({key: "x"})
    assert is_applicant_included(record, 3)


def test_whitespace_organization_fields_do_not_count():
    record = ApplicantRecord.model_validate({"companyName": "  ", "companyEmail": "\t"})
    assert not is_applicant_included(record, 3)


def test_missing_record_and_bad_slot():
    assert not is_applicant_included(None, 1)
    with pytest.raises(ValueError):
        is_applicant_included(ApplicantRecord(name="A"), 4)


def test_flat_company_keys_are_grouped():
    record = ApplicantRecord.model_validate({"name": "", "companyName": "Rao Holdings", "companyTelNo": "0124"})
    assert record.organization.company_name == "Rao Holdings"
    assert record.organization.company_tel_no == "0124"


def test_form_pads_slots_and_tags_organization_kind():
    form = ApplicationForm.model_validate(
        {"applicants": [{"name": "Asha Rao"}, None, {"companyName": "Rao Holdings"}], "bhkType": "3BHK"}
    )
    assert len(form.applicants) == 3
    assert form.bhk_type == "3bhk"
    assert form.applicant(1).kind == ApplicantKind.personal
    assert form.applicant(3).kind == ApplicantKind.organization
    assert form.included_slots() == [1, 3]


def test_form_rejects_more_than_three_applicants():
    with pytest.raises(ValidationError):
        ApplicationForm.model_validate({"applicants": [{"name": str(i)} for i in range(4)]})


def test_apartment_number_falls_back_to_unit_number():
    form = ApplicationForm.model_validate({"unitNumber": "A-1204"})
    assert form.apartment_number == "A-1204"


def test_signers_lists_each_signed_slot():
    form = ApplicationForm.model_validate(
        form_payload(first={"name": "Asha", "signature": SIGNATURE}, third={"name": "Ravi", "signature": SIGNATURE})
    )
    assert [slot for slot, _ in form.signers()] == [1, 3]


@pytest.mark.parametrize(
    "applicants,expected",
    [
        ([{"name": "Asha Rao", "companyName": "Rao Holdings"}], "Asha Rao"),
        ([{"companyName": "Rao Holdings"}], "Rao Holdings"),
        ([{}, {"name": "Second"}, {"name": "Ravi Kumar"}], "Ravi Kumar"),
        ([{}, {}, {"companyName": "Kumar Traders"}], "Kumar Traders"),
        ([{}, {"name": "Only Second"}], "N/A"),
    ],
)
def test_display_name_priority(applicants, expected):
    form = ApplicationForm.model_validate({"applicants": applicants})
    assert form.display_name() == expected


def test_submission_accepts_camel_case_and_syncs_unit_type():
    submission = ApplicationSubmission.model_validate(
        {"formData": {"applicants": [{"name": "Asha"}]}, "applicantCount": 1, "bhkType": "4BHK"}
    )
    assert submission.form_data.bhk_type == "4bhk"
    assert submission.bhk_type == "4bhk"


def test_submission_rejects_applicant_count_out_of_range():
    with pytest.raises(ValidationError):
        ApplicationSubmission.model_validate({"formData": {}, "applicantCount": 4})


def test_tag_for_slot_only_allows_organizations_in_third_slot():
    record = ApplicantRecord.model_validate({"companyName": "Rao Holdings"})
    assert record.tag_for_slot(2).kind == ApplicantKind.personal
    assert record.tag_for_slot(3).kind == ApplicantKind.organization

    named = ApplicantRecord.model_validate({"name": "Ravi", "companyName": "Rao Holdings"})
    assert named.tag_for_slot(3).kind == ApplicantKind.personal
