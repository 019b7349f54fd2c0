import json

import pytest

from bridge.db_models_documents import Result
from bridge.enums import Domain, ExportFormat
from bridge.errors import ExportNotImplementedError
from bridge.services.exporter import export_bytes, result_to_dict, result_to_text, strip_markup

from conftest import SAMPLE_OUTPUT


def _result(**overrides):
    fields = dict(
        id="res_1",
        document_id="doc_1",
        translation_html=SAMPLE_OUTPUT["translation_html"],
        summary=SAMPLE_OUTPUT["summary"],
        detected_language="es",
        target_language="en",
        domain=Domain.SCHOOL,
        confidence=100,
        processing_time_ms=1234,
    )
    fields.update(overrides)
    return Result(**fields)


def test_json_export_keeps_summary_verbatim():
    body, filename, content_type = export_bytes(_result(), ExportFormat.JSON)

    parsed = json.loads(body)
    assert parsed["translation"] == SAMPLE_OUTPUT["translation_html"]
    assert parsed["summary"] == SAMPLE_OUTPUT["summary"]
    assert parsed["metadata"] == {
        "detected_language": "es",
        "target_language": "en",
        "domain": "school",
        "confidence": 100,
    }
    assert filename == "translation-doc_1.json"
    assert content_type == "application/json"
    assert parsed == result_to_dict(_result())


def test_txt_export_strips_tags_and_labels_sections():
    body, filename, content_type = export_bytes(_result(), ExportFormat.TXT)
    text = body.decode("utf-8")

    assert "<" not in text
    assert text.startswith("TRANSLATION\n===========\nField trip")
    assert "Your child's class visits the museum on Friday." in text
    assert "Purpose: Permission request for a school museum field trip" in text
    assert "1. Sign the permission slip\n2. Pack a lunch" in text
    assert "Due Dates:\nFriday, March 14" in text
    assert "Costs:\n$15 entrance fee" in text
    assert filename == "translation-doc_1.txt"
    assert content_type.startswith("text/plain")


def test_txt_export_omits_empty_optional_sections():
    text = result_to_text(_result(summary={"purpose": "Reminder", "actions": []}))
    assert "Due Dates:" not in text
    assert "Costs:" not in text
    assert "Purpose: Reminder" in text


def test_strip_markup_unescapes_entities():
    assert strip_markup("<p>Fees &amp; dates</p><ul><li>One</li></ul>") == "Fees & dates\n\nOne"


def test_pdf_export_is_not_implemented():
    with pytest.raises(ExportNotImplementedError) as exc_info:
        export_bytes(_result(), ExportFormat.PDF)
    assert exc_info.value.http_status == 501
