"""Tests for text, JSON and PDF exports."""

import json

import pytest

from core.graph import GraphConfig, build_graph
from core.reports import json_document, load_json_document, pdf_report, text_report
from tools.cryogenic_preload import (
    REFERENCE_CONDITION,
    REFERENCE_GEOMETRY,
    REFERENCE_MATERIAL,
    InvalidInput,
    compute_preload,
    reference_inputs,
)


@pytest.fixture(scope="module")
def response():
    graph = build_graph(GraphConfig())
    return graph.invoke({"tool_inputs": reference_inputs()})


def test_text_report_sections(response):
    report = text_report(response)

    assert report.startswith("CRYOGENIC BOLT PRELOAD CALCULATION")
    for title in ("1. Geometric parameters", "2. Material properties", "3. Operating conditions", "5. Results"):
        assert title in report
    assert "Bearing ratio (beta): 1.64219" in report
    assert "Recommended room-temperature preload:" in report
    assert "no admissible preload window" in report


def test_json_document_round_trip(response):
    text = json_document(response)
    document = json.loads(text)

    assert set(document) == {"version", "geometry", "material", "condition", "result"}
    geometry, material, condition, result = load_json_document(text)

    assert geometry == REFERENCE_GEOMETRY
    assert material == REFERENCE_MATERIAL
    assert condition == REFERENCE_CONDITION
    assert result == compute_preload(REFERENCE_GEOMETRY, REFERENCE_MATERIAL, REFERENCE_CONDITION)


def test_json_document_version_checked(response):
    document = json.loads(json_document(response))
    document["version"] = 99

    with pytest.raises(ValueError, match="Unsupported document version"):
        load_json_document(json.dumps(document))


def test_json_document_with_invalid_record_rejected(response):
    document = json.loads(json_document(response))
    document["geometry"]["bore_ratio"] = 2.0

    with pytest.raises(InvalidInput, match="Geometry: .*smaller than bearing ratio"):
        load_json_document(json.dumps(document))


def test_pdf_report_renders(response):
    data = pdf_report(response)

    assert isinstance(data, bytes)
    assert data.startswith(b"%PDF")


def test_failed_response_cannot_be_exported():
    failed = {"ok": False, "results": {}, "error": {"message": "Bore ratio alpha must be smaller"}}

    with pytest.raises(ValueError, match="no results"):
        text_report(failed)
    with pytest.raises(ValueError, match="no results"):
        json_document(failed)
    with pytest.raises(ValueError, match="no results"):
        pdf_report(failed)
