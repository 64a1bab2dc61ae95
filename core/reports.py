"""Exports of a finished calculation: text manuscript, JSON document, PDF.

All three take the response produced by :class:`core.graph.WorkbenchGraph`
(``inputs``, ``results``, ``units``, ``steps``, ``warnings``).
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, Dict, List, Mapping, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos
from loguru import logger

from tools.cryogenic_preload import Condition, Geometry, Material, PreloadResult

from .explainer import format_number


DOCUMENT_VERSION = 1

# (record, field) -> (label, symbol, unit)
INPUT_LABELS: Dict[str, Dict[str, Tuple[str, str, str]]] = {
    "geometry": {
        "bolt_diameter": ("Bolt diameter", "d", "mm"),
        "bolt_area": ("Bolt area", "Ab", "mm²"),
        "nut_area": ("Nut area", "An", "mm²"),
        "head_area": ("Head area", "Ah", "mm²"),
        "washer_area": ("Washer area", "Aw", "mm²"),
        "bolt_length": ("Bolt length", "Lb", "mm"),
        "nut_length": ("Nut length", "Ln", "mm"),
        "head_length": ("Head length", "Lh", "mm"),
        "washer_length": ("Washer length", "Lw", "mm"),
        "clamped_diameter": ("Clamped outer diameter", "da", "mm"),
        "clamped_length": ("Clamped length", "L", "mm"),
        "bore_ratio": ("Bore ratio", "alpha", ""),
        "bearing_ratio": ("Bearing ratio", "beta", ""),
    },
    "material": {
        "bolt_modulus": ("Bolt modulus", "Eb", "MPa"),
        "nut_modulus": ("Nut modulus", "En", "MPa"),
        "head_modulus": ("Head modulus", "Eh", "MPa"),
        "washer_modulus": ("Washer modulus", "Ew", "MPa"),
        "clamped_modulus": ("Clamped stack modulus", "Ec", "MPa"),
        "bolt_cte": ("Bolt CTE", "alpha_b", "1/°C"),
        "clamped_cte": ("Clamped stack CTE", "alpha_c", "1/°C"),
        "yield_strength": ("Bolt yield strength", "sigma_s", "MPa"),
    },
    "condition": {
        "room_temperature": ("Installation temperature", "T0", "°C"),
        "service_temperature": ("Service temperature", "T", "°C"),
        "external_load": ("External load", "P", "kN"),
        "target_ratio": ("Target yield ratio", "x", ""),
        "stress_concentration": ("Stress concentration factor", "a", ""),
        "min_preload_ratio": ("Minimum preload ratio", "b", ""),
    },
}

SECTION_TITLES = {
    "geometry": "1. Geometric parameters",
    "material": "2. Material properties",
    "condition": "3. Operating conditions",
}


def _require_results(response: Mapping[str, Any]) -> None:
    if not response.get("ok", True) or not response.get("results"):
        raise ValueError("Cannot export a calculation that produced no results.")


def text_report(response: Mapping[str, Any], precision: int = 6) -> str:
    """Plain-text calculation manuscript."""

    _require_results(response)
    results = response["results"]
    units = response.get("units") or {}
    inputs = response.get("inputs") or {}

    lines: List[str] = [
        "CRYOGENIC BOLT PRELOAD CALCULATION",
        "=" * 40,
        f"Generated: {datetime.now(UTC).isoformat(timespec='seconds')}",
        "",
    ]

    for record, labels in INPUT_LABELS.items():
        values = inputs.get(record) or {}
        if not values:
            continue
        lines.append(SECTION_TITLES[record])
        lines.append("-" * 40)
        for name, (label, symbol, unit) in labels.items():
            if name in values:
                lines.append(f"  {label} ({symbol}): {format_number(values[name], precision)} {unit}".rstrip())
        lines.append("")

    lines.append("4. Calculation steps")
    lines.append("-" * 40)
    for step in response.get("steps") or []:
        lines.append(f"  Step {step.get('index')}: {step.get('description')}")
        if step.get("result_value") is not None:
            unit = step.get("result_units") or ""
            lines.append(f"    = {format_number(step['result_value'], precision)} {unit}".rstrip())
    lines.append("")

    lines.append("5. Results")
    lines.append("-" * 40)
    for name, value in results.items():
        lines.append(f"  {name}: {format_number(value, precision)} {units.get(name, '')}".rstrip())
    lines.append("")
    lines.append(
        "Recommended room-temperature preload: "
        f"{format_number(results['nominal_preload'] / 1000.0, 4)} kN "
        f"(window {format_number(results['min_preload'] / 1000.0, 4)} to "
        f"{format_number(results['max_preload'] / 1000.0, 4)} kN)"
    )

    warnings = response.get("warnings") or []
    if warnings:
        lines.append("")
        lines.append("Warnings")
        lines.append("-" * 40)
        lines.extend(f"  - {warning}" for warning in warnings)

    return "\n".join(lines) + "\n"


def json_document(response: Mapping[str, Any]) -> str:
    """Serialize inputs and results as ``{geometry, material, condition, result}``."""

    _require_results(response)
    inputs = response.get("inputs") or {}
    document = {
        "version": DOCUMENT_VERSION,
        "geometry": inputs.get("geometry", {}),
        "material": inputs.get("material", {}),
        "condition": inputs.get("condition", {}),
        "result": response["results"],
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def load_json_document(text: str) -> Tuple[Geometry, Material, Condition, PreloadResult]:
    """Parse a document written by :func:`json_document` back into records."""

    document = json.loads(text)
    version = document.get("version")
    if version != DOCUMENT_VERSION:
        raise ValueError(f"Unsupported document version: {version!r}")
    return (
        Geometry(**document["geometry"]),
        Material(**document["material"]),
        Condition(**document["condition"]),
        PreloadResult.from_dict(document["result"]),
    )


_PDF_REPLACEMENTS = {
    "—": "-",
    "–": "-",
    "•": "-",
    "←": "<-",
}


def _latin1(text: str) -> str:
    for source, target in _PDF_REPLACEMENTS.items():
        text = text.replace(source, target)
    return text.encode("latin-1", "replace").decode("latin-1")


def pdf_report(response: Mapping[str, Any]) -> bytes:
    """Print-ready PDF rendering of :func:`text_report` content."""

    _require_results(response)
    pdf = FPDF()
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    def heading(text: str, size: int = 12) -> None:
        pdf.set_font("Helvetica", "B", size)
        pdf.cell(0, 8, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font("Helvetica", size=10)

    def line(text: str, height: float = 5) -> None:
        pdf.multi_cell(0, height, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    heading("Cryogenic Bolt Preload Calculation", size=16)
    pdf.ln(2)

    for text_line in text_report(response).splitlines()[3:]:
        stripped = text_line.strip()
        if not stripped or set(stripped) == {"-"}:
            pdf.ln(1)
        elif text_line[:1].isdigit() or stripped == "Warnings":
            heading(stripped)
        else:
            line(text_line)

    output = pdf.output()
    logger.debug("Rendered PDF report with {} pages", pdf.page_no())
    return bytes(output)
