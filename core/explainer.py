"""Formatting helpers that turn preload derivation steps into Markdown."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from .state import Step, Substitution


def steps_to_markdown(steps: Sequence[Step], precision: int = 4) -> str:
    """Render the derivation as numbered Markdown blocks."""

    if not steps:
        return "*(No calculation steps recorded.)*"

    lines: list[str] = []
    for step in steps:
        lines.append(f"**Step {step.index}:** {step.description}")
        if step.equation_tex:
            lines.append(f"  \\[{step.equation_tex}\\]")
        if step.substitutions:
            lines.append("  Substitutions:")
            lines.extend(_format_substitution(sub, precision) for sub in step.substitutions)
        if step.result_value is not None:
            units = f" {step.result_units}" if step.result_units else ""
            lines.append(f"  Result: `{format_number(step.result_value, precision)}{units}`")
        lines.append("")
    return "\n".join(lines).strip()


def format_final_results(results: Mapping[str, Any], units: Mapping[str, str], precision: int = 4) -> str:
    """Markdown table of every result field with its unit."""

    if not results:
        return "*(No results computed.)*"

    lines = ["| Quantity | Value |", "| --- | --- |"]
    for key, value in results.items():
        formatted = format_number(value, precision)
        unit = units.get(key, "")
        if unit:
            formatted = f"{formatted} {unit}"
        lines.append(f"| `{key}` | {formatted} |")
    return "\n".join(lines)


def format_preload_window(results: Mapping[str, Any], precision: int = 4) -> str:
    """Headline block: nominal preload and its min/max window in kN."""

    if "nominal_preload" not in results:
        return ""

    def kilo(name: str) -> str:
        return format_number(results[name] / 1000.0, precision)

    return "\n".join(
        [
            f"- Nominal: **{kilo('nominal_preload')} kN**",
            f"- Minimum: {kilo('min_preload')} kN",
            f"- Maximum: {kilo('max_preload')} kN",
            f"- Clamped stack regime: `{results.get('clamped_regime', 'unknown')}`",
        ]
    )


def summarize_warnings(warnings: Iterable[str]) -> str:
    warnings = list(warnings)
    if not warnings:
        return ""
    return "\n".join(f"- ⚠️ {message}" for message in warnings)


def format_number(value: Any, precision: int = 4) -> str:
    """``precision`` significant figures for numbers, ``str()`` for the rest."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return str(value)
    return f"{value:.{precision}g}"


def _format_substitution(substitution: Substitution, precision: int) -> str:
    value = "(unspecified)" if substitution.value is None else format_number(substitution.value, precision)
    units = f" {substitution.units}" if substitution.units else ""
    expression = f" ← {substitution.expression}" if substitution.expression else ""
    return f"  • `{substitution.symbol}` = {value}{units}{expression}"
