"""Streamlit UI for the cryogenic bolt preload calculator."""

from __future__ import annotations

from typing import Any, Dict

import streamlit as st

from core.explainer import format_number
from core.graph import GraphConfig, GraphInput, WorkbenchGraph, build_graph
from core.reports import INPUT_LABELS, SECTION_TITLES, json_document, pdf_report, text_report
from tools.cryogenic_preload import reference_inputs


PAGE_TITLE = "CryoBolt Preload Calculator"
SESSION_DEFAULTS = {
    "significant_figures": 4,
    "last_response": None,
}

# Number-input step per field; anything missing uses the Streamlit default.
FIELD_STEPS: Dict[str, float] = {
    "bore_ratio": 1e-5,
    "bearing_ratio": 1e-5,
    "bolt_modulus": 1000.0,
    "nut_modulus": 1000.0,
    "head_modulus": 1000.0,
    "washer_modulus": 1000.0,
    "clamped_modulus": 1000.0,
    "bolt_cte": 1e-7,
    "clamped_cte": 1e-7,
    "target_ratio": 0.01,
    "stress_concentration": 0.01,
    "min_preload_ratio": 0.01,
}


@st.cache_resource(show_spinner=False)
def get_graph() -> WorkbenchGraph:
    return build_graph(GraphConfig())


def ensure_session_state() -> None:
    for key, value in SESSION_DEFAULTS.items():
        st.session_state.setdefault(key, value)
    for name, value in reference_inputs().items():
        st.session_state.setdefault(f"input:{name}", value)


def reset_to_reference() -> None:
    for name, value in reference_inputs().items():
        st.session_state[f"input:{name}"] = value


def render_inputs() -> Dict[str, Any]:
    collected: Dict[str, Any] = {}
    for record, labels in INPUT_LABELS.items():
        st.subheader(SECTION_TITLES[record])
        cols = st.columns(3)
        for position, (name, (label, symbol, unit)) in enumerate(labels.items()):
            caption = f"{label} ({symbol})" + (f" [{unit}]" if unit else "")
            step = FIELD_STEPS.get(name)
            with cols[position % 3]:
                collected[name] = st.number_input(
                    caption,
                    key=f"input:{name}",
                    step=step,
                    format="%.6g",
                )
    return collected


def render_sidebar() -> None:
    st.sidebar.title("Calculator Controls")
    st.sidebar.button("Reset to reference joint", on_click=reset_to_reference, use_container_width=True)
    st.sidebar.slider(
        "Significant figures",
        min_value=2,
        max_value=8,
        key="significant_figures",
    )
    st.sidebar.markdown("---")
    st.sidebar.caption(
        "Inputs are in mm, mm², MPa, 1/°C, °C and kN. "
        "Stiffness results are in N/mm and forces in N."
    )


def render_summary(response: Dict[str, Any], precision: int) -> None:
    results = response["results"]

    def kilo(name: str) -> str:
        return format_number(results[name] / 1000.0, precision)

    st.markdown("### Recommended room-temperature preload")
    cols = st.columns(3)
    cols[0].metric("Nominal", f"{kilo('nominal_preload')} kN")
    cols[1].metric("Minimum", f"{kilo('min_preload')} kN")
    cols[2].metric("Maximum", f"{kilo('max_preload')} kN")
    st.caption(f"Clamped stack: {response['metadata'].get('clamped_regime_label', results['clamped_regime'])}")

    st.markdown("### System parameters")
    units = response.get("units") or {}
    rows = [
        ("Bolt stiffness kb", "bolt_stiffness"),
        ("Clamp stiffness kc", "clamped_stiffness"),
        ("Joint stiffness kc'", "joint_stiffness"),
        ("Deformation coefficient m", "sharing_coefficient"),
        ("Temperature difference ΔT", "delta_t"),
        ("Thermal force term", "thermal_force"),
    ]
    for label, name in rows:
        st.markdown(f"- **{label}:** {format_number(results[name], precision)} {units.get(name, '')}".rstrip())


def render_steps(response: Dict[str, Any], precision: int) -> None:
    steps = response.get("steps") or []
    if not steps:
        return

    st.markdown("### Derivation")
    for step in steps:
        with st.expander(f"Step {step.get('index')}: {step.get('description')}", expanded=False):
            if step.get("equation_tex"):
                st.latex(step["equation_tex"])
            for substitution in step.get("substitutions") or []:
                value = substitution.get("value")
                rendered = format_number(value, precision) if value is not None else "(unspecified)"
                text = f"- `{substitution.get('symbol')}` = {rendered} {substitution.get('units') or ''}".rstrip()
                if substitution.get("expression"):
                    text += f" (from {substitution['expression']})"
                st.markdown(text)
            if step.get("result_value") is not None:
                units = step.get("result_units") or ""
                st.markdown(f"**Result:** {format_number(step['result_value'], precision)} {units}".rstrip())


def render_warnings(response: Dict[str, Any]) -> None:
    for warning in response.get("warnings") or []:
        st.warning(warning)


def render_exports(response: Dict[str, Any]) -> None:
    st.markdown("### Export")
    cols = st.columns(3)
    cols[0].download_button(
        "Text report",
        data=text_report(response),
        file_name="preload_report.txt",
        mime="text/plain",
        use_container_width=True,
    )
    cols[1].download_button(
        "JSON document",
        data=json_document(response),
        file_name="preload_calculation.json",
        mime="application/json",
        use_container_width=True,
    )
    cols[2].download_button(
        "PDF report",
        data=pdf_report(response),
        file_name="preload_report.pdf",
        mime="application/pdf",
        use_container_width=True,
    )


def render_response(response: Dict[str, Any]) -> None:
    if not response.get("ok"):
        error = response.get("error") or {}
        st.error(f"{error.get('error_type', 'Error')}: {error.get('message', 'Calculation failed.')}")
        return

    precision = int(st.session_state.get("significant_figures", 4))
    render_summary(response, precision)
    render_warnings(response)
    render_steps(response, precision)
    render_exports(response)


def run_calculation(graph: WorkbenchGraph, tool_inputs: Dict[str, Any]) -> Dict[str, Any]:
    payload: GraphInput = {"tool_inputs": tool_inputs}
    return graph.invoke(payload)


def main() -> None:
    st.set_page_config(page_title=PAGE_TITLE, layout="wide")
    ensure_session_state()
    graph = get_graph()

    render_sidebar()
    st.title(PAGE_TITLE)
    st.markdown("Room-temperature preload for a bolted joint operated at cryogenic temperature.")

    inputs_col, results_col = st.columns([2, 1])
    with inputs_col:
        tool_inputs = render_inputs()

    # Streamlit reruns the script on every widget change, so this recomputes per edit.
    response = run_calculation(graph, tool_inputs)
    st.session_state["last_response"] = response

    with results_col:
        render_response(response)


if __name__ == "__main__":
    main()
