"""LangGraph orchestration of a single preload calculation run."""

from __future__ import annotations

import os
import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from time import perf_counter
from typing import Any, Callable, Dict, TypedDict

from langgraph.graph import END, StateGraph
from loguru import logger

from tools import cryogenic_preload

from .explainer import format_final_results, format_preload_window, steps_to_markdown, summarize_warnings
from .state import CalculationRun, WorkbenchState, init_state


ToolCallable = Callable[[Dict[str, Any]], Dict[str, Any]]


def _debug_from_env() -> bool:
    return os.getenv("CRYOBOLT_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}


class GraphInput(TypedDict, total=False):
    """Payload accepted by the workflow entrypoint."""

    tool_inputs: Dict[str, Any]


class GraphError(TypedDict, total=False):
    """Structured error information propagated through the graph state."""

    message: str
    details: str | None
    error_type: str
    tool_name: str | None
    node: str | None


class GraphState(TypedDict, total=False):
    """State carried between graph nodes."""

    workbench: WorkbenchState
    raw_inputs: Dict[str, Any]
    payload: GraphInput | None
    response_markdown: str | None
    error: GraphError | None
    response: Dict[str, Any] | None
    metadata: Dict[str, Any] | None


@dataclass(slots=True)
class GraphConfig:
    """Dependency container used when constructing the workflow.

    Failed runs are reported once and never retried: the calculation is
    deterministic, so the same inputs would fail again.
    """

    tool_name: str = cryogenic_preload.TOOL_NAME
    runner: ToolCallable = cryogenic_preload.run
    debug: bool = field(default_factory=_debug_from_env)
    precision: int = 4


def default_state() -> GraphState:
    """Initialize the base graph state with an empty workbench container."""

    return GraphState(
        workbench=init_state(),
        raw_inputs={},
        payload=None,
        response_markdown=None,
        error=None,
        response=None,
        metadata=None,
    )


def _has_error(state: GraphState) -> bool:
    return bool(state.get("error"))


def _format_error(config: GraphConfig, *, exc: Exception, node: str) -> GraphError:
    details = str(exc)
    if config.debug:
        details = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    message = str(exc) if isinstance(exc, ValueError) else f"Tool '{config.tool_name}' execution failed"
    return {
        "message": message,
        "details": details,
        "error_type": type(exc).__name__,
        "node": node,
        "tool_name": config.tool_name,
    }


@dataclass(slots=True)
class PrepareAgent:
    """Reset the working state for a new calculation run."""

    config: GraphConfig

    def __call__(self, state: GraphState) -> GraphState:
        payload = state.get("payload") or {}
        workbench = state["workbench"]
        workbench.reset()
        workbench.tool_name = self.config.tool_name

        return {
            "workbench": workbench,
            "raw_inputs": dict(payload.get("tool_inputs") or {}),
            "payload": None,
            "error": None,
            "response_markdown": None,
            "metadata": None,
        }


@dataclass(slots=True)
class CalculationAgent:
    config: GraphConfig

    def __call__(self, state: GraphState) -> GraphState:
        if _has_error(state):
            return {}

        workbench = state["workbench"]
        raw_inputs = dict(state.get("raw_inputs", {}))

        started_at = datetime.now(UTC)
        t0 = perf_counter()
        try:
            outcome = self.config.runner(raw_inputs)
        except cryogenic_preload.PreloadError as exc:
            logger.warning("Calculation rejected ({}): {}", type(exc).__name__, exc)
            return {"error": _format_error(self.config, exc=exc, node="calculation_agent")}
        except Exception as exc:
            logger.exception("Tool '{}' execution failed", self.config.tool_name)
            return {"error": _format_error(self.config, exc=exc, node="calculation_agent")}
        completed_at = datetime.now(UTC)
        elapsed_ms = (perf_counter() - t0) * 1000.0

        workbench.records = dict(outcome.get("inputs", {}))
        workbench.results = dict(outcome.get("results", {}))
        workbench.units = dict(outcome.get("units", {}))
        workbench.warnings = list(outcome.get("warnings", []))
        for step in outcome.get("steps", []):
            workbench.add_step(step)

        workbench.run = CalculationRun(
            tool_name=self.config.tool_name,
            raw_inputs=raw_inputs,
            clamped_regime=workbench.clamped_regime,
            admissible_window=workbench.has_admissible_window,
            warning_count=len(workbench.warnings),
            started_at=started_at,
            completed_at=completed_at,
        )

        metadata = dict(outcome.get("metadata", {}))
        metadata.setdefault("tool_runtime_ms", elapsed_ms)

        return {
            "workbench": workbench,
            "metadata": metadata,
        }


@dataclass(slots=True)
class ExplainerAgent:
    config: GraphConfig

    def __call__(self, state: GraphState) -> GraphState:
        if _has_error(state):
            return {}

        workbench = state["workbench"]
        precision = self.config.precision

        sections = []
        if workbench.results:
            sections.append("## Recommended Preload\n\n" + format_preload_window(workbench.results, precision))
        if workbench.steps:
            sections.append("## Derivation\n\n" + steps_to_markdown(workbench.steps, precision))
        if workbench.results:
            sections.append("## Final Results\n\n" + format_final_results(workbench.results, workbench.units, precision))

        warnings_md = summarize_warnings(workbench.warnings)
        if warnings_md:
            sections.append("## Warnings\n" + warnings_md)

        markdown = "\n\n".join(section.strip() for section in sections if section)
        return {"response_markdown": markdown or None}


@dataclass(slots=True)
class FinalizerAgent:
    config: GraphConfig

    def __call__(self, state: GraphState) -> GraphState:
        workbench = state["workbench"]
        metadata = dict(state.get("metadata") or {})

        if workbench.run:
            metadata.setdefault("calculation_run", workbench.run.to_serializable())

        response: Dict[str, Any] = {
            "ok": not _has_error(state),
            "tool_name": workbench.tool_name,
            "inputs": workbench.records,
            "results": workbench.results,
            "units": workbench.units,
            "steps": [step.to_dict() for step in workbench.steps],
            "warnings": workbench.warnings,
            "markdown": state.get("response_markdown"),
            "metadata": metadata,
        }

        if state.get("error"):
            response["error"] = state["error"]

        return {"response": response}


@dataclass(slots=True)
class WorkbenchGraph:
    """Compiled LangGraph application with helper invocation utilities."""

    app: Any
    config: GraphConfig

    def invoke(self, payload: GraphInput) -> Dict[str, Any]:
        state = default_state()
        state["payload"] = payload
        final_state = self.app.invoke(state)
        return dict(final_state.get("response") or {})

    async def ainvoke(self, payload: GraphInput) -> Dict[str, Any]:
        state = default_state()
        state["payload"] = payload
        final_state = await self.app.ainvoke(state)
        return dict(final_state.get("response") or {})


def build_graph(config: GraphConfig | None = None) -> WorkbenchGraph:
    """Construct and compile the calculation workflow."""

    config = config or GraphConfig()

    graph = StateGraph(GraphState)

    graph.add_node("prepare_agent", PrepareAgent(config))
    graph.add_node("calculation_agent", CalculationAgent(config))
    graph.add_node("explainer_agent", ExplainerAgent(config))
    graph.add_node("finalizer_agent", FinalizerAgent(config))

    graph.set_entry_point("prepare_agent")
    graph.add_edge("prepare_agent", "calculation_agent")
    graph.add_edge("calculation_agent", "explainer_agent")
    graph.add_edge("explainer_agent", "finalizer_agent")
    graph.add_edge("finalizer_agent", END)

    app = graph.compile()
    return WorkbenchGraph(app=app, config=config)
