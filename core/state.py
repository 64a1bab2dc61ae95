"""Shared state definitions for the preload workbench graph."""

from __future__ import annotations

from dataclasses import asdict, field
from datetime import UTC, datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field
from pydantic.dataclasses import dataclass


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""

    return datetime.now(UTC)


@dataclass
class Substitution:
    """Representation of a symbol substitution inside a derivation step."""

    symbol: str
    value: float | None = None
    units: str | None = None
    expression: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Step:
    """One equation of the preload derivation, with its substituted values."""

    index: int
    description: str
    equation_tex: str | None = None
    substitutions: List[Substitution] = field(default_factory=list)
    result_value: float | None = None
    result_units: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["substitutions"] = [sub.to_dict() for sub in self.substitutions]
        return data


class CalculationRun(BaseModel):
    """Audit record of one preload calculation.

    ``clamped_regime`` and ``admissible_window`` stay ``None`` when the run
    failed before producing results.
    """

    tool_name: str
    raw_inputs: Dict[str, Any] = Field(default_factory=dict)
    clamped_regime: str | None = None
    admissible_window: bool | None = None
    warning_count: int = 0
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None

    @property
    def runtime_ms(self) -> float | None:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds() * 1000.0

    def to_serializable(self) -> Dict[str, Any]:
        return {
            "tool_name": self.tool_name,
            "raw_inputs": self.raw_inputs,
            "clamped_regime": self.clamped_regime,
            "admissible_window": self.admissible_window,
            "warning_count": self.warning_count,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class WorkbenchState(BaseModel):
    """Joint records, derivation and preload results of the current run.

    ``records`` holds the validated geometry, material and condition dumps
    keyed by record name; ``results`` holds the preload result fields in N
    and N/mm.
    """

    tool_name: str | None = None
    records: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    steps: List[Step] = Field(default_factory=list)
    results: Dict[str, Any] = Field(default_factory=dict)
    units: Dict[str, str] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)
    run: CalculationRun | None = None

    model_config = {"arbitrary_types_allowed": True}

    @property
    def clamped_regime(self) -> str | None:
        return self.results.get("clamped_regime")

    @property
    def has_admissible_window(self) -> bool | None:
        if "min_preload" not in self.results:
            return None
        return self.results["min_preload"] <= self.results["max_preload"]

    def reset(self) -> None:
        """Clear everything computed by a previous run."""

        self.records.clear()
        self.steps.clear()
        self.results.clear()
        self.units.clear()
        self.warnings.clear()
        self.run = None

    def add_step(self, step: Step) -> None:
        """Append a step ensuring increasing index order."""

        if self.steps and step.index <= self.steps[-1].index:
            step.index = self.steps[-1].index + 1
        self.steps.append(step)


def init_state() -> WorkbenchState:
    """Convenience factory used by the graph builder."""

    return WorkbenchState()
