"""Capture result data structures produced by the engine and the run loop."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

CaptureStatus = Literal["success", "fallback", "failed", "error", "skipped"]


class CaptureOutcome(BaseModel):
    component_name: str
    theme: str
    status: CaptureStatus
    strategy: str = ""  # resolver strategy that located the element
    clip: Optional[dict[str, float]] = None  # None means full viewport
    image_path: Optional[str] = None
    tab_verified: Optional[bool] = None
    message: str = ""
    diff_percentage: Optional[float] = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status in ("success", "fallback")


class RunSummary(BaseModel):
    run_id: str
    started_at: str = ""
    completed_at: str = ""
    base_url: str = ""
    total: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    duration_seconds: float = 0.0
    outcomes: list[CaptureOutcome] = Field(default_factory=list)
    # component name -> theme -> status
    component_results: dict[str, dict[str, str]] = Field(default_factory=dict)

    def record(self, outcome: CaptureOutcome) -> None:
        """Append an outcome and update the counters."""
        self.outcomes.append(outcome)
        self.total += 1
        if outcome.status == "skipped":
            self.skipped += 1
        elif outcome.succeeded:
            self.successful += 1
        else:
            self.failed += 1
        self.component_results.setdefault(outcome.component_name, {})[outcome.theme] = outcome.status

    def failures(self) -> list[CaptureOutcome]:
        """Outcomes that need review: failed or errored pairs."""
        return [o for o in self.outcomes if o.status in ("failed", "error")]
