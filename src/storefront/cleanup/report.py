"""Outcome of a cleanup pass, per stage and overall."""

from dataclasses import asdict, dataclass, field
from datetime import datetime


@dataclass
class StageReport:
    stage: str
    scanned: int = 0
    expired: int = 0
    succeeded: int = 0
    failed: int = 0
    release_failures: int = 0
    error: str | None = None
    duration_ms: float = 0.0

    @property
    def has_errors(self) -> bool:
        return self.error is not None or self.failed > 0 or self.release_failures > 0

    def to_dict(self) -> dict:
        result = asdict(self)
        result["has_errors"] = self.has_errors
        return result


@dataclass
class CleanupReport:
    run_id: str
    started_at: datetime
    finished_at: datetime | None = None
    stages: list[StageReport] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(stage.has_errors for stage in self.stages)

    def stage(self, name: str) -> StageReport | None:
        for stage in self.stages:
            if stage.stage == name:
                return stage
        return None

    def raise_for_errors(self) -> None:
        if self.has_errors:
            raise CleanupIncompleteError(self)

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "has_errors": self.has_errors,
            "stages": [stage.to_dict() for stage in self.stages],
        }


class CleanupIncompleteError(Exception):
    """Raised when a cleanup pass finished with at least one failed stage."""

    def __init__(self, report: CleanupReport):
        super().__init__("cleanup completed with errors")
        self.report = report
        self.failed_stages = [stage.stage for stage in report.stages if stage.has_errors]
