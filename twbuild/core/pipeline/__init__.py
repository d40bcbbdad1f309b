from .models import PipelineRequest, PipelineResult, PipelineState, Stage, StageOutcome, StageStatus
from .orchestrator import Orchestrator, run_pipeline
from .record import PipelineRegistry

__all__ = [
    "Orchestrator",
    "PipelineRegistry",
    "PipelineRequest",
    "PipelineResult",
    "PipelineState",
    "Stage",
    "StageOutcome",
    "StageStatus",
    "run_pipeline",
]
