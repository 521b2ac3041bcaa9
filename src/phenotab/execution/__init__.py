"""Pipeline orchestration."""

from phenotab.execution.orchestrator import PipelineOrchestrator, PipelineResult, run_pipeline

__all__ = ["PipelineOrchestrator", "PipelineResult", "run_pipeline"]
