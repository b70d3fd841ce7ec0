"""Pipeline orchestration for script-to-storyboard projects."""

from scriptboard.pipelines.orchestrator import PipelineOrchestrator

__all__ = ["PipelineOrchestrator"]
