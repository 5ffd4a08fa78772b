from playbot.pipeline.compile_stage import CompileStage
from playbot.pipeline.filter_stage import FilterStage
from playbot.pipeline.orchestrator import Pipeline

__all__ = ["CompileStage", "FilterStage", "Pipeline"]
