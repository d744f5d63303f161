"""Conversion pipeline: stage ordering, artifact store, and XSLT transform."""

from adocview.pipeline.controller import PipelineController
from adocview.pipeline.models import (
    ConversionArtifact,
    ConversionFailure,
    ConversionOutcome,
    FailureKind,
    FailureStage,
    OutputType,
    Slot,
    SourceDocument,
    Stylesheet,
)
from adocview.pipeline.store import StageResultStore
from adocview.pipeline.transform import TransformStage
from adocview.pipeline.views import ViewState, view_state

__all__ = [
    "ConversionArtifact",
    "ConversionFailure",
    "ConversionOutcome",
    "FailureKind",
    "FailureStage",
    "OutputType",
    "PipelineController",
    "Slot",
    "SourceDocument",
    "StageResultStore",
    "Stylesheet",
    "TransformStage",
    "ViewState",
    "view_state",
]
