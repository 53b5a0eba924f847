"""Inference tools for scratchformer."""

from .evaluation import EvaluationResult, evaluate
from .factory import create_inference_pipeline
from .pipeline import ClassPrediction, InferenceConfig, InferencePipeline

__all__ = [
    "ClassPrediction",
    "EvaluationResult",
    "InferenceConfig",
    "InferencePipeline",
    "create_inference_pipeline",
    "evaluate",
]
