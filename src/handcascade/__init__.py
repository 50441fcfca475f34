from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .engine import Engine, EngineHandle, TrackingState, start_dnn_engine, start_engine
from .errors import (
    ConfigurationError,
    DegenerateGeometryError,
    DimensionMismatchError,
    HandCascadeError,
    InvalidInputError,
    ModelDownloadError,
)
from .model import DnnBackend, DnnModel
from .postproc import RECOMMENDED_HAND_POSE_PROBABILITY_THRESHOLDS
from .types import ModelInput, ModelInputType, ModelResult, PoseProbabilities, PreprocInfo, TrackResult

__all__ = [
    "DEFAULT_ENGINE_CONFIG",
    "EngineConfig",
    "Engine",
    "EngineHandle",
    "TrackingState",
    "start_engine",
    "start_dnn_engine",
    "ConfigurationError",
    "DegenerateGeometryError",
    "DimensionMismatchError",
    "HandCascadeError",
    "InvalidInputError",
    "ModelDownloadError",
    "DnnBackend",
    "DnnModel",
    "RECOMMENDED_HAND_POSE_PROBABILITY_THRESHOLDS",
    "ModelInput",
    "ModelInputType",
    "ModelResult",
    "PoseProbabilities",
    "PreprocInfo",
    "TrackResult",
]
