"""Capture pipeline: engine state machine and delegates."""

from .delegates import CollectingDelegate, FileRecordingDelegate
from .engine import CaptureEngine, EngineDelegate

__all__ = ["CaptureEngine", "CollectingDelegate", "EngineDelegate", "FileRecordingDelegate"]
