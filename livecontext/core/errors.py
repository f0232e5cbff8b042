# core/errors.py
from __future__ import annotations


class LiveContextError(Exception):
    """Base class for errors raised inside the orchestration core."""


class ConnectionOpenError(LiveContextError):
    def __init__(self, channel: str, reason: str):
        super().__init__(f"{channel} connection failed to open: {reason}")
        self.channel = channel
        self.reason = reason


class UnknownAnalysisError(LiveContextError, LookupError):
    def __init__(self, analysis_id: str):
        super().__init__(f"Unknown analysis id: {analysis_id}")
        self.analysis_id = analysis_id


class ImageJobError(LiveContextError):
    pass


class NoSelectionError(LiveContextError):
    def __init__(self, action: str):
        super().__init__(f"No analysis selected to {action}.")
        self.action = action
