"""Transaction capture package."""

from fintrack.capture.assist import CaptureAssist, CaptureStatus, resolve_card

__all__ = ["CaptureAssist", "CaptureStatus", "resolve_card"]
