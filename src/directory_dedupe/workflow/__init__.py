"""Draft review workflow."""

from .lifecycle import ApprovalReport, DraftLifecycle

__all__ = ["ApprovalReport", "DraftLifecycle"]
