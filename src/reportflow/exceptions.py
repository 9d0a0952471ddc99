"""
ReportFlow Errors

Every failure in the assembly pipeline is one of these. The message of each
error is the text shown to the person who started the assembly.
"""

from typing import Optional


class ReportFlowError(Exception):
    """Base class for all assembly failures."""


class ConfigurationError(ReportFlowError):
    """A crop region or layout constant is invalid. Indicates a defect."""


class ItemError(ReportFlowError):
    """Failure scoped to one input item, identified by its display name."""
    
    def __init__(self, message: str, source_name: Optional[str] = None):
        super().__init__(message)
        self.source_name = source_name


class DecodeError(ItemError):
    """A source image or document byte stream cannot be parsed."""


class RenderError(ItemError):
    """A rendering surface could not be acquired or a draw/rotate failed."""


class EmptyInputError(ReportFlowError):
    """No item across all categories produced output."""
    
    def __init__(self, message: str = "Nothing to process: no input files produced any pages."):
        super().__init__(message)


class EncodeError(ReportFlowError):
    """Final document serialization failed."""
