"""
ReportFlow - Clinic Report Assembly

Turns screenshots from imaging tools and paginated PDF reports into one
printable, branded PDF document.
"""

from .docuflow.assembler import DocumentAssembler, assemble
from .exceptions import (
    ConfigurationError,
    DecodeError,
    EmptyInputError,
    EncodeError,
    RenderError,
    ReportFlowError,
)
from .models import InputFile, SourceCategory
from .services.handle import DocumentHandle
from .services.session import AssemblySession

__version__ = "0.1.0"

__all__ = [
    'AssemblySession',
    'ConfigurationError',
    'DecodeError',
    'DocumentAssembler',
    'DocumentHandle',
    'EmptyInputError',
    'EncodeError',
    'InputFile',
    'RenderError',
    'ReportFlowError',
    'SourceCategory',
    'assemble',
]
