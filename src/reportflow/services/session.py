"""
Assembly Session

Holds the state of the most recent assembly for a caller (status, error
message, output handle) and converts pipeline failures into one
human-readable message.
"""

import logging
from typing import Optional

from ..docuflow.assembler import DocumentAssembler, Inputs
from ..exceptions import ReportFlowError
from ..models import ProcessingStatus
from .handle import DocumentHandle

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred"


class AssemblySession:
    """
    idle -> processing -> success | error, and back to idle on reset().
    
    Each run releases the handle of the previous one first. Retrying is
    simply calling process() again with the original inputs.
    """
    
    def __init__(self, assembler: Optional[DocumentAssembler] = None):
        self._assembler = assembler
        self.status = ProcessingStatus.IDLE
        self.error: Optional[str] = None
        self.handle: Optional[DocumentHandle] = None
    
    @property
    def assembler(self) -> DocumentAssembler:
        if self._assembler is None:
            self._assembler = DocumentAssembler()
        return self._assembler
    
    def process(self, inputs: Inputs) -> Optional[DocumentHandle]:
        """
        Run one assembly.
        
        Args:
            inputs: Files per category
            
        Returns:
            The new handle on success, None on failure (see `error`)
        """
        self._release_handle()
        self.status = ProcessingStatus.PROCESSING
        self.error = None
        
        try:
            self.handle = self.assembler.assemble(inputs)
        except ReportFlowError as e:
            self._fail(str(e))
            return None
        except Exception as e:
            logger.exception(f"Unexpected failure while assembling: {e}")
            self._fail(UNKNOWN_ERROR_MESSAGE)
            return None
        
        self.status = ProcessingStatus.SUCCESS
        return self.handle
    
    def reset(self) -> None:
        """Back to idle; releases the current handle."""
        self._release_handle()
        self.status = ProcessingStatus.IDLE
        self.error = None
    
    def _fail(self, message: str) -> None:
        logger.error(f"Error while processing files: {message}")
        self.error = message
        self.status = ProcessingStatus.ERROR
    
    def _release_handle(self) -> None:
        if self.handle is not None:
            self.handle.release()
            self.handle = None
