"""
Document Handle

Transient, file-backed reference to an assembled PDF. The caller downloads
or opens it, then releases it when it is superseded.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from ..config_loader import config

logger = logging.getLogger(__name__)


class DocumentHandle:
    """
    Byte-addressable blob reference to one encoded document.
    
    The backing temp file exists until `release()` is called. Every accessor
    raises ValueError once the handle is released.
    """
    
    def __init__(self, path: Path, suggested_filename: str):
        self._path: Optional[Path] = path
        self.suggested_filename = suggested_filename
    
    @classmethod
    def create(
        cls,
        data: bytes,
        suggested_filename: Optional[str] = None,
        temp_dir: Optional[str] = None
    ) -> "DocumentHandle":
        """
        Write `data` to a fresh temp file and return a handle to it.
        """
        suggested_filename = suggested_filename or config.get('output.filename', 'processed_document.pdf')
        temp_dir = temp_dir if temp_dir is not None else config.get('output.temp_dir')
        
        fd, name = tempfile.mkstemp(prefix="reportflow_", suffix=".pdf", dir=temp_dir)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        
        logger.debug(f"Created document handle {name} ({len(data)} bytes)")
        return cls(Path(name), suggested_filename)
    
    @property
    def released(self) -> bool:
        return self._path is None
    
    @property
    def path(self) -> Path:
        if self._path is None:
            raise ValueError("Document handle has been released")
        return self._path
    
    @property
    def uri(self) -> str:
        """file:// URI suitable for opening in a viewer."""
        return self.path.resolve().as_uri()
    
    def read_bytes(self) -> bytes:
        return self.path.read_bytes()
    
    def save(self, destination: Union[str, Path]) -> Path:
        """
        Copy the document out. A directory destination receives the
        suggested filename.
        """
        destination = Path(destination)
        if destination.is_dir():
            destination = destination / self.suggested_filename
        shutil.copyfile(self.path, destination)
        logger.info(f"Saved document to {destination}")
        return destination
    
    def release(self) -> None:
        """Delete the backing file. Safe to call more than once."""
        if self._path is None:
            return
        try:
            self._path.unlink()
        except FileNotFoundError:
            pass
        logger.debug(f"Released document handle {self._path}")
        self._path = None
    
    def __enter__(self) -> "DocumentHandle":
        return self
    
    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
    
    def __repr__(self) -> str:
        state = "released" if self.released else str(self._path)
        return f"DocumentHandle({self.suggested_filename!r}, {state})"
