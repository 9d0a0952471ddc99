"""
DocuFlow Rasterizer Module

Turns paginated PDF reports into oversampled page rasters:
- Native page geometry read with PyPDF2 (points, rotation-aware)
- Per-page rendering through poppler (pdf2image) on worker threads
- Category post-processing before a page is accepted

Page geometry handed downstream is always the native (1x) size in
millimetres; oversampling only changes pixel density.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from PIL import Image

try:
    from PyPDF2 import PasswordType, PdfReader
    from PyPDF2.errors import PyPdfError
except ImportError:
    raise ImportError("PyPDF2 not installed. Install with: pip install PyPDF2")

try:
    from pdf2image import convert_from_bytes
    from pdf2image.exceptions import (
        PDFInfoNotInstalledError,
        PDFPageCountError,
        PDFSyntaxError,
    )
except ImportError:
    raise ImportError(
        "pdf2image not installed. Install with: pip install pdf2image\n"
        "It also requires poppler: brew install poppler (macOS) or apt-get install poppler-utils (Linux)"
    )

from ..config_loader import config
from ..exceptions import ConfigurationError, DecodeError, RenderError, ReportFlowError
from ..models import InputFile, PageDescriptor, RasterImage, ReportProfile
from .postprocess import SourcePostProcessor

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0
PT_TO_MM = 25.4 / 72


# ============================================================
# PROCESS-WIDE RENDERER RUNTIME
# ============================================================

@dataclass(frozen=True)
class RasterizerRuntime:
    """Poppler settings shared by every rasterization in the process."""
    poppler_path: Optional[str] = None
    thread_count: int = 1
    background: str = "white"


_runtime: Optional[RasterizerRuntime] = None


def configure_rasterizer(
    poppler_path: Optional[str] = None,
    thread_count: Optional[int] = None
) -> RasterizerRuntime:
    """
    One-time setup of the rendering backend. Call at process start.
    
    Later calls are ignored and return the runtime already in place.
    
    Args:
        poppler_path: Directory holding the poppler binaries (config default)
        thread_count: Poppler threads per render call (config default)
        
    Returns:
        The active RasterizerRuntime
    """
    global _runtime
    if _runtime is not None:
        logger.debug("Rasterizer already configured, keeping existing runtime")
        return _runtime
    
    section = config.get_section('rasterizer')
    _runtime = RasterizerRuntime(
        poppler_path=poppler_path if poppler_path is not None else section.get('poppler_path'),
        thread_count=int(thread_count if thread_count is not None else section.get('thread_count', 1)),
        background=section.get('background', 'white'),
    )
    logger.info(
        f"Rasterizer configured (poppler_path={_runtime.poppler_path or 'PATH'}, "
        f"threads={_runtime.thread_count})"
    )
    return _runtime


def get_runtime() -> RasterizerRuntime:
    """Active runtime; configures from settings if startup did not."""
    return _runtime if _runtime is not None else configure_rasterizer()


# ============================================================
# RASTERIZER
# ============================================================

class PageRasterizer:
    """
    Renders every page of a report at a fixed oversampling factor.
    """
    
    def __init__(
        self,
        scale: Optional[float] = None,
        post_processor: Optional[SourcePostProcessor] = None,
        runtime: Optional[RasterizerRuntime] = None
    ):
        self.scale = scale if scale is not None else float(config.get('rasterizer.oversampling', 3.0))
        if self.scale <= 0:
            raise ConfigurationError(f"Oversampling factor must be positive, got {self.scale}")
        
        self.post_processor = post_processor or SourcePostProcessor(scale=self.scale)
        self.runtime = runtime or get_runtime()
    
    @property
    def dpi(self) -> float:
        return POINTS_PER_INCH * self.scale
    
    async def rasterize(self, source: InputFile, profile: ReportProfile) -> List[PageDescriptor]:
        """
        Rasterize and post-process all pages of one report.
        
        Pages render concurrently; the result is in ascending page order.
        
        Args:
            source: PDF file
            profile: Category profile selecting the post-processing
            
        Returns:
            One PageDescriptor per page
            
        Raises:
            DecodeError: If the document cannot be opened
            RenderError: If any page fails; no pages of the document are returned
        """
        page_sizes = self.read_page_sizes(source)
        logger.info(f"Rasterizing {source.name}: {len(page_sizes)} page(s) at {self.scale:g}x")
        
        tasks = [
            asyncio.to_thread(self.render_page, source, page_number, width_pt, height_pt, profile)
            for page_number, (width_pt, height_pt) in enumerate(page_sizes, start=1)
        ]
        pages = await asyncio.gather(*tasks)
        return sorted(pages, key=lambda p: p.page_number)
    
    def read_page_sizes(self, source: InputFile) -> List[Tuple[float, float]]:
        """
        Native (width, height) in points of every page, as the page displays.
        
        Raises:
            DecodeError: If the PDF cannot be parsed
        """
        try:
            reader = PdfReader(source.stream())
            if reader.is_encrypted and reader.decrypt("") == PasswordType.NOT_DECRYPTED:
                raise DecodeError(f"PDF file is password protected: {source.name}", source.name)
            
            sizes = []
            for page in reader.pages:
                box = page.cropbox
                width_pt, height_pt = float(box.width), float(box.height)
                if (page.rotation or 0) % 180 == 90:
                    width_pt, height_pt = height_pt, width_pt
                sizes.append((width_pt, height_pt))
            return sizes
        except ReportFlowError:
            raise
        except (PyPdfError, ValueError, KeyError, TypeError, OSError) as e:
            logger.error(f"Cannot open PDF {source.name}: {e}")
            raise DecodeError(f"Could not process PDF file: {source.name}", source.name) from e
    
    def render_page(
        self,
        source: InputFile,
        page_number: int,
        width_pt: float,
        height_pt: float,
        profile: ReportProfile
    ) -> PageDescriptor:
        """
        Render, post-process and encode a single page (runs on a worker thread).
        """
        try:
            images = convert_from_bytes(
                source.data,
                dpi=self.dpi,
                first_page=page_number,
                last_page=page_number,
                use_cropbox=True,
                poppler_path=self.runtime.poppler_path,
                thread_count=self.runtime.thread_count,
            )
        except (PDFPageCountError, PDFSyntaxError) as e:
            logger.error(f"Cannot decode {source.name} page {page_number}: {e}")
            raise DecodeError(f"Could not process PDF file: {source.name}", source.name) from e
        except (PDFInfoNotInstalledError, OSError, ValueError) as e:
            logger.error(f"Cannot render {source.name} page {page_number}: {e}")
            raise RenderError(f"Could not process PDF file: {source.name}", source.name) from e
        
        if not images:
            raise RenderError(f"Could not process PDF file: {source.name}", source.name)
        
        try:
            with images[0] as rendered:
                surface = self._on_background(rendered)
            
            surface, out_width_pt, out_height_pt = self.post_processor.apply(
                surface, width_pt, height_pt, profile.post_process
            )
            with surface:
                raster = RasterImage.from_pil(surface)
        except (OSError, ValueError, MemoryError) as e:
            logger.error(f"Cannot post-process {source.name} page {page_number}: {e}")
            raise RenderError(f"Could not process PDF file: {source.name}", source.name) from e
        
        logger.debug(
            f"{source.name} p{page_number}: {width_pt:.1f}x{height_pt:.1f}pt -> "
            f"{raster.width}x{raster.height}px"
        )
        return PageDescriptor(
            image=raster,
            width_mm=out_width_pt * PT_TO_MM,
            height_mm=out_height_pt * PT_TO_MM,
            category=profile.category,
            page_number=page_number,
            source_name=source.name,
        )
    
    def _on_background(self, rendered: Image.Image) -> Image.Image:
        """Copy a rendered page onto a fresh background-filled RGB surface."""
        surface = Image.new("RGB", rendered.size, self.runtime.background)
        rgba = rendered.convert("RGBA")
        surface.paste(rgba, (0, 0), rgba)
        return surface
