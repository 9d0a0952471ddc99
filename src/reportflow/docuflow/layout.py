"""
DocuFlow Layout Module

Places rasters onto PDF pages:
- Flow layout: cropped screenshots stacked on fixed-size pages with margins,
  wrapping to a new page on overflow
- Pass-through layout: one custom-sized page per rasterized report page
- Composition of the planned pages into PDF bytes with reportlab

Geometry is planned in millimetres with a top-left origin and converted to
reportlab's bottom-left point space only when drawing.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

try:
    from reportlab.lib.units import mm
    from reportlab.lib.utils import ImageReader
    from reportlab.pdfgen import canvas
except ImportError:
    raise ImportError("reportlab not installed. Install with: pip install reportlab")

from ..config_loader import config
from ..exceptions import ConfigurationError, EmptyInputError, EncodeError
from ..models import CategoryProfile, PageDescriptor, RasterImage, SourceCategory
from .branding import BrandStamper

logger = logging.getLogger(__name__)


# ============================================================
# PLAN
# ============================================================

@dataclass(frozen=True)
class LayoutSettings:
    """Fixed page geometry for the screenshot flow, in millimetres."""
    page_width: float = 210.0
    page_height: float = 297.0
    margin: float = 10.0
    gap: float = 5.0
    
    def __post_init__(self):
        if self.margin < 0 or self.gap < 0:
            raise ConfigurationError(
                f"Layout margin and gap must be non-negative, got margin={self.margin}, gap={self.gap}"
            )
        if self.printable_width <= 0 or self.printable_height <= 0:
            raise ConfigurationError(
                f"Margin {self.margin}mm leaves no printable area on a "
                f"{self.page_width}x{self.page_height}mm page"
            )
    
    @property
    def printable_width(self) -> float:
        return self.page_width - 2 * self.margin
    
    @property
    def printable_height(self) -> float:
        return self.page_height - 2 * self.margin
    
    @property
    def bottom_limit(self) -> float:
        return self.page_height - self.margin
    
    @classmethod
    def from_config(cls) -> "LayoutSettings":
        section = config.get_section('layout')
        page_size = section.get('page_size', {})
        return cls(
            page_width=float(page_size.get('width', 210)),
            page_height=float(page_size.get('height', 297)),
            margin=float(section.get('margin', 10)),
            gap=float(section.get('gap', 5)),
        )


@dataclass(frozen=True)
class Placement:
    """A raster drawn at (x, y) with top-left origin, in millimetres."""
    image: RasterImage
    x: float
    y: float
    width: float
    height: float


@dataclass
class PlannedPage:
    """
    One output page.
    
    stamp_on_top decides whether the brand stamp is drawn after the page
    content (report pages) or as soon as the page exists (flow pages).
    """
    width_mm: float
    height_mm: float
    placements: List[Placement] = field(default_factory=list)
    stamp_brand: bool = True
    stamp_on_top: bool = False
    label: str = ""


def fit_to_printable_area(image: RasterImage, settings: LayoutSettings):
    """
    Full printable width, unless that makes the image taller than the
    printable height; then full printable height. Aspect ratio is kept.
    
    Returns:
        (width, height) in millimetres
    """
    aspect_ratio = image.aspect_ratio
    width = settings.printable_width
    height = width / aspect_ratio
    
    if height > settings.printable_height:
        height = settings.printable_height
        width = height * aspect_ratio
    
    return width, height


def plan_flow_layout(images: Sequence[RasterImage], settings: LayoutSettings) -> List[PlannedPage]:
    """
    Greedy single-pass placement of screenshots onto fixed-size pages.
    
    A page is opened only when an image needs it. An image moves to a new
    page when it would cross the bottom margin, unless it is the first
    image on its page.
    
    Args:
        images: Cropped screenshots in submission order
        settings: Page geometry
        
    Returns:
        Planned pages, each marked for one brand stamp
    """
    pages: List[PlannedPage] = []
    current: Optional[PlannedPage] = None
    y = settings.margin
    
    for image in images:
        width, height = fit_to_printable_area(image, settings)
        
        if current is not None and y != settings.margin and y + height > settings.bottom_limit:
            current = None
        
        if current is None:
            current = PlannedPage(
                width_mm=settings.page_width,
                height_mm=settings.page_height,
                stamp_brand=True,
                stamp_on_top=False,
                label=f"screenshots {len(pages) + 1}",
            )
            pages.append(current)
            y = settings.margin
        
        x = (settings.page_width - width) / 2
        current.placements.append(Placement(image=image, x=x, y=y, width=width, height=height))
        y += height + settings.gap
    
    return pages


def plan_passthrough_layout(
    pages: Sequence[PageDescriptor],
    profiles: Dict[SourceCategory, CategoryProfile]
) -> List[PlannedPage]:
    """
    One edge-to-edge page per report page, sized to its native geometry.
    
    Args:
        pages: Report pages in final order
        profiles: Category profiles deciding whether a page gets the stamp
    """
    planned = []
    for page in pages:
        profile = profiles.get(page.category)
        stamp = getattr(profile, 'stamp_brand', True)
        planned.append(
            PlannedPage(
                width_mm=page.width_mm,
                height_mm=page.height_mm,
                placements=[Placement(page.image, 0.0, 0.0, page.width_mm, page.height_mm)],
                stamp_brand=stamp,
                stamp_on_top=True,
                label=f"{page.source_name} p{page.page_number}",
            )
        )
    return planned


# ============================================================
# COMPOSITION
# ============================================================

class PdfComposer:
    """
    Thin reportlab canvas wrapper speaking millimetres with a top-left origin.
    
    Pages are append-only; `finish()` seals the document and returns its bytes.
    """
    
    def __init__(self, title: Optional[str] = None, author: Optional[str] = None):
        self._buffer = io.BytesIO()
        self._canvas = canvas.Canvas(self._buffer)
        self._canvas.setTitle(title or config.get('output.title', 'Processed document'))
        self._canvas.setAuthor(author or config.get('output.author', ''))
        self._page_open = False
        self._sealed = False
        self.page_count = 0
        self.page_width_mm = 0.0
        self.page_height_mm = 0.0
    
    def begin_page(self, width_mm: float, height_mm: float) -> None:
        if self._sealed:
            raise EncodeError("Document is already finalized")
        if self._page_open:
            self._canvas.showPage()
        self._canvas.setPageSize((width_mm * mm, height_mm * mm))
        self.page_width_mm = width_mm
        self.page_height_mm = height_mm
        self._page_open = True
        self.page_count += 1
    
    def draw_png(self, data: bytes, x: float, y: float, width: float, height: float) -> None:
        """Draw PNG bytes with its alpha channel as the mask."""
        bottom = self.page_height_mm - y - height
        self._canvas.drawImage(
            ImageReader(io.BytesIO(data)),
            x * mm,
            bottom * mm,
            width=width * mm,
            height=height * mm,
            mask='auto',
        )
    
    def finish(self) -> bytes:
        if self.page_count == 0:
            raise EmptyInputError()
        try:
            self._canvas.showPage()
            self._canvas.save()
        except Exception as e:
            raise EncodeError(f"Could not write the PDF document: {e}") from e
        self._sealed = True
        self._page_open = False
        return self._buffer.getvalue()


class LayoutEngine:
    """
    Runs both layout phases and renders the resulting pages.
    """
    
    def __init__(
        self,
        settings: Optional[LayoutSettings] = None,
        stamper: Optional[BrandStamper] = None
    ):
        self.settings = settings or LayoutSettings.from_config()
        self._stamper = stamper
    
    @property
    def stamper(self) -> BrandStamper:
        if self._stamper is None:
            self._stamper = BrandStamper()
        return self._stamper
    
    def plan(
        self,
        screenshots: Sequence[RasterImage],
        report_pages: Sequence[PageDescriptor],
        profiles: Dict[SourceCategory, CategoryProfile]
    ) -> List[PlannedPage]:
        """Screenshot pages first, then report pages."""
        flow_pages = plan_flow_layout(screenshots, self.settings)
        report_planned = plan_passthrough_layout(report_pages, profiles)
        
        logger.info(
            f"Layout: {len(screenshots)} screenshot(s) on {len(flow_pages)} page(s), "
            f"{len(report_planned)} report page(s)"
        )
        return flow_pages + report_planned
    
    def render(self, pages: Sequence[PlannedPage], composer: Optional[PdfComposer] = None) -> bytes:
        """
        Draw planned pages in order and seal the document.
        
        Raises:
            EmptyInputError: If there are no pages
            EncodeError: If reportlab fails to write or draw
        """
        if not pages:
            raise EmptyInputError()
        
        composer = composer or PdfComposer()
        try:
            for page in pages:
                logger.debug(f"Drawing page '{page.label}' ({page.width_mm:.1f}x{page.height_mm:.1f}mm)")
                composer.begin_page(page.width_mm, page.height_mm)
                
                if page.stamp_brand and not page.stamp_on_top:
                    self.stamper.stamp(composer)
                
                for placement in page.placements:
                    composer.draw_png(
                        placement.image.data,
                        placement.x,
                        placement.y,
                        placement.width,
                        placement.height,
                    )
                
                if page.stamp_brand and page.stamp_on_top:
                    self.stamper.stamp(composer)
        except (OSError, ValueError) as e:
            raise EncodeError(f"Could not draw page '{page.label}': {e}") from e
        
        return composer.finish()
