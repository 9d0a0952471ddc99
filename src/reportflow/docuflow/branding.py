"""
DocuFlow Branding Module

Loads the clinic brand mark and stamps it onto output pages:
- Brand mark from a configured image file, or a generated wordmark
- Bottom-right stamp on assembled PDF pages (millimetre geometry)
"""

import io
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from ..config_loader import config
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class BrandMark:
    """
    Fixed-aspect-ratio logo (680:120 by default).
    
    The pixel image is always resized to the configured aspect so every
    placement computes height from width the same way.
    """
    
    def __init__(self, image: Image.Image, aspect_width: int = 680, aspect_height: int = 120):
        if aspect_width <= 0 or aspect_height <= 0:
            raise ConfigurationError(
                f"Brand mark aspect must be positive, got {aspect_width}:{aspect_height}"
            )
        self.aspect_width = aspect_width
        self.aspect_height = aspect_height
        self.image = image.convert("RGBA")
        self._png: Optional[bytes] = None
    
    @property
    def ratio(self) -> float:
        """Height divided by width."""
        return self.aspect_height / self.aspect_width
    
    def height_for(self, width: float) -> float:
        return width * self.ratio
    
    def png_bytes(self) -> bytes:
        if self._png is None:
            buffer = io.BytesIO()
            self.image.save(buffer, format="PNG")
            self._png = buffer.getvalue()
        return self._png
    
    def resized(self, width_px: int) -> Image.Image:
        """Pixel copy of the mark at `width_px` wide, aspect preserved."""
        height_px = max(1, round(self.height_for(width_px)))
        return self.image.resize((width_px, height_px), Image.Resampling.LANCZOS)
    
    @classmethod
    def from_file(cls, path: Path, aspect_width: int = 680, aspect_height: int = 120) -> "BrandMark":
        try:
            with Image.open(path) as img:
                img.load()
                mark = img.convert("RGBA")
        except (FileNotFoundError, UnidentifiedImageError, OSError) as e:
            raise ConfigurationError(f"Cannot load brand mark from {path}: {e}") from e
        
        target = (aspect_width, aspect_height)
        if mark.size != target:
            logger.debug(f"Resizing brand mark {mark.size} -> {target}")
            mark = mark.resize(target, Image.Resampling.LANCZOS)
        return cls(mark, aspect_width, aspect_height)
    
    @classmethod
    def wordmark(cls, text: str, aspect_width: int = 680, aspect_height: int = 120) -> "BrandMark":
        """Render a plain text mark when no logo file is configured."""
        img = Image.new("RGBA", (aspect_width, aspect_height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)
        
        font = ImageFont.load_default(size=int(aspect_height * 0.6))
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        x = (aspect_width - (right - left)) / 2 - left
        y = (aspect_height - (bottom - top)) / 2 - top
        draw.text((x, y), text, font=font, fill=(20, 60, 120, 255))
        
        return cls(img, aspect_width, aspect_height)


@lru_cache(maxsize=1)
def load_brand_mark() -> BrandMark:
    """
    Load the configured brand mark once per process.
    
    Returns:
        BrandMark from branding.logo_path, or a generated wordmark
    """
    branding = config.get_section('branding')
    aspect = branding.get('aspect', {})
    aspect_width = int(aspect.get('width', 680))
    aspect_height = int(aspect.get('height', 120))
    
    logo_path = branding.get('logo_path')
    if logo_path:
        logger.info(f"Loading brand mark from {logo_path}")
        return BrandMark.from_file(Path(logo_path).expanduser(), aspect_width, aspect_height)
    
    return BrandMark.wordmark(branding.get('text', 'MILADENT'), aspect_width, aspect_height)


class BrandStamper:
    """
    Stamps the brand mark in the bottom-right corner of a PDF page.
    """
    
    def __init__(
        self,
        mark: Optional[BrandMark] = None,
        width_mm: Optional[float] = None,
        margin_mm: Optional[float] = None
    ):
        self.mark = mark or load_brand_mark()
        self.width_mm = width_mm if width_mm is not None else config.get('branding.width_mm', 40)
        self.margin_mm = margin_mm if margin_mm is not None else config.get('branding.margin_mm', 10)
        
        if self.width_mm <= 0 or self.margin_mm < 0:
            raise ConfigurationError(
                f"Invalid brand stamp geometry: width={self.width_mm}mm, margin={self.margin_mm}mm"
            )
    
    def position(self, page_width_mm: float, page_height_mm: float):
        """
        Top-left anchored (x, y, width, height) of the stamp in millimetres.
        """
        height_mm = self.mark.height_for(self.width_mm)
        x = page_width_mm - self.margin_mm - self.width_mm
        y = page_height_mm - self.margin_mm - height_mm
        return x, y, self.width_mm, height_mm
    
    def stamp(self, composer) -> None:
        """
        Draw the mark on the composer's current page.
        
        Args:
            composer: PdfComposer with an open page
        """
        x, y, width, height = self.position(composer.page_width_mm, composer.page_height_mm)
        composer.draw_png(self.mark.png_bytes(), x, y, width, height)
