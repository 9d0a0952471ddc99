"""
DocuFlow Post-Processing Module

Per-category transforms applied to an oversampled report page before it is
accepted:
- Footer redaction (white band over the bottom of the page)
- Logo overlay followed by a 90 degree clockwise rotation

All transforms are pure: same page + same category -> same output.
"""

import logging
from typing import Optional, Tuple

from PIL import Image, ImageDraw

from ..config_loader import config
from ..models import PostProcess
from .branding import BrandMark, load_brand_mark

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)


class SourcePostProcessor:
    """
    Dispatches a rendered page to the transform of its category.
    
    Geometry constants come from the `post_processing` config section and are
    expressed in native points (scaled here by the oversampling factor) except
    for the two backing-rectangle pixel nudges, which are applied unscaled.
    """
    
    def __init__(self, scale: Optional[float] = None, mark: Optional[BrandMark] = None):
        self.scale = scale if scale is not None else float(config.get('rasterizer.oversampling', 3.0))
        self._mark = mark
        
        section = config.get_section('post_processing')
        self.footer_cfg = section.get('footer_redaction', {})
        self.logo_cfg = section.get('logo_rotation', {})
        
        self._handlers = {
            PostProcess.NONE: self._identity,
            PostProcess.FOOTER_REDACTION: self._redact_footer,
            PostProcess.LOGO_ROTATION: self._overlay_logo_and_rotate,
        }
    
    @property
    def mark(self) -> BrandMark:
        if self._mark is None:
            self._mark = load_brand_mark()
        return self._mark
    
    def apply(
        self,
        img: Image.Image,
        width_pt: float,
        height_pt: float,
        post_process: PostProcess
    ) -> Tuple[Image.Image, float, float]:
        """
        Transform one rendered page.
        
        Args:
            img: RGB page rendered at `scale`
            width_pt: Native page width in points
            height_pt: Native page height in points
            post_process: Transform selected by the page's category
            
        Returns:
            (image, width_pt, height_pt) with dimensions swapped if rotated
        """
        return self._handlers[post_process](img, width_pt, height_pt)
    
    def _identity(self, img, width_pt, height_pt):
        return img, width_pt, height_pt
    
    def _redact_footer(self, img, width_pt, height_pt):
        band_px = float(self.footer_cfg.get('band_height_pt', 70)) * self.scale
        
        draw = ImageDraw.Draw(img)
        draw.rectangle((0, img.height - band_px, img.width, img.height), fill=WHITE)
        
        logger.debug(f"Redacted footer band of {band_px:.0f}px on {img.size} page")
        return img, width_pt, height_pt
    
    def _overlay_logo_and_rotate(self, img, width_pt, height_pt):
        scale = self.scale
        cfg = self.logo_cfg
        
        logo_width = float(cfg.get('logo_width_pt', 110)) * scale
        logo_height = self.mark.height_for(logo_width)
        logo_x = float(cfg.get('logo_x_pt', 65 / 3)) * scale
        logo_y = float(cfg.get('logo_y_pt', 65 / 3 + 4)) * scale
        
        rect_x = logo_x
        rect_y = logo_y - float(cfg.get('backing_raise_px', 30))
        rect_width = logo_width + float(cfg.get('backing_extra_width_px', 30))
        rect_height = logo_height + float(cfg.get('backing_extra_height_pt', 20)) * scale
        
        draw = ImageDraw.Draw(img)
        draw.rectangle((rect_x, rect_y, rect_x + rect_width, rect_y + rect_height), fill=WHITE)
        
        logo = self.mark.resized(round(logo_width))
        img.paste(logo, (round(logo_x), round(logo_y)), logo)
        
        rotated = img.transpose(Image.Transpose.ROTATE_270)
        logger.debug(f"Overlaid logo and rotated page {img.size} -> {rotated.size}")
        return rotated, height_pt, width_pt
