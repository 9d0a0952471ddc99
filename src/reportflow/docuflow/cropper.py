"""
DocuFlow Cropper Module

Cuts a fixed region of interest out of a screenshot and clips it to a
rounded rectangle. Pixels outside the rounded corners are transparent.
"""

import logging
from typing import Optional

from PIL import Image, ImageChops, ImageDraw, UnidentifiedImageError

from ..config_loader import config
from ..exceptions import DecodeError, RenderError
from ..models import CropRegion, InputFile, RasterImage

logger = logging.getLogger(__name__)


class ImageCropper:
    """
    Crops screenshots to a CropRegion with rounded corners.
    """
    
    def __init__(self, corner_radius: Optional[int] = None):
        self.corner_radius = (
            corner_radius if corner_radius is not None
            else config.get('cropper.corner_radius', 30)
        )
    
    def crop(self, source: InputFile, region: CropRegion) -> RasterImage:
        """
        Crop one screenshot.
        
        Args:
            source: Screenshot file
            region: Rectangle to keep, in source pixels
            
        Returns:
            RGBA RasterImage of exactly region.width x region.height
            
        Raises:
            DecodeError: If the file is not a readable image
            RenderError: If the cropped surface cannot be produced
        """
        try:
            with Image.open(source.stream()) as img:
                img.load()
                rgba = img.convert("RGBA")
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.error(f"Cannot decode image {source.name}: {e}")
            raise DecodeError(f"Could not read image file: {source.name}", source.name) from e
        
        try:
            cropped = self.crop_image(rgba, region)
            raster = RasterImage.from_pil(cropped)
        except (OSError, ValueError, MemoryError) as e:
            logger.error(f"Cannot render crop of {source.name}: {e}")
            raise RenderError(f"Could not crop image file: {source.name}", source.name) from e
        
        logger.debug(
            f"Cropped {source.name}: {rgba.size} -> {raster.width}x{raster.height} "
            f"at ({region.x}, {region.y})"
        )
        return raster
    
    def crop_image(self, img: Image.Image, region: CropRegion) -> Image.Image:
        """
        Copy `region` of an RGBA image onto a new surface behind a rounded mask.
        
        Parts of the region lying outside the source stay transparent.
        """
        surface = img.crop(region.box)
        mask = self.rounded_mask(region.width, region.height)
        surface.putalpha(ImageChops.multiply(surface.getchannel("A"), mask))
        return surface
    
    def rounded_mask(self, width: int, height: int) -> Image.Image:
        """8-bit mask: 255 inside the rounded rectangle, 0 in the clipped corners."""
        radius = min(self.corner_radius, width // 2, height // 2)
        mask = Image.new("L", (width, height), 0)
        draw = ImageDraw.Draw(mask)
        draw.rounded_rectangle((0, 0, width - 1, height - 1), radius=radius, fill=255)
        return mask
