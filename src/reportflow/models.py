"""
ReportFlow Data Models

Value objects passed between the pipeline stages, plus the per-category
profiles that decide how each input is handled.
"""

import io
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from PIL import Image

from .config_loader import config
from .exceptions import ConfigurationError


# ============================================================
# ENUMS
# ============================================================

class SourceCategory(str, Enum):
    """Closed set of input categories, one per upload zone."""
    DIAGNOCAT_SEGMENTATION = "DIAGNOCAT_SEGMENTATION"
    MEDITLINK_SCANS = "MEDITLINK_SCANS"
    DIAGNOCAT_RADIOLOGICAL = "DIAGNOCAT_RADIOLOGICAL"
    CEPHALOMETRIC_ANALYSIS = "CEPHALOMETRIC_ANALYSIS"


class Handling(str, Enum):
    """How items of a category enter the pipeline."""
    CROP = "crop"
    RASTERIZE = "rasterize"


class PostProcess(str, Enum):
    """Transform applied to a rasterized report page."""
    NONE = "none"
    FOOTER_REDACTION = "footer_redaction"
    LOGO_ROTATION = "logo_rotation"


class ProcessingStatus(str, Enum):
    """Assembly session state."""
    IDLE = "idle"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


# ============================================================
# GEOMETRY AND RASTERS
# ============================================================

@dataclass(frozen=True)
class CropRegion:
    """Rectangle in source-pixel units."""
    x: int
    y: int
    width: int
    height: int
    
    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(
                f"Crop region must have a positive extent, got {self.width}x{self.height}"
            )
        if self.x < 0 or self.y < 0:
            raise ConfigurationError(
                f"Crop region origin must be non-negative, got ({self.x}, {self.y})"
            )
    
    @property
    def box(self) -> Tuple[int, int, int, int]:
        """PIL-style (left, upper, right, lower) box."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CropRegion":
        try:
            return cls(
                x=int(data['x']),
                y=int(data['y']),
                width=int(data['width']),
                height=int(data['height']),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Malformed crop region {data!r}: {e}") from e


@dataclass(frozen=True)
class RasterImage:
    """PNG-encoded pixel buffer with its pixel size."""
    data: bytes = field(repr=False)
    width: int
    height: int
    
    @classmethod
    def from_pil(cls, img: Image.Image) -> "RasterImage":
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return cls(data=buffer.getvalue(), width=img.width, height=img.height)
    
    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height
    
    def open(self) -> Image.Image:
        """Decode the buffer back into a PIL image."""
        return Image.open(io.BytesIO(self.data))


@dataclass(frozen=True)
class PageDescriptor:
    """
    One rasterized report page.
    
    width_mm/height_mm are the native (1x) page size in millimetres, already
    swapped for categories whose post-processing rotates the page.
    """
    image: RasterImage
    width_mm: float
    height_mm: float
    category: SourceCategory
    page_number: int
    source_name: str = ""


@dataclass(frozen=True)
class InputFile:
    """A submitted file: display name plus its bytes."""
    name: str
    data: bytes = field(repr=False)
    
    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "InputFile":
        path = Path(path)
        return cls(name=path.name, data=path.read_bytes())
    
    @property
    def suffix(self) -> str:
        return Path(self.name).suffix.lower()
    
    def stream(self) -> io.BytesIO:
        return io.BytesIO(self.data)


# ============================================================
# CATEGORY PROFILES
# ============================================================

@dataclass(frozen=True)
class CategoryProfile:
    """Fixed configuration attached to one SourceCategory."""
    category: SourceCategory
    title: str
    accepted_suffixes: Tuple[str, ...]
    
    handling = None
    
    def accepts(self, filename: str) -> bool:
        return Path(filename).suffix.lower() in self.accepted_suffixes


@dataclass(frozen=True)
class CropProfile(CategoryProfile):
    """Screenshot category: cropped to a fixed region."""
    region: CropRegion
    
    handling = Handling.CROP


@dataclass(frozen=True)
class ReportProfile(CategoryProfile):
    """Paginated report category: rasterized and post-processed."""
    post_process: PostProcess = PostProcess.NONE
    stamp_brand: bool = True
    
    handling = Handling.RASTERIZE


def _build_profile(category: SourceCategory, data: Dict[str, Any]) -> CategoryProfile:
    title = data.get('title', category.value)
    suffixes = tuple(s.lower() for s in data.get('accepted_suffixes', []))
    
    try:
        handling = Handling(data.get('handling'))
    except ValueError as e:
        raise ConfigurationError(
            f"Category {category.value} has unknown handling {data.get('handling')!r}"
        ) from e
    
    if handling == Handling.CROP:
        region_data = data.get('crop_region')
        if region_data is None:
            raise ConfigurationError(f"Crop category {category.value} has no crop_region")
        return CropProfile(
            category=category,
            title=title,
            accepted_suffixes=suffixes,
            region=CropRegion.from_dict(region_data),
        )
    
    try:
        post_process = PostProcess(data.get('post_process', PostProcess.NONE.value))
    except ValueError as e:
        raise ConfigurationError(
            f"Category {category.value} has unknown post_process {data.get('post_process')!r}"
        ) from e
    
    return ReportProfile(
        category=category,
        title=title,
        accepted_suffixes=suffixes,
        post_process=post_process,
        stamp_brand=bool(data.get('stamp_brand', True)),
    )


def load_profiles(settings: Optional[Dict[str, Any]] = None) -> Dict[SourceCategory, CategoryProfile]:
    """
    Build the profile of every SourceCategory from the `categories` section.
    
    Args:
        settings: Mapping of category name to its settings; defaults to config
        
    Returns:
        Dict keyed by every SourceCategory member
        
    Raises:
        ConfigurationError: If a category is missing or misconfigured
    """
    settings = settings if settings is not None else config.get_section('categories')
    
    profiles: Dict[SourceCategory, CategoryProfile] = {}
    for category in SourceCategory:
        data = settings.get(category.value)
        if data is None:
            raise ConfigurationError(f"No configuration for category {category.value}")
        profiles[category] = _build_profile(category, data)
    
    return profiles
