"""
DocuFlow Assembler Module

Orchestrates one assembly run:
1. Crop every screenshot and rasterize every report, concurrently
2. Join both fan-outs and restore submission / page order
3. Lay out screenshots first, then report pages
4. Seal the PDF and hand back a transient DocumentHandle

Any failing item aborts the whole run; no partial document is produced.
"""

import asyncio
import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..exceptions import ConfigurationError, EmptyInputError
from ..models import (
    CategoryProfile,
    CropProfile,
    InputFile,
    PageDescriptor,
    RasterImage,
    ReportProfile,
    SourceCategory,
    load_profiles,
)
from ..services.handle import DocumentHandle
from .cropper import ImageCropper
from .layout import LayoutEngine
from .rasterizer import PageRasterizer

logger = logging.getLogger(__name__)

Inputs = Mapping[Union[SourceCategory, str], Sequence[InputFile]]


def normalize_inputs(inputs: Inputs) -> Dict[SourceCategory, List[InputFile]]:
    """
    Key inputs by SourceCategory, in category declaration order.
    
    Raises:
        ConfigurationError: On an unknown category name
    """
    by_category: Dict[SourceCategory, List[InputFile]] = {}
    for key, files in inputs.items():
        try:
            category = SourceCategory(key)
        except ValueError as e:
            raise ConfigurationError(f"Unknown source category: {key!r}") from e
        by_category.setdefault(category, []).extend(files or [])
    
    return {category: by_category.get(category, []) for category in SourceCategory}


class DocumentAssembler:
    """
    Builds the single output PDF from categorized inputs.
    """
    
    def __init__(
        self,
        profiles: Optional[Dict[SourceCategory, CategoryProfile]] = None,
        cropper: Optional[ImageCropper] = None,
        rasterizer: Optional[PageRasterizer] = None,
        layout: Optional[LayoutEngine] = None,
        output_filename: Optional[str] = None,
        temp_dir: Optional[str] = None
    ):
        self.profiles = profiles or load_profiles()
        self.cropper = cropper or ImageCropper()
        self._rasterizer = rasterizer
        self.layout = layout or LayoutEngine()
        self.output_filename = output_filename
        self.temp_dir = temp_dir
    
    @property
    def rasterizer(self) -> PageRasterizer:
        if self._rasterizer is None:
            self._rasterizer = PageRasterizer()
        return self._rasterizer
    
    def assemble(self, inputs: Inputs) -> DocumentHandle:
        """
        Blocking entry point; runs the asynchronous pipeline to completion.
        
        Args:
            inputs: Files per category, each list in submission order
            
        Returns:
            Handle to the assembled PDF
            
        Raises:
            ReportFlowError: Any pipeline failure
        """
        return asyncio.run(self.assemble_async(inputs))
    
    async def assemble_async(self, inputs: Inputs) -> DocumentHandle:
        categorized = normalize_inputs(inputs)
        
        crop_jobs: List[Tuple[InputFile, CropProfile]] = []
        report_jobs: List[Tuple[InputFile, ReportProfile]] = []
        for category, files in categorized.items():
            profile = self.profiles[category]
            jobs = crop_jobs if isinstance(profile, CropProfile) else report_jobs
            jobs.extend((f, profile) for f in files)
        
        if not crop_jobs and not report_jobs:
            raise EmptyInputError()
        
        logger.info(
            f"Assembling document: {len(crop_jobs)} screenshot(s), {len(report_jobs)} report(s)"
        )
        
        screenshots, report_pages = await asyncio.gather(
            self._crop_all(crop_jobs),
            self._rasterize_all(report_jobs),
        )
        
        pages = self.layout.plan(screenshots, report_pages, self.profiles)
        if not pages:
            raise EmptyInputError()
        document = self.layout.render(pages)
        
        handle = DocumentHandle.create(document, self.output_filename, self.temp_dir)
        logger.info(f"Assembled {len(pages)} page(s) into {handle.suggested_filename}")
        return handle
    
    async def _crop_all(self, jobs: Sequence[Tuple[InputFile, CropProfile]]) -> List[RasterImage]:
        async def crop(index: int, source: InputFile, profile: CropProfile):
            image = await asyncio.to_thread(self.cropper.crop, source, profile.region)
            return index, image
        
        results = await asyncio.gather(
            *(crop(i, source, profile) for i, (source, profile) in enumerate(jobs))
        )
        return [image for _, image in sorted(results, key=lambda r: r[0])]
    
    async def _rasterize_all(self, jobs: Sequence[Tuple[InputFile, ReportProfile]]) -> List[PageDescriptor]:
        async def rasterize(index: int, source: InputFile, profile: ReportProfile):
            return index, await self.rasterizer.rasterize(source, profile)
        
        results = await asyncio.gather(
            *(rasterize(i, source, profile) for i, (source, profile) in enumerate(jobs))
        )
        
        pages: List[PageDescriptor] = []
        for _, document_pages in sorted(results, key=lambda r: r[0]):
            pages.extend(sorted(document_pages, key=lambda p: p.page_number))
        return pages


def assemble(inputs: Inputs) -> DocumentHandle:
    """
    Convenience wrapper around DocumentAssembler.assemble
    
    Args:
        inputs: Files per category
        
    Returns:
        Handle to the assembled PDF
    """
    return DocumentAssembler().assemble(inputs)
