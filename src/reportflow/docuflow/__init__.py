"""
DocuFlow - Report Imaging and Assembly Library

This package provides the document assembly pipeline:
- Cropper: Screenshot region-of-interest cropping with rounded corners
- Rasterizer: PDF page rendering at an oversampling factor
- Postprocess: Per-category page transforms (footer redaction, logo + rotation)
- Branding: Brand mark loading and page stamping
- Layout: Flow and pass-through page layout, PDF composition
- Assembler: End-to-end orchestration
"""

__all__ = ['cropper', 'rasterizer', 'postprocess', 'branding', 'layout', 'assembler']
