"""
Layout engine tests: flow pagination, pass-through pages and PDF output.
"""

import unittest
from unittest.mock import MagicMock

import pytest
from PIL import Image
from reportlab.lib.units import mm

from reportflow.docuflow.branding import BrandMark, BrandStamper
from reportflow.docuflow.layout import (
    LayoutEngine,
    LayoutSettings,
    PdfComposer,
    fit_to_printable_area,
    plan_flow_layout,
    plan_passthrough_layout,
)
from reportflow.exceptions import ConfigurationError, EmptyInputError, EncodeError
from reportflow.models import PageDescriptor, RasterImage, SourceCategory, load_profiles

from conftest import read_pdf


def _raster(width, height, encoded=False):
    if encoded:
        return RasterImage.from_pil(Image.new("RGBA", (width, height), (90, 90, 200, 255)))
    return RasterImage(data=b"", width=width, height=height)


class TestLayoutSettings(unittest.TestCase):
    
    def test_defaults_from_config(self):
        settings = LayoutSettings.from_config()
        self.assertEqual(settings.page_width, 210)
        self.assertEqual(settings.page_height, 297)
        self.assertEqual(settings.margin, 10)
        self.assertEqual(settings.gap, 5)
        self.assertEqual(settings.printable_width, 190)
        self.assertEqual(settings.printable_height, 277)
    
    def test_negative_margin(self):
        with self.assertRaises(ConfigurationError):
            LayoutSettings(margin=-1)
    
    def test_margin_consuming_page(self):
        with self.assertRaises(ConfigurationError):
            LayoutSettings(page_width=20, margin=10)


class TestFlowLayout(unittest.TestCase):
    
    def setUp(self):
        self.settings = LayoutSettings()
    
    def test_two_segmentation_crops_share_one_page(self):
        images = [_raster(1571, 807), _raster(1571, 807)]
        pages = plan_flow_layout(images, self.settings)
        
        self.assertEqual(len(pages), 1)
        first, second = pages[0].placements
        self.assertAlmostEqual(first.width, 190.0)
        self.assertAlmostEqual(first.height, 190 / (1571 / 807))
        self.assertAlmostEqual(first.height, 97.6, places=1)
        self.assertAlmostEqual(first.x, 10.0)
        self.assertAlmostEqual(first.y, 10.0)
        self.assertAlmostEqual(second.y, 112.6, places=1)
        self.assertTrue(pages[0].stamp_brand)
        self.assertFalse(pages[0].stamp_on_top)
    
    def test_third_crop_wraps_to_new_page(self):
        pages = plan_flow_layout([_raster(1571, 807)] * 3, self.settings)
        
        self.assertEqual([len(p.placements) for p in pages], [2, 1])
        self.assertAlmostEqual(pages[1].placements[0].y, 10.0)
        self.assertTrue(all(p.stamp_brand for p in pages))
    
    def test_tall_image_is_clamped_and_centered(self):
        image = _raster(200, 1000)
        width, height = fit_to_printable_area(image, self.settings)
        self.assertAlmostEqual(height, 277.0)
        self.assertAlmostEqual(width, 277.0 * 0.2)
        
        placement = plan_flow_layout([image], self.settings)[0].placements[0]
        self.assertAlmostEqual(placement.x, (210 - 55.4) / 2)
    
    def test_full_height_image_after_another_starts_new_page(self):
        pages = plan_flow_layout([_raster(400, 100), _raster(200, 1000)], self.settings)
        self.assertEqual(len(pages), 2)
    
    def test_no_images_no_pages(self):
        self.assertEqual(plan_flow_layout([], self.settings), [])
    
    def test_pages_are_fixed_size(self):
        pages = plan_flow_layout([_raster(1367, 852)] * 5, self.settings)
        for page in pages:
            self.assertEqual((page.width_mm, page.height_mm), (210, 297))


@pytest.mark.parametrize("sizes", [
    [(1571, 807)] * 7,
    [(1367, 852), (1571, 807), (300, 900), (1200, 100), (100, 1200), (1000, 1000)],
    [(500, 50)] * 40,
])
def test_placements_never_cross_bottom_margin(sizes):
    settings = LayoutSettings()
    pages = plan_flow_layout([_raster(w, h) for w, h in sizes], settings)
    
    assert sum(len(p.placements) for p in pages) == len(sizes)
    for page in pages:
        assert page.placements, "a page is only opened for an image"
        assert page.placements[0].y == settings.margin
        for placement in page.placements:
            assert placement.y + placement.height <= settings.bottom_limit + 1e-9
            assert placement.x >= settings.margin - 1e-9
            assert placement.x + placement.width <= settings.page_width - settings.margin + 1e-9


def _descriptor(category, width_mm, height_mm, number=1):
    return PageDescriptor(
        image=_raster(10, 10),
        width_mm=width_mm,
        height_mm=height_mm,
        category=category,
        page_number=number,
        source_name="report.pdf",
    )


def test_passthrough_page_per_descriptor():
    profiles = load_profiles()
    descriptors = [
        _descriptor(SourceCategory.DIAGNOCAT_RADIOLOGICAL, 210.0, 297.0, 1),
        _descriptor(SourceCategory.DIAGNOCAT_RADIOLOGICAL, 215.9, 279.4, 2),
        _descriptor(SourceCategory.CEPHALOMETRIC_ANALYSIS, 297.0, 210.0, 1),
    ]
    pages = plan_passthrough_layout(descriptors, profiles)
    
    assert [(p.width_mm, p.height_mm) for p in pages] == [(210.0, 297.0), (215.9, 279.4), (297.0, 210.0)]
    assert [p.stamp_brand for p in pages] == [True, True, False]
    for page in pages:
        (placement,) = page.placements
        assert (placement.x, placement.y) == (0.0, 0.0)
        assert (placement.width, placement.height) == (page.width_mm, page.height_mm)
        assert page.stamp_on_top


class TestLayoutEngineRender(unittest.TestCase):
    
    def setUp(self):
        self.stamper = MagicMock(spec=BrandStamper)
        self.engine = LayoutEngine(settings=LayoutSettings(), stamper=self.stamper)
        self.profiles = load_profiles()
    
    def test_screenshots_then_reports(self):
        screenshots = [_raster(157, 81, encoded=True)] * 3
        reports = [
            PageDescriptor(_raster(60, 85, encoded=True), 210.0, 297.0, SourceCategory.DIAGNOCAT_RADIOLOGICAL, 1, "r.pdf"),
            PageDescriptor(_raster(85, 60, encoded=True), 297.0, 210.0, SourceCategory.CEPHALOMETRIC_ANALYSIS, 1, "c.pdf"),
        ]
        
        plan = self.engine.plan(screenshots, reports, self.profiles)
        data = self.engine.render(plan)
        reader = read_pdf(data)
        
        self.assertEqual(len(reader.pages), 4)
        sizes = [(float(p.mediabox.width), float(p.mediabox.height)) for p in reader.pages]
        for (w, h), (ew, eh) in zip(sizes, [(210, 297), (210, 297), (210, 297), (297, 210)]):
            self.assertAlmostEqual(w, ew * mm, places=2)
            self.assertAlmostEqual(h, eh * mm, places=2)
        
        # Two flow pages + the radiological page; the cephalometric page is not stamped.
        self.assertEqual(self.stamper.stamp.call_count, 3)
    
    def test_draw_failure_names_the_page(self):
        reports = [
            PageDescriptor(_raster(60, 85, encoded=True), 210.0, 297.0, SourceCategory.DIAGNOCAT_RADIOLOGICAL, 2, "r.pdf"),
        ]
        plan = self.engine.plan([], reports, self.profiles)
        self.assertEqual(plan[0].label, "r.pdf p2")
        
        composer = MagicMock(spec=PdfComposer)
        composer.draw_png.side_effect = ValueError("bad image")
        with self.assertRaises(EncodeError) as ctx:
            self.engine.render(plan, composer=composer)
        self.assertIn("r.pdf p2", str(ctx.exception))
    
    def test_empty_plan_is_rejected(self):
        with self.assertRaises(EmptyInputError):
            self.engine.render([])
    
    def test_composer_without_pages_is_rejected(self):
        with self.assertRaises(EmptyInputError):
            PdfComposer().finish()


class TestBrandStamper(unittest.TestCase):
    
    def test_bottom_right_position(self):
        stamper = BrandStamper(mark=BrandMark.wordmark("X"), width_mm=40, margin_mm=10)
        x, y, w, h = stamper.position(210, 297)
        
        self.assertAlmostEqual(w, 40)
        self.assertAlmostEqual(h, 40 * 120 / 680)
        self.assertAlmostEqual(x, 160)
        self.assertAlmostEqual(y, 297 - 10 - h)
    
    def test_stamp_draws_once_on_current_page(self):
        stamper = BrandStamper(mark=BrandMark.wordmark("X"), width_mm=40, margin_mm=10)
        composer = MagicMock(page_width_mm=297.0, page_height_mm=210.0)
        
        stamper.stamp(composer)
        
        composer.draw_png.assert_called_once()
        args = composer.draw_png.call_args[0]
        self.assertAlmostEqual(args[1], 247.0)
        self.assertAlmostEqual(args[2], 210 - 10 - 40 * 120 / 680)
    
    def test_invalid_geometry(self):
        with self.assertRaises(ConfigurationError):
            BrandStamper(mark=BrandMark.wordmark("X"), width_mm=0, margin_mm=10)
    
    def test_wordmark_has_fixed_aspect(self):
        mark = BrandMark.wordmark("MILADENT")
        self.assertEqual(mark.image.size, (680, 120))
        self.assertEqual(mark.resized(340).size, (340, 60))


if __name__ == '__main__':
    unittest.main()
