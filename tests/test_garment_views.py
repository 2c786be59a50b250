from __future__ import annotations

import unittest
from io import BytesIO

from PIL import Image

from configuration_state import new_configuration, select, update_monogram
from garment_views import PreviewRenderer
from render_directives import project
from sample_catalogs import load_sample_jacket, load_sample_pants


class TestGarmentViews(unittest.TestCase):
    def test_render_returns_png_of_requested_size(self) -> None:
        jacket = load_sample_jacket()
        png = PreviewRenderer(garment_type="jacket", canvas_px=(300, 400)).render(
            project(new_configuration("jacket-001"), jacket)
        )
        self.assertTrue(png.startswith(b"\x89PNG"))
        with Image.open(BytesIO(png)) as img:
            self.assertEqual(img.size, (300, 400))

    def test_canvas_is_clamped(self) -> None:
        self.assertEqual(PreviewRenderer(canvas_px=(10, 10)).canvas_px, (240, 320))

    def test_fabric_colour_reaches_the_drawing(self) -> None:
        jacket = load_sample_jacket()
        renderer = PreviewRenderer(garment_type="jacket")
        state = new_configuration("jacket-001")
        plain = renderer.render_image(project(state, jacket))
        black = renderer.render_image(project(select(state, jacket, "fabric-color", "black"), jacket))
        cw, ch = renderer.canvas_px
        probe = (cw // 2 + int(cw * 0.2), int(ch * 0.8))
        self.assertNotEqual(plain.getpixel(probe), black.getpixel(probe))

    def test_belt_loops_follow_the_family_value(self) -> None:
        pants = load_sample_pants()
        renderer = PreviewRenderer(garment_type="pants")
        state = new_configuration("pants-001")
        with_loops = renderer.render_image(project(state, pants))
        without = renderer.render_image(project(select(state, pants, "belt-loops", "no-loops"), pants))
        cw, ch = renderer.canvas_px
        half_w = int(cw * 0.22)
        loop = (cw // 2 + int(-0.8 * half_w), int(ch * 0.12) - 10)
        self.assertNotEqual(with_loops.getpixel(loop), without.getpixel(loop))

    def test_monogram_and_pants_render(self) -> None:
        jacket = load_sample_jacket()
        state = update_monogram(
            new_configuration("jacket-001"),
            {"enabled": True, "text": "JD", "position": "chest"},
            catalog=jacket,
        )
        self.assertTrue(PreviewRenderer().render(project(state, jacket)).startswith(b"\x89PNG"))

        pants = load_sample_pants()
        pants_state = select(new_configuration("pants-001"), pants, "hem-style", "cuffed")
        png = PreviewRenderer(garment_type="pants").render(project(pants_state, pants))
        self.assertTrue(png.startswith(b"\x89PNG"))


if __name__ == "__main__":
    unittest.main()
