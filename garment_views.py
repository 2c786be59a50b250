from __future__ import annotations

from io import BytesIO
from typing import Protocol, Tuple

from PIL import Image, ImageColor, ImageDraw

from render_directives import (
    FABRIC_PRIMARY,
    LINING_PART,
    MaterialDirective,
    RenderDirectives,
)

RGB = Tuple[int, int, int]

_BACKGROUND: RGB = (245, 245, 245)

# Hem values drawn with a turned-up band.
_TURNED_HEMS = frozenset({"cuffed", "turn-up"})


class Renderer(Protocol):
    def render(self, directives: RenderDirectives) -> bytes:
        ...


def _color(value: str) -> RGB:
    """
    Convert a CSS hex (or any colour Pillow understands) to an RGB tuple; blank means white.
    """
    v = (value or "").strip() or "#FFFFFF"
    return ImageColor.getrgb(v)[:3]


def _shade(rgb: RGB, factor: float) -> RGB:
    f = max(0.0, min(1.0, float(factor)))
    r, g, b = rgb
    return (int(r * f), int(g * f), int(b * f))


def _blend(rgb: RGB, under: RGB, opacity: float) -> RGB:
    a = max(0.0, min(1.0, float(opacity)))
    r, g, b = (int(round(c * a + u * (1.0 - a))) for c, u in zip(rgb, under))
    return (r, g, b)


def _material_rgb(m: MaterialDirective) -> RGB:
    # Rough fabrics read slightly darker; opacity blends toward the background.
    base = _shade(_color(m.color), 1.0 - 0.15 * max(0.0, min(1.0, m.roughness)))
    return _blend(base, _BACKGROUND, m.opacity)


def _outline(fill: RGB) -> RGB:
    return _shade(fill, 0.55)


def _encode_png(img: Image.Image) -> bytes:
    buf = BytesIO()
    img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


class PreviewRenderer:
    """
    Flat front-view drawing of a garment from projected directives.

    Stable and local-only; enough to preview colours, style parts, buttons and monogram.
    """

    def __init__(self, *, garment_type: str = "jacket", canvas_px: Tuple[int, int] = (480, 640)) -> None:
        cw, ch = canvas_px
        self.garment_type = garment_type
        self.canvas_px = (max(240, min(2400, int(cw))), max(320, min(2400, int(ch))))

    def render(self, directives: RenderDirectives) -> bytes:
        return _encode_png(self.render_image(directives))

    def render_image(self, directives: RenderDirectives) -> Image.Image:
        cw, ch = self.canvas_px
        img = Image.new("RGB", (cw, ch), _BACKGROUND)
        d = ImageDraw.Draw(img)
        if self.garment_type == "pants":
            self._draw_pants(d, directives)
        else:
            self._draw_top(d, directives)
        d.rectangle([8, 8, cw - 9, ch - 9], outline=(190, 190, 190), width=2)
        return img

    def _slot(self, directives: RenderDirectives, slot: str) -> RGB:
        material = directives.part_material.get(slot) or directives.part_material[FABRIC_PRIMARY]
        return _material_rgb(material)

    def _draw_top(self, d: ImageDraw.ImageDraw, directives: RenderDirectives) -> None:
        cw, ch = self.canvas_px
        body = self._slot(directives, FABRIC_PRIMARY)
        sleeve = self._slot(directives, "sleeve")
        trim = self._slot(directives, "trim")
        cx = cw // 2
        top = int(ch * 0.16)
        bottom = int(ch * 0.86)
        half_w = int(cw * 0.24)

        # sleeves, then torso over them
        for sign in (-1, 1):
            shoulder = (cx + sign * half_w, top + 10)
            d.polygon(
                [
                    shoulder,
                    (cx + sign * int(half_w * 1.7), int(ch * 0.72)),
                    (cx + sign * int(half_w * 1.35), int(ch * 0.74)),
                    (cx + sign * int(half_w * 0.95), int(ch * 0.34)),
                ],
                fill=sleeve,
                outline=_outline(sleeve),
            )
            if directives.family_shown("cuff") or self.garment_type == "shirt":
                cuff = self._slot(directives, "cuff")
                d.polygon(
                    [
                        (cx + sign * int(half_w * 1.62), int(ch * 0.68)),
                        (cx + sign * int(half_w * 1.7), int(ch * 0.72)),
                        (cx + sign * int(half_w * 1.35), int(ch * 0.74)),
                        (cx + sign * int(half_w * 1.3), int(ch * 0.70)),
                    ],
                    fill=cuff,
                    outline=_outline(cuff),
                )

        d.rectangle([cx - half_w, top, cx + half_w, bottom], fill=body, outline=_outline(trim), width=2)

        if directives.part_visibility.get(LINING_PART):
            lining = self._slot(directives, LINING_PART)
            d.polygon([(cx - 28, top), (cx + 28, top), (cx, top + 70)], fill=lining)

        if directives.part_visibility.get("vest"):
            d.polygon([(cx - 36, top + 20), (cx + 36, top + 20), (cx, int(ch * 0.55))], fill=_shade(body, 0.8))

        if directives.family_shown("lapel"):
            lapel = _shade(body, 0.85)
            for sign in (-1, 1):
                d.polygon(
                    [(cx + sign * 40, top), (cx + sign * 8, int(ch * 0.48)), (cx + sign * 70, top + 60)],
                    fill=lapel,
                    outline=_outline(lapel),
                )
        if directives.family_shown("collar"):
            collar = self._slot(directives, "collar")
            for sign in (-1, 1):
                d.polygon(
                    [(cx, top + 26), (cx + sign * 46, top - 8), (cx + sign * 52, top + 18)],
                    fill=collar,
                    outline=_outline(collar),
                )

        if directives.family_shown("pocket"):
            pocket = self._slot(directives, "pocket")
            py = int(ch * 0.62)
            for sign in (-1, 1):
                x0 = cx + sign * int(half_w * 0.55) - 26
                d.rectangle([x0, py, x0 + 52, py + 12], fill=pocket, outline=_outline(pocket))

        self._draw_buttons(d, directives, cx=cx, top=top, bottom=bottom, half_w=half_w)
        self._draw_monogram(d, directives, cx=cx, top=top, half_w=half_w)

    def _draw_pants(self, d: ImageDraw.ImageDraw, directives: RenderDirectives) -> None:
        cw, ch = self.canvas_px
        body = self._slot(directives, FABRIC_PRIMARY)
        trim = self._slot(directives, "trim")
        cx = cw // 2
        top = int(ch * 0.12)
        bottom = int(ch * 0.9)
        half_w = int(cw * 0.22)

        for sign in (-1, 1):
            d.polygon(
                [
                    (cx, top + 40),
                    (cx + sign * half_w, top),
                    (cx + sign * int(half_w * 0.95), bottom),
                    (cx + sign * 12, bottom),
                ],
                fill=body,
                outline=_outline(trim),
            )
        d.rectangle([cx - half_w, top - 22, cx + half_w, top], fill=_shade(body, 0.9), outline=_outline(trim))

        if directives.family_shown("belt_loops"):
            for x in (-0.8, -0.35, 0.35, 0.8):
                lx = cx + int(x * half_w)
                d.rectangle([lx - 3, top - 26, lx + 3, top + 4], fill=_shade(body, 0.7))
        if directives.family_values.get("hem") in _TURNED_HEMS:
            for sign in (-1, 1):
                x0, x1 = sorted((cx + sign * 12, cx + sign * int(half_w * 0.95)))
                d.rectangle([x0, bottom - 16, x1, bottom], fill=_shade(body, 0.85))
        if directives.family_shown("pocket"):
            pocket = _outline(self._slot(directives, "pocket"))
            for sign in (-1, 1):
                d.line([(cx + sign * (half_w - 30), top + 8), (cx + sign * (half_w - 4), top + 60)], fill=pocket, width=3)

    def _draw_buttons(
        self,
        d: ImageDraw.ImageDraw,
        directives: RenderDirectives,
        *,
        cx: int,
        top: int,
        bottom: int,
        half_w: int,
    ) -> None:
        positions = directives.button_positions
        if not positions:
            return
        fill = _material_rgb(directives.button_material)
        waist_y = top + int((bottom - top) * 0.62)
        span = (bottom - top) * 0.55
        r = 7
        for p in positions:
            x = cx + int(p.x * half_w * 2.5)
            y = waist_y - int(p.y * span)
            d.ellipse([x - r, y - r, x + r, y + r], fill=fill, outline=_outline(fill))

    def _draw_monogram(
        self,
        d: ImageDraw.ImageDraw,
        directives: RenderDirectives,
        *,
        cx: int,
        top: int,
        half_w: int,
    ) -> None:
        mono = directives.monogram
        if mono is None:
            return
        anchors = {
            "chest": (cx - int(half_w * 0.6), top + 90),
            "cuff": (cx + int(half_w * 1.45), int(self.canvas_px[1] * 0.66)),
            "inside-pocket": (cx + int(half_w * 0.3), top + 120),
            "lining": (cx - 10, top + 40),
        }
        x, y = anchors.get(mono.position, (cx - 12, top + 100))
        d.text((x, y), mono.text, fill=_color(mono.thread_color))
