"""
Rendering the still frame shown while a track plays (custom-frame video mode).

Layout for a W x H frame (text sizes are given for 1080 lines and scale with H):

- background: solid color, a top-to-bottom two-color gradient, or an image
  scaled to fill the frame and center-cropped (black if it cannot be loaded);
- cover art: a square of side min(H - 200, W/2 - 200) centered in the left
  half, with an optional 8 px border around it;
- text in the right half starting at x = W/2 + 50: the bold title just above
  the vertical center, then the optional artist and album lines below it.

The optional glow draws the title many times at 30% opacity, offset on a
0.5 px grid across [-intensity, +intensity] in both directions, before the
title itself is drawn on top.
"""

from pathlib import Path
from typing import Optional, Sequence

from loguru import logger
from PIL import Image, ImageColor, ImageDraw, ImageFont

from ..config.video import (
    ALBUM_COLOR,
    ALBUM_FONT_SIZE,
    ARTIST_COLOR,
    ARTIST_FONT_SIZE,
    ARTIST_OFFSET_Y,
    COVER_BORDER_WIDTH,
    COVER_MARGIN,
    FRAME_BOLD_FONT_CANDIDATES,
    FRAME_REGULAR_FONT_CANDIDATES,
    GLOW_ALPHA,
    GLOW_STEP,
    REFERENCE_HEIGHT,
    TEXT_LINE_SPACING,
    TEXT_OFFSET_X,
    TEXT_RIGHT_MARGIN,
    TITLE_FONT_SIZE,
    TITLE_OFFSET_Y,
)
from ..domain.models import BackgroundType, FrameStyle, TrackMetadata


def load_font(candidates: Sequence[str], size: int) -> ImageFont.ImageFont:
    for font_path in candidates:
        if Path(font_path).exists():
            try:
                return ImageFont.truetype(font_path, size=size)
            except OSError:
                continue
    return ImageFont.load_default()


def cover_crop(source: Image.Image, out_w: int, out_h: int) -> Image.Image:
    """Scales `source` to fill (out_w, out_h) keeping its aspect ratio and crops the center."""
    src = source.convert("RGB")
    scale = max(out_w / max(1, src.width), out_h / max(1, src.height))
    nw = max(1, int(round(src.width * scale)))
    nh = max(1, int(round(src.height * scale)))
    resized = src.resize((nw, nh), Image.LANCZOS)
    left = max(0, (nw - out_w) // 2)
    top = max(0, (nh - out_h) // 2)
    return resized.crop((left, top, left + out_w, top + out_h))


def vertical_gradient(width: int, height: int, start: tuple, end: tuple) -> Image.Image:
    """A top-to-bottom linear gradient from `start` to `end` (RGB tuples)."""
    column = Image.new("RGB", (1, height))
    last = max(1, height - 1)
    for y in range(height):
        t = y / last
        column.putpixel((0, y), tuple(int(round(a + (b - a) * t)) for a, b in zip(start, end)))
    return column.resize((width, height))


def glow_offsets(intensity: float, step: float = GLOW_STEP) -> list[float]:
    """Offsets from -intensity to +intensity inclusive, `step` apart."""
    radius = max(0.0, float(intensity))
    count = int(round(2 * radius / step)) + 1
    return [-radius + i * step for i in range(count)]


def fit_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> str:
    """Shortens `text` with "..." until it fits `max_width` pixels."""
    if draw.textlength(text, font=font) <= max_width:
        return text
    while text and draw.textlength(text + "...", font=font) > max_width:
        text = text[:-1]
    return text + "..."


class FrameRenderer:
    """
    Draws per-track frames for one build.

    Attributes:
        style (FrameStyle): Background, cover, colors and text options.
        width (int): Frame width in pixels.
        height (int): Frame height in pixels.
    """

    def __init__(self, style: FrameStyle, resolution: tuple[int, int]):
        self.style = style
        self.width, self.height = resolution
        scale = self.height / REFERENCE_HEIGHT
        self.scale = scale
        self.title_font = load_font(FRAME_BOLD_FONT_CANDIDATES, max(8, round(TITLE_FONT_SIZE * scale)))
        self.artist_font = load_font(FRAME_REGULAR_FONT_CANDIDATES, max(8, round(ARTIST_FONT_SIZE * scale)))
        self.album_font = load_font(FRAME_REGULAR_FONT_CANDIDATES, max(8, round(ALBUM_FONT_SIZE * scale)))
        self._cover: Optional[Image.Image] = self._load_cover()
        self._background: Image.Image = self._make_background()

    def _make_background(self) -> Image.Image:
        style = self.style
        size = (self.width, self.height)
        if style.background_type is BackgroundType.GRADIENT:
            return vertical_gradient(
                self.width, self.height,
                ImageColor.getrgb(style.gradient_start), ImageColor.getrgb(style.gradient_end),
            )
        if style.background_type is BackgroundType.IMAGE:
            if style.background_image:
                try:
                    with Image.open(style.background_image) as img:
                        return cover_crop(img, self.width, self.height)
                except OSError as e:
                    logger.warning(f"Could not load background image {style.background_image}: {e}. Using black.")
            return Image.new("RGB", size, "black")
        return Image.new("RGB", size, ImageColor.getrgb(style.solid_color))

    def _load_cover(self) -> Optional[Image.Image]:
        if not self.style.cover_art:
            return None
        try:
            with Image.open(self.style.cover_art) as img:
                return img.convert("RGB")
        except OSError as e:
            logger.warning(f"Could not load cover art {self.style.cover_art}: {e}. Frames will have no cover.")
            return None

    @property
    def cover_box(self) -> tuple[int, int, int]:
        """(x, y, size) of the cover art square."""
        size = max(1, int(min(self.height - COVER_MARGIN, self.width / 2 - COVER_MARGIN)))
        x = int((self.width / 2 - size) / 2)
        y = int((self.height - size) / 2)
        return x, y, size

    def render(self, metadata: TrackMetadata) -> Image.Image:
        style = self.style
        frame = self._background.copy()
        draw = ImageDraw.Draw(frame, "RGBA")

        if self._cover is not None:
            x, y, size = self.cover_box
            if style.show_border:
                b = COVER_BORDER_WIDTH
                draw.rectangle((x - b, y - b, x + size + b - 1, y + size + b - 1), fill=ImageColor.getrgb(style.border_color))
            frame.paste(self._cover.resize((size, size), Image.LANCZOS), (x, y))

        text_x = self.width / 2 + TEXT_OFFSET_X * self.scale
        text_width = int(self.width / 2 - TEXT_RIGHT_MARGIN * self.scale)
        center_y = self.height / 2

        title = fit_text(draw, metadata.title, self.title_font, text_width)
        title_box = draw.textbbox((0, 0), title, font=self.title_font)
        title_y = center_y + TITLE_OFFSET_Y * self.scale - (title_box[3] - title_box[1])

        if style.enable_glow and style.glow_intensity > 0:
            glow = ImageColor.getrgb(style.glow_color)[:3] + (int(round(255 * GLOW_ALPHA)),)
            offsets = glow_offsets(style.glow_intensity)
            for dx in offsets:
                for dy in offsets:
                    draw.text((text_x + dx, title_y + dy), title, font=self.title_font, fill=glow)

        draw.text((text_x, title_y), title, font=self.title_font, fill=ImageColor.getrgb(style.title_color))

        line_y = center_y + ARTIST_OFFSET_Y * self.scale
        artist = style.artist_line(metadata)
        if artist:
            draw.text((text_x, line_y), fit_text(draw, artist, self.artist_font, text_width),
                      font=self.artist_font, fill=ImageColor.getrgb(ARTIST_COLOR))
            line_y += TEXT_LINE_SPACING * self.scale
        album = style.album_line(metadata)
        if album:
            draw.text((text_x, line_y), fit_text(draw, album, self.album_font, text_width),
                      font=self.album_font, fill=ImageColor.getrgb(ALBUM_COLOR))

        return frame

    def save(self, metadata: TrackMetadata, path: Path) -> Path:
        """Renders and writes the frame as PNG."""
        self.render(metadata).save(path, format="PNG")
        return path
