import base64
import io

import pytest
from PIL import Image, ImageChops, ImageColor

from fakes import png_bytes
from snapcomic.compositor import (StripLayout, comic_data_uri, download_filename, render_strip,
                                  stitch_comic)
from snapcomic.config import BACKGROUND_COLOR, FALLBACK_FILL
from snapcomic.models import ComicPanel

LAYOUT = StripLayout(panel_width=500, panel_height=500, caption_height=50, padding=20)
BG = ImageColor.getrgb(BACKGROUND_COLOR)
FALLBACK = ImageColor.getrgb(FALLBACK_FILL)


def panel(index, color="red", caption=None):
    return ComicPanel(index=index, caption=caption or f"Caption {index}",
                      image=png_bytes(color, (500, 500)), status="ready")


def close(a, b, tol=2):
    return all(abs(x - y) <= tol for x, y in zip(a, b))


def slot_pixel(img, pos, dx=10, dy=10):
    x, y = LAYOUT.panel_origin(pos)
    return img.getpixel((x + dx, y + dy))


def caption_band_colors(img, pos):
    x, y = LAYOUT.panel_origin(pos)
    band = img.crop((x, y + LAYOUT.panel_height, x + LAYOUT.panel_width,
                     y + LAYOUT.panel_height + LAYOUT.caption_height))
    return {c for _, c in band.getcolors(maxcolors=1 << 16)}


@pytest.mark.parametrize("n, width", [(1, 540), (2, 1060), (4, 2100), (6, 3140)])
def test_canvas_size(n, width):
    assert LAYOUT.canvas_size(n) == (width, 590)


def test_four_panel_strip_dimensions_and_background():
    img = render_strip([panel(i) for i in range(1, 5)], LAYOUT).image
    assert img.size == (2100, 590)
    assert img.getpixel((0, 0)) == BG
    assert img.getpixel((2099, 589)) == BG
    # gap between panel 1 and panel 2
    assert img.getpixel((525, 100)) == BG


def test_panel_origins():
    assert [LAYOUT.panel_origin(i) for i in range(4)] == [(20, 20), (540, 20), (1060, 20), (1580, 20)]
    assert LAYOUT.caption_center(0) == (270.0, 545.0)


def test_draw_order_follows_panel_index_not_list_order():
    panels = [panel(3, "blue"), panel(1, "red"), panel(2, "lime")]
    img = render_strip(panels, LAYOUT).image
    assert slot_pixel(img, 0) == (255, 0, 0)
    assert slot_pixel(img, 1) == (0, 255, 0)
    assert slot_pixel(img, 2) == (0, 0, 255)


def test_failed_panel_gets_fallback_box_and_keeps_its_caption():
    panels = [panel(1, "red"), ComicPanel.failed(2, "The storm arrives"),
              panel(3, "lime"), panel(4, "blue")]
    img = render_strip(panels, LAYOUT).image

    assert img.size == (2100, 590)
    assert slot_pixel(img, 1, dx=3, dy=3) == FALLBACK
    # fallback label sits in the middle of the box
    x, y = LAYOUT.panel_origin(1)
    middle = img.crop((x, y + 230, x + 500, y + 270))
    assert len(middle.getcolors(maxcolors=1 << 16)) > 1
    assert slot_pixel(img, 0) == (255, 0, 0)
    assert slot_pixel(img, 3) == (0, 0, 255)
    for pos in range(4):
        assert caption_band_colors(img, pos) != {BG}


def test_undecodable_bytes_fall_back_without_blocking_other_panels():
    broken = ComicPanel(index=2, caption="Broken", image=b"\x89PNG not really", status="ready")
    img = render_strip([panel(1, "red"), broken, panel(3, "blue")], LAYOUT).image
    assert slot_pixel(img, 1, dx=3, dy=3) == FALLBACK
    assert slot_pixel(img, 2) == (0, 0, 255)
    assert caption_band_colors(img, 1) != {BG}


def test_non_square_illustrations_are_scaled_into_the_slot():
    wide = ComicPanel(index=1, caption="Wide", image=png_bytes("red", (80, 40)), status="ready")
    img = render_strip([wide], LAYOUT).image
    assert img.size == (540, 590)
    for xy in [(270, 270), (21, 21), (518, 518)]:
        assert close(img.getpixel(xy), (255, 0, 0))


def test_stitching_is_idempotent():
    panels = [panel(1, "red"), ComicPanel.failed(2, "Oops"), panel(3, "blue")]
    first = Image.open(io.BytesIO(stitch_comic(panels, LAYOUT)))
    second = Image.open(io.BytesIO(stitch_comic(panels, LAYOUT)))
    assert first.size == second.size
    assert first.tobytes() == second.tobytes()


def test_pending_panels_cannot_be_stitched():
    pending = ComicPanel(index=2, caption="Later")
    with pytest.raises(ValueError, match="pending"):
        stitch_comic([panel(1), pending], LAYOUT)


def test_empty_panel_list_is_rejected():
    with pytest.raises(ValueError):
        stitch_comic([], LAYOUT)


def test_data_uri_round_trips_png():
    png = stitch_comic([panel(1)], LAYOUT)
    uri = comic_data_uri(png)
    assert uri.startswith("data:image/png;base64,")
    assert base64.b64decode(uri.split(",", 1)[1]) == png


@pytest.mark.parametrize("title, expected", [
    ("My Comic", "My_Comic_comic.png"),
    ("  The   Lost\tCat ", "The_Lost_Cat_comic.png"),
    ("", "comic_comic.png"),
])
def test_download_filename(title, expected):
    assert download_filename(title) == expected


def ink_center(with_text, without_text):
    box = ImageChops.difference(with_text, without_text).getbbox()
    assert box is not None
    return (box[0] + box[2]) / 2, (box[1] + box[3]) / 2, box[3] - box[1]


def strip_with_captions(captions):
    panels = [ComicPanel(index=i, caption=c, image=png_bytes("white", (500, 500)), status="ready")
              for i, c in enumerate(captions, start=1)]
    return render_strip(panels, LAYOUT).image


def test_captions_are_centred_under_their_illustration():
    one_line = "A cat naps"
    wrapped = " ".join(["the cat and the dog play ball"] * 4)
    blank = strip_with_captions(["", ""])
    img = strip_with_captions([one_line, wrapped])

    heights = []
    for pos in range(2):
        x, _ = LAYOUT.panel_origin(pos)
        only = strip_with_captions(["", ""])
        # isolate one slot so the other caption does not widen the box
        mask = Image.new("L", img.size, 0)
        mask.paste(255, (x, 0, x + LAYOUT.panel_width, img.size[1]))
        only.paste(img, (0, 0), mask)

        cx, cy, height = ink_center(only, blank)
        expected_x, expected_y = LAYOUT.caption_center(pos)
        assert abs(cx - expected_x) <= 2
        assert abs(cy - expected_y) <= 4
        heights.append(height)

    assert heights[1] > 1.5 * heights[0]


def test_fallback_label_is_centred_in_the_box():
    img = render_strip([ComicPanel.failed(1, "")], LAYOUT).image
    x, y = LAYOUT.panel_origin(0)
    box = img.crop((x, y, x + LAYOUT.panel_width, y + LAYOUT.panel_height))

    cx, cy, _ = ink_center(box, Image.new("RGB", box.size, FALLBACK))
    assert abs(cx - LAYOUT.panel_width / 2) <= 2
    assert abs(cy - LAYOUT.panel_height / 2) <= 4
