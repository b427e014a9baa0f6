import numpy as np

from cursorcam.core.compositor import Compositor, inset_layout, paint_background
from cursorcam.core.gradient import GradientTable
from cursorcam.core.planes import CanvasFrame


def _flat_source(width, height, luma=200, chroma=90):
    source = CanvasFrame.allocate(width, height)
    source.y.pixels[:, :] = luma
    source.u.pixels[:, :] = chroma
    source.v.pixels[:, :] = chroma
    return source


def test_inset_layout_is_even_and_centred():
    layout = inset_layout(64, 48, 64, 48)

    # 0.8 * 64 = 51.2 and 0.8 * 48 = 38.4, forced even
    assert (layout.width, layout.height) == (50, 38)
    assert (layout.offset_x, layout.offset_y) == (6, 4)


def test_inset_layout_never_exceeds_canvas():
    layout = inset_layout(40, 30, 400, 300)
    assert layout.width <= 40 and layout.height <= 30
    assert layout.offset_x >= 0 and layout.offset_y >= 0


def test_paint_background_replicates_rows(background):
    table = GradientTable.build(32, background.start.as_tuple(), background.end.as_tuple())
    canvas = CanvasFrame.allocate(32, 16)

    paint_background(canvas, table)

    for row in canvas.y.pixels:
        assert np.array_equal(row, table.luma)
    for row in canvas.u.pixels:
        assert np.array_equal(row, table.chroma_u)
    assert canvas.u.pixels.shape == (8, 16)


def test_composite_pastes_inset_over_gradient(background):
    compositor = Compositor(64, 48, background)
    source = _flat_source(64, 48)

    canvas = compositor.composite(source)

    assert (canvas.width, canvas.height) == (64, 48)
    assert np.all(canvas.y.pixels[4:42, 6:56] == 200)
    assert np.all(canvas.u.pixels[2:21, 3:28] == 90)
    assert np.all(canvas.v.pixels[2:21, 3:28] == 90)
    # gradient is still visible around the inset
    assert np.array_equal(canvas.y.pixels[0], compositor.table.luma)
    assert np.array_equal(canvas.y.pixels[47], compositor.table.luma)
    assert np.array_equal(canvas.y.pixels[20, :6], compositor.table.luma[:6])
    assert np.array_equal(canvas.u.pixels[0], compositor.table.chroma_u)


def test_composite_leaves_source_and_background_untouched(background):
    compositor = Compositor(64, 48, background)
    source = _flat_source(64, 48)

    first = compositor.composite(source)
    first.y.pixels[:, :] = 0
    second = compositor.composite(source)

    assert np.all(source.y.pixels == 200)
    assert np.array_equal(second.y.pixels[0], compositor.table.luma)


def test_render_frame_accepts_decoded_frames(background):
    compositor = Compositor(64, 48, background)
    decoded = _flat_source(80, 60, luma=120, chroma=128).to_av(pts=0)

    canvas = compositor.render_frame(decoded)

    layout = compositor.layout_for(80, 60)
    assert (layout.width, layout.height) == (64, 48)
    assert (layout.offset_x, layout.offset_y) == (0, 0)
    assert np.all(canvas.y.pixels == 120)
