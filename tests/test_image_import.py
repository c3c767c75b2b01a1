import io
from pathlib import Path
import sys

import numpy as np
import pytest
from PIL import Image

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from bitmapkit.config import Config
from bitmapkit.image_io import ImageDecodeError, ImageLoader, fit_size
from bitmapkit.pipeline import Editor
from bitmapkit.sampling import buffer_to_cells, buffer_to_grid, grid_to_buffer


def _png_bytes(width, height, fill=None):
    if fill is None:
        gradient = np.linspace(0, 255, num=width * height, dtype=np.uint8).reshape(height, width)
        rgb = np.stack([gradient, gradient, gradient], axis=2)
    else:
        rgb = np.full((height, width, 3), fill, dtype=np.uint8)
    out = io.BytesIO()
    Image.fromarray(rgb).save(out, format="PNG")
    return out.getvalue()


@pytest.mark.parametrize("size,expected", [
    ((256, 128), (128, 64)),
    ((128, 512), (32, 128)),
    ((100, 50), (100, 50)),
    ((128, 128), (128, 128)),
    ((1000, 3), (128, 1)),
])
def test_fit_size_maps_longer_side_to_limit(size, expected):
    assert fit_size(*size, 128) == expected


def test_loader_downscales_bytes_to_display(capsys):
    loader = ImageLoader(Config())
    buffer = loader.load(_png_bytes(256, 128))
    assert buffer.shape == (64, 128, 4)
    assert buffer.dtype == np.uint8
    assert "Downscaled" in capsys.readouterr().out


def test_loader_reads_files(tmp_path):
    path = tmp_path / "small.png"
    path.write_bytes(_png_bytes(20, 10))
    buffer = ImageLoader(Config()).load(str(path))
    assert buffer.shape == (10, 20, 4)
    assert (buffer[:, :, 3] == 255).all()


def test_loader_bilinear_resample():
    config = Config()
    config.image_import.resample = "bilinear"
    buffer = ImageLoader(config).load(_png_bytes(300, 300))
    assert buffer.shape == (128, 128, 4)


def test_loader_rejects_corrupt_data():
    with pytest.raises(ImageDecodeError):
        ImageLoader(Config()).load(b"definitely not an image")


def test_loader_wraps_decompression_bomb(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(ImageDecodeError):
        ImageLoader(Config()).load(_png_bytes(32, 32))


def test_loader_missing_file():
    with pytest.raises(FileNotFoundError):
        ImageLoader(Config()).load("/nonexistent/picture.png")


def test_black_red_channel_becomes_ink():
    buffer = np.full((2, 3, 4), 255, dtype=np.uint8)
    buffer[0, 1, 0] = 0
    buffer[1, 2, :3] = 0
    assert buffer_to_cells(buffer) == [False, True, False, False, False, True]

    grid = buffer_to_grid(buffer)
    assert grid.size == (3, 2)
    assert grid.ink_count == 2


def test_grid_to_buffer_round_trips_through_sampling():
    buffer = np.full((4, 5, 4), 255, dtype=np.uint8)
    buffer[1, 3, :3] = 0
    grid = buffer_to_grid(buffer)
    assert np.array_equal(grid_to_buffer(grid), buffer)


def test_session_restarts_from_source_on_every_change():
    editor = Editor()
    session = editor.start_image_import(_png_bytes(64, 32))
    source_before = session._source.copy()

    session.set_parameters(mode="threshold", threshold=60)
    first = list(session.preview_grid.cells)
    session.set_parameters(mode="floyd-steinberg", threshold=180)
    session.set_parameters(mode="threshold", threshold=60)

    assert session.preview_grid.cells == first
    assert np.array_equal(session._source, source_before)
    assert not session._source.flags.writeable


def test_session_threshold_changes_preview():
    editor = Editor()
    session = editor.start_image_import(_png_bytes(32, 32))
    session.set_parameters(mode="threshold", threshold=20)
    dark_ink = session.preview_grid.ink_count
    session.set_parameters(threshold=200)
    assert session.preview_grid.ink_count > dark_ink


@pytest.mark.parametrize("params", [{"threshold": 5}, {"threshold": 201}, {"mode": "bayer"}])
def test_session_rejects_out_of_range_parameters(params):
    session = Editor().start_image_import(_png_bytes(8, 8))
    with pytest.raises(ValueError):
        session.set_parameters(**params)


def test_session_preview_png_decodes():
    session = Editor().start_image_import(_png_bytes(16, 8))
    png = session.preview_png()
    with Image.open(io.BytesIO(png)) as image:
        assert image.size == (16, 8)
    assert session.preview_data_url().startswith("data:image/png;base64,")


def test_apply_import_adopts_image_size():
    editor = Editor()
    original_id = editor.grid.id
    session = editor.start_image_import(_png_bytes(40, 20, fill=0))
    grid = editor.apply_import(session)

    assert grid.size == (40, 20)
    assert grid.ink_count == 40 * 20
    assert grid.id == original_id


def test_apply_import_can_keep_working_size():
    editor = Editor()
    session = editor.start_image_import(_png_bytes(40, 20, fill=0))
    grid = editor.apply_import(session, keep_size=True)

    assert grid.size == (128, 64)
    assert grid.ink_count == 40 * 20
    assert grid.cells[0] is True
    assert grid.cells[40] is False


def test_failed_image_import_leaves_grid_unchanged():
    editor = Editor()
    before = editor.grid
    with pytest.raises(ImageDecodeError):
        editor.start_image_import(b"\x89PNG broken")
    assert editor.grid is before
