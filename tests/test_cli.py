from pathlib import Path
import sys

import numpy as np
from click.testing import CliRunner
from PIL import Image

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from bitmapkit.cli import cli


def _invoke(tmp_path, *args, input=None):
    runner = CliRunner()
    base = ["--config", str(tmp_path / "bitmapkit.yaml"), "--data-dir", str(tmp_path / "data")]
    return runner.invoke(cli, base + list(args), input=input)


def test_new_and_show(tmp_path):
    result = _invoke(tmp_path, "new")
    assert result.exit_code == 0, result.output
    assert "128x64" in result.output

    result = _invoke(tmp_path, "show")
    assert result.exit_code == 0
    lines = result.output.strip().split("\n")
    assert len(lines) == 65
    assert lines[1] == "." * 128


def test_edits_persist_between_invocations(tmp_path):
    assert _invoke(tmp_path, "resize", "8", "2").exit_code == 0
    assert _invoke(tmp_path, "toggle", "0", "0").exit_code == 0
    assert _invoke(tmp_path, "shift", "right", "--steps", "2").exit_code == 0

    result = _invoke(tmp_path, "export")
    assert result.exit_code == 0
    assert result.output.strip() == "0x04,\n0x00"

    assert _invoke(tmp_path, "invert").exit_code == 0
    assert _invoke(tmp_path, "export").output.strip() == "0xfb,\n0xff"

    assert _invoke(tmp_path, "clear").exit_code == 0
    assert _invoke(tmp_path, "export").output.strip() == "0x00,\n0x00"


def test_export_to_file(tmp_path):
    _invoke(tmp_path, "resize", "8", "1")
    _invoke(tmp_path, "toggle", "--index", "7")
    out = tmp_path / "code.txt"
    result = _invoke(tmp_path, "export", "--output", str(out))
    assert result.exit_code == 0
    assert out.read_text(encoding="utf-8").strip() == "0x80"


def test_import_code_from_argument_and_stdin(tmp_path):
    _invoke(tmp_path, "resize", "8", "2")
    result = _invoke(tmp_path, "import-code", "0x31, 0X80")
    assert result.exit_code == 0, result.output
    assert _invoke(tmp_path, "export").output.strip() == "0x31,\n0x80"

    result = _invoke(tmp_path, "import-code", input="ff,\n01\n")
    assert result.exit_code == 0
    assert _invoke(tmp_path, "export").output.strip() == "0xff,\n0x01"


def test_import_code_rejects_garbage(tmp_path):
    _invoke(tmp_path, "resize", "8", "1")
    _invoke(tmp_path, "import-code", "0x0f")
    result = _invoke(tmp_path, "import-code", "not,hex")
    assert result.exit_code == 1
    assert "Import failed" in result.output
    assert _invoke(tmp_path, "export").output.strip() == "0x0f"


def test_resize_out_of_range_fails(tmp_path):
    result = _invoke(tmp_path, "resize", "200", "8")
    assert result.exit_code == 1
    assert "outside" in result.output


def test_toggle_out_of_range_fails(tmp_path):
    _invoke(tmp_path, "resize", "4", "4")
    result = _invoke(tmp_path, "toggle", "--index", "16")
    assert result.exit_code == 1


def test_save_history_load_delete(tmp_path):
    _invoke(tmp_path, "rename", "sprite")
    assert _invoke(tmp_path, "save").exit_code == 0
    assert _invoke(tmp_path, "save", "--copy").exit_code == 0

    result = _invoke(tmp_path, "history")
    lines = result.output.strip().split("\n")
    assert len(lines) == 2
    assert lines[0].endswith("sprite copy")
    assert lines[1].endswith("sprite")

    original_prefix = lines[1].split()[0]
    result = _invoke(tmp_path, "load", original_prefix)
    assert result.exit_code == 0
    assert "sprite" in result.output

    assert _invoke(tmp_path, "delete", original_prefix).exit_code == 0
    assert len(_invoke(tmp_path, "history").output.strip().split("\n")) == 1

    result = _invoke(tmp_path, "load", "zzzzzzzz")
    assert result.exit_code == 1
    assert "No saved grid" in result.output

    assert _invoke(tmp_path, "load", "").exit_code == 1


def test_import_image_and_preview(tmp_path):
    gradient = np.linspace(0, 255, num=200 * 100, dtype=np.uint8).reshape(100, 200)
    image_path = tmp_path / "photo.png"
    Image.fromarray(gradient).save(image_path)
    preview_path = tmp_path / "preview.png"

    result = _invoke(tmp_path, "import-image", str(image_path), "--mode", "threshold",
                     "--threshold", "128", "--preview", str(preview_path))
    assert result.exit_code == 0, result.output
    assert "128x64" in result.output
    with Image.open(preview_path) as preview:
        assert preview.size == (128, 64)

    grid_png = tmp_path / "grid.png"
    result = _invoke(tmp_path, "preview", str(grid_png), "--cell-size", "2")
    assert result.exit_code == 0
    with Image.open(grid_png) as rendered:
        assert rendered.size == (256, 128)


def test_import_image_dry_run_keeps_grid(tmp_path):
    image_path = tmp_path / "black.png"
    Image.fromarray(np.zeros((10, 10, 3), dtype=np.uint8)).save(image_path)

    result = _invoke(tmp_path, "import-image", str(image_path), "--dry-run")
    assert result.exit_code == 0
    assert "100 ink cells" in result.output
    assert ", 0 ink]" in _invoke(tmp_path, "show").output


def test_import_image_rejects_non_image(tmp_path):
    bogus = tmp_path / "notes.png"
    bogus.write_bytes(b"plain text")
    result = _invoke(tmp_path, "import-image", str(bogus))
    assert result.exit_code == 1
    assert "Cannot decode image" in result.output


def test_info_and_init_config(tmp_path):
    result = _invoke(tmp_path, "info")
    assert result.exit_code == 0
    assert "Floyd-Steinberg" in result.output

    out = tmp_path / "written.yaml"
    result = _invoke(tmp_path, "init-config", "--output", str(out))
    assert result.exit_code == 0
    assert out.exists()


def test_working_grid_file_is_written_and_read(tmp_path):
    assert _invoke(tmp_path, "toggle", "0", "0").exit_code == 0
    current = tmp_path / "data" / "current_grid.json"
    assert current.exists()

    current.write_text("{not json", encoding="utf-8")
    result = _invoke(tmp_path, "show")
    assert result.exit_code == 1
    assert "Cannot read saved grids" in result.output
