"""
Command-line interface for the bitmap editor.

Commands act on a persisted working grid, so a sequence of invocations edits
the same bitmap the way a session in the editor would.
"""

import os
import sys

import click

from .config import Config, DITHER_MODES
from .history import HistoryRepository, JsonFileStore
from .image_io import ImageDecodeError
from .pipeline import Editor
from .preview import PreviewGenerator
from .transform import Direction


def _fail(message):
    click.echo(f"[X] Error: {message}", err=True)
    sys.exit(1)


def _error_text(e: Exception) -> str:
    # KeyError wraps its message in quotes
    return e.args[0] if isinstance(e, KeyError) and e.args else str(e)


def build_editor(config: Config) -> Editor:
    """Editor backed by JSON files in the configured data directory."""
    store = JsonFileStore(config.storage.data_dir)
    repository = HistoryRepository(
        store,
        history_key=config.storage.history_key,
        current_key=config.storage.current_key
    )
    return Editor(config, repository)


def _summary(grid) -> str:
    return f"{grid.name} [{grid.width}x{grid.height}, {grid.ink_count} ink] ({grid.id[:8]})"


@click.group()
@click.version_option(version="1.0.0")
@click.option('--config', '-c', 'config_path', default='bitmapkit.yaml',
              help='Configuration file path')
@click.option('--data-dir', '-d', default=None, help='Directory holding the working grid and history')
@click.pass_context
def cli(ctx, config_path, data_dir):
    """
    Monochrome bitmap editor

    Draw, import and dither images into 1-bit grids and export them as
    packed hex bytes for small LCD/OLED displays.
    """
    try:
        config = Config.from_yaml(config_path, data_dir=data_dir)
    except (ValueError, TypeError) as e:
        _fail(f"Invalid configuration '{config_path}': {e}")

    try:
        editor = build_editor(config)
    except (ValueError, KeyError) as e:
        _fail(f"Cannot read saved grids in '{config.storage.data_dir}': {_error_text(e)}")

    ctx.ensure_object(dict)
    ctx.obj['config'] = config
    ctx.obj['editor'] = editor


def _editor(ctx) -> Editor:
    return ctx.obj['editor']


@cli.command()
@click.pass_context
def new(ctx):
    """Start a new blank working grid."""
    grid = _editor(ctx).new_grid()
    click.echo(f"[OK] New grid: {_summary(grid)}")


@cli.command()
@click.option('--ink', default='#', help='Character drawn for ink cells')
@click.option('--paper', default='.', help='Character drawn for paper cells')
@click.pass_context
def show(ctx, ink, paper):
    """Print the working grid as text."""
    grid = _editor(ctx).grid
    click.echo(_summary(grid))
    for row in grid.rows():
        click.echo(''.join(ink if cell else paper for cell in row))


@cli.command()
@click.option('--output', '-o', type=click.Path(), help='Write the code to a file instead of stdout')
@click.pass_context
def export(ctx, output):
    """Export the working grid as hex byte code."""
    text = _editor(ctx).export_text()
    if output:
        with open(output, 'w', encoding='utf-8') as f:
            f.write(text + '\n')
        click.echo(f"[OK] Code written to {output}")
    else:
        click.echo(text)


@cli.command('import-code')
@click.argument('text', required=False)
@click.option('--file', '-f', 'path', type=click.Path(exists=True), help='Read the code from a file')
@click.pass_context
def import_code(ctx, text, path):
    """
    Import hex byte code into the working grid.

    TEXT: Comma-separated hex bytes; read from stdin when neither TEXT nor
    --file is given
    """
    if path:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    elif text is None:
        text = click.get_text_stream('stdin').read()

    if not _editor(ctx).import_text(text):
        sys.exit(1)


@cli.command('import-image')
@click.argument('image', type=click.Path(exists=True))
@click.option('--mode', '-m', type=click.Choice(list(DITHER_MODES)), help='Dithering algorithm')
@click.option('--threshold', '-t', type=int, help='Grey level cut-off')
@click.option('--keep-size', is_flag=True, help="Keep the working grid's dimensions")
@click.option('--preview', '-p', type=click.Path(), help='Write the dithered preview PNG here')
@click.option('--dry-run', is_flag=True, help='Only produce the preview, leave the grid unchanged')
@click.pass_context
def import_image(ctx, image, mode, threshold, keep_size, preview, dry_run):
    """Dither an image into the working grid."""
    editor = _editor(ctx)
    try:
        session = editor.start_image_import(image)
        if mode is not None or threshold is not None:
            session.set_parameters(mode=mode, threshold=threshold)
    except (ImageDecodeError, ValueError) as e:
        _fail(e)

    if preview:
        with open(preview, 'wb') as f:
            f.write(session.preview_png())
        click.echo(f"[OK] Preview written to {preview}")

    if dry_run:
        click.echo(f"Preview: {session.width}x{session.height}, "
                   f"{session.preview_grid.ink_count} ink cells")
        return

    grid = editor.apply_import(session, keep_size=keep_size)
    click.echo(_summary(grid))


@cli.command()
@click.argument('width', type=int)
@click.argument('height', type=int)
@click.pass_context
def resize(ctx, width, height):
    """Resize the working grid, keeping overlapping content."""
    try:
        grid = _editor(ctx).resize(width, height)
    except ValueError as e:
        _fail(e)
    click.echo(f"[OK] Resized: {_summary(grid)}")


@cli.command()
@click.argument('direction', type=click.Choice([d.value for d in Direction]))
@click.option('--steps', '-n', default=1, type=click.IntRange(min=1), help='Number of cells to move')
@click.pass_context
def shift(ctx, direction, steps):
    """Move the working grid's content one cell toward DIRECTION."""
    editor = _editor(ctx)
    for _ in range(steps):
        editor.shift(direction)
    click.echo(f"[OK] Shifted {direction} x{steps}")


@cli.command()
@click.pass_context
def invert(ctx):
    """Swap ink and paper."""
    _editor(ctx).invert()
    click.echo("[OK] Inverted")


@cli.command()
@click.pass_context
def clear(ctx):
    """Reset every cell to paper."""
    _editor(ctx).clear()
    click.echo("[OK] Cleared")


@cli.command()
@click.argument('x', type=int, required=False)
@click.argument('y', type=int, required=False)
@click.option('--index', '-i', type=int, help='Row-major cell index instead of X Y')
@click.pass_context
def toggle(ctx, x, y, index):
    """Flip the cell at X Y."""
    editor = _editor(ctx)
    try:
        if index is not None:
            editor.toggle(index)
        elif x is not None and y is not None:
            editor.toggle_at(x, y)
        else:
            _fail("Give either X Y or --index")
    except IndexError as e:
        _fail(e)
    click.echo(f"[OK] Toggled; {editor.grid.ink_count} ink cells")


@cli.command()
@click.argument('name')
@click.pass_context
def rename(ctx, name):
    """Rename the working grid."""
    grid = _editor(ctx).rename(name)
    click.echo(f"[OK] Renamed: {_summary(grid)}")


@cli.command()
@click.option('--copy', 'as_copy', is_flag=True, help='Save as a new copy with its own id')
@click.pass_context
def save(ctx, as_copy):
    """Save the working grid into history."""
    _editor(ctx).save(as_copy=as_copy)


@cli.command()
@click.pass_context
def history(ctx):
    """List saved grids, most recent first."""
    grids = _editor(ctx).history()
    if not grids:
        click.echo("No saved grids")
        return

    for grid in grids:
        click.echo(f"{grid.id[:8]}  {grid.updated_at:%Y-%m-%d %H:%M:%S}  "
                   f"{grid.width:>3}x{grid.height:<3}  {grid.name}")


@cli.command()
@click.argument('grid_id')
@click.pass_context
def load(ctx, grid_id):
    """Make a saved grid the working grid (full id or unique prefix)."""
    try:
        grid = _editor(ctx).load(grid_id)
    except KeyError as e:
        _fail(_error_text(e))
    click.echo(f"[OK] Loaded: {_summary(grid)}")


@cli.command()
@click.argument('grid_id')
@click.pass_context
def delete(ctx, grid_id):
    """Delete a saved grid (full id or unique prefix)."""
    try:
        _editor(ctx).delete(grid_id)
    except KeyError as e:
        _fail(_error_text(e))


@cli.command()
@click.argument('output', type=click.Path())
@click.option('--cell-size', '-s', default=10, type=click.IntRange(min=1), help='Pixels per cell')
@click.option('--no-grid-lines', is_flag=True, help='Omit lines between cells')
@click.pass_context
def preview(ctx, output, cell_size, no_grid_lines):
    """Render the working grid to a PNG file."""
    generator = PreviewGenerator(cell_size=cell_size, grid_lines=not no_grid_lines)
    image = generator.render_grid(_editor(ctx).grid)
    try:
        image.save(output, format='PNG')
    except OSError as e:
        _fail(e)
    click.echo(f"[OK] Preview written to {output} ({image.width}x{image.height})")


@cli.command()
@click.pass_context
def info(ctx):
    """Show the active configuration."""
    config = ctx.obj['config']
    dither_info = ctx.obj['editor'].dither_engine.get_dithering_info()
    click.echo(f"Config file: {config.config_file}")
    click.echo(f"Data dir: {config.storage.data_dir}")
    click.echo(f"Default canvas: {config.canvas.width}x{config.canvas.height}")
    click.echo(f"Dithering: {dither_info['description']}")
    low, high = dither_info['threshold_range']
    click.echo(f"Threshold range: {low}-{high}")
    click.echo(f"Import resample: {config.image_import.resample}, max side {config.image_import.max_side}")


@cli.command('init-config')
@click.option('--output', '-o', default='bitmapkit.yaml', help='Output configuration file path')
@click.pass_context
def init_config(ctx, output):
    """Write the active configuration to a YAML file."""
    if os.path.exists(output) and not click.confirm(f"Configuration file '{output}' already exists. Overwrite?"):
        click.echo("Configuration creation cancelled.")
        return

    try:
        ctx.obj['config'].save_yaml(output)
    except OSError as e:
        _fail(e)
    click.echo(f"[OK] Configuration written: {output}")


def main():
    """Console script entry point."""
    cli(obj={})


if __name__ == '__main__':
    main()
