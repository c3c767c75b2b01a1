"""
Monochrome pixel grid model and factory.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .config import MIN_DIMENSION, MAX_DIMENSION


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Grid:
    """A row-major grid of ink (True) and paper (False) cells."""
    width: int
    height: int
    cells: List[bool]
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def __post_init__(self):
        """Reject grids whose cell count disagrees with their dimensions."""
        if len(self.cells) != self.width * self.height:
            raise ValueError(
                f"Grid has {len(self.cells)} cells, expected {self.width}x{self.height}"
            )

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) tuple."""
        return self.width, self.height

    @property
    def ink_count(self) -> int:
        """Number of ink cells."""
        return sum(1 for cell in self.cells if cell)

    def index_of(self, x: int, y: int) -> int:
        """Row-major index of cell (x, y)."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Coordinates ({x}, {y}) outside grid bounds")
        return y * self.width + x

    def get_cell(self, x: int, y: int) -> bool:
        """Get cell value at specified coordinates."""
        return self.cells[self.index_of(x, y)]

    def rows(self) -> List[List[bool]]:
        """Split cells into rows, top row first."""
        return [self.cells[y * self.width:(y + 1) * self.width] for y in range(self.height)]

    def touch(self, when: Optional[datetime] = None) -> "Grid":
        """Return a copy with a refreshed update timestamp."""
        return replace(self, updated_at=when or _now())

    def to_dict(self) -> dict:
        """Convert grid to a JSON-safe dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'width': self.width,
            'height': self.height,
            'cells': [bool(cell) for cell in self.cells],
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Grid":
        """
        Rebuild a grid from its dictionary form.

        A stored cells list whose length disagrees with the stored dimensions
        is refitted (truncated or padded with paper cells) rather than rejected.
        """
        width = int(data['width'])
        height = int(data['height'])
        total = width * height

        cells = [bool(cell) for cell in data.get('cells', [])][:total]
        cells.extend([False] * (total - len(cells)))

        created_at = _parse_timestamp(data.get('created_at'))
        updated_at = _parse_timestamp(data.get('updated_at')) if data.get('updated_at') else created_at

        return cls(
            width=width,
            height=height,
            cells=cells,
            id=data.get('id') or str(uuid.uuid4()),
            name=data.get('name', ''),
            created_at=created_at,
            updated_at=updated_at
        )


def _parse_timestamp(value: Optional[str]) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if not value:
        return _now()
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_dimensions(width: int, height: int, max_dimension: int = MAX_DIMENSION):
    """Validate target grid dimensions before they reach a transform."""
    if not (MIN_DIMENSION <= width <= max_dimension):
        raise ValueError(f"Width {width} outside {MIN_DIMENSION}-{max_dimension} range")
    if not (MIN_DIMENSION <= height <= max_dimension):
        raise ValueError(f"Height {height} outside {MIN_DIMENSION}-{max_dimension} range")


def make_grid(width: int = 128, height: int = 64, name: Optional[str] = None,
              history_size: int = 0, cells: Optional[List[bool]] = None) -> Grid:
    """
    Create a new grid.

    Args:
        width: Grid width in cells
        height: Grid height in cells
        name: Display label; defaults to "Untitled N"
        history_size: Number of saved grids, used to number the default name
        cells: Optional initial cells (row-major); blank when omitted

    Returns:
        New Grid with a fresh id and matching timestamps
    """
    validate_dimensions(width, height)
    now = _now()
    return Grid(
        width=width,
        height=height,
        cells=list(cells) if cells is not None else [False] * (width * height),
        name=name if name is not None else f"Untitled {history_size + 1}",
        created_at=now,
        updated_at=now
    )
