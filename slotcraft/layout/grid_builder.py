"""
Grid building.

Collects the text and spot regions discovered during one detection pass
and freezes them into an immutable row/column snapshot of typed cells.
"""

import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..constants import SPOT_MATCH_DISTANCE
from ..logging_config import LogManager
from .cells import CellKind, GridCell
from .models import ContentType, Rect, Spot, TextBlockSpec

logger = LogManager().get_logger("layout.grid")

TEXT_COLUMN = 1


@dataclass
class SpotMatch:
    """Outcome of re-matching saved content to freshly detected spots."""
    pairs: List[Tuple[Any, Spot]] = field(default_factory=list)  # (saved payload, new spot)
    waiting: List[Any] = field(default_factory=list)  # payloads with no spot left


def rematch_spots(
    saved: Sequence[Tuple[Rect, Any]],
    spots: Sequence[Spot],
    max_distance: float = SPOT_MATCH_DISTANCE,
) -> SpotMatch:
    """
    Re-attach saved content to new spots after a rebuild.

    1. Each new spot takes the closest remaining saved item whose center is
       within ``max_distance``.
    2. Leftover saved items fill the still-unmatched new spots in order.
    3. Anything still unplaced goes on the waiting list.

    Args:
        saved: (old rect, payload) pairs in their original order
        spots: Freshly detected spots

    Returns:
        SpotMatch with (payload, spot) pairs and the waiting payloads
    """
    remaining = list(saved)
    result = SpotMatch()
    matched_ids = set()

    for spot in spots:
        if not remaining:
            break
        cx, cy = spot.rect.center
        best_index = -1
        best_distance = math.inf
        for index, (rect, _) in enumerate(remaining):
            sx, sy = rect.center
            distance = math.hypot(cx - sx, cy - sy)
            if distance < max_distance and distance < best_distance:
                best_distance = distance
                best_index = index
        if best_index >= 0:
            _, payload = remaining.pop(best_index)
            result.pairs.append((payload, spot))
            matched_ids.add(spot.id)

    for spot in spots:
        if not remaining:
            break
        if spot.id in matched_ids:
            continue
        _, payload = remaining.pop(0)
        result.pairs.append((payload, spot))
        matched_ids.add(spot.id)

    result.waiting = [payload for _, payload in remaining]
    return result


@dataclass(frozen=True)
class GridSnapshot:
    """Immutable grid: boundaries plus a matrix of cells.

    Cell ``row``/``column`` values are matrix coordinates.
    """

    row_boundaries: Tuple[float, ...]
    column_boundaries: Tuple[float, ...]
    matrix: Tuple[Tuple[Optional[GridCell], ...], ...]
    waiting: Tuple[GridCell, ...] = ()

    @property
    def rows(self) -> int:
        return len(self.matrix)

    @property
    def cols(self) -> int:
        return len(self.matrix[0]) if self.matrix else 0

    def cell(self, row: int, column: int) -> Optional[GridCell]:
        if 0 <= row < self.rows and 0 <= column < self.cols:
            return self.matrix[row][column]
        return None

    def cells(self) -> List[GridCell]:
        """All cells in row-major order."""
        return [cell for row in self.matrix for cell in row if cell is not None]

    def content_cells(self) -> List[GridCell]:
        return [cell for cell in self.cells() if cell.kind == CellKind.CONTENT]

    def find_by_id(self, cell_id: str) -> Optional[GridCell]:
        for cell in self.cells():
            if cell.id == cell_id:
                return cell
        return None

    def find_by_content_id(self, content_id: str) -> Optional[GridCell]:
        for cell in self.cells():
            if cell.content_id == content_id:
                return cell
        return None

    def neighbors(self, cell: GridCell) -> List[GridCell]:
        """Cells directly above, below, left and right in the matrix."""
        found = []
        for d_row, d_col in ((-1, 0), (1, 0), (0, -1), (0, 1)):
            neighbor = self.cell(cell.row + d_row, cell.column + d_col)
            if neighbor is not None:
                found.append(neighbor)
        return found

    def cell_at(self, x: float, y: float) -> Optional[GridCell]:
        for cell in self.cells():
            if cell.bounds.contains_point(x, y):
                return cell
        return None

    def with_cell(self, updated: GridCell) -> "GridSnapshot":
        """New snapshot with the cell at ``updated``'s position replaced."""
        if self.cell(updated.row, updated.column) is None:
            raise KeyError(f"No cell at ({updated.row}, {updated.column})")
        matrix = tuple(
            tuple(
                updated if (r == updated.row and c == updated.column) else cell
                for c, cell in enumerate(row)
            )
            for r, row in enumerate(self.matrix)
        )
        return GridSnapshot(self.row_boundaries, self.column_boundaries, matrix, self.waiting)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rows": self.rows,
            "cols": self.cols,
            "row_boundaries": list(self.row_boundaries),
            "column_boundaries": list(self.column_boundaries),
            "cells": [cell.to_dict() for cell in self.cells()],
            "waiting": [cell.to_dict() for cell in self.waiting],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], main_text: Optional[TextBlockSpec] = None) -> "GridSnapshot":
        rows, cols = data.get("rows", 0), data.get("cols", 0)
        grid: List[List[Optional[GridCell]]] = [[None] * cols for _ in range(rows)]
        for cell_data in data.get("cells", []):
            cell = GridCell.from_dict(cell_data, block=main_text)
            grid[cell.row][cell.column] = cell
        return cls(
            row_boundaries=tuple(data.get("row_boundaries", [])),
            column_boundaries=tuple(data.get("column_boundaries", [])),
            matrix=tuple(tuple(row) for row in grid),
            waiting=tuple(GridCell.from_dict(c) for c in data.get("waiting", [])),
        )


@dataclass
class _Region:
    kind: CellKind
    rect: Rect
    row: int
    column: int
    text: Optional[str] = None
    line_index: Optional[int] = None
    spot: Optional[Spot] = None


class GridBuilder:
    """
    Builds the spatial grid during spot detection.

    One pass: regions are added in discovery order and ``finalize_grid``
    produces the snapshot without revisiting earlier decisions.
    """

    def __init__(self):
        self.regions: List[_Region] = []
        self.row_boundaries: List[float] = []
        self.column_boundaries: List[float] = []

    def start_build(self) -> None:
        """Start building a new grid."""
        self.regions = []
        self.row_boundaries = []
        self.column_boundaries = []

    def add_text_region(self, rect: Rect, text: str, line_index: int, row: Optional[int] = None) -> None:
        """Add a text line discovered during spot detection."""
        self.regions.append(_Region(
            kind=CellKind.MAIN_TEXT,
            rect=rect,
            row=line_index if row is None else row,
            column=TEXT_COLUMN,
            text=text,
            line_index=line_index,
        ))
        self._track_boundaries(rect)

    def add_spot_region(self, spot: Spot) -> None:
        """Add a spot discovered during detection."""
        self.regions.append(_Region(
            kind=CellKind.CONTENT,
            rect=spot.rect,
            row=spot.row,
            column=spot.column,
            spot=spot,
        ))
        self._track_boundaries(spot.rect)

    def _track_boundaries(self, rect: Rect) -> None:
        for value in (rect.y, rect.bottom):
            if value not in self.row_boundaries:
                self.row_boundaries.append(value)
        for value in (rect.x, rect.right):
            if value not in self.column_boundaries:
                self.column_boundaries.append(value)

    def finalize_grid(
        self,
        main_text: Optional[TextBlockSpec] = None,
        previous: Optional[GridSnapshot] = None,
    ) -> GridSnapshot:
        """
        Freeze the collected regions into a snapshot.

        Args:
            main_text: Text block attached to main-text cells
            previous: Earlier snapshot whose content cells pass their content
                id and payload on to the closest new spot

        Returns:
            GridSnapshot with cells placed at (row - min_row, column)
        """
        inherited: Dict[int, GridCell] = {}
        waiting: Tuple[GridCell, ...] = ()
        if previous is not None:
            inherited, waiting = self._inherit(previous)

        if not self.regions:
            return GridSnapshot(tuple(sorted(self.row_boundaries)), tuple(sorted(self.column_boundaries)), (), waiting)

        regions = sorted(self.regions, key=lambda r: (r.row, r.column))
        min_row = min(r.row for r in regions)
        max_row = max(r.row for r in regions)
        max_col = max(r.column for r in regions)

        grid: List[List[Optional[GridCell]]] = [[None] * (max_col + 1) for _ in range(max_row - min_row + 1)]
        for region in regions:
            row = region.row - min_row
            if grid[row][region.column] is not None:
                logger.warning(f"Grid position ({row}, {region.column}) already occupied; keeping first region")
                continue
            grid[row][region.column] = self._make_cell(region, row, main_text, inherited)

        snapshot = GridSnapshot(
            row_boundaries=tuple(sorted(self.row_boundaries)),
            column_boundaries=tuple(sorted(self.column_boundaries)),
            matrix=tuple(tuple(r) for r in grid),
            waiting=waiting,
        )
        logger.debug(f"Finalized grid {snapshot.rows}x{snapshot.cols} with {len(self.regions)} region(s)")
        return snapshot

    def _inherit(self, previous: GridSnapshot) -> Tuple[Dict[int, GridCell], Tuple[GridCell, ...]]:
        """Match previous content cells to the new spots, filled cells first."""
        old_cells = previous.content_cells() + list(previous.waiting)
        ordered = [c for c in old_cells if c.content_type != ContentType.EMPTY]
        ordered += [c for c in old_cells if c.content_type == ContentType.EMPTY]
        spots = [r.spot for r in self.regions if r.spot is not None]

        match = rematch_spots([(cell.bounds, cell) for cell in ordered], spots)
        inherited = {spot.id: cell for cell, spot in match.pairs}
        waiting = tuple(c for c in match.waiting if c.content_type != ContentType.EMPTY)
        if waiting:
            logger.info(f"{len(waiting)} content cell(s) moved to the waiting list")
        return inherited, waiting

    @staticmethod
    def _make_cell(
        region: _Region,
        row: int,
        main_text: Optional[TextBlockSpec],
        inherited: Dict[int, GridCell],
    ) -> GridCell:
        if region.kind == CellKind.MAIN_TEXT:
            block = main_text or TextBlockSpec(text=region.text or "", container=region.rect)
            return GridCell.main_text(
                line_index=region.line_index,
                line_text=region.text or "",
                bounds=region.rect,
                block=block,
                row=row,
                column=region.column,
            )
        elif region.kind == CellKind.CONTENT:
            spot = region.spot
            old = inherited.get(spot.id)
            return GridCell.content(
                cell_id=f"content-{spot.id}",
                bounds=region.rect,
                row=row,
                column=region.column,
                content_id=old.content_id if old is not None else str(uuid.uuid4()),
                text=old.text if old is not None else None,
                media=old.media if old is not None else None,
            )
        raise ValueError(f"Unknown region kind: {region.kind}")
