import math
from typing import Callable, Iterable, Optional

SEATS_PER_ROW = 4

OCCUPIED = "occupied"
SELECTED = "selected"
AVAILABLE = "available"


class SeatMap:
    """
    Seat selection state for a 2+2 bus layout.

    Seats are numbered 1..total_seats, four per row: two on the left of the
    aisle and two on the right. Occupied seats always win over selection.
    """

    def __init__(self,
                 total_seats: int,
                 occupied: Iterable[int] = (),
                 selected: Iterable[int] = (),
                 max_selectable: int = 0,
                 on_change: Optional[Callable[[list[int]], None]] = None,
                 readonly: bool = False):
        if total_seats < 0:
            raise ValueError("total_seats must not be negative")
        self.total_seats = total_seats
        self.occupied = frozenset(occupied)
        self.max_selectable = max_selectable
        self.on_change = on_change
        self.readonly = readonly
        # a preselected seat that is out of range or already taken is dropped
        self._selected = sorted(s for s in set(selected) if 1 <= s <= total_seats and s not in self.occupied)

    @property
    def selected(self) -> list[int]:
        return list(self._selected)

    @property
    def rows(self) -> int:
        return math.ceil(self.total_seats / SEATS_PER_ROW)

    def _check_range(self, seat: int):
        if seat < 1 or seat > self.total_seats:
            raise ValueError(f"Seat {seat} is outside 1..{self.total_seats}")

    def status(self, seat: int) -> str:
        self._check_range(seat)
        if seat in self.occupied:
            return OCCUPIED
        if seat in self._selected:
            return SELECTED
        return AVAILABLE

    def toggle(self, seat: int) -> list[int]:
        """Select or deselect a seat and return the ascending selection."""
        self._check_range(seat)
        if self.readonly or seat in self.occupied:
            return self.selected

        if seat in self._selected:
            new_selected = [s for s in self._selected if s != seat]
        else:
            # 0 means no limit
            if self.max_selectable > 0 and len(self._selected) >= self.max_selectable:
                return self.selected
            new_selected = sorted(self._selected + [seat])

        self._selected = new_selected
        if self.on_change is not None:
            self.on_change(self.selected)
        return self.selected

    def _seat_entry(self, seat: int):
        if seat > self.total_seats:
            return None
        return {"number": seat, "status": self.status(seat)}

    def row_layout(self) -> list[dict]:
        layout = []
        for row_index in range(self.rows):
            row_start = row_index * SEATS_PER_ROW + 1
            layout.append({
                "row": row_index + 1,
                "left": [self._seat_entry(row_start), self._seat_entry(row_start + 1)],
                "right": [self._seat_entry(row_start + 2), self._seat_entry(row_start + 3)],
            })
        return layout

    @property
    def available_count(self) -> int:
        return self.total_seats - len([s for s in self.occupied if 1 <= s <= self.total_seats])

    @property
    def selected_count(self) -> int:
        return len(self._selected)

    @property
    def occupancy_percent(self) -> float:
        if self.total_seats == 0:
            return 0.0
        return round((self.total_seats - self.available_count) * 100 / self.total_seats, 1)
