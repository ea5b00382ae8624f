"""Per-render memo of the pixel width each column's content needs.

The editing UI sizes every input in a column to the widest value in that
column. Measuring text is the expensive part, so widths are computed once
per rendered table and kept until the caller reports that the rendered rows
changed (`invalidate`) or asks for fresh numbers (`refresh`).

A rendered table is modelled by `TableView` -> `RowView` -> `CellView`,
which mirrors the markup produced by the browser page: a header row, the
add-row, then one row per database row. Each `TableView` gets its own
`RenderHandle`; the memo is keyed by that handle, never by table name, so
two renders of the same table keep independent widths.

Browser counterpart: static/js/column-width-memo.js
"""

import itertools
import unicodedata
import weakref
from typing import Callable, NamedTuple


class Font(NamedTuple):
    family: str = "monospace"
    size: float = 14.0


DEFAULT_FONT = Font()

# advance of one narrow glyph, as a fraction of the font size
MONOSPACE_ADVANCE = 0.6


def measure_span_width(text: str, font: Font = DEFAULT_FONT) -> float:
    """Width in pixels of `text` set on one line in `font`.

    Monospace metrics: wide and full-width East Asian characters take two
    cells, combining marks take none.
    """
    cells = 0
    for char in text:
        if unicodedata.combining(char):
            continue
        cells += 2 if unicodedata.east_asian_width(char) in ("W", "F") else 1
    return cells * MONOSPACE_ADVANCE * font.size


class RenderHandle:
    _counter = itertools.count(1)

    def __init__(self):
        self.id = next(self._counter)

    def __repr__(self):
        return f"RenderHandle({self.id})"


class CellView:

    def __init__(self, field, display_text="", input_value=None, font=DEFAULT_FONT):
        self.field = field
        self.display_text = display_text
        self.input_value = input_value
        self.font = font
        self.input_width: float | None = None

    @property
    def text(self) -> str:
        # the live input wins over the static text
        if self.input_value is not None:
            return self.input_value
        return self.display_text


class RowView:
    HEADER = "header"
    ADD = "add"
    DATA = "data"

    def __init__(self, cells, row_id=None, kind=DATA):
        self.cells: list[CellView] = cells
        self.row_id = row_id
        self.kind = kind

    def cell(self, field):
        return next((cell for cell in self.cells if cell.field == field), None)

    def editable_cells(self):
        return [cell for cell in self.cells if cell.field is not None]


def _display(value):
    return "" if value is None else str(value)


class TableView:

    def __init__(self, table_name, header, rows, fields=(), primary_key=None):
        self.handle = RenderHandle()
        self.table_name = table_name
        self.fields = list(fields)
        self.primary_key = primary_key
        self.header: RowView = header
        self.rows: list[RowView] = rows

    @property
    def all_rows(self):
        return [self.header, *self.rows]

    @property
    def add_row(self):
        return next((row for row in self.rows if row.kind == RowView.ADD), None)

    @property
    def data_rows(self):
        return [row for row in self.rows if row.kind == RowView.DATA]

    def find_row(self, row_id):
        return next((row for row in self.data_rows if str(row.row_id) == str(row_id)), None)

    @staticmethod
    def build_data_row(fields, values, primary_key):
        cells = []
        for field in fields:
            text = _display(values.get(field))
            cells.append(CellView(field, text, input_value=text))
        cells.append(CellView(None, "Edit Save Cancel Delete"))
        row_id = values.get(primary_key) if primary_key else None
        return RowView(cells, row_id=row_id)

    @classmethod
    def from_rows(cls, table_name, columns, rows, primary_key=None):
        """Lay out a table the way the editor page renders it."""
        header = RowView(
            [CellView(None, column.name) for column in columns] + [CellView(None, "Actions")],
            kind=RowView.HEADER,
        )
        add_cells = []
        for column in columns:
            if column.is_auto_generated:
                add_cells.append(CellView(None, "—"))
            else:
                add_cells.append(CellView(column.name, "", input_value=""))
        add_cells.append(CellView(None, "Add"))
        body = [RowView(add_cells, kind=RowView.ADD)]
        fields = [column.name for column in columns]
        body.extend(cls.build_data_row(fields, values, primary_key) for values in rows)
        return cls(table_name, header, body, fields=fields, primary_key=primary_key)


class ColumnWidthMemo:
    """Lazily computed column widths, one entry per rendered table.

    An entry is either absent or holds the widths of every column. Anything
    that adds, edits or removes a rendered row must call `invalidate` before
    the next `get`.
    """

    def __init__(self, measure: Callable[[str, Font], float] = measure_span_width):
        self.measure = measure
        # entries go away with the rendered table that owns the handle
        self._widths: weakref.WeakKeyDictionary[RenderHandle, list[float]] = weakref.WeakKeyDictionary()

    def __contains__(self, view: TableView):
        return view.handle in self._widths

    def __len__(self):
        return len(self._widths)

    def get(self, view: TableView, column_index: int) -> float:
        if view.handle not in self._widths:
            self.compute(view)
        widths = self._widths[view.handle]
        if 0 <= column_index < len(widths):
            return widths[column_index]
        return 0

    def invalidate(self, view: TableView):
        self._widths.pop(view.handle, None)

    def refresh(self, view: TableView) -> list[float]:
        self.invalidate(view)
        return self.compute(view)

    def compute(self, view: TableView) -> list[float]:
        column_count = len(view.all_rows[0].cells) if view.all_rows else 0
        widths = [self._max_column_width(view, i) for i in range(column_count)]
        self._widths[view.handle] = widths
        return widths

    def _max_column_width(self, view, column_index):
        # header text is not part of the body scan
        widest = 0
        for row in view.rows:
            if column_index >= len(row.cells):
                continue
            cell = row.cells[column_index]
            widest = max(widest, self.measure(cell.text, cell.font))
        return widest
