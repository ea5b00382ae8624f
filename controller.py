"""Row-level edit/save/cancel orchestration over a rendered table.

Same behavior as static/js/editor.js, against the `TableView` model, so a
table can be driven and checked without a browser. Each data row moves
through VIEWING -> EDITING -> SAVING -> VIEWING (or EDITING -> VIEWING on
cancel). Requests go through a transport whose callback may run right away
or later; a row stays locked in SAVING until its callback has run.
"""

import logging

from column_widths import ColumnWidthMemo, RowView, TableView

logger = logging.getLogger(__name__)

VIEWING = "viewing"
EDITING = "editing"
SAVING = "saving"

ENDPOINTS = {
    "insert": "/api/rows/insert",
    "update": "/api/rows/update",
    "delete": "/api/rows/delete",
}


class RowControls:
    """Button state and edit bookkeeping for one row."""

    def __init__(self):
        self.state = VIEWING
        self.edit_visible = True
        self.edit_disabled = False
        self.save_visible = False
        self.save_disabled = True
        self.cancel_visible = False
        self.originals: dict[str, str] = {}
        self.display_snapshot: dict[str, str] = {}

    def toggle_buttons(self, edit, save, cancel):
        self.edit_visible = edit
        self.save_visible = save
        self.cancel_visible = cancel


class WsgiTransport:
    """Posts form payloads to a Flask app in-process."""

    def __init__(self, app):
        self.client = app.test_client()

    def post(self, endpoint, payload, callback):
        response = self.client.post(ENDPOINTS[endpoint], data=payload)
        callback(response.status_code, response.get_json(silent=True) or {})


def is_ok(status_code, data):
    return status_code == 200 and data.get("status") == "OK"


class EditableTableController:

    def __init__(self, view: TableView, memo: ColumnWidthMemo, transport):
        self.view = view
        self.memo = memo
        self.transport = transport
        self.error_message = ""
        self._controls: dict[int, RowControls] = {}

    def controls(self, row: RowView) -> RowControls:
        return self._controls.setdefault(id(row), RowControls())

    def show_error(self, data):
        self.error_message = "Error: " + data.get("error", "Unknown error")
        logger.warning("Request for %s failed: %s", self.view.table_name, self.error_message)

    # ─── Sizing ───

    def column_index(self, row, cell):
        return row.cells.index(cell)

    def auto_size(self, column_index):
        """Re-measure one column and apply the width to its inputs."""
        self.memo.invalidate(self.view)
        width = self.memo.get(self.view, column_index)
        for row in self.view.rows:
            if column_index < len(row.cells) and row.cells[column_index].input_value is not None:
                row.cells[column_index].input_width = width

    def auto_size_all(self):
        widths = self.memo.refresh(self.view)
        for row in self.view.rows:
            for cell, width in zip(row.cells, widths):
                if cell.input_value is not None:
                    cell.input_width = width
        return widths

    def apply_column_widths(self, row):
        for cell in row.editable_cells():
            self.auto_size(self.column_index(row, cell))

    # ─── Edit / save / cancel ───

    def enter_edit_mode(self, row: RowView) -> bool:
        controls = self.controls(row)
        if controls.state == SAVING:
            logger.debug("Row %s is saving; edit refused", row.row_id)
            return False

        controls.originals = {}
        for cell in row.editable_cells():
            cell.input_value = cell.display_text
            controls.originals[cell.field] = cell.display_text.strip()

        self.apply_column_widths(row)
        controls.state = EDITING
        controls.save_disabled = True
        controls.toggle_buttons(edit=False, save=True, cancel=True)
        return True

    def is_dirty(self, row):
        controls = self.controls(row)
        return any(
            (cell.input_value or "").strip() != controls.originals.get(cell.field, "")
            for cell in row.editable_cells()
        )

    def on_input(self, row: RowView, field: str, value: str):
        controls = self.controls(row)
        if controls.state != EDITING:
            return
        cell = row.cell(field)
        cell.input_value = value
        controls.save_disabled = not self.is_dirty(row)
        self.auto_size(self.column_index(row, cell))

    def build_payload(self, row):
        payload = {cell.field: cell.input_value or "" for cell in row.editable_cells()}
        # the row address wins over a column that happens to share its name
        payload.update(table=self.view.table_name, id=str(row.row_id))
        return payload

    def save_row(self, row: RowView) -> bool:
        controls = self.controls(row)
        if controls.state != EDITING or controls.save_disabled:
            return False

        controls.display_snapshot = {cell.field: cell.display_text for cell in row.editable_cells()}
        for cell in row.editable_cells():
            cell.display_text = cell.input_value or ""

        controls.state = SAVING
        controls.edit_disabled = True
        controls.toggle_buttons(edit=True, save=False, cancel=False)
        self.memo.invalidate(self.view)

        def on_response(status_code, data):
            if is_ok(status_code, data):
                self.error_message = ""
            else:
                self.show_error(data)
                for cell in row.editable_cells():
                    cell.display_text = controls.display_snapshot[cell.field]
                    cell.input_value = cell.display_text
            controls.state = VIEWING
            controls.edit_disabled = False
            self.auto_size_all()

        self.transport.post("update", self.build_payload(row), on_response)
        return True

    def cancel_edit(self, row: RowView):
        controls = self.controls(row)
        if controls.state != EDITING:
            return
        for cell in row.editable_cells():
            cell.input_value = cell.display_text
        self.apply_column_widths(row)
        controls.state = VIEWING
        controls.toggle_buttons(edit=True, save=False, cancel=False)

    # ─── Insert / delete ───

    def add_row(self, values=None):
        add_row = self.view.add_row
        if values is None:
            values = {cell.field: cell.input_value or "" for cell in add_row.editable_cells()}
        payload = {**values, "table": self.view.table_name}

        def on_response(status_code, data):
            if is_ok(status_code, data) and data.get("row"):
                self.error_message = ""
                new_row = TableView.build_data_row(self.view.fields, data["row"], self.view.primary_key)
                self.view.rows.append(new_row)
                for cell in add_row.editable_cells():
                    cell.input_value = ""
                self.auto_size_all()
            else:
                self.show_error(data)

        self.transport.post("insert", payload, on_response)

    def delete_row(self, row: RowView) -> bool:
        if self.controls(row).state == SAVING or row not in self.view.rows:
            logger.debug("Row %s is saving or already removed; delete refused", row.row_id)
            return False
        position = self.view.rows.index(row)
        self.view.rows.remove(row)
        self.memo.invalidate(self.view)

        def on_response(status_code, data):
            if is_ok(status_code, data):
                self.error_message = ""
                self._controls.pop(id(row), None)
            else:
                self.show_error(data)
                self.view.rows.insert(position, row)
            self.auto_size_all()

        self.transport.post("delete", {"table": self.view.table_name, "id": str(row.row_id)}, on_response)
        return True
