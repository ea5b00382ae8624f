"""Tests for row edit/save/cancel and insert/delete orchestration."""

import pytest

from column_widths import ColumnWidthMemo, TableView
from controller import (
    EDITING,
    SAVING,
    VIEWING,
    EditableTableController,
    WsgiTransport,
)
from dbutils import Connection
from rows import fetch_all, fetch_row
from schema import get_columns, get_primary_key


class DeferredTransport:
    """Holds requests until the test answers them."""

    def __init__(self):
        self.pending = []

    def post(self, endpoint, payload, callback):
        self.pending.append((endpoint, payload, callback))

    def respond(self, status_code, data):
        endpoint, payload, callback = self.pending.pop(0)
        callback(status_code, data)
        return endpoint, payload


def read_person(db_path, person_id):
    connection = Connection(db_path)
    try:
        return fetch_row(connection, "people", "id", person_id)
    finally:
        connection.close()


@pytest.fixture
def view(connection):
    return TableView.from_rows(
        "people",
        get_columns(connection, "people"),
        fetch_all(connection, "people"),
        primary_key=get_primary_key(connection, "people"),
    )


@pytest.fixture
def memo():
    return ColumnWidthMemo()


@pytest.fixture
def controller(view, memo, flask_app):
    return EditableTableController(view, memo, WsgiTransport(flask_app))


@pytest.fixture
def deferred():
    return DeferredTransport()


@pytest.fixture
def deferred_controller(view, memo, deferred):
    return EditableTableController(view, memo, deferred)


class TestEditMode:

    def test_enter_edit_mode(self, controller, view):
        row = view.find_row(1)

        assert controller.enter_edit_mode(row)

        controls = controller.controls(row)
        assert controls.state == EDITING
        assert controls.save_visible and controls.cancel_visible
        assert not controls.edit_visible
        assert controls.save_disabled
        assert row.cell("name").input_value == "Ada Lovelace"
        assert row.cell("name").input_width > 0

    def test_dirty_tracking(self, controller, view):
        row = view.find_row(1)
        controller.enter_edit_mode(row)

        controller.on_input(row, "name", "Ada King")
        assert not controller.controls(row).save_disabled

        # surrounding whitespace does not count as a change
        controller.on_input(row, "name", "  Ada Lovelace ")
        assert controller.controls(row).save_disabled

    def test_input_ignored_outside_edit_mode(self, controller, view):
        row = view.find_row(1)
        controller.on_input(row, "name", "Ada King")
        assert row.cell("name").input_value == "Ada Lovelace"

    def test_typing_widens_the_column(self, controller, view, memo):
        row = view.find_row(1)
        controller.enter_edit_mode(row)
        before = memo.get(view, 1)

        controller.on_input(row, "name", "Augusta Ada King, Countess of Lovelace")

        assert memo.get(view, 1) > before
        assert row.cell("name").input_width == memo.get(view, 1)
        assert view.find_row(2).cell("name").input_width == memo.get(view, 1)

    def test_cancel_restores_inputs(self, controller, view):
        row = view.find_row(1)
        controller.enter_edit_mode(row)
        controller.on_input(row, "name", "Ada King")

        controller.cancel_edit(row)

        controls = controller.controls(row)
        assert controls.state == VIEWING
        assert controls.edit_visible and not controls.save_visible
        assert row.cell("name").input_value == "Ada Lovelace"
        assert row.cell("name").display_text == "Ada Lovelace"


class TestSave:

    def test_save_persists(self, controller, view, db_path):
        row = view.find_row(1)
        controller.enter_edit_mode(row)
        controller.on_input(row, "name", "Ada King")

        assert controller.save_row(row)

        assert controller.controls(row).state == VIEWING
        assert controller.error_message == ""
        assert row.cell("name").display_text == "Ada King"
        assert read_person(db_path, 1)["name"] == "Ada King"

    def test_save_requires_a_change(self, controller, view):
        row = view.find_row(1)
        controller.enter_edit_mode(row)
        assert not controller.save_row(row)

    def test_failed_save_rolls_back(self, controller, view, db_path):
        row = view.find_row(2)
        controller.enter_edit_mode(row)
        controller.on_input(row, "email", "ada@example.com")

        controller.save_row(row)

        assert controller.error_message == "Error: Update failed: Duplicate value."
        assert row.cell("email").display_text == "grace@example.com"
        assert row.cell("email").input_value == "grace@example.com"
        assert controller.controls(row).state == VIEWING
        assert read_person(db_path, 2)["email"] == "grace@example.com"

    def test_row_locked_while_saving(self, deferred_controller, deferred, view):
        row = view.find_row(1)
        deferred_controller.enter_edit_mode(row)
        deferred_controller.on_input(row, "name", "Ada King")
        deferred_controller.save_row(row)

        controls = deferred_controller.controls(row)
        assert controls.state == SAVING
        assert controls.edit_disabled
        # optimistic
        assert row.cell("name").display_text == "Ada King"
        assert not deferred_controller.enter_edit_mode(row)

        deferred.respond(200, {"status": "OK"})

        assert controls.state == VIEWING
        assert not controls.edit_disabled
        assert deferred_controller.enter_edit_mode(row)

    def test_payload_addresses_row_by_key(self, deferred_controller, deferred, view):
        row = view.find_row(3)
        deferred_controller.enter_edit_mode(row)
        deferred_controller.on_input(row, "phone", "555-0111")
        deferred_controller.save_row(row)

        endpoint, payload = deferred.respond(200, {"status": "OK"})

        assert endpoint == "update"
        assert payload["table"] == "people"
        assert payload["id"] == "3"
        assert payload["phone"] == "555-0111"
        assert payload["name"] == "Edsger Dijkstra"

    def test_error_without_message(self, deferred_controller, deferred, view):
        row = view.find_row(1)
        deferred_controller.enter_edit_mode(row)
        deferred_controller.on_input(row, "name", "Ada King")
        deferred_controller.save_row(row)

        deferred.respond(500, {})

        assert deferred_controller.error_message == "Error: Unknown error"
        assert row.cell("name").display_text == "Ada Lovelace"


class TestAddRow:

    def test_add_row_from_inputs(self, controller, view, memo):
        view.add_row.cell("name").input_value = "Alice"
        view.add_row.cell("email").input_value = "alice@example.com"

        controller.add_row()

        new_row = view.find_row(4)
        assert new_row is not None
        assert view.rows[-1] is new_row
        assert new_row.cell("name").display_text == "Alice"
        assert new_row.cell("phone").display_text == ""
        assert view.add_row.cell("name").input_value == ""
        assert view in memo
        assert controller.error_message == ""

    def test_add_row_with_values(self, controller, view):
        controller.add_row({"name": "Bob", "email": "bob@example.com", "phone": "555-0123"})

        assert view.find_row(4).cell("phone").display_text == "555-0123"

    def test_column_named_table_cannot_redirect_insert(self, connection, memo, deferred):
        connection.execute('CREATE TABLE furniture (id INTEGER PRIMARY KEY, "table" TEXT)')
        furniture = TableView.from_rows(
            "furniture", get_columns(connection, "furniture"), [], primary_key="id"
        )
        controller = EditableTableController(furniture, memo, deferred)
        furniture.add_row.cell("table").input_value = "oak"

        controller.add_row()

        endpoint, payload = deferred.respond(200, {"status": "OK", "row": {"id": 1, "table": "oak"}})
        assert endpoint == "insert"
        assert payload["table"] == "furniture"

    def test_add_row_failure(self, controller, view):
        controller.add_row({"email": "nobody@example.com"})

        assert controller.error_message == "Error: Insert failed: Required field missing."
        assert len(view.data_rows) == 3

    def test_added_row_is_editable(self, controller, view, db_path):
        controller.add_row({"name": "Alice", "email": "alice@example.com"})
        row = view.find_row(4)

        controller.enter_edit_mode(row)
        controller.on_input(row, "phone", "555-0456")
        controller.save_row(row)

        assert read_person(db_path, 4)["phone"] == "555-0456"


class TestDeleteRow:

    def test_delete(self, controller, view, db_path):
        controller.delete_row(view.find_row(2))

        assert view.find_row(2) is None
        assert read_person(db_path, 2) is None
        assert controller.error_message == ""

    def test_failed_delete_puts_row_back(self, controller, view):
        row = view.find_row(2)
        position = view.rows.index(row)
        row.row_id = 999

        controller.delete_row(row)

        assert view.rows[position] is row
        assert controller.error_message == "Error: Delete failed: Row not found."

    def test_delete_is_optimistic(self, deferred_controller, deferred, view):
        row = view.find_row(2)
        deferred_controller.delete_row(row)

        assert view.find_row(2) is None

        deferred.respond(400, {"error": "Delete failed: Database error."})

        assert view.find_row(2) is row
        assert deferred_controller.error_message == "Error: Delete failed: Database error."

    def test_second_delete_while_pending_is_refused(self, deferred_controller, deferred, view):
        row = view.find_row(2)

        assert deferred_controller.delete_row(row)
        assert not deferred_controller.delete_row(row)
        assert len(deferred.pending) == 1

        deferred.respond(200, {"status": "OK"})
        assert view.find_row(2) is None

    def test_saving_row_cannot_be_deleted(self, deferred_controller, deferred, view):
        row = view.find_row(1)
        deferred_controller.enter_edit_mode(row)
        deferred_controller.on_input(row, "name", "Ada King")
        deferred_controller.save_row(row)

        assert not deferred_controller.delete_row(row)
        assert view.find_row(1) is row

        deferred.respond(200, {"status": "OK"})
        assert deferred_controller.delete_row(row)
