import json
import logging
import os
import jsonpickle

logger = logging.getLogger(__name__)

class TableConfig:
    # name, page, page_size
    def __init__(self, name: str, page_size: int = 20):

        self.name = name
        self.page: int = 1
        self.page_size: int = page_size

    def update_page(self, page):
        self.page = page

    def __str__(self):
        return "TableConfig(name={}, page={})".format(self.name, self.page)

class ViewState:
    # id, state_dir, active_table_name, table_configs
    def __init__(self, id: str, state_dir: str, page_size: int = 20):

        self.id = id
        self.state_dir = state_dir
        self.page_size = page_size
        self.active_table_name: str | None = None
        self.table_configs: list[TableConfig] = []

    def __str__(self):
        return json.dumps(self, default=vars, indent=4)

    def _get_table_config(self, table_name):
        return next((table_config for table_config in self.table_configs if table_config.name == table_name), None)

    def set_active_table(self, table_name: str):
        if not self._get_table_config(table_name):
            self.table_configs.append(TableConfig(table_name, self.page_size))
        self.active_table_name = table_name
        save_state(self)

    def forget_table(self, table_name: str):
        # table dropped outside the editor
        self.table_configs = [table_config for table_config in self.table_configs if table_config.name != table_name]
        if self.active_table_name == table_name:
            self.active_table_name = None
        save_state(self)

    def get_active_table_config(self):
        if not self.active_table_name:
            return None
        return self._get_table_config(self.active_table_name)

    def set_page(self, page_number):
        page_number = int(page_number)
        table_config = self.get_active_table_config()
        if not table_config:
            raise LookupError("No active table_config")
        table_config.update_page(max(1, page_number))
        save_state(self)

def get_state_save_path(state_dir, state_id):
    return os.path.join(state_dir, f"state_{state_id}.json")

def save_state(state: ViewState):
    os.makedirs(state.state_dir, exist_ok=True)
    state_save_path = get_state_save_path(state.state_dir, state.id)
    with open(state_save_path, "w") as file:
        state_json: str = jsonpickle.encode(state, indent=4) # type: ignore
        file.write(state_json)

def get_state(state_id, state_dir, page_size=20) -> ViewState:
    state_save_path = get_state_save_path(state_dir, state_id)
    if not os.path.exists(state_save_path) or os.path.getsize(state_save_path) == 0:
        logger.debug("State file not found or empty. Creating new state. (path: %s)", state_save_path)
        state = ViewState(state_id, state_dir, page_size)
        save_state(state)
        return state
    with open(state_save_path, "r") as file:
        state_json = file.read()
    state: ViewState = jsonpickle.decode(state_json) # type: ignore
    logger.debug("State loaded successfully. (path: %s)", state_save_path)
    return state
