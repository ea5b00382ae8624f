from flask import request
from flask import render_template_string
from flask import Flask
from flask import redirect
from flask import url_for
from flask import jsonify
from flask import session
from flask import g
from flask_cors import CORS
from dbutils import Connection
from datetime import datetime, timezone
import logging
import uuid
import timeago
from config import get_settings
from errors import TableEditorError, InvalidTable, MethodNotAllowed
from logging_config import setup_logging
from rows import fetch_page, insert_row, update_row, delete_row
from schema import list_tables, get_columns, get_primary_key, is_autoincrement
from state import get_state

settings = get_settings()
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = settings.SECRET_KEY
app.config['DATABASE'] = settings.DATABASE_PATH
app.config['DB_ENGINE'] = settings.DB_ENGINE
app.config['STATE_DIR'] = settings.STATE_DIR
app.config['PAGE_SIZE'] = settings.PAGE_SIZE
CORS(app)

def get_db():
    # one connection per request, closed on teardown
    if 'db' not in g:
        g.db = Connection(app.config['DATABASE'])
    return g.db

@app.teardown_appcontext
def close_db(exception):
    db = g.pop('db', None)
    if db is not None:
        db.close()

def request_to_state():
    if 'id' not in session:
        session['id'] = uuid.uuid4().hex
    return get_state(session['id'], app.config['STATE_DIR'], app.config['PAGE_SIZE'])

@app.errorhandler(TableEditorError)
def handle_table_editor_error(error: TableEditorError):
    if error.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.path, error.status_code, error.message)
    else:
        logger.warning("%s %s -> %s: %s", request.method, request.path, error.status_code, error.message)
    return jsonify(error=error.message), error.status_code

@app.errorhandler(405)
def handle_method_not_allowed(error):
    return handle_table_editor_error(MethodNotAllowed())

# ─── Row endpoints ───

@app.route('/api/rows/insert', methods=['POST'])
def insert():
    row = insert_row(get_db(), request.form, engine=app.config['DB_ENGINE'])
    return jsonify(status="OK", row=row)

@app.route('/api/rows/update', methods=['POST'])
def update():
    update_row(get_db(), request.form, engine=app.config['DB_ENGINE'])
    return jsonify(status="OK")

@app.route('/api/rows/delete', methods=['POST'])
def delete():
    delete_row(get_db(), request.form, engine=app.config['DB_ENGINE'])
    return jsonify(status="OK")

# ─── Metadata endpoints ───

@app.route('/api/tables', methods=['GET'])
def tables():
    return jsonify(tables=list_tables(get_db()))

@app.route('/api/tables/<table_name>/columns', methods=['GET'])
def columns(table_name):
    connection = get_db()
    descriptors = get_columns(connection, table_name)
    return jsonify(
        table=table_name,
        primary_key=get_primary_key(connection, table_name),
        columns=[descriptor.to_dict() for descriptor in descriptors],
    )

@app.route("/api/page/<int:page_number>", methods=['POST'])
def page(page_number):
    state = request_to_state()
    if state.get_active_table_config():
        state.set_page(page_number)
    return redirect(url_for('index', table=state.active_table_name))

# ─── Cell rendering ───

def display(value):
    if value is None:
        return ''
    return str(value)

def cell_to_class(value):
    if value is None:
        return 'null'
    value = str(value)
    if value.startswith('http://') or value.startswith('https://'):
        return 'link'
    if is_date_epoch(value) or is_date_iso(value):
        return 'date'
    if len(value) > 100:
        return 'text-long'
    return 'text'

def cell_to_title(value):
    if cell_to_class(value) != 'date':
        return ''
    value = str(value)
    if is_date_epoch(value):
        date = datetime.fromtimestamp(int(value), tz=timezone.utc)
    else:
        date = parse_date_iso(value)
    # make naive into utc
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return "{0} ({1})".format(date.strftime('%c %Z'), timeago.format(date, datetime.now(timezone.utc)))

def parse_date_iso(string):
    # handle trailing 'Z'
    if string.endswith('Z'):
        string = string[:-1]
    return datetime.fromisoformat(string)

def is_date_iso(string):
    # plain numbers parse as years on newer interpreters
    if string.isdigit():
        return False
    try:
        parse_date_iso(string)
        return True
    except ValueError:
        return False

def is_date_epoch(string):
    start_date = datetime(2000, 1, 1, tzinfo=timezone.utc)
    end_date = datetime(2038, 1, 19, tzinfo=timezone.utc)
    try:
        epoch = int(string)
    except ValueError:
        return False
    if epoch < start_date.timestamp() or epoch > end_date.timestamp():
        return False
    return True

@app.route('/', methods=['GET'])
def index():
    state = request_to_state()
    connection = get_db()

    tables = list_tables(connection)
    error = request.args.get('error', '')
    table_name = request.args.get('table') or state.active_table_name
    if table_name and table_name not in tables:
        if table_name == state.active_table_name:
            state.forget_table(table_name)
        else:
            error = InvalidTable.message
        table_name = None
    if table_name and table_name != state.active_table_name:
        state.set_active_table(table_name)

    columns = []
    rows = []
    pagination = None
    primary_key = None
    autoincrement = False
    if table_name:
        columns = get_columns(connection, table_name)
        primary_key = get_primary_key(connection, table_name)
        autoincrement = is_autoincrement(connection, table_name)
        table_config = state.get_active_table_config()
        rows, pagination = fetch_page(connection, table_name, table_config.page, table_config.page_size)

    return render_template_string("""
    <!DOCTYPE html>
    <html lang="en">
        <head>
            <meta charset="UTF-8">
            <title>{{ app_name }}</title>
            <link rel="icon" href="data:image/png;base64,iVBORw0KGgo=">
            <link rel="stylesheet" href="{{ url_for('static', filename='css/editor.css') }}">
        </head>
        <body>
            <div class="container font-mono">
                <div class="wide flex-wrap justify-between">
                    <form method="get" action="{{ url_for('index') }}">
                        <select name="table" onchange="this.form.submit()">
                            <option value="">-- Select a table --</option>
                            {% for table in tables %}
                            <option value="{{ table }}" {% if table == table_name %}selected{% endif %}>{{ table }}</option>
                            {% endfor %}
                        </select>
                    </form>
                    {% if pagination %}
                    <div class="wide center-h">
                        <span>Total: {{ pagination.total }}</span>
                        {% if pagination.is_first_page %}
                        <span class="gray">Prev</span>
                        {% else %}
                        <form action="{{ url_for('page', page_number=pagination.prev) }}" method="post">
                            <input type="submit" value="Prev">
                        </form>
                        {% endif %}
                        <span>Page {{ pagination.page }} of {{ pagination.page_count }}</span>
                        {% if pagination.is_last_page %}
                        <span class="gray">Next</span>
                        {% else %}
                        <form action="{{ url_for('page', page_number=pagination.next) }}" method="post">
                            <input type="submit" value="Next">
                        </form>
                        {% endif %}
                    </div>
                    {% endif %}
                </div>

                <div id="error-message" class="red">{{ error }}</div>

                {% if table_name %}
                <h2>Table: {{ table_name }}</h2>

                <form method="post" id="add-form" action="{{ url_for('insert') }}">
                    <input type="hidden" name="table" value="{{ table_name }}">
                </form>

                <table
                    data-table="{{ table_name }}"
                    data-primary-key="{{ primary_key or '' }}"
                    data-render-handle="{{ render_handle }}"
                >
                    <thead>
                        <tr>
                            {% for column in columns %}
                            <th title="{{ column.sql_type }}{{ '' if column.nullable else ' NOT NULL' }}">{{ column.name }}</th>
                            {% endfor %}
                            <th>Actions</th>
                        </tr>
                    </thead>
                    <tbody>
                        <tr class="add-row">
                            {% for column in columns %}
                            {% if column.is_auto_generated %}
                            <td class="gray">{{ 'AUTOINCREMENT' if autoincrement and column.is_primary_key else '—' }}</td>
                            {% else %}
                            <td data-field="{{ column.name }}">
                                <input name="{{ column.name }}" class="add-input" form="add-form" placeholder="{{ column.sql_type }}">
                            </td>
                            {% endif %}
                            {% endfor %}
                            <td><button type="submit" form="add-form">Add</button></td>
                        </tr>
                        {% for row in rows %}
                        <tr data-id="{{ display(row[primary_key]) if primary_key else '' }}">
                            {% for column in columns %}
                            <td data-field="{{ column.name }}" class="{{ cell_to_class(row[column.name]) }}" title="{{ cell_to_title(row[column.name]) }}">
                                <span class="display-text">{{ display(row[column.name]) }}</span>
                                <input class="edit-input" type="text" value="{{ display(row[column.name]) }}">
                            </td>
                            {% endfor %}
                            <td class="action-cell">
                                {% if primary_key and row[primary_key] is not none %}
                                <button class="edit-btn">Edit</button>
                                <button class="save-btn" style="display:none;">Save</button>
                                <button class="cancel-btn" style="display:none;">Cancel</button>
                                <form method="post" action="{{ url_for('delete') }}" style="display:inline;">
                                    <input type="hidden" name="table" value="{{ table_name }}">
                                    <input type="hidden" name="id" value="{{ display(row[primary_key]) }}">
                                    <button type="submit" class="delete-btn">Delete</button>
                                </form>
                                {% endif %}
                            </td>
                        </tr>
                        {% endfor %}
                    </tbody>
                </table>
                {% endif %}
            </div>
            <script>
                window.EDITOR_ENDPOINTS = {
                    insert: "{{ url_for('insert') }}",
                    update: "{{ url_for('update') }}",
                    delete: "{{ url_for('delete') }}"
                };
            </script>
            <script type="module" src="{{ url_for('static', filename='js/editor.js') }}"></script>
        </body>
    </html>""", app_name=settings.APP_NAME, tables=tables, table_name=table_name, columns=columns, rows=rows,
        pagination=pagination, primary_key=primary_key, autoincrement=autoincrement, error=error,
        render_handle=uuid.uuid4().hex, display=display, cell_to_class=cell_to_class, cell_to_title=cell_to_title)

def main():
    setup_logging()
    logger.info("Starting %s on %s:%s (database: %s)", settings.APP_NAME, settings.HOST, settings.PORT, settings.DATABASE_PATH)
    app.run(host=settings.HOST, port=settings.PORT, debug=settings.DEBUG, use_reloader=settings.DEBUG)

if __name__ == "__main__":
    main()
