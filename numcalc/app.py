import argparse
import atexit
import logging
import os
import sys
from typing import List, Optional, Tuple

import flask
from flask import request, jsonify

from numcalc import config
from numcalc.crypto import all_cryptos
from numcalc.currency import all_currencies
from numcalc.engine import Engine
from numcalc.metal import all_metals
from numcalc.nodes import AssignStmt
from numcalc.providers import refresh_rates
from numcalc.rates import RateCache
from numcalc.sessions import (
    create_session_db,
    delete_session_db,
    init_db,
    list_sessions,
    load_session,
    save_session,
)
from numcalc.units import all_units
from numcalc.value import Value

logger = logging.getLogger(__name__)

# Shared by every request and session; read-mostly
RATES = RateCache()


def prepare_rates(cache: RateCache = RATES, offline: bool = False) -> RateCache:
    """Load persisted rates, refreshing them over HTTP when stale."""
    if cache.load_from_file():
        return cache
    if offline:
        logger.info("Offline mode: using built-in fallback rates")
        return cache
    if refresh_rates(cache):
        try:
            cache.save_to_file()
        except OSError as e:
            logger.warning(f"Could not persist rates: {e}")
    return cache


def engine_for_session(session: dict) -> Engine:
    """Rebuild a session engine by replaying its stored lines."""
    engine = Engine(RATES)
    engine.set_precision(session.get("precision", config.DEFAULT_PRECISION))
    engine.set_strict(session.get("strict", False))
    engine.eval_lines(session.get("lines", []))
    return engine


def describe(engine: Engine, value: Value) -> dict:
    data = value.to_dict()
    data["display"] = engine.format(value)
    return data


# --- Flask App Setup ---

app = flask.Flask(__name__)
app.config["DEBUG"] = config.DEBUG_MODE


def _query_from_request() -> Tuple[Optional[str], Optional[tuple]]:
    data = request.get_json(silent=True)
    if not data or "query" not in data:
        return None, (jsonify({"error": "Missing 'query' in JSON payload"}), 400)
    query = str(data["query"]).strip()
    if not query:
        return None, (jsonify({"error": "Query cannot be empty"}), 400)
    return query, None


# --- API Endpoints ---


@app.route("/calculate", methods=["POST"])
def calculate():
    """Evaluates one line without a session."""
    query, failure = _query_from_request()
    if failure:
        return failure

    engine = Engine(RATES)
    line, _ = engine.parse(query)
    if isinstance(line.stmt, AssignStmt):
        return jsonify({"error": "Variable assignments require a session. Use /sessions endpoint."}), 400

    precision = (request.get_json(silent=True) or {}).get("precision")
    if precision is not None:
        try:
            engine.set_precision(precision)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

    value = engine.eval(query)
    if value.is_error():
        logger.warning(f"No-session: '{query}' failed: {value.error}")
        return jsonify({"error": value.error}), 400
    logger.info(f"No-session: '{query}' -> {value}")
    return jsonify({"result": describe(engine, value)}), 200


@app.route("/sessions", methods=["POST"])
def create_session():
    """Creates a new calculation session."""
    session_id = create_session_db()
    if session_id:
        return jsonify({"session_id": session_id}), 201
    return jsonify({"error": "Failed to create session"}), 500


@app.route("/sessions", methods=["GET"])
def get_sessions():
    return jsonify(list_sessions()), 200


@app.route("/sessions/<string:session_id>", methods=["GET"])
def get_session(session_id):
    """Returns the variables, lines and totals of a session."""
    session = load_session(session_id)
    if session is None:
        return jsonify({"error": f"Session '{session_id}' not found or failed to load"}), 404

    engine = engine_for_session(session)
    return (
        jsonify(
            {
                "session_id": session_id,
                "precision": engine.precision,
                "strict": engine.strict,
                "variables": {name: describe(engine, v) for name, v in engine.variables().items()},
                "lines": [
                    {"raw": r.raw, "result": describe(engine, r.value), "consumed": r.consumed}
                    for r in engine.lines()
                ],
                "total": describe(engine, engine.total()),
                "totals": [describe(engine, v) for v in engine.grouped_totals()],
            }
        ),
        200,
    )


@app.route("/sessions/<string:session_id>", methods=["DELETE"])
def delete_session(session_id):
    """Deletes a calculation session."""
    if delete_session_db(session_id):
        return "", 204
    return jsonify({"error": f"Failed to delete session '{session_id}' (may not exist)"}), 404


@app.route("/sessions/<string:session_id>/settings", methods=["PUT"])
def update_settings(session_id):
    session = load_session(session_id)
    if session is None:
        return jsonify({"error": f"Session '{session_id}' not found or failed to load"}), 404
    data = request.get_json(silent=True) or {}

    engine = Engine(RATES)
    try:
        engine.set_precision(data.get("precision", session["precision"]))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    strict = bool(data.get("strict", session["strict"]))

    if not save_session(session_id, session["lines"], engine.precision, strict):
        return jsonify({"error": "Failed to save session"}), 500
    return jsonify({"precision": engine.precision, "strict": strict}), 200


@app.route("/sessions/<string:session_id>/calculate", methods=["POST"])
def calculate_in_session(session_id):
    """Evaluates a line (calculation, assignment or continuation) in a session."""
    query, failure = _query_from_request()
    if failure:
        return failure

    session = load_session(session_id)
    if session is None:
        return jsonify({"error": f"Session '{session_id}' not found or failed to load"}), 404

    engine = engine_for_session(session)
    value = engine.eval(query)
    if value.is_error():
        logger.warning(f"Session {session_id}: '{query}' failed: {value.error}")
        return jsonify({"error": value.error}), 400

    # Only lines that evaluate cleanly are stored
    lines = session["lines"] + [query]
    if not save_session(session_id, lines, engine.precision, engine.strict):
        return jsonify({"error": "Failed to save session"}), 500

    payload = {"result": describe(engine, value), "total": describe(engine, engine.total())}
    last = engine.lines()[-1]
    if last.assigned:
        payload["variable_set"] = last.assigned
    return jsonify(payload), 200


@app.route("/rates/<string:from_code>/<string:to_code>", methods=["GET"])
def get_rate(from_code, to_code):
    rate = RATES.get_rate(from_code, to_code)
    if rate is None:
        return jsonify({"error": f"No rate available for {from_code.upper()} to {to_code.upper()}"}), 404
    return jsonify({"from": from_code.upper(), "to": to_code.upper(), "rate": rate}), 200


# --- CLI Interface ---

HELP_TEXT = """
Usage examples:
  2 + 3 * 4           - Arithmetic with precedence
  $100 + 15%          - Add a percentage to a base
  20% of 150          - Percentage of a value
  5 km in miles       - Convert units
  $10 in EUR          - Convert currencies
  0.5 btc in usd      - Convert crypto
  x = 10              - Assign a variable
  + 5                 - Continue from the previous result
  in GBP              - Convert the previous result
  sum(1, 2, 3)        - Built-in functions

Commands:
  vars                - Show all variables
  total               - Show the running total and totals per type
  clear               - Forget variables and history
  precision N         - Set display precision (0-15)
  strict on|off       - Toggle errors for undefined variables
  help                - Show this help message
  exit/quit           - Exit the calculator
"""


COMMANDS = ("vars", "total", "clear", "help", "exit", "quit", "precision", "strict")


def completions(engine: Engine, text: str) -> List[str]:
    """Tab-completion candidates: functions, codes, commands and variables."""
    words = sorted(
        set(Engine.function_names())
        | {c.code for c in all_currencies()}
        | {c.code for c in all_cryptos()}
        | {m.code for m in all_metals()}
        | {u.code for u in all_units()}
        | set(COMMANDS)
    )
    return [w for w in words + sorted(engine.variables()) if w.startswith(text)]


def setup_readline(engine: Engine):
    """History and tab completion when readline is available."""
    try:
        import readline
    except ImportError:
        return

    histfile = os.path.join(os.path.expanduser("~"), ".numcalc_history")
    try:
        readline.read_history_file(histfile)
        readline.set_history_length(1000)
    except (FileNotFoundError, OSError):
        pass
    atexit.register(readline.write_history_file, histfile)

    def completer(text, state):
        options = completions(engine, text)
        if state < len(options):
            return options[state]
        return None

    readline.set_completer(completer)
    readline.parse_and_bind("tab: complete")


def handle_command(engine: Engine, query: str) -> Optional[bool]:
    """Runs a REPL command. Returns None when ``query`` is not a command,
    False to exit and True otherwise."""
    words = query.strip().split()
    command = words[0].lower() if words else ""

    if command in ("exit", "quit", "bye") and len(words) == 1:
        return False
    if command == "help" and len(words) == 1:
        print(HELP_TEXT)
        return True
    if command == "vars" and len(words) == 1:
        variables = engine.variables()
        if not variables:
            print("No variables defined.")
        for name, value in sorted(variables.items()):
            print(f"  {name} = {engine.format(value)}")
        return True
    if command == "total" and len(words) == 1:
        print(f"Total: {engine.format(engine.total())}")
        for value in engine.grouped_totals():
            print(f"  {engine.format(value)}")
        return True
    if command == "clear" and len(words) == 1:
        engine.clear()
        print("Session cleared.")
        return True
    if command == "precision" and len(words) == 2:
        try:
            engine.set_precision(int(words[1]))
            print(f"Precision set to {engine.precision}.")
        except ValueError as e:
            print(f"Error: {e}")
        return True
    if command == "strict" and len(words) == 2 and words[1].lower() in ("on", "off"):
        engine.set_strict(words[1].lower() == "on")
        print(f"Strict mode {'on' if engine.strict else 'off'}.")
        return True
    return None


def run_cli_mode(argv: Optional[List[str]] = None):
    """Run calculator in interactive CLI mode."""
    parser = argparse.ArgumentParser(prog="numcalc", description="Natural-language calculator")
    parser.add_argument("expression", nargs="*", help="Evaluate an expression and exit")
    parser.add_argument("--file", "-f", type=str, help="Evaluate every line of a file")
    parser.add_argument("--session", "-s", type=str, help="Load and persist a stored session")
    parser.add_argument("--precision", "-p", type=int, default=config.DEFAULT_PRECISION)
    parser.add_argument("--strict", action="store_true", help="Undefined variables are errors")
    parser.add_argument("--offline", action="store_true", help="Never fetch live rates")
    args = parser.parse_args(argv)

    prepare_rates(RATES, offline=args.offline)
    engine = Engine(RATES)
    try:
        engine.set_precision(args.precision)
    except ValueError as e:
        parser.error(str(e))
    engine.set_strict(args.strict)

    if args.expression:
        print(engine.format(engine.eval(" ".join(args.expression))))
        return

    if args.file:
        try:
            with open(args.file, "r", encoding="utf-8") as f:
                lines = f.read().split("\n")
        except OSError as e:
            print(f"Error: {e}")
            sys.exit(1)
        for raw in lines:
            value = engine.eval(raw)
            shown = engine.format(value)
            print(f"{raw:<40} {shown}" if shown else raw)
        print(f"{'Total':<40} {engine.format(engine.total())}")
        return

    session_lines: List[str] = []
    if args.session:
        init_db()
        session = load_session(args.session)
        if session is None:
            print(f"Session {args.session} not found. Starting empty.")
        else:
            session_lines = list(session["lines"])
            engine.eval_lines(session_lines)
            print(f"Loaded session {args.session} ({len(session_lines)} lines).")

    setup_readline(engine)
    print("numcalc - type 'help' for examples, 'exit' to quit.")
    try:
        while True:
            try:
                query = input("calc> ")
            except EOFError:
                break
            if not query.strip():
                continue
            handled = handle_command(engine, query)
            if handled is False:
                break
            if handled:
                continue

            value = engine.eval(query)
            if value.is_error():
                print(f"Error: {value.error}")
                continue
            if value.is_empty():
                continue
            last = engine.lines()[-1]
            if last.assigned:
                print(f"{last.assigned} = {engine.format(value)}")
            else:
                print(f"= {engine.format(value)}")
            if args.session:
                session_lines.append(query)
                save_session(args.session, session_lines, engine.precision, engine.strict)
    except KeyboardInterrupt:
        print("\nKeyboard interrupt received. Exiting...")
    print("Bye!")


# --- Entry Points ---
def start_web_server():
    """Entry point for running the web server."""
    config.setup_logging()
    init_db()
    prepare_rates(RATES)
    print(f"Starting web server on http://{config.WEB_HOST}:{config.WEB_PORT}")
    app.run(host=config.WEB_HOST, port=config.WEB_PORT)


def main(argv: Optional[List[str]] = None):
    """``numcalc serve`` starts the web API; anything else runs the CLI."""
    argv = sys.argv[1:] if argv is None else argv
    if argv and argv[0] == "serve":
        start_web_server()
        return
    config.setup_logging()
    run_cli_mode(argv)


if __name__ == "__main__":
    main()
