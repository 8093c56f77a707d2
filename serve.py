"""
Main application bootstrap file.

This script builds the sample assistant app, installs the debugger plugin,
connects it when the process was started with --webhook and serves the app
over HTTP.
"""
import logging
import sys
from typing import Any, Optional, Sequence

from config import SERVER_PORT
from data_models import DebuggerConfig
from debugger import JovoDebugger
from pipeline import App, CorePlatform
from webhook import create_webhook


def handle_dialog(conversation: Any) -> None:
    """A small dialog: greet, ask for a name, remember it."""
    request_type = conversation.input.get("type")
    session = conversation.session
    session["turns"] = session.get("turns", 0) + 1

    if request_type == "LAUNCH":
        conversation.say("Hello World! What's your name?")
    elif request_type == "INTENT" and conversation.input.get("intent") == "MyNameIsIntent":
        name = (conversation.input.get("entities") or {}).get("name", "friend")
        conversation.user["name"] = name
        conversation.say(f"Hey {name}, nice to meet you!")
        conversation.end_session()
    elif request_type == "END":
        conversation.end_session()
    else:
        conversation.say("Sorry, I didn't get that.")


def create_app(argv: Optional[Sequence[str]] = None) -> App:
    """Builds the app with the debugger installed."""
    app = App(handle_dialog, platforms=[CorePlatform()])
    app.use(JovoDebugger(DebuggerConfig.from_argv(argv)))
    return app


# --- MAIN EXECUTION ---
def main(argv: Optional[Sequence[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    args = sys.argv if argv is None else argv
    app = create_app(args)
    # Fatal setup errors (e.g. no webhook id) stop the process here.
    app.initialize()
    webhook = create_webhook(app)
    logging.info(f"Starting assistant app on http://127.0.0.1:{SERVER_PORT}")
    webhook.run(port=SERVER_PORT)


if __name__ == "__main__":
    main()
