"""
Central configuration for the debugger bridge and its host application.

Constants here are the defaults the debugger falls back to when it is not
given an explicit DebuggerConfig. Launch arguments decide whether debugging
is switched on at all.
"""
import sys
from typing import Optional, Sequence

# Remote observer (webhook relay) the app connects to.
WEBHOOK_URL = "https://webhookv4.jovo.cloud"
# Role marker sent in the handshake query.
CLIENT_TYPE = "app"
# Per-user file holding the webhook id, relative to the home directory.
HOME_CONFIG_PATH = ".jovo/configv4"

# Conversation fields that are back-references and must never be observed.
IGNORED_PROPERTIES = ["app", "handle_request", "platform"]

LANGUAGE_MODEL_ENABLED = True
LANGUAGE_MODEL_PATH = "./models"
DEBUGGER_JSON_PATH = "./debugger.json"

WEBHOOK_ARGUMENTS = ("--webhook", "--jovo-webhook")
DISABLE_ARGUMENT = "--disable-jovo-debugger"

# Server configuration
SERVER_PORT = 3000


def is_debugger_enabled(argv: Optional[Sequence[str]] = None) -> bool:
    """
    Decides from the launch arguments whether the debugger should connect.

    Args:
        argv: The process arguments. Defaults to sys.argv.

    Returns:
        True if the app was started as a webhook and debugging was not
        explicitly disabled.
    """
    args = sys.argv if argv is None else argv
    return any(arg in args for arg in WEBHOOK_ARGUMENTS) and DISABLE_ARGUMENT not in args
