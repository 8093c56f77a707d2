"""
HTTP entry point of the assistant application.

Platforms POST their requests to /webhook; the JSON body is run through the
app and the response is returned as JSON.
"""
import logging
from typing import Any

from flask import Flask, Request, jsonify, request

from errors import PipelineError
from pipeline import App, Server


class FlaskServer(Server):
    """Adapts a Flask request to the pipeline's Server interface."""

    def __init__(self, flask_request: Request):
        super().__init__()
        self.flask_request = flask_request

    def get_request_object(self) -> dict[str, Any]:
        return self.flask_request.get_json(silent=True)


def create_webhook(app: App) -> Flask:
    """Creates the Flask application serving `app`."""
    webhook = Flask(__name__)

    @webhook.route("/webhook", methods=["POST"])
    def handle_webhook():
        """Handles one platform request."""
        server = FlaskServer(request)
        if not isinstance(server.get_request_object(), dict):
            return jsonify({"error": "Request body must be a JSON object."}), 400
        app.handle(server)
        return jsonify(server.response)

    @webhook.errorhandler(PipelineError)
    def handle_pipeline_error(error: PipelineError):
        logging.warning(f"Rejected webhook request: {error}")
        return jsonify({"error": str(error)}), 400

    @webhook.route("/health")
    def serve_health():
        return jsonify({"status": "ok"})

    logging.debug("Webhook routes registered.")
    return webhook
