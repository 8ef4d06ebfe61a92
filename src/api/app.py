"""
Reference redirect server for local testing of exp-run.

Implements the endpoints the CLI talks to:
    HEAD|GET /                 liveness
    GET      /setredirect/<n>  serve condition n
    DELETE   /setredirect      stop redirecting
    GET      /go               302 to REDIRECT_URL_TEMPLATE for the current condition
"""
import logging
import os

from flask import Flask, jsonify, redirect

logger = logging.getLogger(__name__)

DEFAULT_REDIRECT_URL_TEMPLATE = "http://localhost:8000/condition/{slot}"


def create_app(redirect_url_template: str = None) -> Flask:
    app = Flask(__name__)
    app.config["REDIRECT_URL_TEMPLATE"] = (
        redirect_url_template
        or os.environ.get("REDIRECT_URL_TEMPLATE", DEFAULT_REDIRECT_URL_TEMPLATE)
    )
    app.config["REDIRECT_SLOT"] = None

    @app.route("/", methods=["GET", "HEAD"])
    def ping():
        return "pong"

    @app.route("/status", methods=["GET"])
    def status():
        return jsonify({"redirect": app.config["REDIRECT_SLOT"]})

    @app.route("/setredirect/<int:slot>", methods=["GET"])
    def set_redirect(slot):
        app.config["REDIRECT_SLOT"] = slot
        logger.info(f"Redirect set to {slot}")
        return f"Redirect set to {slot}"

    @app.route("/setredirect", methods=["DELETE"])
    def clear_redirect():
        app.config["REDIRECT_SLOT"] = None
        logger.info("Redirect cleared")
        return "Redirect cleared"

    @app.route("/go", methods=["GET"])
    def go():
        slot = app.config["REDIRECT_SLOT"]
        if slot is None:
            return "No redirect set", 404
        return redirect(app.config["REDIRECT_URL_TEMPLATE"].format(slot=slot), code=302)

    return app


app = create_app()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "5000")))
