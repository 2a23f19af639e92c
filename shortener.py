import logging
import os
import sys

from flask import Flask, redirect, request

from aliases import AliasTable
from formparse import FormParseError, URLParseError, parse_form, parse_url

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "80"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
MAX_FORM_BYTES = int(os.getenv("MAX_FORM_BYTES", str(10 << 20)))
DEBUG = os.getenv("FLASK_DEBUG") == "1"

CREATE_PATH = "/create"

logger = logging.getLogger("shortener")


def setup_logging(level: str = LOG_LEVEL) -> logging.Logger:
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)
    logger.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(handler)
    return logger


aliases = AliasTable()

app = Flask(__name__, static_folder=None)


def text(body: str, status: int):
    return app.response_class(body, status=status, mimetype="text/plain")


def request_path() -> str:
    """Decoded request path exactly as sent, repeated leading slashes included.

    ``request.path`` collapses leading slashes, so ``//create`` would read as
    ``/create``.
    """
    raw = request.environ.get("PATH_INFO", "")
    return raw.encode("latin-1").decode("utf-8", "replace") or "/"


def alias_from_path(path: str) -> str:
    return path.lstrip("/")


@app.before_request
def dispatch():
    # No URL rules are registered: every method on every path is answered
    # here, before Werkzeug's routing errors (404/405) would be raised.
    if request_path() == CREATE_PATH:
        return create()
    return go()


def create():
    if request.method != "POST":
        return text("", 405)

    try:
        form = parse_form(request, MAX_FORM_BYTES)
    except FormParseError as e:
        logger.warning("Malformed form body: %s", e)
        return text(str(e), 500)

    alias = form.get("alias", "")
    if not alias:
        logger.info("Rejected create with empty alias")
        return text("invalid alias: " + alias, 400)

    url = form.get("url", "")
    try:
        parse_url(url)
    except URLParseError as e:
        logger.info("Rejected url for /%s: %s", alias, e)
        return text("invalid url: " + request.args.get("url", ""), 400)

    previous = aliases.set(alias, url)
    if previous is not None and previous != url:
        logger.info("Replaced /%s (was %s)", alias, previous)
    logger.info("Created /%s -> %s", alias, url)
    return text(f"/{alias} redirects to {url}", 201)


def go():
    alias = alias_from_path(request_path())
    target = aliases.get(alias)
    if target is None:
        logger.debug("Unknown alias %r", alias)
        return text("invalid alias", 404)
    return redirect(target, code=301)


def main():
    setup_logging(LOG_LEVEL)
    logger.info("starting http server on port %d...", PORT)
    try:
        app.run(host=HOST, port=PORT, debug=DEBUG, threaded=True)
    except OSError as e:
        logger.critical("Could not listen on %s:%d: %s", HOST, PORT, e)
        sys.exit(1)
    except SystemExit as e:
        # werkzeug exits on its own when the address is already in use
        if e.code:
            logger.critical("Could not listen on %s:%d", HOST, PORT)
        raise


if __name__ == "__main__":
    main()
