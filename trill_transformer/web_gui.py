#!/usr/bin/env python3
"""Flask web interface for Trill Transformer.

This module provides a minimal web front-end mirroring the command-line
interface. Users paste or upload a note table, choose the transformation
percentage, meter and variants, and receive the annotated table, a summary
of the run and the MIDI rendering as a download.

The view talks to the core only through :func:`run_transformation` and
:func:`encode_sequence`; nothing is written to disk.

Protections carried over from the other front ends:

* **CSRF protection** – Flask-WTF's :class:`~flask_wtf.csrf.CSRFProtect`
  injects and validates tokens for every POST request.
* **WSGI-friendly entry point** – a :func:`create_app` factory builds and
  configures the application so production servers like Gunicorn can serve
  it directly.
* **Request size limiting** – ``MAX_CONTENT_LENGTH`` bounds uploads so
  oversized tables are rejected early with HTTP 413.
* **Rate limiting** – an in-memory, lock-protected per-IP count of form
  submissions answers clients that transform too often with HTTP 429 and a
  ``Retry-After`` header; viewing the form is never throttled.
* **Form state preservation** – validation failures re-render the form with
  the user's previous values and highlight the offending input.
"""

from __future__ import annotations

import base64
import io
import logging
import math
import os
import secrets
from threading import Lock
from time import monotonic
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from flask import (
    Flask,
    Response,
    current_app,
    flash,
    make_response,
    render_template,
    request,
)
from flask_wtf.csrf import CSRFProtect

from .midi_io import encode_sequence
from .rng import make_source
from .table_io import NoteRecord, write_table
from .transform import TransformConfig, format_summary, run_transformation
from .variants import ANY_VARIANT, VARIANTS

# Logger used throughout the module for diagnostic messages.
logger = logging.getLogger(__name__)

# CSRF protection instance. ``init_app`` is invoked inside ``create_app`` so
# tests can control when protection is enabled.
csrf = CSRFProtect()

# Transformation submissions per client IP address. Each entry maps the
# client IP to a ``(window_start, count)`` tuple. Access is synchronized by
# ``REQUEST_LOCK`` because Flask's development server can process requests on
# multiple threads.
REQUEST_LOG: Dict[str, Tuple[float, int]] = {}
REQUEST_LOCK = Lock()

# Duration of a single rate-limit window in seconds.
RATE_LIMIT_WINDOW = 60.0

# Default values for text inputs, stored as strings so they can be injected
# directly into the HTML ``value`` attribute.
_FORM_TEXT_DEFAULTS: Dict[str, str] = {
    "rows": "",
    "percentage": "50",
    "meter": "duple",
    "seed": "",
}

METERS = ("duple", "triple")


def _transform_limit() -> Optional[int]:
    """Return the configured transformations per minute, or ``None``.

    ``0`` switches throttling off quietly; negative or non-numeric values
    are reported once per request and also switch it off.
    """

    raw = current_app.config.get("RATE_LIMIT_PER_MINUTE")
    if raw is None:
        return None
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid RATE_LIMIT_PER_MINUTE %r; disabling rate limiting", raw)
        return None
    if limit < 0:
        logger.warning(
            "RATE_LIMIT_PER_MINUTE must be positive; disabling rate limiting (received %r)",
            raw,
        )
    return limit if limit > 0 else None


def rate_limit() -> Optional[Response]:
    """Throttle transformation submissions per client address.

    Registered as a ``before_request`` hook. Only ``POST`` requests run a
    transformation and encode a MIDI file, so only they are counted; viewing
    the form is never throttled. A client exceeding ``RATE_LIMIT_PER_MINUTE``
    submissions inside the current window receives ``429`` with a
    ``Retry-After`` header giving the seconds left in that window.
    """

    if request.method != "POST":
        return None
    limit = _transform_limit()
    if limit is None:
        return None

    now = monotonic()
    client = request.remote_addr or "unknown"

    with REQUEST_LOCK:
        for stale in [ip for ip, (start, _) in REQUEST_LOG.items() if now - start >= RATE_LIMIT_WINDOW]:
            del REQUEST_LOG[stale]

        window_start, submissions = REQUEST_LOG.get(client, (now, 0))
        if submissions >= limit:
            retry_after = math.ceil(max(0.0, RATE_LIMIT_WINDOW - (now - window_start)))
            logger.info("Throttling %s after %d transformations", client, submissions)
            response = make_response("Too many transformation requests", 429)
            response.headers["Retry-After"] = str(retry_after)
            return response
        REQUEST_LOG[client] = (window_start, submissions + 1)

    return None


def _transform_rows(
    lines: List[str], config: TransformConfig, seed: Optional[int]
) -> Dict[str, object]:
    """Run the transformation and encoding for one submission."""

    rows, stats = run_transformation(lines, config, make_source(seed))

    table = io.StringIO()
    write_table(rows, table)

    diagnostics: List[str] = []
    notes = [row for row in rows if isinstance(row, NoteRecord)]
    midi_bytes = encode_sequence(notes, diagnostics)

    return {
        "summary": format_summary(stats, config),
        "table": table.getvalue(),
        "midi": base64.b64encode(midi_bytes).decode("ascii"),
        "diagnostics": stats.errors + diagnostics,
    }


def _read_submitted_rows(form_values: Dict[str, object]) -> List[str]:
    """Return the uploaded table if present, otherwise the pasted rows."""

    upload = request.files.get("table_file")
    if upload is not None and upload.filename:
        text = upload.read().decode("utf-8", errors="replace")
        form_values["rows"] = text
    else:
        text = str(form_values.get("rows", ""))
    return text.splitlines()


def index():
    """Render the form and handle submissions.

    On ``GET`` the input form is shown. On ``POST`` the submitted rows are
    transformed in memory and the result page offers the annotated table and
    MIDI file. Invalid values flash a message and redisplay the form.
    """

    if request.method == "POST":
        form_values = _extract_form_values(request.form)

        try:
            percentage = float(form_values["percentage"])
        except ValueError:
            flash("Percentage must be a number.")
            return _render_form(form_values, {"percentage"})
        if not 0.0 <= percentage <= 100.0:
            flash("Percentage must be between 0 and 100.")
            return _render_form(form_values, {"percentage"})

        meter = str(form_values["meter"])
        if meter not in METERS:
            flash("Unknown meter selected.")
            return _render_form(form_values, {"meter"})

        seed_raw = str(form_values["seed"]).strip()
        try:
            seed = int(seed_raw) if seed_raw else None
        except ValueError:
            flash("Seed must be an integer.")
            return _render_form(form_values, {"seed"})

        selected = [code for code in form_values["variants"] if code]
        unknown = [code for code in selected if code != ANY_VARIANT and code not in VARIANTS]
        if unknown:
            flash(f"Unknown trill variant: {unknown[0]}")
            return _render_form(form_values, {"variants"})
        if ANY_VARIANT in selected:
            selected = [ANY_VARIANT]

        lines = _read_submitted_rows(form_values)
        if not any(line.strip() for line in lines):
            flash("Please paste or upload at least one note row.")
            return _render_form(form_values, {"rows"})

        config = TransformConfig(percentage=percentage, variants=tuple(selected), meter=meter)
        result = _transform_rows(lines, config, seed)
        return render_template("result.html", **result)

    return _render_form()


def create_app() -> Flask:
    """Build and configure the Flask application instance.

    In production (non-debug) mode ``FLASK_SECRET`` must be set; a missing
    value emits a ``CRITICAL`` log entry and raises :class:`RuntimeError` so
    the application never runs with an ephemeral session key by accident.
    ``MAX_UPLOAD_MB`` (default 5) and ``RATE_LIMIT_PER_MINUTE`` tune the abuse
    protections.

    Returns:
        Flask: Configured application ready for use by a WSGI server.
    Raises:
        RuntimeError: If ``FLASK_SECRET`` is absent when debug mode is
            disabled.
    """

    app = Flask(__name__, template_folder="templates", static_folder="static")

    secret = os.environ.get("FLASK_SECRET")
    try:
        max_mb = int(os.environ.get("MAX_UPLOAD_MB", "5"))
    except ValueError:
        max_mb = 5
        logger.warning("Invalid MAX_UPLOAD_MB value; defaulting to 5 MB.")
    rate_limit_env = os.environ.get("RATE_LIMIT_PER_MINUTE")
    try:
        rate_limit_per_minute = int(rate_limit_env) if rate_limit_env else None
    except ValueError:
        logger.warning(
            "RATE_LIMIT_PER_MINUTE must be an integer. Disabling rate limiting."
        )
        rate_limit_per_minute = None

    if not app.debug and not secret:
        logger.critical("FLASK_SECRET environment variable must be set in production.")
        raise RuntimeError("Missing FLASK_SECRET")

    if not secret:
        secret = secrets.token_urlsafe(32)
        logger.warning(
            "FLASK_SECRET environment variable not set. "
            "Using a randomly generated key; sessions will not persist across restarts."
        )
    app.secret_key = secret
    app.config["MAX_CONTENT_LENGTH"] = max_mb * 1024 * 1024
    app.config["RATE_LIMIT_PER_MINUTE"] = rate_limit_per_minute

    csrf.init_app(app)
    app.add_url_rule("/", view_func=index, methods=["GET", "POST"])
    app.before_request(rate_limit)

    @app.errorhandler(413)
    def handle_request_too_large(_err):
        """Return a concise message when the client uploads too much data."""
        return "Request exceeds configured size limit.", 413

    return app


# ---------------------------------------------------------------------------
# Form rendering helpers
# ---------------------------------------------------------------------------


def _default_form_values() -> Dict[str, object]:
    """Return a fresh copy of the default form values."""

    values: Dict[str, object] = dict(_FORM_TEXT_DEFAULTS)
    values["variants"] = [ANY_VARIANT]
    return values


def _extract_form_values(form) -> Dict[str, object]:
    """Return request data merged with defaults for re-rendering.

    Text fields stay strings so they can be reinserted into inputs; the
    multi-select ``variants`` becomes a list of codes.
    """

    merged = _default_form_values()
    for field in _FORM_TEXT_DEFAULTS:
        if field in form:
            merged[field] = form.get(field, "")
    if "variants" in form:
        merged["variants"] = form.getlist("variants")
    return merged


def _build_form_context(
    form_values: Optional[Mapping[str, object]] = None,
    error_fields: Optional[Iterable[str]] = None,
) -> Dict[str, object]:
    """Assemble template context used for rendering the index form."""

    context_values = _default_form_values()
    if form_values is not None:
        for name, value in form_values.items():
            # Only merge known fields so unexpected keys cannot leak into the
            # template context.
            if name in context_values:
                context_values[name] = value

    highlighted: Set[str] = set(error_fields or [])

    return {
        "variants": list(VARIANTS.values()),
        "any_variant": ANY_VARIANT,
        "meters": METERS,
        "form_values": context_values,
        "error_fields": highlighted,
    }


def _render_form(
    form_values: Optional[Mapping[str, object]] = None,
    error_fields: Optional[Iterable[str]] = None,
):
    """Render the input form with supplied values and error highlights."""

    return render_template(
        "index.html", **_build_form_context(form_values, error_fields)
    )


def main() -> None:
    """Serve the web interface with Flask's development server."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    port = int(os.environ.get("PORT", "5000"))
    create_app().run(port=port)


# Instantiate a default application for ad-hoc scripts and tests while still
# exposing ``create_app`` for production WSGI servers.
app = create_app()
