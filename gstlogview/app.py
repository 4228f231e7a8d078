import atexit
import logging
import shutil
import tempfile

from flask import Flask, jsonify, request
from werkzeug.exceptions import RequestEntityTooLarge

from gstlogview.config import Config
from gstlogview.errors import (
    IngestionFailed,
    InternalFault,
    InvalidFilter,
    SessionNotFound,
)
from gstlogview.filters import FilterSpec, compile_filter, parse_int
from gstlogview.ingest import IngestionPipeline
from gstlogview.models import record_to_dict
from gstlogview.options import FilterOptions
from gstlogview.query import QueryExecutor
from gstlogview.store import SessionStore
from gstlogview.timeline import TimelineAggregator
from gstlogview.timeunits import Interval

logger = logging.getLogger(__name__)


def create_app(config=None, store=None, pipeline=None):
    """Flask application factory."""
    app = Flask(__name__)

    # Initialize components
    if config is None:
        config = Config.from_env()
    if store is None:
        store = SessionStore()
    if pipeline is None:
        pipeline = IngestionPipeline(store, max_workers=config["ingestion"]["workers"])
        atexit.register(pipeline.shutdown, wait=False)

    executor = QueryExecutor(store)
    timeline = TimelineAggregator(executor)
    options = FilterOptions(executor)

    query_cfg = config["query"]
    default_interval = config["timeline"]["default_interval"]
    app.config["MAX_CONTENT_LENGTH"] = config["upload"]["max_size_mb"] * 1024 * 1024

    # Store components on app for access in tests
    app.config["components"] = {
        "config": config,
        "store": store,
        "pipeline": pipeline,
        "executor": executor,
        "timeline": timeline,
        "options": options,
    }

    # --- Error handlers ---

    @app.errorhandler(SessionNotFound)
    def session_not_found(e):
        logger.info("%s", e)
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(InvalidFilter)
    def invalid_filter(e):
        logger.info("Rejected query: %s", e)
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(IngestionFailed)
    def ingestion_failed(e):
        return jsonify({"error": str(e), "state": "failed"}), 422

    @app.errorhandler(InternalFault)
    def internal_fault(e):
        logger.exception("Internal fault: %s", e)
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(e):
        return jsonify({"error": "Uploaded file is too large"}), 413

    # --- Routes ---

    @app.route("/health")
    def health():
        return jsonify({"status": "healthy", "sessions": len(store)})

    @app.route("/api/upload", methods=["POST"])
    def upload():
        # Kept on disk, not in memory
        spool = tempfile.TemporaryFile(prefix="gstlogview-")
        try:
            _save_upload(spool)
        except BaseException:
            spool.close()
            raise

        size = spool.tell()
        if size == 0:
            spool.close()
            return jsonify({"error": "No log file in upload"}), 400

        spool.seek(0)
        session_id, _ = pipeline.begin(spool)
        logger.info("Upload for session %s is %d bytes", session_id, size)
        return jsonify({"session_id": session_id})

    @app.route("/api/sessions/<session_id>")
    def session_status(session_id):
        session = store.get(session_id)
        return jsonify({
            "session_id": session.id,
            "state": session.state.value,
            "total": len(session.records),
            "error": session.error,
        })

    @app.route("/api/filter-options")
    def filter_options():
        session_id = _require_session_id()
        return jsonify(options.get(session_id).to_dict())

    @app.route("/api/logs")
    def logs():
        session_id = _require_session_id()
        predicate = compile_filter(FilterSpec.from_args(request.args))

        page = parse_int(request.args.get("page") or None, "page")
        if page is None:
            page = 1
        per_page = parse_int(request.args.get("per_page") or None, "per_page")
        if per_page is None:
            per_page = query_cfg["default_per_page"]
        if per_page > query_cfg["max_per_page"]:
            raise InvalidFilter(
                f"per_page must be <= {query_cfg['max_per_page']}, got {per_page}"
            )

        result = executor.list(session_id, predicate, page=page, per_page=per_page)
        return jsonify({
            "entries": [record_to_dict(r) for r in result.entries],
            "total": result.total,
            "page": result.page,
            "total_pages": result.total_pages,
        })

    @app.route("/api/timeline")
    def get_timeline():
        session_id = _require_session_id()
        label = request.args.get("interval") or default_interval
        try:
            interval = Interval.from_label(label)
        except ValueError as e:
            raise InvalidFilter(f"{e}; expected one of {', '.join(Interval.labels())}") from None

        predicate = compile_filter(FilterSpec.from_args(request.args))
        return jsonify(timeline.aggregate(session_id, predicate, interval).to_dict())

    return app


def _require_session_id():
    session_id = request.args.get("session_id")
    if not session_id:
        raise InvalidFilter("Missing session_id parameter")
    return session_id


def _save_upload(dst):
    """Copy the uploaded log into `dst`: the `file` field, else the first file, else the raw body."""
    upload_file = request.files.get("file")
    if upload_file is None and request.files:
        # Only the first field is processed
        upload_file = next(iter(request.files.values()))
    if upload_file is not None:
        upload_file.save(dst)
        return

    limit = request.max_content_length
    if limit is not None and (request.content_length or 0) > limit:
        raise RequestEntityTooLarge()
    shutil.copyfileobj(request.stream, dst)
