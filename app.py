import os, time, logging
from typing import Any, Dict, Optional

from flask import Flask, request, jsonify, make_response, send_from_directory, abort
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from quotedoc.errors import QuoteRenderError, RecordNotFoundError
from quotedoc.financials import compute_breakdown
from quotedoc.logs import log_event, setup_logging
from quotedoc.models import creator_from_dict, lead_from_dict, quote_from_dict
from quotedoc.pipeline import generate_proposal, load_inputs, proposal_filename, render_proposal_bytes
from quotedoc.settings import RenderConfig, ServiceConfig, load_render_config, load_service_config
from quotedoc.storage import JsonRepository, LocalBlobStore, StorageApiBlobStore

BOOT_TS = time.strftime("%Y-%m-%d %H:%M:%S")

logger = logging.getLogger("quotedoc.app")

# HTTP status per failed-render error type
_ERROR_STATUS = {
    "RecordNotFoundError": 404,
    "QuoteDataError": 422,
    "FinancialModelError": 422,
    "BlobStoreError": 502,
}


def _blob_store(cfg: ServiceConfig):
    if cfg.storage_backend == "api":
        return StorageApiBlobStore(cfg.storage_url, cfg.storage_key, bucket=cfg.storage_bucket)
    return LocalBlobStore(cfg.local_storage_path, cfg.public_base_url)


def create_app(service_config: Optional[ServiceConfig] = None,
               render_config: Optional[RenderConfig] = None,
               blob_store=None, logo_fetcher=None) -> Flask:
    cfg = service_config or load_service_config()
    rcfg = render_config or load_render_config()
    setup_logging(cfg.log_dir, enabled=cfg.log_enabled, redact=cfg.log_redact)

    app = Flask(__name__)
    # Trust proxy headers for correct client IP/proto
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

    quotes = JsonRepository(cfg.data_dir, "quotes")
    companies = JsonRepository(cfg.data_dir, "companies")
    profiles = JsonRepository(cfg.data_dir, "profiles")
    store = blob_store or _blob_store(cfg)
    fetch_kwargs: Dict[str, Any] = {"logo_fetcher": logo_fetcher} if logo_fetcher else {}

    app.config["QUOTEDOC"] = {"service": cfg, "render": rcfg}

    def _contexts(body: Dict[str, Any]):
        return lead_from_dict(body.get("lead")), creator_from_dict(body.get("creator"))

    @app.get("/__version")
    def __version():
        return {"ok": True, "boot": BOOT_TS}

    @app.route("/ping")
    def ping():
        return "pong", 200

    @app.route("/health")
    def health():
        return "ok", 200

    # --- Render + upload, returns the public URL ---
    @app.post("/api/quotes/<quote_id>/proposal")
    def create_proposal(quote_id: str):
        body = request.get_json(force=True, silent=True) or {}
        lead, creator = _contexts(body)
        result = generate_proposal(quote_id, quotes, companies, store, rcfg,
                                   lead=lead, creator=creator, profiles=profiles, **fetch_kwargs)
        status = 200 if result.ok else _ERROR_STATUS.get(result.error_type or "", 500)
        return jsonify(result.as_dict()), status

    # --- Download the PDF directly, no upload ---
    @app.get("/api/quotes/<quote_id>/proposal.pdf")
    def download_proposal(quote_id: str):
        try:
            quote, branding, creator = load_inputs(quote_id, quotes, companies, profiles)
            lead = lead_from_dict({"company_name": request.args.get("company")})
            document, pdf_bytes = render_proposal_bytes(quote, branding, rcfg, lead=lead,
                                                        creator=creator, **fetch_kwargs)
        except QuoteRenderError as e:
            log_event("proposal_failed", {"quote_id": quote_id, "error": str(e), "error_type": type(e).__name__})
            return jsonify({"error": str(e)}), _ERROR_STATUS.get(type(e).__name__, 400)

        resp = make_response(pdf_bytes)
        resp.headers["Content-Type"] = "application/pdf"
        fname = proposal_filename(quote.client_name)
        resp.headers["Content-Disposition"] = f'attachment; filename="{fname}"'
        resp.headers["X-Page-Count"] = str(document.page_count)
        return resp

    @app.get("/api/quotes/<quote_id>/financials")
    def quote_financials(quote_id: str):
        try:
            row = quotes.get(quote_id)
            if row is None:
                raise RecordNotFoundError("quote", quote_id)
            quote = quote_from_dict(row)
            breakdown = compute_breakdown(quote, rcfg)
        except RecordNotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except QuoteRenderError as e:
            return jsonify({"error": str(e)}), 422
        return jsonify({"quote_id": quote.id, **breakdown.as_dict()})

    # --- Local blob store files (only when serving from disk) ---
    @app.get("/files/<path:filename>")
    def stored_file(filename: str):
        if cfg.storage_backend != "local":
            abort(404)
        return send_from_directory(os.path.abspath(cfg.local_storage_path), filename,
                                   mimetype="application/pdf")

    @app.errorhandler(Exception)
    def on_unhandled_error(e):
        if isinstance(e, HTTPException):
            return e
        logger.exception("EXC on %s", request.path)
        log_event("unhandled_error", {"route": request.path, "error": str(e)})
        return make_response("Sorry, something went wrong while preparing the proposal.", 500)

    return app


if __name__ == "__main__":
    debug = os.getenv("FLASK_DEBUG", "1") == "1"
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=debug)
