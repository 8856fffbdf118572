"""Web entry points for the septic cost estimator.

Provides HTTP endpoints for:
- The three-step estimator wizard (HTML)
- Estimate calculation (HTML results and JSON API)
- PDF export of a computed estimate
- Dropdown options and health checks
"""

import io
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog
from flask import Flask, Response, jsonify, request, send_file
from flask_cors import CORS

from septic_estimator.config.errors import (
    DataLoadError,
    ErrorCode,
    PDFGenerationError,
    ValidationError,
)
from septic_estimator.config.logging_config import configure_logging
from septic_estimator.config.settings import Settings, settings
from septic_estimator.models.cost_tables import CostTables
from septic_estimator.models.estimate import EstimateOutcome
from septic_estimator.models.selection import WorkType
from septic_estimator.services.cost_data_service import load_cost_tables_sync
from septic_estimator.services.pdf_generator import PDFGenerationRequest, generate_pdf, validate_sections
from septic_estimator.services.pricing_engine import calculate_estimate
from septic_estimator.services.renderer import build_estimate_view, render_template
from septic_estimator.services.wizard import WizardController, form_options
from septic_estimator.validators.selection_validator import parse_selection

logger = structlog.get_logger()

WORK_TYPES = {work_type.value for work_type in WorkType}

# ============================================================================
# Helper Functions
# ============================================================================


def success_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """Build success response."""
    return {"success": True, "data": data}


def error_response(code: str, message: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    """Build error response."""
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or {}
        }
    }


def flatten_form(form: Mapping[str, Any]) -> Dict[str, Any]:
    """Collapse a MultiDict into plain values, keeping lists for repeated keys."""
    if hasattr(form, "to_dict"):
        raw = form.to_dict(flat=False)
        return {key: values if len(values) > 1 else values[0] for key, values in raw.items()}
    return dict(form)


def submitted_pairs(data: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """Key/value pairs to re-post a selection as hidden form inputs."""
    pairs = []
    for key, value in data.items():
        values = value if isinstance(value, (list, tuple)) else [value]
        pairs.extend((key, str(v)) for v in values if v is not None)
    return pairs


def get_request_json() -> Dict[str, Any]:
    """Extract the JSON body of the current request.

    Raises:
        ValidationError: If the body is not a JSON object.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", code=ErrorCode.VALIDATION_ERROR)
    return data


# ============================================================================
# Application Factory
# ============================================================================


def create_app(
    app_settings: Optional[Settings] = None,
    tables: Optional[CostTables] = None,
) -> Flask:
    """Create the Flask application.

    Cost data is loaded once at start-up. If it cannot be loaded the app
    still starts: pages render the error with the form disabled and the
    API answers 503 until the process is restarted with valid data.

    Args:
        app_settings: Settings to use, defaults to the environment singleton.
        tables: Pre-loaded cost tables, skips loading from disk.
    """
    app_settings = app_settings or settings
    app = Flask(__name__)
    CORS(app, origins=app_settings.cors_origins)

    data_error: Optional[DataLoadError] = None
    if tables is None:
        try:
            tables = load_cost_tables_sync(app_settings.systems_path, app_settings.regional_path)
        except DataLoadError as e:
            data_error = e

    app.config["SEPTIC_SETTINGS"] = app_settings
    app.config["SEPTIC_TABLES"] = tables
    app.config["SEPTIC_DATA_ERROR"] = data_error

    def compute(form: Mapping[str, Any]) -> Tuple[Dict[str, Any], EstimateOutcome]:
        """Filter to visible fields, validate and price a submitted form."""
        controller = WizardController()
        work_type = form.get("work-type")
        if not work_type:
            raise ValidationError(
                "Please choose the type of work.", field="work-type", code=ErrorCode.MISSING_FIELD
            )
        controller.select_work_type(work_type)
        active = controller.active_form_data(form)
        selection = parse_selection(active, tables, app_settings.default_area_type)
        outcome = calculate_estimate(selection, tables, app_settings.rounding_increment)
        return active, outcome

    def render_wizard(
        controller: WizardController,
        form: Optional[Mapping[str, Any]] = None,
        prompt: Optional[Dict[str, Any]] = None,
        view: Optional[Dict[str, Any]] = None,
        submitted: Optional[List[Tuple[str, str]]] = None,
        status: int = 200,
    ) -> Response:
        form = dict(form or {})
        selected_items = []
        for key in ("repair-item", "maintenance-item"):
            value = form.get(key) or []
            selected_items.extend(value if isinstance(value, list) else str(value).split(","))

        options = None
        if tables is not None:
            options = form_options(tables, form.get("soil-type"), form.get("bedrooms"), form.get("people"))

        html = render_template(
            "wizard.html",
            company_name=app_settings.company_name,
            default_area_type=app_settings.default_area_type,
            data_error=data_error.message if data_error else None,
            state=controller.state.to_dict(),
            options=options,
            form=form,
            selected_items=selected_items,
            prompt=prompt,
            view=view,
            submitted=submitted or [],
        )
        if data_error:
            status = 503
        return Response(html, status=status, mimetype="text/html")

    def prompt_page(form: Dict[str, Any], error: ValidationError) -> Response:
        """Re-render the details step with the submitted values and a prompt."""
        controller = WizardController()
        if form.get("work-type") in WORK_TYPES:
            controller.select_work_type(form["work-type"])
        prompt = {"message": error.message, "field": error.field}
        return render_wizard(controller, form=form, prompt=prompt, status=400)

    def data_unavailable():
        return jsonify(error_response(
            ErrorCode.DATA_LOAD_FAILED,
            "Cost data is unavailable",
            data_error.to_dict()["details"] if data_error else {},
        )), 503

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({
            "status": "ok" if data_error is None else "degraded",
            "service": "septic-estimator",
            "data_loaded": tables is not None,
        })

    @app.route("/", methods=["GET"])
    def index():
        controller = WizardController()
        prompt = None
        form = flatten_form(request.args)
        work_type = request.args.get("work_type")
        if work_type:
            try:
                controller.select_work_type(work_type)
            except ValidationError as e:
                prompt = {"message": e.message, "field": e.field}
        step = request.args.get("step")
        if step:
            controller.go_to(step)
        return render_wizard(controller, form=form, prompt=prompt)

    @app.route("/estimate", methods=["POST"])
    def estimate_page():
        controller = WizardController()
        form = flatten_form(request.form)
        if data_error is not None:
            return render_wizard(controller)

        try:
            active, outcome = compute(form)
        except ValidationError as e:
            return prompt_page(form, e)

        controller.select_work_type(active["work-type"])
        controller.show_results()
        view = build_estimate_view(outcome, tables, app_settings.company_name)
        return render_wizard(controller, form=active, view=view, submitted=submitted_pairs(active))

    @app.route("/estimate/pdf", methods=["POST"])
    def estimate_pdf_page():
        if data_error is not None:
            return render_wizard(WizardController())
        form = flatten_form(request.form)
        try:
            _, outcome = compute(form)
            if outcome.is_error:
                raise ValidationError(outcome.message, field="system-type", code=ErrorCode.INCOMPATIBLE_SELECTION)
            result = generate_pdf(
                outcome,
                PDFGenerationRequest(region=outcome.region_code, zip_code=outcome.zip_code),
                tables=tables,
            )
        except ValidationError as e:
            return prompt_page(form, e)
        except PDFGenerationError as e:
            return jsonify(error_response(e.code, e.message, e.details)), 500

        return send_file(
            io.BytesIO(result.pdf_bytes),
            mimetype="application/pdf",
            as_attachment=True,
            download_name=result.filename,
        )

    # ------------------------------------------------------------------
    # JSON API
    # ------------------------------------------------------------------

    @app.route("/api/options", methods=["GET"])
    def api_options():
        if data_error is not None:
            return data_unavailable()
        options = form_options(
            tables,
            soil_type=request.args.get("soil_type"),
            bedrooms=request.args.get("bedrooms"),
            people=request.args.get("people"),
        )
        return jsonify(success_response(options))

    @app.route("/api/estimate", methods=["POST"])
    def api_estimate():
        if data_error is not None:
            return data_unavailable()
        try:
            data = get_request_json()
            _, outcome = compute(data)
        except ValidationError as e:
            logger.info("api_estimate_rejected", code=e.code, field=e.field)
            return jsonify(error_response(e.code, e.message, e.details)), 400
        except Exception as e:
            logger.exception("api_estimate_error", error=str(e))
            return jsonify(error_response(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")), 500

        if outcome.is_error:
            return jsonify(error_response(
                ErrorCode.INCOMPATIBLE_SELECTION, outcome.message, outcome.to_dict()
            )), 200

        payload = outcome.to_dict()
        payload["display"] = build_estimate_view(outcome, tables, app_settings.company_name)
        return jsonify(success_response(payload))

    @app.route("/api/estimate/pdf", methods=["POST"])
    def api_estimate_pdf():
        if data_error is not None:
            return data_unavailable()
        try:
            data = get_request_json()
            _, outcome = compute(data)
            if outcome.is_error:
                return jsonify(error_response(
                    ErrorCode.INCOMPATIBLE_SELECTION, outcome.message, outcome.to_dict()
                )), 400
            sections = data.get("sections")
            result = generate_pdf(
                outcome,
                PDFGenerationRequest(
                    region=outcome.region_code,
                    zip_code=outcome.zip_code,
                    sections=validate_sections(sections) if isinstance(sections, list) else None,
                ),
                tables=tables,
            )
        except ValidationError as e:
            logger.info("api_estimate_pdf_rejected", code=e.code, field=e.field)
            return jsonify(error_response(e.code, e.message, e.details)), 400
        except PDFGenerationError as e:
            return jsonify(error_response(e.code, e.message, e.details)), 500
        except Exception as e:
            logger.exception("api_estimate_pdf_error", error=str(e))
            return jsonify(error_response(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")), 500

        return send_file(
            io.BytesIO(result.pdf_bytes),
            mimetype="application/pdf",
            as_attachment=True,
            download_name=result.filename,
        )

    return app


def main() -> None:
    """Run the development server."""
    configure_logging(settings.log_level, settings.log_format)
    settings.validate()
    app = create_app()
    logger.info("server_starting", host=settings.host, port=settings.port)
    app.run(host=settings.host, port=settings.port, debug=settings.debug)


if __name__ == "__main__":
    main()
