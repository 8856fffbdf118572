"""Result rendering for the estimator.

Builds one display view model per estimate and renders it with Jinja2.
The on-screen results and the PDF report both read the same view model,
so the two always show identical figures.
"""

from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from septic_estimator.config.settings import settings
from septic_estimator.models.cost_tables import CostTables
from septic_estimator.models.estimate import EstimateOutcome

logger = structlog.get_logger(__name__)

# Template directory
TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


def format_currency(value: float) -> str:
    """Format a dollar amount as a whole-dollar string, e.g. ``$12,350``."""
    return f"${value:,.0f}"


def format_range(low: float, high: float) -> str:
    return f"{format_currency(low)} - {format_currency(high)}"


@lru_cache(maxsize=1)
def get_jinja_env() -> Environment:
    """
    Create and configure the shared Jinja2 environment.

    Returns:
        Configured Jinja2 Environment
    """
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
    )
    env.filters["currency"] = format_currency
    return env


def render_template(name: str, **context: Any) -> str:
    """Render a template to an HTML string."""
    return get_jinja_env().get_template(name).render(**context)


def build_estimate_view(
    outcome: EstimateOutcome,
    tables: Optional[CostTables] = None,
    company_name: Optional[str] = None,
) -> Dict[str, Any]:
    """Format an estimate outcome for display.

    Args:
        outcome: EstimateResult or IncompatibleSelection.
        tables: Loaded tables, used to name suggested systems.
        company_name: Brand shown on the report, defaults to settings.

    Returns:
        Dictionary of display strings shared by the results page and the PDF.
    """
    view: Dict[str, Any] = {
        "kind": outcome.kind,
        "is_error": outcome.is_error,
        "work_type": outcome.work_type.value,
        "company_name": company_name or settings.company_name,
        "report_date": datetime.now().strftime("%B %d, %Y"),
    }

    if outcome.is_error:
        names = []
        for key in outcome.suggested_systems:
            system = tables.systems.systems.get(key) if tables else None
            names.append(system.name if system else key)
        view.update(
            title="Incompatible Selection",
            message=outcome.message,
            soil_type=outcome.soil_type,
            system_type=outcome.system_type,
            suggested_systems=[
                {"key": key, "name": name} for key, name in zip(outcome.suggested_systems, names)
            ],
        )
        return view

    view.update(
        title=outcome.title,
        low=outcome.low,
        high=outcome.high,
        low_display=format_currency(outcome.low),
        high_display=format_currency(outcome.high),
        total_display=format_range(outcome.low, outcome.high),
        breakdown=[
            {
                "key": line.key,
                "label": line.label,
                "low_display": format_currency(line.low),
                "high_display": format_currency(line.high),
                "value": format_range(line.low, line.high),
            }
            for line in outcome.breakdown
        ],
        details=[{"label": d.label, "value": d.value} for d in outcome.details],
        notes=list(outcome.notes),
        region_name=outcome.region_name,
        region_code=outcome.region_code,
        zip_code=outcome.zip_code,
        combined_multiplier=round(outcome.combined_multiplier, 4),
    )
    return view


def render_results_html(
    outcome: EstimateOutcome,
    tables: Optional[CostTables] = None,
    view: Optional[Dict[str, Any]] = None,
) -> str:
    """Render the on-screen results panel for an outcome."""
    view = view or build_estimate_view(outcome, tables)
    html = render_template("results.html", view=view)
    logger.debug("results_rendered", kind=view["kind"], html_length=len(html))
    return html
