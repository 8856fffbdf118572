"""
PDF Report Generation Service for the septic estimator.

Generates a printable estimate report using WeasyPrint and Jinja2 templates.
Reports include Summary, Project Details, Cost Breakdown and Notes sections.

Architecture:
- Uses the renderer's view model so the PDF repeats the on-screen figures
- Uses Jinja2 for HTML template rendering
- Uses WeasyPrint for HTML to PDF conversion
- Supports section filtering
"""

from dataclasses import dataclass
from typing import List, Optional, Dict, Any
from datetime import datetime
from pathlib import Path
import re
import time

import structlog

from septic_estimator.config.errors import PDFGenerationError
from septic_estimator.models.cost_tables import CostTables
from septic_estimator.models.estimate import EstimateOutcome
from septic_estimator.services.renderer import (
    TEMPLATE_DIR,
    build_estimate_view,
    get_jinja_env,
)

# Configure structlog logger
logger = structlog.get_logger(__name__)

REPORT_TEMPLATE = "estimate_report.html"

# Available sections for PDF generation
ALL_SECTIONS = [
    "summary",
    "project_details",
    "cost_breakdown",
    "notes",
]


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class PDFGenerationRequest:
    """
    Request parameters for PDF generation.

    Attributes:
        region: State code used in the download filename
        zip_code: Optional ZIP code used in the download filename
        sections: Optional list of sections to include (None = all sections)
    """

    region: str
    zip_code: Optional[str] = None
    sections: Optional[List[str]] = None

    def get_sections(self) -> List[str]:
        """Return sections to include, defaulting to all sections."""
        if self.sections is None:
            return ALL_SECTIONS.copy()
        return [s for s in self.sections if s in ALL_SECTIONS]

    @property
    def filename(self) -> str:
        return pdf_filename(self.region, self.zip_code)


@dataclass
class PDFGenerationResult:
    """
    Result of PDF generation.

    Attributes:
        pdf_bytes: Rendered PDF document
        filename: Suggested download filename
        page_count: Number of pages in the generated PDF
        file_size_bytes: Size of the PDF file in bytes
        generated_at: ISO timestamp when the PDF was generated
    """

    pdf_bytes: bytes
    filename: str
    page_count: int
    file_size_bytes: int
    generated_at: str


def pdf_filename(region: Optional[str], zip_code: Optional[str] = None) -> str:
    """Download filename, e.g. ``Septic_Estimate_CA_90210.pdf``."""
    parts = ["Septic_Estimate", re.sub(r"[^A-Za-z0-9]", "", region or "") or "US"]
    if zip_code:
        parts.append(re.sub(r"[^0-9]", "", zip_code))
    return "_".join(parts) + ".pdf"


# =============================================================================
# Rendering
# =============================================================================


def render_report_html(
    view: Dict[str, Any],
    sections: Optional[List[str]] = None,
) -> str:
    """
    Render the estimate report HTML from a display view model.

    Args:
        view: Output of build_estimate_view
        sections: List of sections to include

    Returns:
        Rendered HTML string
    """
    env = get_jinja_env()
    template = env.get_template(REPORT_TEMPLATE)
    return template.render(
        view=view,
        sections=sections if sections is not None else ALL_SECTIONS.copy(),
    )


def _html_to_pdf(html_content: str) -> bytes:
    """
    Convert HTML to PDF using WeasyPrint.

    Args:
        html_content: Rendered HTML string

    Returns:
        PDF content as bytes
    """
    from weasyprint import HTML
    from weasyprint.text.fonts import FontConfiguration

    font_config = FontConfiguration()

    # Create HTML document
    html_doc = HTML(string=html_content, base_url=str(TEMPLATE_DIR))

    # Generate PDF
    return html_doc.write_pdf(font_config=font_config)


def _count_pdf_pages(pdf_bytes: bytes) -> int:
    """
    Count the number of pages in a PDF.

    Args:
        pdf_bytes: PDF content as bytes

    Returns:
        Number of pages
    """
    content = pdf_bytes.decode("latin-1", errors="ignore")
    return content.count("/Type /Page") - content.count("/Type /Pages")


# =============================================================================
# Main Entry Point
# =============================================================================


def generate_pdf(
    outcome: EstimateOutcome,
    request: PDFGenerationRequest,
    tables: Optional[CostTables] = None,
    view: Optional[Dict[str, Any]] = None,
) -> PDFGenerationResult:
    """
    Generate a PDF report for a computed estimate.

    Args:
        outcome: Computed estimate; incompatible selections cannot be exported
        request: Filename parts and section filter
        tables: Loaded tables passed through to the view model
        view: Pre-built view model, to reuse what was shown on screen

    Returns:
        PDFGenerationResult with the PDF bytes

    Raises:
        PDFGenerationError: If there is no estimate or WeasyPrint fails
    """
    start_time = time.perf_counter()

    if outcome.is_error:
        raise PDFGenerationError(
            "Only a completed estimate can be exported to PDF.",
            details={"kind": outcome.kind},
        )

    sections = request.get_sections()
    logger.info(
        "pdf_generation_started",
        region=request.region,
        zip_code=request.zip_code,
        sections=sections,
    )

    try:
        view = view or build_estimate_view(outcome, tables)
        html_content = render_report_html(view, sections)
        pdf_bytes = _html_to_pdf(html_content)
    except Exception as e:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.error(
            "pdf_generation_error",
            region=request.region,
            error=str(e),
            error_type=type(e).__name__,
            duration_ms=round(duration_ms, 2),
        )
        raise PDFGenerationError(
            f"Could not generate PDF report: {e}",
            details={"error_type": type(e).__name__},
        ) from e

    page_count = max(_count_pdf_pages(pdf_bytes), 1)
    duration_ms = (time.perf_counter() - start_time) * 1000
    file_size_bytes = len(pdf_bytes)

    logger.info(
        "pdf_generated",
        filename=request.filename,
        page_count=page_count,
        file_size_kb=round(file_size_bytes / 1024, 2),
        duration_ms=round(duration_ms, 2),
    )

    return PDFGenerationResult(
        pdf_bytes=pdf_bytes,
        filename=request.filename,
        page_count=page_count,
        file_size_bytes=file_size_bytes,
        generated_at=datetime.now().isoformat(),
    )


def generate_pdf_local(
    outcome: EstimateOutcome,
    output_path: str,
    sections: Optional[List[str]] = None,
    tables: Optional[CostTables] = None,
) -> PDFGenerationResult:
    """
    Generate a PDF and save it to a local file.

    Args:
        outcome: Computed estimate
        output_path: Local file path to save PDF
        sections: Optional list of sections to include
        tables: Loaded tables passed through to the view model

    Returns:
        PDFGenerationResult for the written file
    """
    request = PDFGenerationRequest(
        region=getattr(outcome, "region_code", ""),
        zip_code=getattr(outcome, "zip_code", None),
        sections=sections,
    )
    result = generate_pdf(outcome, request, tables=tables)

    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_bytes(result.pdf_bytes)

    logger.info("pdf_saved_local", output_path=str(output_file.absolute()))
    return result


# =============================================================================
# Utility Functions
# =============================================================================


def get_available_sections() -> List[str]:
    """Return list of all available PDF sections."""
    return ALL_SECTIONS.copy()


def validate_sections(sections: List[str]) -> List[str]:
    """
    Validate and filter sections list.

    Args:
        sections: List of section names to validate

    Returns:
        List of valid section names
    """
    return [s for s in sections if s in ALL_SECTIONS]
