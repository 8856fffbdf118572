"""Septic System Cost Estimator.

This package contains the Python web application for the multi-step
septic installation, repair and maintenance cost estimator.

Architecture:
- Static cost tables loaded from two JSON documents (systems, regional)
- Pure pricing engine producing a low/high range with an itemized breakdown
- Wizard controller deciding which form fields participate in a calculation
- HTML renderer and WeasyPrint PDF export sharing one view model
"""

__version__ = "2.0.0"
