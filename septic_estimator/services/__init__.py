"""Estimator services: data loading, pricing, wizard state, rendering and PDF export."""
