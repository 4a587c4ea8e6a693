"""
FastAPI REST endpoint for the forensic analysis engine.

Provides programmatic access to market, portfolio and bubble analyses
without requiring the Gradio UI.
"""
