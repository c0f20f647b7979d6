"""Hairblend — FastAPI REST API layer.

This package contains the FastAPI application, Pydantic response models,
and the instruction presets sent to the prediction service.

Modules
-------
main
    FastAPI application with all route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for API responses.
presets
    Data-driven style/density/hairline instruction presets.
"""
