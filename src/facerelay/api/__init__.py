"""facerelay: FastAPI REST API layer.

This package contains the FastAPI application, the response models and the
multipart upload intake.

Modules
-------
main
    Application factory, route handlers and the ``main()`` CLI entry point.
models
    Pydantic models for the fixed-shape responses.
uploads
    Reading and validating the uploaded face reference and target images.
"""
