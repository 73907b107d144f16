"""Web application package for glossary-translator."""

from flask import Flask

from glossary_translator.config import initialize_app


def create_app() -> Flask:
    """Application factory for the web interface."""
    initialize_app(write_defaults=True)

    from .app import build_app  # Import here to avoid circular imports

    return build_app()


__all__ = ["create_app"]
