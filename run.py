"""Project root entry point for launching the web interface."""

from __future__ import annotations

import os


def main():
    from glossary_translator.web import create_app

    app = create_app()
    app.run(
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "5500")),
        debug=os.getenv("FLASK_DEBUG", "").lower() in ("1", "true", "yes"),
    )


if __name__ == "__main__":
    main()
