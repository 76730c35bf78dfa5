"""Entry point for running mdcrules as a module.

Allows running the application with:
    python -m mdcrules

This delegates to the Typer CLI app.
"""

from mdcrules.cli import app

if __name__ == "__main__":
    app()
