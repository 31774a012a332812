"""Allow running gentup with ``python -m gentup``."""

from gentup.cli.main import app

if __name__ == "__main__":
    app()
