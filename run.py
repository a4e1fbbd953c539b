"""Development server for the storefront API.

Usage:
    python run.py

Reads settings from .env (see storefront/config.py) and serves on port 5001.
"""

from dotenv import load_dotenv

load_dotenv()

from storefront import create_app  # noqa: E402

app = create_app()

if __name__ == "__main__":
    app.run(debug=True, port=5001)
