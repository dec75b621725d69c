"""
ASGI entry point.

Used by uvicorn / gunicorn:

    uvicorn server.asgi:app --port 8787
"""

from dotenv import load_dotenv

# .env must be loaded before the config is read
load_dotenv()

from server.app import create_app  # pylint: disable=wrong-import-position

app = create_app()
