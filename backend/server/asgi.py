"""
ASGI entry point.

Used by uvicorn / gunicorn. Variables from a local .env file are loaded
before AppConfig reads the environment (RECOGNIZER_VARIANT, WHISPER_MODEL...).
"""

from dotenv import load_dotenv

load_dotenv()

from server.app import create_app  # pylint: disable=wrong-import-position

app = create_app()
