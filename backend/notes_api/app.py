"""ASGI entrypoint.

Usage:
    uvicorn notes_api.app:app --reload
"""
from notes_api.main import create_app

app = create_app()
