# src/gumboard/app/__init__.py
"""
App layer (FastAPI composition root).

server.app is not imported here; importing it builds the ASGI app.
"""
