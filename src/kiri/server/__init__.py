"""Server layer — ASGI translation, response sending, and the dev server."""
