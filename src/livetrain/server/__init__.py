"""Request pipeline: ASGI translation, dispatch, negotiation, errors."""
