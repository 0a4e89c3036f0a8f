from app.api.routes import devices

__all__ = [
    "devices",
]
