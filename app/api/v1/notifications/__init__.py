from app.api.v1.notifications.endpoints import router

__all__ = ["router"]
