from app.api.v1.interests.endpoints import router

__all__ = ["router"]
