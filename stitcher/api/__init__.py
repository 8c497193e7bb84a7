from stitcher.api.routes import router

__all__ = ["router"]
