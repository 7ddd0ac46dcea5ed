from storefront.api.routes import maintenance_router

__all__ = ["maintenance_router"]
