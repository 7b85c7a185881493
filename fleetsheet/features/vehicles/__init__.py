from .routes_vehicles import router

__all__ = ['router']
