from .routes_reports import router

__all__ = ['router']
