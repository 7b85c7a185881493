from .routes_timesheet import router

__all__ = ['router']
