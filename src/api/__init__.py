"""
API module for dimmer control and discovery status
"""

from .main_api import DimmerAPI
from .light_routes import create_light_routes
from .system_routes import create_system_routes

__all__ = ['DimmerAPI', 'create_light_routes', 'create_system_routes']
