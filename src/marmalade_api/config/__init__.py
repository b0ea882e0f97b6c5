from .settings import (
    MarmaladeApiSettings,
    MarmaladeSettings,
    get_api_settings,
    get_settings,
)

__all__ = [
    "MarmaladeApiSettings",
    "MarmaladeSettings",
    "get_api_settings",
    "get_settings",
]
