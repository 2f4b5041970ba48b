from .settings import BaseAppSettings, ProdSettings, TestSettings, get_settings

__all__ = [
    "BaseAppSettings",
    "TestSettings",
    "ProdSettings",
    "get_settings",
]
