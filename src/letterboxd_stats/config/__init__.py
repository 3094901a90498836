from .settings import Settings, SettingsError, SettingsLoadResult, load_settings

__all__ = ["Settings", "SettingsError", "SettingsLoadResult", "load_settings"]
