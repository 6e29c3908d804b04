"""Configuration."""

from .settings import DEFAULT_CONFIG, AnalysisConfig, Settings, load_settings

__all__ = ["DEFAULT_CONFIG", "AnalysisConfig", "Settings", "load_settings"]
