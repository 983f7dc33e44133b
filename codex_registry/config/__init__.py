from codex_registry.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
