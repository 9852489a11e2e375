"""
Configuration management for irismod.

- **app_configuration.py**: YAML-backed application configuration loaded from
  ``config/app_config.yml`` with fcntl shared locks. Exposes database, vault and
  platform-adapter settings.

- **moderation_settings.py**: Typed accessors for the ``moderation`` section
  (default mute duration, clear amount limits, warning threshold ceiling,
  warnings page size, strict dispatch).
"""
