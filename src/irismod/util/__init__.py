"""
Utility functions and helpers for irismod.

- **logger.py**: Centralized logging configuration with colored console output
  through prompt_toolkit, a per-session rotating log file, and clamping of
  noisy library loggers.

- **durations.py**: The ``<number><unit>`` duration grammar shared by mute,
  ban and auto-moderation rules, with conversion to milliseconds and to the
  ban message-retention window.
"""
