"""
Service layer for irismod.

- **moderation_service.py**: ModerationService, the single entry point that
  admits, authorizes and executes a moderation request, returning a
  CommandOutcome.
"""
