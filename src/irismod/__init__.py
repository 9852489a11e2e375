"""
irismod - Moderation core for the Iris Discord assistant

irismod turns requested moderation commands into checked platform actions.
It escalates repeated warnings into automatic punishments and keeps users'
provider API keys encrypted at rest.

Core Components:

- **Authorization Pipeline**: Shape validation, capability matrix and role
  hierarchy checks for every requested command
- **Action Executor**: Dispatch table that turns an authorized command into
  platform calls (timeout, kick, ban, purge, lock, roles, warnings)
- **Cascade Engine**: Warning ledger plus per-guild auto-moderation rules that
  fire on exact warning thresholds
- **Credential Vault**: ChaCha20-Poly1305 token format with opportunistic
  migration of legacy plaintext keys
- **Request Intake**: Per-user in-flight guard and the service facade the bot
  layer talks to

Usage:
    from irismod.bootstrap import start_for_discord
    core = await start_for_discord(bot)
    outcome = await core.service.handle(guild_id, user_id, {"function": "warn", "target": "123..."})
"""
from __future__ import annotations

from importlib import metadata as importlib_metadata


try:
    __version__ = importlib_metadata.version("irismod")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - not installed
    __version__ = "0.0.0"


def get_version() -> str:
    """Return the package version string."""
    return __version__


__all__ = ["get_version", "__version__"]
