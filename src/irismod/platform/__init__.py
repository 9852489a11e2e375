"""
Platform boundary for irismod.

- **adapter.py**: PlatformAdapter and ActorDirectory protocols, AdapterStatus
  and AdapterResult.
- **discord_adapter.py**: py-cord implementations that map discord.NotFound,
  discord.Forbidden and discord.HTTPException onto adapter statuses.
"""
