"""
Moderation engine for irismod.

- **warning_ledger.py**: Append-only warnings per (member, guild) with counts,
  listings and hard deletes.
- **automod_rules.py**: AutoModRuleStore, one rule per (guild, threshold).
- **cascade_engine.py**: Records warnings and fires the rule matching the new
  count exactly, bypassing authorization.
- **action_executor.py**: Dispatch table from CommandKind to handlers that call
  the platform adapter, the cascade engine or the rule store.
- **notifications.py**: Warning event sinks; the default one logs.
"""
