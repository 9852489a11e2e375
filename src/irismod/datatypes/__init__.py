"""
Data types shared across irismod.

- **identifiers.py**: ActorID / TenantID snowflake wrappers and mention parsing.
- **actor_datatypes.py**: Capability flags and the Actor snapshot.
- **command_datatypes.py**: CommandKind, RuleAction, per-kind parameter
  dataclasses, Command and RawCommand.
- **action_datatypes.py**: Decision / DenialReason from authorization and
  ExecutionResult / ExecutionStatus from execution.
- **moderation_datatypes.py**: WarningRecord, AutoModRule and cascade outcomes.
"""
