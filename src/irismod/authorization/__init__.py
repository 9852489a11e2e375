"""
Command authorization for irismod.

- **command_validation.py**: Turns a RawCommand into a typed Command or raises
  InvalidCommand.
- **capability_matrix.py**: Static kind -> capability requirements, the
  no-target kinds and the self-assignable kinds.
- **pipeline.py**: AuthorizationPipeline (validation, capability and
  hierarchy gates) and the pure ``check_hierarchy`` rule.
"""
