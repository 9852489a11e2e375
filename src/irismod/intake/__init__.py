"""
Request intake for irismod.

- **request_gate.py**: InFlightRequestGate, which rejects a second concurrent
  request from the same actor with RequestInProgress.
"""
