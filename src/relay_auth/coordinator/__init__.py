"""
relay_auth.coordinator

Pure coordinator core: data model, events and the AUTH state machine.

Responsibilities:
- Typed state/preference model, usage errors and the transition function.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing in this package performs I/O; orchestration lives in `relay_auth.services`.
