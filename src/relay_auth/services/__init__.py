"""
relay_auth.services

Stateful services built on the pure coordinator core.

Responsibilities:
- `RelayAuthManager` (state owner), `RelayMonitor`, `PreferenceStore`, pre-auth gate.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Call sites import concrete modules directly to keep import-time side effects nil.
