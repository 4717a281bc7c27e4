"""
relay_auth

Top-level package for the relay AUTH coordinator.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Keep this file minimal; import the manager from `relay_auth.services.relay_auth_manager`.
