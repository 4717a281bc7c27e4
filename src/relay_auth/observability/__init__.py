"""
relay_auth.observability

Structured logging and request-context middleware.
"""

# Package marker.
