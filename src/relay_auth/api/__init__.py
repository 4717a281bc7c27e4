"""
relay_auth.api

HTTP control API over a running `RelayAuthManager`.
"""

# Package marker.
