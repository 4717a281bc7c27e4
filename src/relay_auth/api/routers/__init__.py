"""
relay_auth.api.routers

Router modules for the control API.
"""

# Package marker.
