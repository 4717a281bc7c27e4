"""
relay_auth.auth

Operator authentication for the HTTP control API.

Responsibilities:
- JWT helpers, the `Operator` identity type and FastAPI role dependencies.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Unrelated to relay AUTH challenges: this guards who may drive the coordinator over HTTP.
