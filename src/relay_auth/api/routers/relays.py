"""
relay_auth.api.routers.relays

Relay auth state and user-decision endpoints.

Responsibilities:
- Read the per-relay state table and the pending-challenge view.
- Accept (authenticate) or reject a relay's challenge on behalf of the user.
- Wait for a batch of relays to settle their handshake (pre-auth gate).
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from starlette.status import HTTP_404_NOT_FOUND, HTTP_409_CONFLICT, HTTP_502_BAD_GATEWAY

from relay_auth.api.deps import manager_dep, settings_dep
from relay_auth.auth.deps import require_roles
from relay_auth.auth.models import OPERATOR_ROLE, VIEWER_ROLE
from relay_auth.coordinator.errors import NoChallengeError, NoSignerError, NotMonitoredError
from relay_auth.coordinator.models import AuthStatus, PendingChallenge, RelayAuthState
from relay_auth.observability.logging import get_logger
from relay_auth.services.preauth import authenticated_relays, await_relays_auth, failed_relays
from relay_auth.services.relay_auth_manager import RelayAuthManager
from relay_auth.settings import Settings

log = get_logger(__name__)

router = APIRouter(prefix="/v1/relays", tags=["relays"])


class RelayStateResponse(BaseModel):
    url: str
    status: AuthStatus
    challenge: str | None
    challenge_received_at: datetime | None
    connected: bool

    @classmethod
    def from_state(cls, state: RelayAuthState) -> RelayStateResponse:
        return cls(
            url=state.url,
            status=state.status,
            challenge=state.challenge,
            challenge_received_at=state.challenge_received_at,
            connected=state.connected,
        )


class PendingChallengeResponse(BaseModel):
    relay_url: str
    challenge: str
    received_at: datetime

    @classmethod
    def from_pending(cls, pending: PendingChallenge) -> PendingChallengeResponse:
        return cls(
            relay_url=pending.relay_url,
            challenge=pending.challenge,
            received_at=pending.received_at,
        )


class AuthenticateRequest(BaseModel):
    url: str = Field(min_length=1, max_length=2048)


class RejectRequest(BaseModel):
    url: str = Field(min_length=1, max_length=2048)
    remember_for_session: bool = False


class PreauthRequest(BaseModel):
    urls: list[str] = Field(min_length=1, max_length=100)
    timeout: float | None = Field(default=None, gt=0, le=60)


class PreauthResult(BaseModel):
    url: str
    authenticated: bool
    error: str | None = None
    duration: float | None = None


class PreauthResponse(BaseModel):
    authenticated: list[str]
    failed: list[str]
    results: list[PreauthResult]


@router.get(
    "",
    response_model=list[RelayStateResponse],
    dependencies=[Depends(require_roles(VIEWER_ROLE))],
)
async def list_relays(
    manager: RelayAuthManager = Depends(manager_dep),
) -> list[RelayStateResponse]:
    return [RelayStateResponse.from_state(s) for s in manager.get_all_states().values()]


@router.get(
    "/state",
    response_model=RelayStateResponse,
    dependencies=[Depends(require_roles(VIEWER_ROLE))],
)
async def get_relay(
    url: str = Query(min_length=1),
    manager: RelayAuthManager = Depends(manager_dep),
) -> RelayStateResponse:
    state = manager.get_relay_state(url)
    if state is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Relay not monitored")
    return RelayStateResponse.from_state(state)


@router.get(
    "/pending",
    response_model=list[PendingChallengeResponse],
    dependencies=[Depends(require_roles(VIEWER_ROLE))],
)
async def list_pending(
    manager: RelayAuthManager = Depends(manager_dep),
) -> list[PendingChallengeResponse]:
    return [PendingChallengeResponse.from_pending(p) for p in manager.get_pending_challenges()]


@router.post(
    "/authenticate",
    response_model=RelayStateResponse,
    dependencies=[Depends(require_roles(OPERATOR_ROLE))],
)
async def authenticate_relay(
    body: AuthenticateRequest,
    manager: RelayAuthManager = Depends(manager_dep),
) -> RelayStateResponse:
    try:
        await manager.authenticate(body.url)
    except NotMonitoredError as e:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=str(e)) from e
    except (NoChallengeError, NoSignerError) as e:
        raise HTTPException(status_code=HTTP_409_CONFLICT, detail=str(e)) from e
    except Exception as e:
        # The relay (or signer) refused; the manager already recorded `failed`.
        raise HTTPException(
            status_code=HTTP_502_BAD_GATEWAY, detail=f"Relay authentication failed: {e}"
        ) from e

    state = manager.get_relay_state(body.url)
    if state is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Relay not monitored")
    return RelayStateResponse.from_state(state)


@router.post(
    "/reject",
    response_model=RelayStateResponse,
    dependencies=[Depends(require_roles(OPERATOR_ROLE))],
)
async def reject_relay(
    body: RejectRequest,
    manager: RelayAuthManager = Depends(manager_dep),
) -> RelayStateResponse:
    manager.reject(body.url, remember_for_session=body.remember_for_session)
    state = manager.get_relay_state(body.url)
    if state is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Relay not monitored")
    log.info("relay_rejected_via_api", relay=state.url, remember=body.remember_for_session)
    return RelayStateResponse.from_state(state)


@router.post(
    "/preauth",
    response_model=PreauthResponse,
    dependencies=[Depends(require_roles(OPERATOR_ROLE))],
)
async def preauth_relays(
    body: PreauthRequest,
    manager: RelayAuthManager = Depends(manager_dep),
    settings: Settings = Depends(settings_dep),
) -> PreauthResponse:
    results = await await_relays_auth(
        manager,
        body.urls,
        timeout=body.timeout or settings.preauth_timeout,
        concurrency=settings.preauth_concurrency,
    )
    return PreauthResponse(
        authenticated=authenticated_relays(results),
        failed=failed_relays(results),
        results=[
            PreauthResult(
                url=r.url, authenticated=r.authenticated, error=r.error, duration=r.duration
            )
            for r in results
        ],
    )
