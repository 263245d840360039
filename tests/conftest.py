"""Shared fixtures: an in-process fake Proxmox server and a controllable clock."""

from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio

from pvedash.api.client import ProxmoxClient
from pvedash.models.config import ServerProfile

API_PREFIX = "/api2/json"

# a payload, or a callable taking the request and returning a response
Route = Any


class FakeClock:
    """Epoch clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProxmox:
    """Request handler for ``httpx.MockTransport`` mimicking the PVE API.

    Issues tickets at ``/access/ticket``, rejects requests carrying an
    unknown ticket with 401, and serves registered routes wrapped in the
    ``{"data": ...}`` envelope.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Route] = {}
        self.requests: list[httpx.Request] = []
        self.valid_tickets: set[str] = set()
        self.login_response: httpx.Response | None = None
        self.logins = 0

    def add(self, method: str, path: str, result: Route) -> None:
        self.routes[(method.upper(), path)] = result

    def revoke_tickets(self) -> None:
        self.valid_tickets.clear()

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method.upper() and r.url.path == API_PREFIX + path
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix(API_PREFIX)

        if path == "/access/ticket":
            return self._login(request)

        cookie = request.headers.get("Cookie", "")
        ticket = cookie.removeprefix("PVEAuthCookie=")
        if ticket not in self.valid_tickets:
            return httpx.Response(401, json={"data": None})

        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404)
        if callable(route):
            return route(request)
        return httpx.Response(200, json={"data": route})

    def _login(self, request: httpx.Request) -> httpx.Response:
        self.logins += 1
        if self.login_response is not None:
            return self.login_response
        form = parse_qs(request.content.decode())
        if form.get("password") != ["secret"]:
            return httpx.Response(401, json={"data": None})
        ticket = f"PVE:root@pam:{self.logins:08X}"
        self.valid_tickets.add(ticket)
        return httpx.Response(
            200,
            json={
                "data": {
                    "ticket": ticket,
                    "CSRFPreventionToken": f"csrf-{self.logins}",
                    "username": form["username"][0],
                }
            },
        )


@pytest.fixture
def fake() -> FakeProxmox:
    return FakeProxmox()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def profile() -> ServerProfile:
    return ServerProfile(name="lab", hostname="pve.lab.local", password="secret")


@pytest_asyncio.fixture
async def client(profile: ServerProfile, fake: FakeProxmox, clock: FakeClock):
    client = ProxmoxClient(profile, transport=httpx.MockTransport(fake), clock=clock)
    yield client
    await client.aclose()
