"""Shared test helpers: fake control plane, input models and waits."""

import asyncio
import fnmatch
import json
from typing import Any

import httpx
from pydantic import BaseModel

CLUSTER_ID = "cls_123"
JOBS_PATH = f"/clusters/{CLUSTER_ID}/jobs"


class FakeControlPlane:
    """Scripted control plane.

    Routes are (method, path glob) pairs mapped to a queue of responses. Each
    request pops the next response; the last one repeats. A queued exception
    is raised instead of answering.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._routes: list[tuple[str, str, list[Any]]] = []

        self.on("POST", "/machines", httpx.Response(200, json={"clusterId": CLUSTER_ID}))
        self.on("GET", JOBS_PATH, httpx.Response(200, json=[]))
        self.on("POST", f"{JOBS_PATH}/*/result", httpx.Response(204))

    def on(self, method: str, path: str, *responses: Any) -> None:
        """Script responses for a route; later scripts override earlier ones."""
        self._routes.insert(0, (method, path, list(responses)))

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and fnmatch.fnmatch(r.url.path, path)
        ]

    def bodies(self, method: str, path: str) -> list[Any]:
        return [json.loads(r.content) for r in self.calls(method, path)]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        for method, path, responses in self._routes:
            if request.method == method and fnmatch.fnmatch(request.url.path, path):
                response = responses.pop(0) if len(responses) > 1 else responses[0]
                if isinstance(response, Exception):
                    raise response
                # Fresh copy: a Response instance must not be sent twice
                return httpx.Response(
                    response.status_code,
                    headers=response.headers,
                    content=response.content,
                )

        return httpx.Response(404, json={"error": {"message": "Not found"}})


class EchoInput(BaseModel):
    text: str


class SumInput(BaseModel):
    a: int
    b: int


def connect_error() -> httpx.ConnectError:
    return httpx.ConnectError("connection refused")


async def wait_until(predicate, timeout: float = 5.0) -> None:
    """Yield to the event loop until predicate() is true."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.001)
