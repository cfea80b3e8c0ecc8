"""Pytest configuration and shared fixtures."""
import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from realtychat.backend import BackendClient
from realtychat.config import Settings
from realtychat.controller import ChatController
from realtychat.ratelimit import CallerRole
from realtychat.store.in_memory import InMemoryLocalStore
from realtychat.transport import ChatTransport


class FakeBackend:
    """In-process stand-in for the chat backend.

    Tests tweak the public attributes to choose how /chat answers and
    inspect the recorded requests afterwards.
    """

    def __init__(self):
        # /chat
        self.chat_requests: list[dict] = []
        self.chat_reply: dict = {"success": True, "response": "Hi there"}
        self.chat_status = 200
        self.chat_error_body: dict | None = None
        self.stream_pieces: list[bytes] | None = None
        self.hold = False
        self.chat_started = asyncio.Event()
        self.release = asyncio.Event()
        self.hold_search = False
        self.search_started = asyncio.Event()

        # /rate-limit-status
        self.rate_limit: dict = {"role": "public", "limit": 5, "remaining": 5, "windowMs": 900000}
        self.rate_limit_status = 200

        # secondary resources
        self.histories: dict[str, dict] = {}
        self.saved: list[tuple[str, dict]] = []
        self.cleared: list[str] = []
        self.clear_status = 200
        self.reports: list[dict] = []
        self.bookmarks: list[dict] = []
        self.ratings: list[dict] = []
        self.uploads: list[tuple[str, str]] = []
        self.properties: list[dict] = [
            {"_id": "p1", "name": "Sunset Villa", "city": "Pune", "regularPrice": 9500000},
            {"_id": "p2", "name": "Harbour Loft", "city": "Mumbai", "regularPrice": 15000000},
        ]

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/chat", self.chat)
        app.router.add_get("/api/rate-limit-status", self.rate_limit_info)
        app.router.add_get("/api/chat-history/session/{sid}", self.history_get)
        app.router.add_put("/api/chat-history/session/{sid}", self.history_put)
        app.router.add_delete("/api/chat-history/session/{sid}/clear", self.history_clear)
        app.router.add_post("/api/report-message/create", self.report_create)
        app.router.add_get("/api/report-message/getreports", self.report_list)
        app.router.add_put("/api/report-message/update/{rid}", self.report_update)
        app.router.add_delete("/api/report-message/delete/{rid}", self.report_delete)
        app.router.add_post("/api/bookmark", self.bookmark_add)
        app.router.add_delete("/api/bookmark", self.bookmark_remove)
        app.router.add_post("/api/rate", self.rate)
        app.router.add_get("/api/ratings/{sid}", self.ratings_for_session)
        app.router.add_get("/api/ratings-all", self.ratings_all)
        app.router.add_delete("/api/rating/{rid}", self.rating_delete)
        app.router.add_post("/api/upload/{kind}", self.upload)
        app.router.add_get("/api/property-search/search", self.property_search)
        app.router.add_get("/api/property-search/{pid}", self.property_get)
        return app

    async def chat(self, request: web.Request) -> web.StreamResponse:
        body = await request.json()
        self.chat_requests.append(body)
        self.chat_started.set()
        if self.hold:
            await self.release.wait()

        if self.chat_status >= 400:
            if self.chat_error_body is None:
                return web.Response(status=self.chat_status, text="upstream failure")
            return web.json_response(self.chat_error_body, status=self.chat_status)

        if self.stream_pieces is not None and body.get("stream"):
            response = web.StreamResponse(headers={"Content-Type": "text/event-stream"})
            await response.prepare(request)
            for piece in self.stream_pieces:
                await response.write(piece)
                await asyncio.sleep(0)
            await response.write_eof()
            return response

        return web.json_response(self.chat_reply)

    async def rate_limit_info(self, request: web.Request) -> web.Response:
        if self.rate_limit_status != 200:
            return web.json_response({"success": False, "message": "unavailable"}, status=self.rate_limit_status)
        return web.json_response({"success": True, "rateLimitInfo": self.rate_limit})

    async def history_get(self, request: web.Request) -> web.Response:
        sid = request.match_info["sid"]
        stored = self.histories.get(sid, {})
        messages = stored.get("messages", [])
        return web.json_response({
            "success": True,
            "data": {
                "sessionId": sid,
                "name": stored.get("name"),
                "messages": messages,
                "totalMessages": len(messages),
            },
        })

    async def history_put(self, request: web.Request) -> web.Response:
        sid = request.match_info["sid"]
        body = await request.json()
        self.saved.append((sid, body))
        self.histories.setdefault(sid, {}).update(body)
        return web.json_response({"success": True})

    async def history_clear(self, request: web.Request) -> web.Response:
        if self.clear_status != 200:
            return web.json_response(
                {"success": False, "message": "Failed to clear chat history"},
                status=self.clear_status,
            )
        self.cleared.append(request.match_info["sid"])
        return web.json_response({"success": True})

    async def report_create(self, request: web.Request) -> web.Response:
        body = await request.json()
        report = {**body, "_id": f"r{len(self.reports) + 1}", "status": "pending"}
        self.reports.append(report)
        return web.json_response({"success": True, "report": report})

    async def report_list(self, request: web.Request) -> web.Response:
        status = request.query.get("status")
        reports = [r for r in self.reports if status is None or r["status"] == status]
        return web.json_response({"success": True, "reports": reports})

    async def report_update(self, request: web.Request) -> web.Response:
        body = await request.json()
        for report in self.reports:
            if report["_id"] == request.match_info["rid"]:
                report.update(body)
                return web.json_response({"success": True, "report": report})
        return web.json_response({"success": False, "message": "Report not found"}, status=404)

    async def report_delete(self, request: web.Request) -> web.Response:
        rid = request.match_info["rid"]
        self.reports = [r for r in self.reports if r["_id"] != rid]
        return web.json_response({"success": True})

    async def bookmark_add(self, request: web.Request) -> web.Response:
        self.bookmarks.append(await request.json())
        return web.json_response({"success": True})

    async def bookmark_remove(self, request: web.Request) -> web.Response:
        key = (await request.json())["key"]
        self.bookmarks = [b for b in self.bookmarks if b["key"] != key]
        return web.json_response({"success": True})

    async def rate(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.ratings.append({**body, "_id": f"g{len(self.ratings) + 1}"})
        return web.json_response({"success": True})

    async def ratings_for_session(self, request: web.Request) -> web.Response:
        sid = request.match_info["sid"]
        return web.json_response({
            "success": True,
            "ratings": [r for r in self.ratings if r["sessionId"] == sid],
        })

    async def ratings_all(self, request: web.Request) -> web.Response:
        return web.json_response({"success": True, "ratings": self.ratings})

    async def rating_delete(self, request: web.Request) -> web.Response:
        rid = request.match_info["rid"]
        self.ratings = [r for r in self.ratings if r["_id"] != rid]
        return web.json_response({"success": True})

    async def upload(self, request: web.Request) -> web.Response:
        kind = request.match_info["kind"]
        reader = await request.multipart()
        part = await reader.next()
        await part.read()
        self.uploads.append((kind, part.filename))
        return web.json_response({"success": True, "url": f"https://cdn.example.com/{kind}/{part.filename}"})

    async def property_search(self, request: web.Request) -> web.Response:
        self.search_started.set()
        if self.hold_search:
            await self.release.wait()
        query = request.query.get("q", "").lower()
        limit = int(request.query.get("limit", "5"))
        found = [p for p in self.properties if query in p["name"].lower()]
        return web.json_response({"success": True, "properties": found[:limit]})

    async def property_get(self, request: web.Request) -> web.Response:
        pid = request.match_info["pid"]
        for prop in self.properties:
            if prop["_id"] == pid:
                return web.json_response({"success": True, "property": prop})
        return web.json_response({"success": False, "message": "Property not found"}, status=404)


@pytest.fixture
def fake_backend():
    """Return a fresh fake backend."""
    return FakeBackend()


@pytest.fixture
async def backend_server(fake_backend):
    """Serve the fake backend on a local port."""
    server = TestServer(fake_backend.app())
    await server.start_server()
    yield server
    # Unblock any handler still waiting so shutdown is immediate
    fake_backend.release.set()
    await server.close()


@pytest.fixture
def base_url(backend_server):
    """Return the API root of the fake backend."""
    return str(backend_server.make_url("/api"))


@pytest.fixture
def memory_store():
    """Return an empty in-memory local store."""
    return InMemoryLocalStore()


@pytest.fixture
async def transport(base_url):
    """Return a chat transport bound to the fake backend."""
    client = ChatTransport(base_url)
    yield client
    await client.close()


@pytest.fixture
async def backend(base_url):
    """Return a backend client bound to the fake backend."""
    client = BackendClient(base_url, auth_token="test-token")
    yield client
    await client.close()


@pytest.fixture
def public_settings(base_url):
    """Settings of an anonymous caller."""
    return Settings(api_base_url=base_url, state_backend="memory")


@pytest.fixture
def user_settings(base_url):
    """Settings of a signed-in regular user."""
    return Settings(
        api_base_url=base_url,
        state_backend="memory",
        auth_token="test-token",
        user_id="u1",
        user_role=CallerRole.USER,
    )


@pytest.fixture
async def make_controller(base_url, memory_store):
    """Factory building started controllers that are closed after the test."""
    created = []

    async def _make(settings: Settings, **kwargs) -> ChatController:
        chat_transport = ChatTransport(base_url, auth_token=settings.auth_token)
        backend_client = BackendClient(base_url, auth_token=settings.auth_token)
        controller = ChatController(settings, chat_transport, backend_client, memory_store, **kwargs)
        created.append((controller, chat_transport, backend_client))
        await controller.start()
        return controller

    yield _make

    for controller, chat_transport, backend_client in created:
        await controller.close()
        await chat_transport.close()
        await backend_client.close()
