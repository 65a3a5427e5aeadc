# Centralized pytest configuration file (fixtures, hooks, plugins, etc.)
import pytest
from asgi_lifespan import LifespanManager
from fastapi import FastAPI, Request, Response
from httpx import AsyncClient, ASGITransport

from reverseproxy import config
from reverseproxy.config import Settings
from reverseproxy.rule import Rule
from reverseproxy.main import application as gateway_app


#----Rule overrides for tests----
@pytest.fixture(autouse=True)
def set_rules(monkeypatch):
    monkeypatch.setattr(config, 'settings', Settings(rules=[
        Rule(source_host='gateway', source_path='/hello', dest_host='upstream', dest_path='/'),
        Rule(source_host='gateway', source_path='/echo', dest_host='upstream'),
        Rule(source_host='gateway', source_path='/api', dest_host='upstream', dest_path='/v2'),
        Rule(source_host='testhost.com', source_path='/', dest_host='upstream'),
        Rule(source_host='legacy.internal', dest_host='upstream'),
    ]))


@pytest.fixture
def upstream_app() -> FastAPI:
    app = FastAPI()     # mock upstream app for tests

    @app.get("/status/{code}")
    async def status(code: int):    # tests status passthrough
        return Response(content=b'status body', status_code=code)

    @app.get("/cookies")
    async def cookies():   # tests repeated response headers
        response = Response(content=b'ok')
        response.set_cookie('a', '1')
        response.set_cookie('b', '2')
        return response

    @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE"])
    async def echo(path: str, request: Request):   # tests path, query, header and body forwarding
        return {
            "message": "hello from upstream",
            "method": request.method,
            "path": request.scope["path"],
            "query": request.scope["query_string"].decode(),
            "received_headers": dict(request.headers),
            "forwarded_hosts": request.headers.getlist("x-forwarded-host"),
            "body": (await request.body()).decode(),
        }

    return app


@pytest.fixture
async def gateway_client(upstream_app: FastAPI):
    """Gateway test client with upstream mocked via ASGITransport"""
    # Transport to fake upstream
    upstream_transport = ASGITransport(app=upstream_app)
    upstream_client = AsyncClient(
        transport=upstream_transport,
        base_url="http://upstream"
    )
    # Injected before startup so the lifespan keeps it instead of dialing out
    gateway_app.state.http_client = upstream_client

    async with LifespanManager(gateway_app):
        # client with transport to gateway app
        gateway_transport = ASGITransport(app=gateway_app)
        async with AsyncClient(
                transport=gateway_transport,
                base_url="http://gateway") as client:
            yield client

    await upstream_client.aclose()
