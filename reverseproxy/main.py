import logging
from contextlib import asynccontextmanager
from os import getenv
from fastapi import FastAPI, Request, Response, HTTPException
import httpx
import uvicorn
from . import config
from .routing import find_route
from .rule import ProxyRequest

logger = logging.getLogger("uvicorn.error")

HOP_BY_HOP_HEADERS = {
    b'connection',
    b'keep-alive',
    b'proxy-authenticate',
    b'proxy-authorization',
    b'te',
    b'trailers',
    b'transfer-encoding',
    b'upgrade',
    b'host',
}

# replaced by the value the gateway itself saw
FORWARDED_HEADERS = {
    b'x-forwarded-host',
}

DROPPED_REQUEST_HEADERS = HOP_BY_HOP_HEADERS | FORWARDED_HEADERS

RESPONSE_DROPPED_HEADERS = { "content-encoding", "content-length", "transfer-encoding", "connection" }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown logic."""
    #---- Startup ----
    logger.info('Reverse proxy starting with %d rule(s)', len(config.settings.rules))
    if not hasattr(app.state, 'http_client'):
        app.state.http_client = httpx.AsyncClient(timeout=config.settings.upstream_timeout)

    try:
        yield
    finally:
        #---- Shutdown ----
        if hasattr(app.state, 'http_client'):
            await app.state.http_client.aclose()
            del app.state.http_client

application = FastAPI(lifespan=lifespan)


@application.api_route(
    path="/{path:path}",
    methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"],
)
async def proxy(path: str, request: Request):
    incoming = ProxyRequest.from_request(request)
    rule, destination = find_route(incoming)
    if rule is None:
        raise HTTPException(status_code=404, detail="No upstream route found")

    headers = [
        (k, v) for k, v in request.headers.raw if k.lower() not in DROPPED_REQUEST_HEADERS
    ] # headers excluding hop_by_hop and forwarding headers
    headers.append((b'x-forwarded-host', incoming.host.encode('latin-1')))

    body = await request.body()

    # ---- Proxy Request ----
    try:
        resp = await request.app.state.http_client.request(
            request.method,
            str(destination),
            headers=headers,
            content=body,
        )
    except httpx.HTTPError as exc:
        logger.warning('Upstream request to %s failed: %s', destination, exc)
        raise HTTPException(status_code=502, detail=str(exc))

    response = Response(content=resp.content, status_code=resp.status_code)
    # multi_items keeps repeated headers such as set-cookie apart
    for k, v in resp.headers.multi_items():
        if k.lower() not in RESPONSE_DROPPED_HEADERS:
            response.headers.append(k, v)

    return response


def run():
    uvicorn.run(
        application,
        host=getenv("PROXY_HOST", "0.0.0.0"),
        port=int(getenv("PROXY_PORT", "8080")),
    )
