"""Plain HTTP routes served next to the MCP endpoint"""

import logging

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from booth_errors import InvalidName, NotFound
from managers.asset_store import AssetStore
from managers.lifecycle import AssetLifecycleCoordinator

logger = logging.getLogger("PhotoBooth")


def serve_asset(store: AssetStore, name: str) -> Response:
    # Read-only access; content at an address never changes once created
    try:
        content = store.read(name)
        media_type = store.describe(name).mime_type
    except InvalidName as e:
        logger.warning(f"Rejected asset request for {name!r}: {e}")
        return JSONResponse(e.to_dict(), status_code=400)
    except NotFound as e:
        return JSONResponse(e.to_dict(), status_code=404)
    return Response(content, media_type=media_type, headers={"Cache-Control": "no-store"})


def register_http_routes(mcp: FastMCP, coordinator: AssetLifecycleCoordinator):
    """Register asset serving and health routes with the MCP server"""

    @mcp.custom_route("/uploads/frames/{name}", methods=["GET"])
    async def serve_frame(request: Request) -> Response:
        return serve_asset(coordinator.overlay_store, request.path_params["name"])

    @mcp.custom_route("/uploads/photos/{name}", methods=["GET"])
    async def serve_photo(request: Request) -> Response:
        return serve_asset(coordinator.output_store, request.path_params["name"])

    @mcp.custom_route("/api/health", methods=["GET"])
    async def health(request: Request) -> Response:
        return JSONResponse({"ok": True})
