import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from mcp.server.fastmcp import FastMCP

from link_encoder import LinkEncoder
from managers.booth_config import BoothConfig
from managers.lifecycle import AssetLifecycleCoordinator
from routes import register_http_routes
from tools.booth import register_booth_tools
from tools.configuration import register_configuration_tools

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("PhotoBooth")

config = BoothConfig()
coordinator = AssetLifecycleCoordinator.from_config(config)
link_encoder = LinkEncoder(config.base_url)


class AppContext:
    def __init__(self, coordinator: AssetLifecycleCoordinator, link_encoder: LinkEncoder):
        self.coordinator = coordinator
        self.link_encoder = link_encoder


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Manage application lifecycle"""
    logger.info("Starting photo booth server lifecycle...")
    try:
        logger.info(
            "Serving %d frame(s) from %s, photos in %s",
            len(coordinator.overlay_store.list()),
            config.frames_dir,
            config.photos_dir,
        )
        yield AppContext(coordinator=coordinator, link_encoder=link_encoder)
    finally:
        logger.info("Shutting down photo booth server")


mcp = FastMCP("Photo_Booth_Server", lifespan=app_lifespan, host=config.host, port=config.port)

register_booth_tools(mcp, coordinator, link_encoder, config)
register_configuration_tools(mcp, coordinator, config)
register_http_routes(mcp, coordinator)


if __name__ == "__main__":
    logger.info("Photo booth running on http://%s:%d", config.host, config.port)
    mcp.run(transport="streamable-http")
