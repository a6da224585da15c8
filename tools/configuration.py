"""Configuration tools for the photo booth server"""

from mcp.server.fastmcp import FastMCP


def register_configuration_tools(
    mcp: FastMCP,
    coordinator,
    config
):
    """Register configuration tools with the MCP server"""

    @mcp.tool()
    def get_booth_info() -> dict:
        """Get effective booth settings and store status.

        Secrets are never returned; admin_mode reports "token" or "open".
        """
        return {
            "settings": config.get_public_settings(),
            "output_size": {"width": config.output_width, "height": config.output_height},
            "frames_dir": str(config.frames_dir),
            "photos_dir": str(config.photos_dir),
            "frame_count": len(coordinator.overlay_store.list()),
        }
