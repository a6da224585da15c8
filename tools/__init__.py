"""MCP tool registration for the photo booth server"""
