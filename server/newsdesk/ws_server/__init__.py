"""
WebSocket Server for News Distribution

Runs a subscriber session per connected client.
"""
from newsdesk.ws_server.server import NewsWebSocketServer, ServerStats, WebSocketSink

__all__ = ["NewsWebSocketServer", "ServerStats", "WebSocketSink"]
