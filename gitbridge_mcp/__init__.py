"""
GitBridge MCP - HTTP gateway exposing GitHub repository data over MCP.

Speaks JSON-RPC 2.0 (plus the legacy action_id form) on a single /mcp
endpoint, streams the tool catalog to IDE clients over SSE, and offers
LLM-powered repository analysis.
"""
