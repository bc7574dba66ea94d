"""Extensions: transport adapters (stdio, HTTP/SSE, WebSocket)."""
