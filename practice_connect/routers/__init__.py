"""
Routers module - API endpoint handlers organized by feature.

- oauth: Provider connection flow (start, callback, refresh, disconnect)
- providers: Provider data (listings and metrics, live or fallback)
- integrations: Connection status per client
"""
