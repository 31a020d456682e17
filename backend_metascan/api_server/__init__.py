"""
API server package: HTTP/REST and WebSocket interface.

One-shot transaction analysis and debugging, raw transaction passthrough,
per-protocol stats, and the live feed over WebSocket. Delegates detection
to the analysis layer and live state to the Monitor.
"""
