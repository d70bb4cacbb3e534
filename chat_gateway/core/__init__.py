"""
Gateway core.

- connection/ - Broadcast engine and session lifecycle
- inbound/    - Message ingestion, presence relay and frame dispatch
"""
