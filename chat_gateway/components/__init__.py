"""
Chat Gateway Components.

Organized into domain-specific modules:
- core/       - Foundational components (constants, context, errors)
- connection/ - Connection registry, guest names, heartbeat
- events/     - Wire event types and JSON codec
- auth/       - Identity resolution for the authenticated endpoint
- endpoints/  - WebSocket endpoints (base, mixins, handlers)
- metrics/    - Observability (collector, prometheus)
- data/       - Message persistence (models, stores)

Import from the specific submodules.
"""
