"""Carbon Project Measurement Engine.

Aggregates land-parcel carbon-stock attributes inside a user-drawn
polygon and derives the financial and ecological metrics (area,
baseline stock, forest growth, leakage, net sequestration, marketable
credits) used by carbon-project reports.

Modules:
- core: configuration, constants, exceptions, HTTP ingress helpers
- models: parcels, metrics, report and payload schemas
- engine: loader, spatial join, metric derivation
- session: per-user measurement session and its event channel
- handlers: request handlers behind ``function_app.py``
"""

__version__ = "0.1.0"
