"""Session-scoped state and events.

- session: ``MeasurementSession`` with generation-token commits
- events: ``SessionEvents`` publish/subscribe channel
"""
