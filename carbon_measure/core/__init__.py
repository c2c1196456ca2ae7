"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Business constants, attribute names, resource paths
- exceptions: Custom exception hierarchy
- ingress: HTTP request/response boundary helpers
"""
