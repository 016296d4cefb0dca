"""
shared/__init__.py

Shared models used across multiple packages.

This package contains the data structures that both the engine (core) and the
HTTP layer (api) depend on:
- models: engine settings and the Dialogflow ES fulfillment wire schemas
"""
