# src/__init__.py - v1
"""polyship: build, revision and deploy a static front-end."""
