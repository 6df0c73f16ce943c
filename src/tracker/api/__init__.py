"""HTTP API layer over the tracker services."""

from tracker.api.app import create_app

__all__ = ["create_app"]
