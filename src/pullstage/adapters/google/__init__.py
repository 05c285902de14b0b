"""Cloud Pub/Sub REST adapter for pullstage."""

from pullstage.adapters.google.client import GoogleApiClient

__all__ = ["GoogleApiClient"]
