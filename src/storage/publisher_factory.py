# src/storage/publisher_factory.py - v1
"""Factory: instantiate the deploy publisher from configuration."""

from __future__ import annotations

from polyship.config.settings import ConfigurationError, Settings
from polyship.storage.base_publisher import BasePublisher
from polyship.storage.local_publisher import LocalPublisher


def create_publisher(settings: Settings) -> BasePublisher:
    """Create the publisher selected by DEPLOY_BACKEND.

    Raises:
        ConfigurationError: If the backend is not supported.
    """
    if settings.deploy_backend == "local":
        return LocalPublisher(settings.deploy_path)

    if settings.deploy_backend == "s3":
        from polyship.storage.s3_publisher import S3Publisher

        return S3Publisher(
            region=settings.deploy_s3_region or None,
            endpoint_url=settings.deploy_s3_endpoint_url or None,
        )

    raise ConfigurationError(f"Unsupported deploy backend: {settings.deploy_backend!r}")
