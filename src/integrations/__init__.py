"""Integrations with external services."""

from integrations.buildkite_agent import BuildkiteAgent
from integrations.ecr_scan import RegistryScan, create_ecr_client
from integrations.platform_resolver import PlatformResolver

__all__ = [
    "BuildkiteAgent",
    "RegistryScan",
    "create_ecr_client",
    "PlatformResolver",
]
