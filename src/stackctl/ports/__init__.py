"""Ports (abstract interfaces) for stackctl."""

from stackctl.ports.runtime import ContainerRuntimePort

__all__ = ["ContainerRuntimePort"]
