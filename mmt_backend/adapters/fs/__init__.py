from .sidecar import SidecarMode, SidecarStore

__all__ = ["SidecarMode", "SidecarStore"]
