from . import jobs, providers, stories

__all__ = ["jobs", "providers", "stories"]
