import importlib.metadata


def _get_version() -> str:
    try:
        return importlib.metadata.version("catalysishub-mcp")
    except importlib.metadata.PackageNotFoundError:
        return "0.1.0"
