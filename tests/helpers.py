"""Shared test data builders."""

REGISTRY = "https://registry.npmjs.org/"


def packument(
    name: str,
    versions: list[str],
    latest: str | None = None,
    time: dict[str, str] | None = None,
) -> dict:
    """Build a minimal registry packument."""
    data = {
        "name": name,
        "dist-tags": {"latest": latest or versions[-1]},
        "versions": {v: {"name": name, "version": v} for v in versions},
    }
    if time:
        data["time"] = time
    return data
