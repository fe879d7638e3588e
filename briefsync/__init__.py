"""Background refresh and cache for the daily brief document."""

__all__: list[str] = []
