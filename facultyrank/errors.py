"""
Error kinds surfaced by the scoring and ranking core.

Cache outages are never raised to callers; they are absorbed inside
the cache backends and show up only as misses.
"""


class FacultyRankError(Exception):
    """Base class for all errors raised by facultyrank."""
    pass


class NotFoundError(FacultyRankError):
    """Raised when a referenced application does not exist in the record store."""

    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class ValidationError(FacultyRankError):
    """Raised for malformed input. Nothing is processed when this is raised."""

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class UpstreamUnavailableError(FacultyRankError):
    """Raised when the record store or an external API cannot be reached."""
    pass
