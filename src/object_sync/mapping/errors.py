"""Error taxonomy for the mapping core.

Store implementations raise PersistenceError / UniqueViolationError. The
repositories never let these escape: they are converted into failed
OperationResult values, or recovered (duplicate and ambiguous links) and
reported through the sync log.
"""

from __future__ import annotations


class MappingError(Exception):
    """Base class for mapping core errors. `code` is surfaced on OperationResult."""

    code = "mapping_error"


class IncompleteFieldRuleError(MappingError):
    """A posted field rule or field map definition is incomplete or malformed."""

    code = "validation_error"


class PersistenceError(MappingError):
    """A storage write or read failed."""

    code = "persistence_error"


class UniqueViolationError(PersistenceError):
    """An insert or update violated a uniqueness constraint."""

    code = "unique_violation"

    def __init__(self, table: str, columns: tuple[str, ...] = (), message: str = "") -> None:
        self.table = table
        self.columns = columns
        super().__init__(
            message or f"Unique constraint violated on {table} ({', '.join(columns) or 'unknown'})"
        )


class InvalidTemporaryLinkError(MappingError):
    """A link still carries a pending-create placeholder without the pending marker."""

    code = "invalid_temporary_link"

    def __init__(self, local_object_type: str | None, local_id: str | None, remote_id: str) -> None:
        self.local_object_type = local_object_type
        self.local_id = local_id
        self.remote_id = remote_id
        super().__init__(
            f"Error Mapping: tried to map the local {local_object_type} with ID of "
            f"{local_id} to remote ID {remote_id}, which is a temporary identifier."
        )


class DuplicateLinkError(MappingError):
    """A link for this remote id already exists."""

    code = "duplicate_link"

    def __init__(self, remote_id: str, existing_id: int | None) -> None:
        self.remote_id = remote_id
        self.existing_id = existing_id
        super().__init__(
            f"Mapping: there is already a local object mapped to the remote object "
            f"{remote_id} and the mapping object ID is {existing_id}"
        )


class AmbiguousLinkError(MappingError):
    """More than one stored link points at the same remote id."""

    code = "ambiguous_link"

    def __init__(self, remote_id: str, local_refs: list[tuple[str, str]]) -> None:
        self.remote_id = remote_id
        self.local_refs = local_refs
        super().__init__(
            f"Mapping: there is more than one mapped local object for the remote object {remote_id}"
        )

    @property
    def detail(self) -> str:
        """Enumerate the conflicting local objects."""
        refs = "; ".join(
            f"object type: {object_type}, id: {object_id}"
            for object_type, object_id in self.local_refs
        )
        return f"These local IDs are: {refs}."
