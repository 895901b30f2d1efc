from __future__ import annotations


class DomainError(Exception):
    """Base for every failure the core reports back to its caller."""


class NotFoundError(DomainError):
    pass


class ConflictError(DomainError):
    pass


class ValidationError(DomainError):
    pass


class PersistenceError(DomainError):
    """The task store rejected a create/update/delete."""


class DecodeError(DomainError):
    """A board snapshot could not be turned back into a board."""
