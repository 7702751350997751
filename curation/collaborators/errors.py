"""Errors raised by collaborator implementations."""


class CollaboratorError(Exception):
    """Base exception for registry / staking / voting / access collaborators."""
