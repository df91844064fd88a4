"""Application exception hierarchy."""

from __future__ import annotations


class ClinicAlertsError(Exception):
    """Base class for errors surfaced to callers."""


class NotFoundError(ClinicAlertsError):
    """A referenced entity does not exist."""

    def __init__(self, resource: str, identifier):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found")
