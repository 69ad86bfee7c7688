from __future__ import annotations


class PrecheckError(RuntimeError):
    pass


class ConfigError(PrecheckError):
    """Raised before a run starts when the configuration cannot be used."""


class DuplicateIdentifierError(ConfigError):
    def __init__(self, check_id: str) -> None:
        super().__init__(f"Duplicate check id: {check_id}")
        self.check_id = check_id


class ProbeFailure(PrecheckError):
    pass


class ProbeTimeout(PrecheckError):
    pass


class CheckInternalError(PrecheckError):
    pass
