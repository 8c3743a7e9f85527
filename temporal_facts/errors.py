"""
Exceptions raised by the temporal facts store.
"""


class TemporalFactsError(Exception):
    """Base exception for temporal facts errors."""

    pass


class FactNotFoundError(TemporalFactsError):
    """No fact stored under the requested id."""

    def __init__(self, fact_id: str) -> None:
        super().__init__(f"Fact not found: {fact_id}")
        self.fact_id = fact_id


class DecryptionError(TemporalFactsError):
    """Ciphertext could not be decrypted (wrong key or corrupted data)."""

    pass


class StoreClosedError(TemporalFactsError):
    """Operation attempted on a closed FactStore."""

    pass


class InvalidKeyError(TemporalFactsError):
    """Key handle is not a hex-encoded secret."""

    pass
