# asocial/schemas/outcomes.py
from dataclasses import dataclass
from typing import Optional, Union
import uuid


@dataclass(frozen=True)
class Delivered:
    job_id: uuid.UUID
    platform: str
    receipt: str

    def summary(self) -> str:
        return f"delivered job {self.job_id} to {self.platform}: {self.receipt}"


@dataclass(frozen=True)
class DeliveryFailed:
    job_id: uuid.UUID
    platform: Optional[str]
    kind: str
    error: str  # adapter message, verbatim
    status_code: Optional[int] = None
    retryable: bool = False

    def summary(self) -> str:
        target = self.platform or "unknown target"
        return f"failed job {self.job_id} on {target} [{self.kind}]: {self.error}"


@dataclass(frozen=True)
class UnknownPlatform:
    job_id: uuid.UUID
    platform: str

    @property
    def error(self) -> str:
        return f"unknown platform '{self.platform}'"

    def summary(self) -> str:
        return f"failed job {self.job_id}: {self.error}"


Outcome = Union[Delivered, DeliveryFailed, UnknownPlatform]
