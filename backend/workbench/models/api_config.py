from enum import Enum

from .base import CamelModel


class Namespace(str, Enum):
    GENERIC = "generic"
    GOOGLE = "google"

    @classmethod
    def from_flag(cls, google: bool) -> "Namespace":
        return cls.GOOGLE if google else cls.GENERIC


class ApiConfiguration(CamelModel):
    id: int
    name: str
    endpoint: str = ""
    token: str  # may hold several newline-delimited keys
    model: str
    use_google: bool = False

    @property
    def namespace(self) -> Namespace:
        return Namespace.from_flag(self.use_google)
