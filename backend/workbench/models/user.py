from .base import CamelModel


class User(CamelModel):
    id: int
    username: str
    password: str
