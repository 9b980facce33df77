from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Тела запросов в camelCase, как их шлёт клиент; в коде — snake_case."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
