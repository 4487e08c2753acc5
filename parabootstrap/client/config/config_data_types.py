from enum import Enum

from pydantic import BaseModel, ConfigDict


class ClientConfigEnum(Enum):
    def __str__(self):
        return self.value


class BaseClientModel(BaseModel):
    model_config = ConfigDict(validate_assignment=True, title=None, extra="forbid")
