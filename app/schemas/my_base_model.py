from dataclasses import asdict, is_dataclass
from typing import Any

from pydantic import BaseModel
from sqlalchemy.engine.row import Row


class CustomBaseModel(BaseModel):
    """Base model for response schemas.
    - build straight from a query row, a dict or a domain dataclass
    - fields the schema does not declare are dropped, so private values
      such as the nonce only go out where a schema names them
    """

    @classmethod
    def from_record(cls, record: Any, **extra: Any):
        if isinstance(record, Row):
            data = record._asdict()
        elif isinstance(record, dict):
            data = dict(record)
        elif is_dataclass(record) and not isinstance(record, type):
            data = asdict(record)
        else:
            raise ValueError(f"Invalid record type: {type(record)}")
        fields = {key: value for key, value in data.items() if key in cls.model_fields}
        fields.update(extra)
        return cls(**fields)
