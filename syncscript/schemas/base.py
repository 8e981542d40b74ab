from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Base schema exchanging camelCase JSON"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
    
    def to_json_dict(self) -> dict:
        """JSON-safe dict in wire format, as cached and broadcast"""
        return self.model_dump(mode="json", by_alias=True)
