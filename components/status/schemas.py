from pydantic import BaseModel, Field


class StatusBase(BaseModel):
    est_nombre: str = Field(validation_alias="name")


class StatusRead(StatusBase):
    est_id: int = Field(validation_alias="id")

    class Config:
        from_attributes = True
        populate_by_name = True
