from pydantic import BaseModel, ConfigDict

from studysphere.schemas.common import CamelModel


class Subject(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    name: str


class ProfileOptions(CamelModel):
    learning_styles: list[str]
    study_methods: list[str]
    availability: list[str]
