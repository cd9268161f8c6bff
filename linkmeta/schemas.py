from pydantic import BaseModel, ConfigDict, field_validator


class LinkMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    image: str = ""
    description: str = ""

    @field_validator("title", "image", "description", mode="before")
    @classmethod
    def coerce_empty(cls, v: object) -> str:
        """Map missing values to an empty string and trim the rest"""
        if v is None:
            return ""
        return str(v).strip()

    def is_empty(self) -> bool:
        return not (self.title or self.image or self.description)


class LinkErrorData(BaseModel):
    status: int


class LinkErrorRead(BaseModel):
    code: str
    message: str
    data: LinkErrorData
