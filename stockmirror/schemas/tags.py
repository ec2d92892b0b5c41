from pydantic import BaseModel


class TagOut(BaseModel):
    id: str
    name: str


class TagsOut(BaseModel):
    tags: list[TagOut]
    cached: bool
