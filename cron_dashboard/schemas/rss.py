from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class BlogRequest(BaseModel):
    name: Optional[str] = None
    url: Optional[str] = None


class ReadAllRequest(BaseModel):
    blog: Optional[str] = None


class ScanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    blog_name: Optional[str] = Field(default=None, alias="blogName")
    workers: Optional[Union[int, str]] = None
    silent: bool = False
