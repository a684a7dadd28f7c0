"""
Database Schemas for the Portfolio CMS

Each Pydantic model = one MongoDB collection (lowercased class name).
Field names are camelCase, the same keys the front end reads and writes.
"""

from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, Field, StringConstraints, field_validator

RequiredStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Trimmed = Annotated[str, StringConstraints(strip_whitespace=True)]

PhotoCategory = Literal["portrait", "landscape", "street", "event", "other"]
ExperienceType = Literal["work", "education", "volunteer"]


def _clean_list(values: List[str]) -> List[str]:
    return [v for v in values if v]


class PortfolioDocument(BaseModel):
    order: int = Field(0, description="Manual display position within the collection")


# Content
class BlogPost(PortfolioDocument):
    title: RequiredStr
    slug: Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, min_length=1)]
    content: RequiredStr = Field(..., description="Markdown body, admonitions allowed")
    excerpt: RequiredStr = Field(..., max_length=200)
    coverImage: str = ""
    tags: List[Trimmed] = []
    published: bool = False
    publishedAt: Optional[datetime] = None

    drop_empty_tags = field_validator("tags")(_clean_list)

    @field_validator("publishedAt")
    @classmethod
    def naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class Photography(PortfolioDocument):
    title: RequiredStr
    description: str = ""
    imageUrl: RequiredStr
    category: PhotoCategory = "other"
    tags: List[Trimmed] = []
    featured: bool = False

    drop_empty_tags = field_validator("tags")(_clean_list)


class Video(PortfolioDocument):
    title: RequiredStr
    description: str = ""
    youtubeId: RequiredStr
    thumbnail: str = ""
    category: str = "general"
    tags: List[Trimmed] = []
    featured: bool = False

    drop_empty_tags = field_validator("tags")(_clean_list)


class Experience(PortfolioDocument):
    title: RequiredStr
    company: RequiredStr
    logoUrl: str = ""
    location: str = ""
    startDate: RequiredStr
    endDate: str = "Present"
    description: str = ""
    achievements: List[str] = []
    technologies: List[str] = []
    type: ExperienceType
    featured: bool = False


class Project(PortfolioDocument):
    name: RequiredStr
    description: RequiredStr
    imageUrl: str = ""
    technologies: List[str] = []
    githubUrl: str = ""
    liveUrl: str = ""
    highlights: List[str] = []
    startDate: str = ""
    endDate: str = ""
    featured: bool = False


class SkillItem(BaseModel):
    name: RequiredStr
    featured: bool = True


class Skill(PortfolioDocument):
    category: RequiredStr
    skills: List[SkillItem] = []
    featured: bool = True


class Course(PortfolioDocument):
    name: RequiredStr
    description: str = ""
    featured: bool = True


class Creative(PortfolioDocument):
    """Miscellaneous creative works shown next to photography and video."""
    title: RequiredStr
    description: str = ""
    imageUrl: str = ""
    linkUrl: str = ""
    category: Trimmed = ""
    tags: List[Trimmed] = []
    featured: bool = False

    drop_empty_tags = field_validator("tags")(_clean_list)


# Requests / responses
class LoginRequest(BaseModel):
    password: str


class Token(BaseModel):
    token: str


class ReorderItem(BaseModel):
    id: str
    order: int


class ReorderRequest(BaseModel):
    items: List[ReorderItem]


class UploadResult(BaseModel):
    url: str
    publicId: str
    width: Optional[int] = None
    height: Optional[int] = None
