"""
The closed set of content collections served under /api/<collection>.

Each Collection maps to exactly one Resource describing its schema, Mongo
collection, list ordering and write rules. main.py builds every router from
this table.
"""

from enum import Enum
from typing import Dict, Optional, Tuple, Type

from pymongo import ASCENDING, DESCENDING

from database import Sort, now
from schemas import (
    BlogPost,
    Course,
    Creative,
    Experience,
    Photography,
    PortfolioDocument,
    Project,
    Skill,
    Video,
)


class Collection(str, Enum):
    BLOG = "blog"
    PHOTOGRAPHY = "photography"
    VIDEOS = "videos"
    EXPERIENCE = "experience"
    PROJECTS = "projects"
    SKILLS = "skills"
    COURSES = "courses"
    CREATIVES = "creatives"


MANUAL_ORDER: Sort = (("order", ASCENDING), ("_id", ASCENDING))


class Resource:
    unique_fields: Tuple[str, ...] = ()

    def __init__(self, collection: Collection, schema: Type[PortfolioDocument],
                 sort: Sort = MANUAL_ORDER, query_filters: Tuple[str, ...] = ()):
        self.collection = collection
        self.schema = schema
        self.sort = sort
        self.query_filters = query_filters

    @property
    def name(self) -> str:
        return self.schema.__name__.lower()

    def before_save(self, data: dict, previous: Optional[dict], supplied: dict):
        """Hook run on the validated document before create (previous=None) or update."""


class BlogResource(Resource):
    unique_fields = ("slug",)
    public_filter = {"published": True}
    public_sort: Sort = (("publishedAt", DESCENDING),)

    def before_save(self, data: dict, previous: Optional[dict], supplied: dict):
        # publishedAt is stamped once, on the unpublished -> published transition
        was_published = bool(previous and previous.get("published"))
        if data.get("published") and not was_published and not supplied.get("publishedAt"):
            data["publishedAt"] = now()


RESOURCES: Dict[Collection, Resource] = {
    Collection.BLOG: BlogResource(
        Collection.BLOG, BlogPost, sort=(("order", ASCENDING), ("createdAt", DESCENDING))
    ),
    Collection.PHOTOGRAPHY: Resource(Collection.PHOTOGRAPHY, Photography),
    Collection.VIDEOS: Resource(Collection.VIDEOS, Video),
    Collection.EXPERIENCE: Resource(
        Collection.EXPERIENCE,
        Experience,
        sort=(("order", ASCENDING), ("startDate", DESCENDING)),
        query_filters=("type",),
    ),
    Collection.PROJECTS: Resource(
        Collection.PROJECTS, Project, sort=(("order", ASCENDING), ("createdAt", DESCENDING))
    ),
    Collection.SKILLS: Resource(Collection.SKILLS, Skill),
    Collection.COURSES: Resource(Collection.COURSES, Course),
    Collection.CREATIVES: Resource(Collection.CREATIVES, Creative),
}

_missing = set(Collection) - set(RESOURCES)
if _missing:
    raise RuntimeError(f"No resource registered for {sorted(c.value for c in _missing)}")
